from decimal import Decimal

from kitchen_rental.application.interfaces.equipment_lookup import EquipmentLookup
from kitchen_rental.domain.entities.equipment import EquipmentSnapshot, EquipmentStatus


class InMemoryEquipmentLookup(EquipmentLookup):
    def __init__(self, items: list[EquipmentSnapshot] | None = None) -> None:
        self.items: dict[str, EquipmentSnapshot] = {item.id: item for item in items or []}

    async def get(self, equipment_id: str) -> EquipmentSnapshot | None:
        return self.items.get(equipment_id)


def demo_catalog() -> list[EquipmentSnapshot]:
    """Equipment served by the in-memory mode."""
    return [
        EquipmentSnapshot(
            id="eq-combi-oven",
            name="Combi oven 10 GN",
            status=EquipmentStatus.AVAILABLE,
            daily_rate=Decimal("120.00"),
        ),
        EquipmentSnapshot(
            id="eq-blast-chiller",
            name="Blast chiller",
            status=EquipmentStatus.AVAILABLE,
            daily_rate=Decimal("85.00"),
        ),
        EquipmentSnapshot(
            id="eq-deck-oven",
            name="Deck oven 3 decks",
            status=EquipmentStatus.MAINTENANCE,
            daily_rate=Decimal("150.00"),
        ),
    ]
