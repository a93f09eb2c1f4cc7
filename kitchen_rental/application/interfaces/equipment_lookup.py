from kitchen_rental.domain.entities.equipment import EquipmentSnapshot


class EquipmentLookup:
    """Read-only access to the equipment catalog."""

    async def get(self, equipment_id: str) -> EquipmentSnapshot | None:
        raise NotImplementedError
