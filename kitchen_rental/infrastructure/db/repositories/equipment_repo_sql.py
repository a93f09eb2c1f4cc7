from decimal import Decimal

from sqlalchemy import insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from kitchen_rental.application.interfaces.equipment_lookup import EquipmentLookup
from kitchen_rental.domain.entities.equipment import EquipmentSnapshot, EquipmentStatus
from kitchen_rental.domain.errors import ReservationStoreError
from kitchen_rental.infrastructure.db.tables import equipment


class EquipmentRepoSQL(EquipmentLookup):
    """Reads the equipment rows synced from the catalog service."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, equipment_id: str) -> EquipmentSnapshot | None:
        stmt = select(equipment).where(equipment.c.id == equipment_id)
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            raise ReservationStoreError("get equipment") from exc
        row = result.mappings().first()
        if not row:
            return None
        return EquipmentSnapshot(
            id=row["id"],
            name=row["name"],
            status=EquipmentStatus(row["status"]),
            daily_rate=Decimal(str(row["daily_rate"])),
            currency=row["currency"],
        )

    async def add(self, item: EquipmentSnapshot) -> None:
        stmt = insert(equipment).values(
            id=item.id,
            name=item.name,
            status=item.status.value,
            daily_rate=item.daily_rate,
            currency=item.currency,
        )
        await self._session.execute(stmt)
