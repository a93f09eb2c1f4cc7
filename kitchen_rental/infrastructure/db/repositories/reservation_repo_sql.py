import logging
from datetime import date, datetime, timezone
from typing import Sequence

from sqlalchemy import and_, delete, func, insert, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from kitchen_rental.application.interfaces.reservation_repo import (
    Page,
    Pagination,
    ReservationFilters,
    ReservationRepo,
)
from kitchen_rental.domain.entities.reservation import (
    TIMELINE_STATUSES,
    Reservation,
    ReservationStatus,
)
from kitchen_rental.domain.errors import ReservationNotFoundError, ReservationStoreError
from kitchen_rental.infrastructure.db.repositories._mapping import as_utc
from kitchen_rental.infrastructure.db.tables import equipment, reservations

logger = logging.getLogger(__name__)

_TIMELINE_VALUES = [status.value for status in TIMELINE_STATUSES]


class ReservationRepoSQL(ReservationRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, reservation: Reservation) -> Reservation:
        stmt = insert(reservations).values(**self._to_row(reservation))
        await self._execute(stmt, "create reservation")
        return reservation

    async def get(self, reservation_id: str) -> Reservation | None:
        stmt = select(reservations).where(reservations.c.id == reservation_id)
        result = await self._execute(stmt, "get reservation")
        row = result.mappings().first()
        return self._map_reservation(row) if row else None

    async def list(
        self,
        filters: ReservationFilters,
        pagination: Pagination,
    ) -> Page[Reservation]:
        conditions = self._filter_conditions(filters)

        count_stmt = select(func.count()).select_from(reservations).where(*conditions)
        total = (await self._execute(count_stmt, "count reservations")).scalar_one()

        sort_column = reservations.c[pagination.sort_by]
        order = sort_column.asc() if pagination.sort_order == "asc" else sort_column.desc()
        stmt = (
            select(reservations)
            .where(*conditions)
            .order_by(order, reservations.c.id)
            .offset(pagination.offset)
            .limit(pagination.limit)
        )
        rows = (await self._execute(stmt, "list reservations")).mappings().all()
        return Page(
            items=[self._map_reservation(row) for row in rows],
            total=total,
            page=pagination.page,
            limit=pagination.limit,
        )

    async def list_by_customer(self, customer_id: str) -> Sequence[Reservation]:
        stmt = (
            select(reservations)
            .where(reservations.c.customer_id == customer_id)
            .order_by(reservations.c.created_at.desc())
        )
        rows = (await self._execute(stmt, "list customer reservations")).mappings().all()
        return [self._map_reservation(row) for row in rows]

    async def update(self, reservation: Reservation) -> Reservation:
        row = self._to_row(reservation)
        row.pop("id")
        row.pop("created_at")
        stmt = update(reservations).where(reservations.c.id == reservation.id).values(**row)
        result = await self._execute(stmt, "update reservation")
        if result.rowcount == 0:
            raise ReservationNotFoundError(reservation.id)
        return reservation

    async def update_status(
        self,
        reservation_id: str,
        status: ReservationStatus,
        updated_at: datetime | None = None,
        expected_status: ReservationStatus | None = None,
    ) -> Reservation | None:
        stmt = (
            update(reservations)
            .where(reservations.c.id == reservation_id)
            .values(status=status.value, updated_at=updated_at or datetime.now(timezone.utc))
        )
        if expected_status is not None:
            stmt = stmt.where(reservations.c.status == expected_status.value)
        result = await self._execute(stmt, "update reservation status")
        if result.rowcount == 0:
            # Zero rows: either the id is unknown or the status moved on.
            if await self.get(reservation_id) is None:
                raise ReservationNotFoundError(reservation_id)
            return None
        updated = await self.get(reservation_id)
        if updated is None:
            raise ReservationNotFoundError(reservation_id)
        return updated

    async def delete(self, reservation_id: str) -> None:
        stmt = delete(reservations).where(reservations.c.id == reservation_id)
        result = await self._execute(stmt, "delete reservation")
        if result.rowcount == 0:
            raise ReservationNotFoundError(reservation_id)

    async def exists_conflict(
        self,
        equipment_id: str,
        start: date,
        end: date,
        exclude_id: str | None = None,
    ) -> bool:
        c = reservations.c
        stmt = select(func.count()).select_from(reservations).where(
            c.equipment_id == equipment_id,
            c.status.in_(_TIMELINE_VALUES),
            or_(
                # starts inside an existing booking
                and_(c.start_date <= start, c.end_date >= start),
                # ends inside an existing booking
                and_(c.start_date <= end, c.end_date >= end),
                # contains an existing booking
                and_(c.start_date >= start, c.end_date <= end),
            ),
        )
        if exclude_id:
            stmt = stmt.where(c.id != exclude_id)
        count = (await self._execute(stmt, "check reservation conflict")).scalar_one()
        return count > 0

    async def lock_timeline(self, equipment_id: str) -> None:
        stmt = select(equipment.c.id).where(equipment.c.id == equipment_id).with_for_update()
        await self._execute(stmt, "lock equipment timeline")

    async def _execute(self, stmt, operation: str):
        try:
            return await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            logger.error(
                "Reservation store operation failed",
                exc_info=exc,
                extra={"operation": operation},
            )
            raise ReservationStoreError(operation) from exc

    @staticmethod
    def _filter_conditions(filters: ReservationFilters):
        c = reservations.c
        conditions = []
        if filters.customer_id:
            conditions.append(c.customer_id == filters.customer_id)
        if filters.equipment_id:
            conditions.append(c.equipment_id == filters.equipment_id)
        if filters.status:
            conditions.append(c.status == filters.status.value)
        if filters.start_from:
            conditions.append(c.start_date >= filters.start_from)
        if filters.end_until:
            conditions.append(c.end_date <= filters.end_until)
        return conditions

    @staticmethod
    def _to_row(reservation: Reservation) -> dict:
        return {
            "id": reservation.id,
            "customer_id": reservation.customer_id,
            "equipment_id": reservation.equipment_id,
            "start_date": reservation.start_date,
            "end_date": reservation.end_date,
            "delivery_address": reservation.delivery_address,
            "status": reservation.status.value,
            "total_amount": reservation.total_amount,
            "currency": reservation.currency,
            "notes": reservation.notes,
            "created_at": reservation.created_at,
            "updated_at": reservation.updated_at,
        }

    @staticmethod
    def _map_reservation(row) -> Reservation:
        return Reservation(
            id=row["id"],
            customer_id=row["customer_id"],
            equipment_id=row["equipment_id"],
            start_date=row["start_date"],
            end_date=row["end_date"],
            delivery_address=row["delivery_address"],
            status=ReservationStatus(row["status"]),
            total_amount=row["total_amount"],
            currency=row["currency"],
            notes=row["notes"],
            created_at=as_utc(row["created_at"]),
            updated_at=as_utc(row["updated_at"]),
        )
