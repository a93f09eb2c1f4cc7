from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Sequence

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
from kitchen_rental.domain.errors import ReservationNotFoundError

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class InMemoryReservationRepo(ReservationRepo):
    def __init__(self) -> None:
        self.reservations: dict[str, Reservation] = {}

    async def create(self, reservation: Reservation) -> Reservation:
        if reservation.id in self.reservations:
            raise ValueError("Reservation id already exists")
        self.reservations[reservation.id] = replace(reservation)
        return replace(reservation)

    async def get(self, reservation_id: str) -> Reservation | None:
        stored = self.reservations.get(reservation_id)
        return replace(stored) if stored else None

    async def list(
        self,
        filters: ReservationFilters,
        pagination: Pagination,
    ) -> Page[Reservation]:
        matches = [r for r in self.reservations.values() if self._matches(r, filters)]
        matches.sort(
            key=lambda r: self._sort_key(r, pagination.sort_by),
            reverse=pagination.sort_order == "desc",
        )
        window = matches[pagination.offset : pagination.offset + pagination.limit]
        return Page(
            items=[replace(r) for r in window],
            total=len(matches),
            page=pagination.page,
            limit=pagination.limit,
        )

    async def list_by_customer(self, customer_id: str) -> Sequence[Reservation]:
        owned = [r for r in self.reservations.values() if r.customer_id == customer_id]
        owned.sort(key=lambda r: r.created_at or _EPOCH, reverse=True)
        return [replace(r) for r in owned]

    async def update(self, reservation: Reservation) -> Reservation:
        if reservation.id not in self.reservations:
            raise ReservationNotFoundError(reservation.id)
        self.reservations[reservation.id] = replace(reservation)
        return replace(reservation)

    async def update_status(
        self,
        reservation_id: str,
        status: ReservationStatus,
        updated_at: datetime | None = None,
        expected_status: ReservationStatus | None = None,
    ) -> Reservation | None:
        stored = self.reservations.get(reservation_id)
        if stored is None:
            raise ReservationNotFoundError(reservation_id)
        if expected_status is not None and stored.status != expected_status:
            return None
        stored.status = status
        stored.updated_at = updated_at or datetime.now(timezone.utc)
        return replace(stored)

    async def delete(self, reservation_id: str) -> None:
        if self.reservations.pop(reservation_id, None) is None:
            raise ReservationNotFoundError(reservation_id)

    async def exists_conflict(
        self,
        equipment_id: str,
        start: date,
        end: date,
        exclude_id: str | None = None,
    ) -> bool:
        for existing in self.reservations.values():
            if existing.equipment_id != equipment_id or existing.id == exclude_id:
                continue
            if existing.status not in TIMELINE_STATUSES:
                continue
            if (
                (existing.start_date <= start <= existing.end_date)
                or (existing.start_date <= end <= existing.end_date)
                or (start <= existing.start_date and existing.end_date <= end)
            ):
                return True
        return False

    async def lock_timeline(self, equipment_id: str) -> None:
        # Single process, single event loop: EquipmentLocks already serializes writers.
        return None

    @staticmethod
    def _matches(reservation: Reservation, filters: ReservationFilters) -> bool:
        if filters.customer_id and reservation.customer_id != filters.customer_id:
            return False
        if filters.equipment_id and reservation.equipment_id != filters.equipment_id:
            return False
        if filters.status and reservation.status != filters.status:
            return False
        if filters.start_from and reservation.start_date < filters.start_from:
            return False
        if filters.end_until and reservation.end_date > filters.end_until:
            return False
        return True

    @staticmethod
    def _sort_key(reservation: Reservation, sort_by: str):
        value = getattr(reservation, sort_by)
        if value is None and sort_by == "created_at":
            return _EPOCH
        return value
