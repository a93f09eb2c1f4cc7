from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Generic, Sequence, TypeVar

from kitchen_rental.domain.entities.reservation import Reservation, ReservationStatus

T = TypeVar("T")

SORTABLE_FIELDS = ("created_at", "start_date", "end_date", "total_amount")
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass
class ReservationFilters:
    customer_id: str | None = None
    equipment_id: str | None = None
    status: ReservationStatus | None = None
    start_from: date | None = None
    end_until: date | None = None


@dataclass
class Pagination:
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    sort_by: str = "created_at"
    sort_order: str = "desc"

    def __post_init__(self) -> None:
        self.page = max(1, self.page)
        self.limit = min(max(1, self.limit), MAX_PAGE_SIZE)
        if self.sort_by not in SORTABLE_FIELDS:
            self.sort_by = "created_at"
        if self.sort_order not in ("asc", "desc"):
            self.sort_order = "desc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class Page(Generic[T]):
    items: Sequence[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0

    def to_dict(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "total_pages": self.total_pages,
        }


class ReservationRepo:
    """
    Durable record of reservations.

    Implementations raise ReservationStoreError when the backing store fails;
    a failed read is never reported as "not found" or "no conflict".
    """

    async def create(self, reservation: Reservation) -> Reservation:
        raise NotImplementedError

    async def get(self, reservation_id: str) -> Reservation | None:
        raise NotImplementedError

    async def list(
        self,
        filters: ReservationFilters,
        pagination: Pagination,
    ) -> Page[Reservation]:
        raise NotImplementedError

    async def list_by_customer(self, customer_id: str) -> Sequence[Reservation]:
        raise NotImplementedError

    async def update(self, reservation: Reservation) -> Reservation:
        raise NotImplementedError

    async def update_status(
        self,
        reservation_id: str,
        status: ReservationStatus,
        updated_at: datetime | None = None,
        expected_status: ReservationStatus | None = None,
    ) -> Reservation | None:
        """
        Write ``status``; with ``expected_status`` the write only lands while
        the stored status still equals it (compare-and-set).

        Returns None when the stored status moved on. Raises
        ReservationNotFoundError when the reservation does not exist.
        """
        raise NotImplementedError

    async def delete(self, reservation_id: str) -> None:
        raise NotImplementedError

    async def exists_conflict(
        self,
        equipment_id: str,
        start: date,
        end: date,
        exclude_id: str | None = None,
    ) -> bool:
        """True when a pending, confirmed or active reservation overlaps ``[start, end]``."""
        raise NotImplementedError

    async def lock_timeline(self, equipment_id: str) -> None:
        """Serialize writers of one equipment timeline for the current transaction."""
        raise NotImplementedError
