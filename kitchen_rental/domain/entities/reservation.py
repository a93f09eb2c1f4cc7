"""Reservation entity: the aggregate root of the booking lifecycle."""

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum

from kitchen_rental.domain.errors import InvalidReservationStatusError
from kitchen_rental.domain.value_objects.date_range import DateRange


class ReservationStatus(str, Enum):
    """Lifecycle states of a reservation."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ReservationAction(str, Enum):
    """Explicit lifecycle transitions."""

    CONFIRM = "confirm"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"


# Every legal (from, action) pair. Anything missing is rejected.
RESERVATION_TRANSITIONS: dict[tuple[ReservationStatus, ReservationAction], ReservationStatus] = {
    (ReservationStatus.PENDING, ReservationAction.CONFIRM): ReservationStatus.CONFIRMED,
    (ReservationStatus.CONFIRMED, ReservationAction.START): ReservationStatus.ACTIVE,
    (ReservationStatus.ACTIVE, ReservationAction.COMPLETE): ReservationStatus.COMPLETED,
    (ReservationStatus.PENDING, ReservationAction.CANCEL): ReservationStatus.CANCELLED,
    (ReservationStatus.CONFIRMED, ReservationAction.CANCEL): ReservationStatus.CANCELLED,
}

TERMINAL_STATUSES = frozenset({ReservationStatus.COMPLETED, ReservationStatus.CANCELLED})

# Statuses that hold the equipment timeline and take part in conflict checks.
TIMELINE_STATUSES = frozenset(
    {ReservationStatus.PENDING, ReservationStatus.CONFIRMED, ReservationStatus.ACTIVE}
)

# Statuses whose window (and therefore price) may still change.
WINDOW_MUTABLE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})

DELETABLE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CANCELLED})


def next_status(current: ReservationStatus, action: ReservationAction) -> ReservationStatus:
    """Look up the transition table, raising when the move is not declared."""
    try:
        return RESERVATION_TRANSITIONS[(current, action)]
    except KeyError:
        raise InvalidReservationStatusError(
            current_status=current.value, operation=action.value
        ) from None


def can_transition(current: ReservationStatus, action: ReservationAction) -> bool:
    return (current, action) in RESERVATION_TRANSITIONS


def day_start(day: date) -> datetime:
    """Midnight UTC of a calendar day."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


@dataclass
class Reservation:
    """
    A customer's claim on one piece of equipment for a date window.

    ``total_amount`` is derived from the equipment's daily rate and the
    window; it is recomputed whenever the window changes.
    """

    customer_id: str
    equipment_id: str
    start_date: date
    end_date: date
    delivery_address: str
    total_amount: Decimal = Decimal("0")
    currency: str = "USD"
    status: ReservationStatus = ReservationStatus.PENDING
    notes: str | None = None

    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # === Derived properties ===

    @property
    def window(self) -> DateRange:
        return DateRange(start=self.start_date, end=self.end_date)

    @property
    def starts_at(self) -> datetime:
        return day_start(self.start_date)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def window_is_mutable(self) -> bool:
        return self.status in WINDOW_MUTABLE_STATUSES

    @property
    def is_deletable(self) -> bool:
        return self.status in DELETABLE_STATUSES

    def hours_until_start(self, now: datetime) -> float:
        return (self.starts_at - now).total_seconds() / 3600

    # === Business methods ===

    def reschedule(self, window: DateRange, total_amount: Decimal, now: datetime) -> None:
        if not self.window_is_mutable:
            raise InvalidReservationStatusError(
                current_status=self.status.value,
                operation="reschedule",
                message=f"Cannot change dates of a {self.status.value} booking",
            )
        self.start_date = window.start
        self.end_date = window.end
        self.total_amount = total_amount
        self.updated_at = now

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "equipment_id": self.equipment_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "delivery_address": self.delivery_address,
            "status": self.status.value,
            "total_amount": str(self.total_amount),
            "currency": self.currency,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
