"""DTOs for reservations."""

from dataclasses import dataclass
from datetime import date


@dataclass
class CreateReservationCommand:
    customer_id: str
    equipment_id: str
    start_date: date
    end_date: date
    delivery_address: str
    notes: str | None = None


@dataclass
class ReservationPatch:
    """
    Partial update of a reservation.

    ``None`` means "leave unchanged". A patch may carry only one of the two
    dates; the engine merges it with the stored window before validating.
    """

    start_date: date | None = None
    end_date: date | None = None
    delivery_address: str | None = None
    notes: str | None = None

    @property
    def changes_window(self) -> bool:
        return self.start_date is not None or self.end_date is not None

    @property
    def is_empty(self) -> bool:
        return not self.changes_window and self.delivery_address is None and self.notes is None
