from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, constr, field_validator

from kitchen_rental.application.dtos.reservation_dto import (
    CreateReservationCommand,
    ReservationPatch,
)
from kitchen_rental.domain.entities.reservation import ReservationStatus

Address = constr(strip_whitespace=True, min_length=5, max_length=500)


def _truncate_to_day(value: Any) -> Any:
    """Accept ISO datetimes as well as plain dates; the time of day is dropped."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    return value


class CreateBookingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    equipment_id: constr(strip_whitespace=True, min_length=1)
    start_date: date
    end_date: date
    delivery_address: Address
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def drop_time_of_day(cls, value: Any) -> Any:
        return _truncate_to_day(value)

    def to_command(self, customer_id: str) -> CreateReservationCommand:
        return CreateReservationCommand(
            customer_id=customer_id,
            equipment_id=self.equipment_id,
            start_date=self.start_date,
            end_date=self.end_date,
            delivery_address=self.delivery_address,
            notes=self.notes,
        )


class UpdateBookingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start_date: date | None = None
    end_date: date | None = None
    delivery_address: Address | None = None
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def drop_time_of_day(cls, value: Any) -> Any:
        return _truncate_to_day(value)

    def to_patch(self) -> ReservationPatch:
        return ReservationPatch(
            start_date=self.start_date,
            end_date=self.end_date,
            delivery_address=self.delivery_address,
            notes=self.notes,
        )


class ReservationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    customer_id: str
    equipment_id: str
    start_date: date
    end_date: date
    delivery_address: str
    status: ReservationStatus
    total_amount: Decimal
    currency: str
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AvailabilityOut(BaseModel):
    equipment_id: str
    start_date: date
    end_date: date
    available: bool
