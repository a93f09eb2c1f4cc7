"""Commands and patches accepted by the application use cases."""

from kitchen_rental.application.dtos.reservation_dto import (
    CreateReservationCommand,
    ReservationPatch,
)

__all__ = [
    "CreateReservationCommand",
    "ReservationPatch",
]
