"""
Domain layer of the rental booking system.

Pure business rules with no framework dependencies:
- entities/: Reservation, Payment, EquipmentSnapshot, Actor
- value_objects/: DateRange, Money
- date_rules.py: reservation window validation
- pricing.py: rental charge calculation
- errors.py: domain exceptions
"""

from kitchen_rental.domain.date_rules import validate_window
from kitchen_rental.domain.entities import (
    Actor,
    ActorRole,
    EquipmentSnapshot,
    EquipmentStatus,
    Payment,
    PaymentStatus,
    Reservation,
    ReservationAction,
    ReservationStatus,
)
from kitchen_rental.domain.errors import (
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from kitchen_rental.domain.pricing import compute_amount
from kitchen_rental.domain.value_objects import DateRange, Money

__all__ = [
    "Actor",
    "ActorRole",
    "EquipmentSnapshot",
    "EquipmentStatus",
    "Payment",
    "PaymentStatus",
    "Reservation",
    "ReservationAction",
    "ReservationStatus",
    "DateRange",
    "Money",
    "DomainError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "AuthorizationError",
    "UpstreamError",
    "compute_amount",
    "validate_window",
]
