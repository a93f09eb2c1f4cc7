"""Entities of the rental domain."""

from kitchen_rental.domain.entities.actor import OPERATOR_ROLES, Actor, ActorRole
from kitchen_rental.domain.entities.equipment import EquipmentSnapshot, EquipmentStatus
from kitchen_rental.domain.entities.payment import Payment, PaymentStatus
from kitchen_rental.domain.entities.reservation import (
    RESERVATION_TRANSITIONS,
    TERMINAL_STATUSES,
    TIMELINE_STATUSES,
    Reservation,
    ReservationAction,
    ReservationStatus,
    can_transition,
    next_status,
)

__all__ = [
    "Actor",
    "ActorRole",
    "OPERATOR_ROLES",
    "EquipmentSnapshot",
    "EquipmentStatus",
    "Payment",
    "PaymentStatus",
    "Reservation",
    "ReservationAction",
    "ReservationStatus",
    "RESERVATION_TRANSITIONS",
    "TERMINAL_STATUSES",
    "TIMELINE_STATUSES",
    "can_transition",
    "next_status",
]
