"""Ports of the application layer."""

from kitchen_rental.application.interfaces.clock import Clock, FakeClock, SystemClock
from kitchen_rental.application.interfaces.equipment_lookup import EquipmentLookup
from kitchen_rental.application.interfaces.event_sink import (
    ADMIN_ROOM,
    EventSink,
    user_room,
)
from kitchen_rental.application.interfaces.payment_gateway import ChargeResult, PaymentGateway
from kitchen_rental.application.interfaces.payment_repo import PaymentRepo
from kitchen_rental.application.interfaces.reservation_repo import (
    Page,
    Pagination,
    ReservationFilters,
    ReservationRepo,
)
from kitchen_rental.application.interfaces.transaction_manager import TransactionManager

__all__ = [
    # Repositories
    "ReservationRepo",
    "ReservationFilters",
    "Pagination",
    "Page",
    "PaymentRepo",
    "EquipmentLookup",
    # Gateways
    "PaymentGateway",
    "ChargeResult",
    "EventSink",
    "ADMIN_ROOM",
    "user_room",
    # Infrastructure
    "TransactionManager",
    # Utilities
    "Clock",
    "SystemClock",
    "FakeClock",
]
