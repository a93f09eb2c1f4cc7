"""In-memory adapters used by tests and by the service when no database is configured."""

from kitchen_rental.infrastructure.in_memory.equipment_lookup import (
    InMemoryEquipmentLookup,
    demo_catalog,
)
from kitchen_rental.infrastructure.in_memory.event_sink import InMemoryEventSink
from kitchen_rental.infrastructure.in_memory.payment_gateway import StubPaymentGateway
from kitchen_rental.infrastructure.in_memory.payment_repo import InMemoryPaymentRepo
from kitchen_rental.infrastructure.in_memory.reservation_repo import InMemoryReservationRepo
from kitchen_rental.infrastructure.in_memory.transaction_manager import NoopTransactionManager

__all__ = [
    "InMemoryEquipmentLookup",
    "InMemoryEventSink",
    "InMemoryPaymentRepo",
    "InMemoryReservationRepo",
    "NoopTransactionManager",
    "StubPaymentGateway",
    "demo_catalog",
]
