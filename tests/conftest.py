"""
Pytest configuration and shared fixtures.

Provides:
- A fixed clock so date rules and the cancellation gate are deterministic
- In-memory adapters wired into the booking engine and payment services
- SQLite in-memory database (aiosqlite) for repository tests
- FastAPI TestClient running against the in-memory mode
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from kitchen_rental.api import dependencies
from kitchen_rental.application.dtos.reservation_dto import CreateReservationCommand
from kitchen_rental.application.interfaces.clock import FakeClock
from kitchen_rental.application.notifications import BookingNotifier
from kitchen_rental.application.use_cases.booking_lifecycle import BookingLifecycleEngine
from kitchen_rental.application.use_cases.handle_stripe_webhook import (
    HandleStripeWebhookUseCase,
)
from kitchen_rental.application.use_cases.payment_reconciliation import (
    PaymentReconciliationHandler,
)
from kitchen_rental.application.use_cases.payments import PaymentService
from kitchen_rental.domain.entities.actor import Actor, ActorRole
from kitchen_rental.domain.entities.equipment import EquipmentSnapshot, EquipmentStatus
from kitchen_rental.infrastructure.circuit_breaker import stripe_breaker
from kitchen_rental.infrastructure.db.engine import build_sessionmaker, create_schema
from kitchen_rental.infrastructure.in_memory import (
    InMemoryEquipmentLookup,
    InMemoryEventSink,
    InMemoryPaymentRepo,
    InMemoryReservationRepo,
    NoopTransactionManager,
    StubPaymentGateway,
    demo_catalog,
)
from kitchen_rental.infrastructure.locks import EquipmentLocks
from kitchen_rental.main import app
from tests.helpers import EQUIPMENT_ID, EQUIPMENT_RATE, FIXED_NOW, days_from_today

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# ============================================================================
# ACTORS
# ============================================================================


@pytest.fixture
def customer() -> Actor:
    return Actor(actor_id="cust-1", role=ActorRole.CUSTOMER)


@pytest.fixture
def other_customer() -> Actor:
    return Actor(actor_id="cust-2", role=ActorRole.CUSTOMER)


@pytest.fixture
def admin() -> Actor:
    return Actor(actor_id="admin-1", role=ActorRole.ADMIN)


@pytest.fixture
def logistics() -> Actor:
    return Actor(actor_id="ops-1", role=ActorRole.LOGISTICS)


# ============================================================================
# IN-MEMORY WIRING
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(FIXED_NOW)


@pytest.fixture
def reservation_repo() -> InMemoryReservationRepo:
    return InMemoryReservationRepo()


@pytest.fixture
def payment_repo() -> InMemoryPaymentRepo:
    return InMemoryPaymentRepo()


@pytest.fixture
def equipment_lookup() -> InMemoryEquipmentLookup:
    return InMemoryEquipmentLookup(
        [
            EquipmentSnapshot(
                id=EQUIPMENT_ID,
                name="Planetary mixer 60L",
                status=EquipmentStatus.AVAILABLE,
                daily_rate=EQUIPMENT_RATE,
            ),
            *demo_catalog(),
        ]
    )


@pytest.fixture
def event_sink() -> InMemoryEventSink:
    return InMemoryEventSink()


@pytest.fixture
def payment_gateway() -> StubPaymentGateway:
    return StubPaymentGateway()


@pytest.fixture
def tx_manager() -> NoopTransactionManager:
    return NoopTransactionManager()


@pytest.fixture
def notifier(event_sink, clock) -> BookingNotifier:
    return BookingNotifier(event_sink=event_sink, clock=clock, publish_timeout_seconds=0.5)


@pytest.fixture
def engine(reservation_repo, equipment_lookup, notifier, clock, tx_manager) -> BookingLifecycleEngine:
    return BookingLifecycleEngine(
        reservation_repo=reservation_repo,
        equipment_lookup=equipment_lookup,
        notifier=notifier,
        clock=clock,
        transaction_manager=tx_manager,
        equipment_locks=EquipmentLocks(),
        upstream_timeout_seconds=0.5,
    )


@pytest.fixture
def reconciliation(
    engine, payment_repo, reservation_repo, notifier, clock, tx_manager
) -> PaymentReconciliationHandler:
    return PaymentReconciliationHandler(
        engine=engine,
        payment_repo=payment_repo,
        reservation_repo=reservation_repo,
        notifier=notifier,
        clock=clock,
        transaction_manager=tx_manager,
    )


@pytest.fixture
def payment_service(
    payment_repo, reservation_repo, payment_gateway, engine, notifier, clock, tx_manager
) -> PaymentService:
    return PaymentService(
        payment_repo=payment_repo,
        reservation_repo=reservation_repo,
        payment_gateway=payment_gateway,
        engine=engine,
        notifier=notifier,
        clock=clock,
        transaction_manager=tx_manager,
    )


@pytest.fixture
def webhook_use_case(reconciliation, payment_repo, payment_gateway) -> HandleStripeWebhookUseCase:
    return HandleStripeWebhookUseCase(
        reconciliation=reconciliation,
        payment_repo=payment_repo,
        payment_gateway=payment_gateway,
        stripe_webhook_secret=None,
    )


@pytest.fixture
def make_command(customer):
    """Build a creation command; dates are offsets in days from the fixed clock."""

    def _make(start: int = 7, end: int = 10, **overrides) -> CreateReservationCommand:
        values = {
            "customer_id": customer.actor_id,
            "equipment_id": EQUIPMENT_ID,
            "start_date": days_from_today(start),
            "end_date": days_from_today(end),
            "delivery_address": "12 Harbour Street, Unit 4",
            "notes": None,
        }
        values.update(overrides)
        return CreateReservationCommand(**values)

    return _make


# ============================================================================
# DATABASE
# ============================================================================


@pytest_asyncio.fixture
async def db_engine():
    """SQLite in-memory engine with the schema created."""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    async with build_sessionmaker(db_engine)() as session:
        yield session


# ============================================================================
# HTTP CLIENT
# ============================================================================


@pytest.fixture
def client(clock):
    """
    TestClient against the in-memory mode.

    Cached adapters are reset so every test starts with an empty store.
    """
    dependencies._in_memory_bundle.cache_clear()
    dependencies.get_event_sink.cache_clear()
    dependencies.get_equipment_locks.cache_clear()
    app.dependency_overrides[dependencies.get_clock] = lambda: clock

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: tests that touch the database or the HTTP app")


@pytest.fixture(autouse=True)
def reset_circuit_breakers():
    """Reset circuit breaker state before each test."""
    stripe_breaker.close()
    yield
    stripe_breaker.close()
