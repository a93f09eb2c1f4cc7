from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from kitchen_rental.api.deps import get_sessionmaker
from kitchen_rental.application.interfaces.clock import Clock, SystemClock
from kitchen_rental.application.interfaces.event_sink import EventSink
from kitchen_rental.application.notifications import BookingNotifier
from kitchen_rental.application.use_cases.booking_lifecycle import BookingLifecycleEngine
from kitchen_rental.application.use_cases.handle_stripe_webhook import (
    HandleStripeWebhookUseCase,
)
from kitchen_rental.application.use_cases.payment_reconciliation import (
    PaymentReconciliationHandler,
)
from kitchen_rental.application.use_cases.payments import PaymentService
from kitchen_rental.config import Settings, get_settings
from kitchen_rental.domain.entities.actor import Actor, ActorRole
from kitchen_rental.domain.errors import AuthorizationError
from kitchen_rental.infrastructure.db.repositories.equipment_repo_sql import EquipmentRepoSQL
from kitchen_rental.infrastructure.db.repositories.payment_repo_sql import PaymentRepoSQL
from kitchen_rental.infrastructure.db.repositories.reservation_repo_sql import (
    ReservationRepoSQL,
)
from kitchen_rental.infrastructure.db.transaction_manager import SQLAlchemyTransactionManager
from kitchen_rental.infrastructure.gateways.stripe_gateway import StripePaymentGateway
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
from kitchen_rental.infrastructure.messaging.logging_event_sink import LoggingEventSink


async def get_session(settings: Settings = Depends(get_settings)) -> AsyncSession | None:
    if settings.use_in_memory:
        yield None
        return
    async with get_sessionmaker()() as session:
        yield session


def get_clock() -> Clock:
    return SystemClock()


@lru_cache(maxsize=1)
def get_equipment_locks() -> EquipmentLocks:
    return EquipmentLocks()


@lru_cache(maxsize=1)
def get_event_sink() -> EventSink:
    if get_settings().use_in_memory:
        return InMemoryEventSink()
    return LoggingEventSink()


@lru_cache(maxsize=1)
def _in_memory_bundle():
    return {
        "reservation_repo": InMemoryReservationRepo(),
        "payment_repo": InMemoryPaymentRepo(),
        "equipment_lookup": InMemoryEquipmentLookup(demo_catalog()),
        "payment_gateway": StubPaymentGateway(),
        "tx_manager": NoopTransactionManager(),
    }


def _sql_bundle(session: AsyncSession, settings: Settings):
    return {
        "reservation_repo": ReservationRepoSQL(session),
        "payment_repo": PaymentRepoSQL(session),
        "equipment_lookup": EquipmentRepoSQL(session),
        "payment_gateway": (
            StripePaymentGateway(
                api_key=settings.stripe_api_key,
                timeout_seconds=settings.stripe_timeout_seconds,
            )
            if settings.stripe_api_key
            else _in_memory_bundle()["payment_gateway"]
        ),
        "tx_manager": SQLAlchemyTransactionManager(session),
    }


def get_use_cases(
    settings: Settings = Depends(get_settings),
    session: AsyncSession | None = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    if settings.use_in_memory:
        bundle = _in_memory_bundle()
    elif session is None:
        raise RuntimeError("DB session not available")
    else:
        bundle = _sql_bundle(session, settings)

    notifier = BookingNotifier(
        event_sink=get_event_sink(),
        clock=clock,
        publish_timeout_seconds=settings.event_publish_timeout_seconds,
    )
    engine = BookingLifecycleEngine(
        reservation_repo=bundle["reservation_repo"],
        equipment_lookup=bundle["equipment_lookup"],
        notifier=notifier,
        clock=clock,
        transaction_manager=bundle["tx_manager"],
        equipment_locks=get_equipment_locks(),
        cancellation_notice_hours=settings.cancellation_notice_hours,
        max_advance_days=settings.max_advance_days,
        upstream_timeout_seconds=settings.upstream_timeout_seconds,
    )
    reconciliation = PaymentReconciliationHandler(
        engine=engine,
        payment_repo=bundle["payment_repo"],
        reservation_repo=bundle["reservation_repo"],
        notifier=notifier,
        clock=clock,
        transaction_manager=bundle["tx_manager"],
    )
    return {
        "booking_engine": engine,
        "payments": PaymentService(
            payment_repo=bundle["payment_repo"],
            reservation_repo=bundle["reservation_repo"],
            payment_gateway=bundle["payment_gateway"],
            engine=engine,
            notifier=notifier,
            clock=clock,
            transaction_manager=bundle["tx_manager"],
            currency=settings.currency,
        ),
        "reconciliation": reconciliation,
        "handle_webhook": HandleStripeWebhookUseCase(
            reconciliation=reconciliation,
            payment_repo=bundle["payment_repo"],
            payment_gateway=bundle["payment_gateway"],
            stripe_webhook_secret=settings.stripe_webhook_secret,
        ),
    }


def get_actor(
    user_id: str | None = Header(default=None, alias="X-User-Id"),
    user_role: str | None = Header(default=None, alias="X-User-Role"),
) -> Actor:
    """Identity is resolved upstream and trusted verbatim."""
    if not user_id or not user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    try:
        role = ActorRole(user_role.strip().lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown role: {user_role}",
        ) from None
    return Actor(actor_id=user_id.strip(), role=role)


def require_operator(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_operator:
        raise AuthorizationError("This action requires an admin or logistics role")
    return actor


def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_admin:
        raise AuthorizationError("This action requires an admin role")
    return actor
