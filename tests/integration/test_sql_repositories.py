"""
SQL adapters against SQLite in-memory (aiosqlite).

Covers the reservation store contract (conflict query, filters, pagination),
the payment store, the transaction manager and the engine wired to SQL.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from kitchen_rental.application.dtos.reservation_dto import ReservationPatch
from kitchen_rental.application.interfaces.reservation_repo import (
    Pagination,
    ReservationFilters,
)
from kitchen_rental.application.notifications import BookingNotifier
from kitchen_rental.application.use_cases.booking_lifecycle import BookingLifecycleEngine
from kitchen_rental.domain.entities.equipment import EquipmentSnapshot, EquipmentStatus
from kitchen_rental.domain.entities.payment import Payment, PaymentStatus
from kitchen_rental.domain.entities.reservation import Reservation, ReservationStatus
from kitchen_rental.domain.errors import (
    ReservationConflictError,
    ReservationNotFoundError,
    ReservationStoreError,
)
from kitchen_rental.infrastructure.db.repositories.equipment_repo_sql import EquipmentRepoSQL
from kitchen_rental.infrastructure.db.repositories.payment_repo_sql import PaymentRepoSQL
from kitchen_rental.infrastructure.db.repositories.reservation_repo_sql import (
    ReservationRepoSQL,
)
from kitchen_rental.infrastructure.db.transaction_manager import SQLAlchemyTransactionManager
from kitchen_rental.infrastructure.in_memory import InMemoryEventSink
from kitchen_rental.infrastructure.locks import EquipmentLocks
from tests.helpers import EQUIPMENT_ID, EQUIPMENT_RATE, FIXED_NOW, days_from_today

pytestmark = pytest.mark.integration


def _reservation(
    reservation_id: str,
    start: int,
    end: int,
    status: ReservationStatus = ReservationStatus.PENDING,
    customer_id: str = "cust-1",
    created_offset_minutes: int = 0,
) -> Reservation:
    created_at = FIXED_NOW + timedelta(minutes=created_offset_minutes)
    return Reservation(
        id=reservation_id,
        customer_id=customer_id,
        equipment_id=EQUIPMENT_ID,
        start_date=days_from_today(start),
        end_date=days_from_today(end),
        delivery_address="1 Main Street",
        total_amount=EQUIPMENT_RATE * (end - start),
        status=status,
        created_at=created_at,
        updated_at=created_at,
    )


@pytest.fixture
async def seeded_session(db_session):
    await EquipmentRepoSQL(db_session).add(
        EquipmentSnapshot(
            id=EQUIPMENT_ID,
            name="Planetary mixer 60L",
            status=EquipmentStatus.AVAILABLE,
            daily_rate=EQUIPMENT_RATE,
        )
    )
    await db_session.commit()
    return db_session


@pytest.fixture
def repo(seeded_session) -> ReservationRepoSQL:
    return ReservationRepoSQL(seeded_session)


@pytest.fixture
def sql_engine(seeded_session, clock) -> BookingLifecycleEngine:
    return BookingLifecycleEngine(
        reservation_repo=ReservationRepoSQL(seeded_session),
        equipment_lookup=EquipmentRepoSQL(seeded_session),
        notifier=BookingNotifier(InMemoryEventSink(), clock),
        clock=clock,
        transaction_manager=SQLAlchemyTransactionManager(seeded_session),
        equipment_locks=EquipmentLocks(),
    )


class TestReservationRepoSQL:
    async def test_round_trip(self, repo, seeded_session):
        await repo.create(_reservation("r1", 7, 10))
        await seeded_session.commit()

        stored = await repo.get("r1")
        assert stored.start_date == days_from_today(7)
        assert stored.total_amount == Decimal("150.00")
        assert stored.status == ReservationStatus.PENDING
        assert stored.created_at == FIXED_NOW

    async def test_get_missing(self, repo):
        assert await repo.get("missing") is None

    @pytest.mark.parametrize(
        "start, end, expected",
        [
            (10, 12, True),  # starts on return day
            (5, 7, True),  # ends on start day
            (8, 9, True),  # inside
            (1, 20, True),  # contains
            (11, 14, False),
            (2, 6, False),
        ],
    )
    async def test_exists_conflict(self, repo, start, end, expected):
        await repo.create(_reservation("r1", 7, 10))
        assert (
            await repo.exists_conflict(EQUIPMENT_ID, days_from_today(start), days_from_today(end))
            is expected
        )

    async def test_conflict_ignores_cancelled_and_excluded(self, repo):
        await repo.create(_reservation("cancelled", 7, 10, status=ReservationStatus.CANCELLED))
        await repo.create(_reservation("own", 12, 14))

        assert not await repo.exists_conflict(
            EQUIPMENT_ID, days_from_today(8), days_from_today(9)
        )
        assert not await repo.exists_conflict(
            EQUIPMENT_ID, days_from_today(12), days_from_today(15), exclude_id="own"
        )

    async def test_list_filters_and_pagination(self, repo):
        await repo.create(_reservation("a", 1, 2, created_offset_minutes=1))
        await repo.create(_reservation("b", 4, 6, customer_id="cust-2", created_offset_minutes=2))
        await repo.create(
            _reservation("c", 8, 9, status=ReservationStatus.CONFIRMED, created_offset_minutes=3)
        )
        await repo.create(_reservation("d", 12, 15, created_offset_minutes=4))

        newest_first = await repo.list(ReservationFilters(), Pagination(page=1, limit=3))
        assert [r.id for r in newest_first.items] == ["d", "c", "b"]
        assert newest_first.total == 4
        assert newest_first.total_pages == 2

        own = await repo.list(ReservationFilters(customer_id="cust-1"), Pagination())
        assert {r.id for r in own.items} == {"a", "c", "d"}

        confirmed = await repo.list(
            ReservationFilters(status=ReservationStatus.CONFIRMED), Pagination()
        )
        assert [r.id for r in confirmed.items] == ["c"]

        windowed = await repo.list(
            ReservationFilters(start_from=days_from_today(3), end_until=days_from_today(10)),
            Pagination(sort_by="start_date", sort_order="asc"),
        )
        assert [r.id for r in windowed.items] == ["b", "c"]

    async def test_list_by_customer_newest_first(self, repo):
        await repo.create(_reservation("old", 1, 2, created_offset_minutes=1))
        await repo.create(_reservation("new", 4, 5, created_offset_minutes=2))
        assert [r.id for r in await repo.list_by_customer("cust-1")] == ["new", "old"]

    async def test_update_status(self, repo):
        await repo.create(_reservation("r1", 7, 10))
        later = FIXED_NOW + timedelta(hours=1)

        updated = await repo.update_status("r1", ReservationStatus.CONFIRMED, updated_at=later)

        assert updated.status == ReservationStatus.CONFIRMED
        assert updated.updated_at == later

    async def test_update_status_only_from_expected_status(self, repo):
        await repo.create(_reservation("r1", 7, 10))
        await repo.update_status("r1", ReservationStatus.CANCELLED)

        stale = await repo.update_status(
            "r1", ReservationStatus.CONFIRMED, expected_status=ReservationStatus.PENDING
        )

        assert stale is None
        assert (await repo.get("r1")).status == ReservationStatus.CANCELLED
        with pytest.raises(ReservationNotFoundError):
            await repo.update_status(
                "missing", ReservationStatus.CONFIRMED, expected_status=ReservationStatus.PENDING
            )

    async def test_writes_on_missing_rows(self, repo):
        with pytest.raises(ReservationNotFoundError):
            await repo.update_status("missing", ReservationStatus.CONFIRMED)
        with pytest.raises(ReservationNotFoundError):
            await repo.delete("missing")
        with pytest.raises(ReservationNotFoundError):
            await repo.update(_reservation("missing", 1, 2))

    async def test_duplicate_id_is_storage_error(self, repo, seeded_session):
        tx = SQLAlchemyTransactionManager(seeded_session)
        await repo.create(_reservation("r1", 7, 10))
        await seeded_session.commit()

        with pytest.raises(ReservationStoreError) as exc_info:
            async with tx.start():
                await repo.create(_reservation("r1", 20, 22))
        assert exc_info.value.kind == "Storage"


class TestTransactionManager:
    async def test_rollback_on_error(self, repo, seeded_session):
        tx = SQLAlchemyTransactionManager(seeded_session)

        with pytest.raises(RuntimeError):
            async with tx.start():
                await repo.create(_reservation("r1", 7, 10))
                raise RuntimeError("boom")

        assert await repo.get("r1") is None

    async def test_nested_start_joins_outer_unit(self, repo, seeded_session):
        tx = SQLAlchemyTransactionManager(seeded_session)

        with pytest.raises(RuntimeError):
            async with tx.start():
                async with tx.start():
                    await repo.create(_reservation("inner", 7, 10))
                raise RuntimeError("outer fails")

        assert await repo.get("inner") is None

    async def test_commits_autobegun_transaction(self, repo, seeded_session):
        tx = SQLAlchemyTransactionManager(seeded_session)
        await repo.get("warm-up")  # autobegins
        assert seeded_session.in_transaction()

        async with tx.start():
            await repo.create(_reservation("r1", 7, 10))

        assert not seeded_session.in_transaction()
        assert await repo.get("r1") is not None


class TestPaymentRepoSQL:
    @staticmethod
    def _payment(payment_id: str, charge_id: str, minutes: int = 0) -> Payment:
        created_at = FIXED_NOW + timedelta(minutes=minutes)
        return Payment(
            id=payment_id,
            reservation_id="r1",
            gateway_charge_id=charge_id,
            amount=Decimal("150.00"),
            currency="USD",
            metadata={"reservation_id": "r1"},
            created_at=created_at,
            updated_at=created_at,
        )

    async def test_lookup_by_charge_and_reservation(self, seeded_session):
        repo = PaymentRepoSQL(seeded_session)
        await repo.create(self._payment("p1", "pi_1", minutes=0))
        await repo.create(self._payment("p2", "pi_2", minutes=5))

        assert (await repo.get_by_charge_id("pi_1")).id == "p1"
        assert (await repo.get_by_reservation("r1")).id == "p2"
        assert (await repo.get("p1")).metadata == {"reservation_id": "r1"}
        assert await repo.get_by_charge_id("pi_missing") is None

    async def test_revenue_is_net_of_refunds(self, seeded_session):
        repo = PaymentRepoSQL(seeded_session)
        succeeded = self._payment("p1", "pi_1")
        succeeded.status = PaymentStatus.SUCCEEDED
        refunded = self._payment("p2", "pi_2")
        refunded.status = PaymentStatus.SUCCEEDED
        refunded.mark_refunded(Decimal("40.00"), FIXED_NOW)
        await repo.create(succeeded)
        await repo.create(refunded)
        await repo.create(self._payment("p3", "pi_3"))

        assert await repo.total_revenue() == Decimal("260.00")
        assert len(await repo.list_all()) == 3

    async def test_update_persists_outcome(self, seeded_session):
        repo = PaymentRepoSQL(seeded_session)
        payment = await repo.create(self._payment("p1", "pi_1"))
        payment.mark_succeeded(FIXED_NOW, event_id="evt_1")
        await repo.update(payment)

        stored = await repo.get("p1")
        assert stored.status == PaymentStatus.SUCCEEDED
        assert stored.last_event_id == "evt_1"

    async def test_update_skips_when_status_moved_on(self, seeded_session):
        repo = PaymentRepoSQL(seeded_session)
        payment = await repo.create(self._payment("p1", "pi_1"))
        payment.mark_succeeded(FIXED_NOW, event_id="evt_1")
        await repo.update(payment, expected_status=PaymentStatus.PENDING)

        payment.last_event_id = "evt_2"
        assert await repo.update(payment, expected_status=PaymentStatus.PENDING) is None
        assert (await repo.get("p1")).last_event_id == "evt_1"


class TestEngineOnSQL:
    async def test_create_update_and_transition(self, sql_engine, make_command, customer, admin):
        reservation = await sql_engine.create(make_command(start=7, end=10))
        assert reservation.total_amount == Decimal("150.00")

        with pytest.raises(ReservationConflictError):
            await sql_engine.create(make_command(start=10, end=11))

        updated = await sql_engine.update(
            reservation.id, ReservationPatch(end_date=days_from_today(12)), customer
        )
        assert updated.total_amount == Decimal("250.00")

        confirmed = await sql_engine.confirm(reservation.id, admin)
        assert confirmed.status == ReservationStatus.CONFIRMED

        cancelled = await sql_engine.cancel(reservation.id, customer)
        assert cancelled.status == ReservationStatus.CANCELLED

        await sql_engine.delete(reservation.id, admin)
        with pytest.raises(ReservationNotFoundError):
            await sql_engine.get(reservation.id, admin)
