import asyncio

import pytest

from kitchen_rental.application.notifications import (
    BOOKING_CONFIRMED,
    PAYMENT_FAILED,
    PAYMENT_SUCCEEDED,
)
from kitchen_rental.domain.entities.payment import PaymentStatus
from kitchen_rental.domain.entities.reservation import ReservationStatus
from kitchen_rental.domain.errors import (
    PaymentAlreadyProcessedError,
    ReservationNotFoundError,
)
from tests.helpers import suspend_after


@pytest.fixture
async def pending_payment(engine, payment_service, make_command, customer):
    reservation = await engine.create(make_command())
    intent = await payment_service.create_payment_intent(reservation.id, customer)
    return reservation, intent.payment


async def test_success_confirms_reservation_and_settles_payment(
    reconciliation, reservation_repo, payment_repo, event_sink, pending_payment
):
    reservation, payment = pending_payment

    await reconciliation.on_payment_succeeded(
        reservation.id, charge_id=payment.gateway_charge_id, event_id="evt_1"
    )

    assert (await reservation_repo.get(reservation.id)).status == ReservationStatus.CONFIRMED
    stored = await payment_repo.get(payment.id)
    assert stored.status == PaymentStatus.SUCCEEDED
    assert stored.last_event_id == "evt_1"
    topics = [topic for topic, _ in event_sink.events_named(PAYMENT_SUCCEEDED)]
    assert topics == ["user:cust-1", "admin"]


async def test_replayed_success_is_a_no_op(
    reconciliation, reservation_repo, event_sink, pending_payment
):
    reservation, payment = pending_payment

    await reconciliation.on_payment_succeeded(reservation.id, charge_id=payment.gateway_charge_id)
    await reconciliation.on_payment_succeeded(reservation.id, charge_id=payment.gateway_charge_id)

    assert (await reservation_repo.get(reservation.id)).status == ReservationStatus.CONFIRMED
    assert len(event_sink.events_named(BOOKING_CONFIRMED)) == 1
    assert len(event_sink.events_named(PAYMENT_SUCCEEDED)) == 2  # customer + admin, once


async def test_success_for_cancelled_reservation_is_a_no_op(
    reconciliation, engine, reservation_repo, payment_repo, event_sink, admin, pending_payment
):
    reservation, payment = pending_payment
    await engine.cancel(reservation.id, admin)

    await reconciliation.on_payment_succeeded(reservation.id, charge_id=payment.gateway_charge_id)

    assert (await reservation_repo.get(reservation.id)).status == ReservationStatus.CANCELLED
    assert event_sink.events_named(BOOKING_CONFIRMED) == []
    # The charge was captured all the same; refunds handle the money side.
    assert (await payment_repo.get(payment.id)).status == PaymentStatus.SUCCEEDED


async def test_concurrent_success_replays_confirm_once(
    reconciliation, reservation_repo, payment_repo, event_sink, pending_payment, monkeypatch
):
    reservation, payment = pending_payment
    monkeypatch.setattr(reservation_repo, "get", suspend_after(reservation_repo.get))
    monkeypatch.setattr(payment_repo, "get", suspend_after(payment_repo.get))

    results = await asyncio.gather(
        reconciliation.on_payment_succeeded(
            reservation.id, charge_id=payment.gateway_charge_id, event_id="evt_a"
        ),
        reconciliation.on_payment_succeeded(
            reservation.id, charge_id=payment.gateway_charge_id, event_id="evt_b"
        ),
        return_exceptions=True,
    )

    assert results == [None, None]
    assert (await reservation_repo.get(reservation.id)).status == ReservationStatus.CONFIRMED
    assert len(event_sink.events_named(BOOKING_CONFIRMED)) == 1
    assert len(event_sink.events_named(PAYMENT_SUCCEEDED)) == 2  # customer + admin, once


async def test_success_after_failure_settles_payment(
    reconciliation, payment_service, reservation_repo, payment_repo, customer, pending_payment
):
    reservation, payment = pending_payment

    await reconciliation.on_payment_failed(
        reservation.id, charge_id=payment.gateway_charge_id, event_id="evt_declined"
    )
    await reconciliation.on_payment_succeeded(
        reservation.id, charge_id=payment.gateway_charge_id, event_id="evt_retried"
    )

    stored = await payment_repo.get(payment.id)
    assert stored.status == PaymentStatus.SUCCEEDED
    assert stored.last_event_id == "evt_retried"
    assert (await reservation_repo.get(reservation.id)).status == ReservationStatus.CONFIRMED
    assert await payment_repo.total_revenue() == payment.amount
    with pytest.raises(PaymentAlreadyProcessedError):
        await payment_service.create_payment_intent(reservation.id, customer)


async def test_success_without_payment_record_still_confirms(
    reconciliation, engine, reservation_repo, make_command
):
    reservation = await engine.create(make_command())
    await reconciliation.on_payment_succeeded(reservation.id)
    assert (await reservation_repo.get(reservation.id)).status == ReservationStatus.CONFIRMED


async def test_success_for_unknown_reservation(reconciliation):
    with pytest.raises(ReservationNotFoundError):
        await reconciliation.on_payment_succeeded("missing")


async def test_failure_keeps_reservation_pending(
    reconciliation, reservation_repo, payment_repo, event_sink, pending_payment
):
    reservation, payment = pending_payment

    await reconciliation.on_payment_failed(reservation.id, charge_id=payment.gateway_charge_id)

    assert (await reservation_repo.get(reservation.id)).status == ReservationStatus.PENDING
    assert (await payment_repo.get(payment.id)).status == PaymentStatus.FAILED
    topics = [topic for topic, _ in event_sink.events_named(PAYMENT_FAILED)]
    assert topics == ["user:cust-1"]


async def test_replayed_failure_is_a_no_op(reconciliation, event_sink, pending_payment):
    reservation, payment = pending_payment

    await reconciliation.on_payment_failed(reservation.id, charge_id=payment.gateway_charge_id)
    await reconciliation.on_payment_failed(reservation.id, charge_id=payment.gateway_charge_id)

    assert len(event_sink.events_named(PAYMENT_FAILED)) == 1


async def test_failure_after_success_does_not_undo_it(
    reconciliation, payment_repo, pending_payment
):
    reservation, payment = pending_payment

    await reconciliation.on_payment_succeeded(reservation.id, charge_id=payment.gateway_charge_id)
    await reconciliation.on_payment_failed(reservation.id, charge_id=payment.gateway_charge_id)

    assert (await payment_repo.get(payment.id)).status == PaymentStatus.SUCCEEDED


async def test_failure_for_unknown_reservation(reconciliation):
    with pytest.raises(ReservationNotFoundError):
        await reconciliation.on_payment_failed("missing")
