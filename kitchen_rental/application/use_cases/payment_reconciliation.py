import logging

from kitchen_rental.application.interfaces.clock import Clock
from kitchen_rental.application.interfaces.payment_repo import PaymentRepo
from kitchen_rental.application.interfaces.reservation_repo import ReservationRepo
from kitchen_rental.application.interfaces.transaction_manager import TransactionManager
from kitchen_rental.application.notifications import (
    PAYMENT_FAILED,
    PAYMENT_SUCCEEDED,
    BookingNotifier,
)
from kitchen_rental.application.use_cases.booking_lifecycle import BookingLifecycleEngine
from kitchen_rental.domain.entities.payment import Payment, PaymentStatus
from kitchen_rental.domain.errors import ReservationNotFoundError


class PaymentReconciliationHandler:
    """
    Applies asynchronous payment outcomes to reservations.

    Delivery is at-least-once, so both handlers are idempotent: a replayed
    outcome finds the payment already settled and neither writes nor emits
    again. Payment writes are compare-and-set on the stored status, so two
    deliveries racing each other settle the payment once.

    A success after a failure still captures the payment: the gateway may
    retry a declined charge and succeed on the same intent.
    """

    def __init__(
        self,
        engine: BookingLifecycleEngine,
        payment_repo: PaymentRepo,
        reservation_repo: ReservationRepo,
        notifier: BookingNotifier,
        clock: Clock,
        transaction_manager: TransactionManager,
    ) -> None:
        self._engine = engine
        self._payment_repo = payment_repo
        self._reservation_repo = reservation_repo
        self._notifier = notifier
        self._clock = clock
        self._transaction_manager = transaction_manager
        self._logger = logging.getLogger(__name__)

    async def on_payment_succeeded(
        self,
        reservation_id: str,
        charge_id: str | None = None,
        event_id: str | None = None,
    ) -> None:
        payment = await self._find_payment(reservation_id, charge_id)
        settled = None
        if payment is not None and payment.can_be_captured:
            previous_status = payment.status
            async with self._transaction_manager.start():
                payment.mark_succeeded(self._clock.now(), event_id)
                settled = await self._payment_repo.update(
                    payment, expected_status=previous_status
                )
        if payment is not None and settled is None:
            self._logger.info(
                "Payment success already applied",
                extra={
                    "reservation_id": reservation_id,
                    "payment_id": payment.id,
                    "status": payment.status.value,
                    "event_id": event_id,
                },
            )

        reservation = await self._engine.confirm_from_payment(reservation_id)

        if settled is not None:
            self._logger.info(
                "Payment succeeded",
                extra={
                    "reservation_id": reservation_id,
                    "payment_id": settled.id,
                    "charge_id": settled.gateway_charge_id,
                    "event_id": event_id,
                },
            )
            await self._notifier.payment_event(
                PAYMENT_SUCCEEDED, settled, reservation.customer_id, to_operators=True
            )

    async def on_payment_failed(
        self,
        reservation_id: str,
        charge_id: str | None = None,
        event_id: str | None = None,
    ) -> None:
        reservation = await self._reservation_repo.get(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(reservation_id)

        payment = await self._find_payment(reservation_id, charge_id)
        if payment is None or not payment.is_pending:
            self._logger.info(
                "Payment failure ignored",
                extra={
                    "reservation_id": reservation_id,
                    "payment_id": payment.id if payment else None,
                    "event_id": event_id,
                },
            )
            return

        async with self._transaction_manager.start():
            payment.mark_failed(self._clock.now(), event_id)
            failed = await self._payment_repo.update(
                payment, expected_status=PaymentStatus.PENDING
            )
        if failed is None:
            # A concurrent delivery settled the payment first.
            return

        self._logger.warning(
            "Payment failed",
            extra={
                "reservation_id": reservation_id,
                "payment_id": failed.id,
                "charge_id": failed.gateway_charge_id,
                "event_id": event_id,
            },
        )
        await self._notifier.payment_event(PAYMENT_FAILED, failed, reservation.customer_id)

    async def _find_payment(self, reservation_id: str, charge_id: str | None) -> Payment | None:
        if charge_id:
            payment = await self._payment_repo.get_by_charge_id(charge_id)
            if payment is not None:
                return payment
        return await self._payment_repo.get_by_reservation(reservation_id)
