import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from kitchen_rental.application.interfaces.clock import Clock
from kitchen_rental.application.interfaces.payment_gateway import PaymentGateway
from kitchen_rental.application.interfaces.payment_repo import PaymentRepo
from kitchen_rental.application.interfaces.reservation_repo import ReservationRepo
from kitchen_rental.application.interfaces.transaction_manager import TransactionManager
from kitchen_rental.application.notifications import (
    PAYMENT_INTENT_CREATED,
    PAYMENT_REFUNDED,
    BookingNotifier,
)
from kitchen_rental.application.use_cases.booking_lifecycle import BookingLifecycleEngine
from kitchen_rental.domain.entities.actor import Actor
from kitchen_rental.domain.entities.payment import Payment, PaymentStatus
from kitchen_rental.domain.entities.reservation import Reservation, ReservationStatus
from kitchen_rental.domain.errors import (
    AuthorizationError,
    InvalidRefundError,
    InvalidReservationStatusError,
    PaymentAlreadyProcessedError,
    PaymentNotFoundError,
    ReservationNotFoundError,
    UpstreamError,
)
from kitchen_rental.domain.value_objects.money import quantize_amount

PAYABLE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})


@dataclass
class PaymentIntent:
    payment: Payment
    client_secret: str | None


class PaymentService:
    """Charges, refunds and payment lookups for reservations."""

    def __init__(
        self,
        payment_repo: PaymentRepo,
        reservation_repo: ReservationRepo,
        payment_gateway: PaymentGateway,
        engine: BookingLifecycleEngine,
        notifier: BookingNotifier,
        clock: Clock,
        transaction_manager: TransactionManager,
        currency: str = "usd",
    ) -> None:
        self._payment_repo = payment_repo
        self._reservation_repo = reservation_repo
        self._payment_gateway = payment_gateway
        self._engine = engine
        self._notifier = notifier
        self._clock = clock
        self._transaction_manager = transaction_manager
        self._currency = currency
        self._logger = logging.getLogger(__name__)

    async def create_payment_intent(self, reservation_id: str, actor: Actor) -> PaymentIntent:
        """
        Open (or reuse) a gateway charge for a reservation.

        A pending payment is reused so repeated calls hand back the same
        client secret. A failed payment allows a new attempt. A gateway
        failure leaves the reservation untouched.
        """
        reservation = await self._require_reservation(reservation_id)
        if not (actor.is_admin or actor.owns(reservation.customer_id)):
            raise AuthorizationError("You can only pay for your own bookings")

        if reservation.status not in PAYABLE_STATUSES:
            raise InvalidReservationStatusError(
                current_status=reservation.status.value,
                operation="pay",
                message=f"Cannot create payment for booking with status: {reservation.status.value}",
            )

        existing = await self._payment_repo.get_by_reservation(reservation_id)
        if existing is not None and existing.status in (
            PaymentStatus.SUCCEEDED,
            PaymentStatus.REFUNDED,
        ):
            raise PaymentAlreadyProcessedError(existing.id, existing.status.value)

        if existing is not None and existing.is_pending:
            client_secret = await self._reuse_client_secret(existing)
            if client_secret is not None:
                return PaymentIntent(payment=existing, client_secret=client_secret)

        metadata = {
            "reservation_id": reservation_id,
            "customer_id": reservation.customer_id,
            "equipment_id": reservation.equipment_id,
        }
        idempotency_key = f"payment-intent-{reservation_id}-{existing.id if existing else 'initial'}"
        charge = await self._payment_gateway.create_charge(
            amount=reservation.total_amount,
            currency=self._currency,
            metadata=metadata,
            idempotency_key=idempotency_key,
        )

        now = self._clock.now()
        async with self._transaction_manager.start():
            payment = await self._payment_repo.create(
                Payment(
                    id=str(uuid.uuid4()),
                    reservation_id=reservation_id,
                    gateway_charge_id=charge.charge_id,
                    amount=reservation.total_amount,
                    currency=self._currency.upper(),
                    status=PaymentStatus.PENDING,
                    client_secret=charge.client_secret,
                    metadata={
                        **metadata,
                        "start_date": reservation.start_date.isoformat(),
                        "end_date": reservation.end_date.isoformat(),
                    },
                    created_at=now,
                    updated_at=now,
                )
            )

        self._logger.info(
            "Payment intent created",
            extra={
                "reservation_id": reservation_id,
                "payment_id": payment.id,
                "charge_id": payment.gateway_charge_id,
            },
        )
        await self._notifier.payment_event(
            PAYMENT_INTENT_CREATED, payment, reservation.customer_id
        )
        return PaymentIntent(payment=payment, client_secret=charge.client_secret)

    async def _reuse_client_secret(self, payment: Payment) -> str | None:
        try:
            secret = await self._payment_gateway.retrieve_client_secret(payment.gateway_charge_id)
        except UpstreamError:
            self._logger.warning(
                "Could not retrieve existing payment intent, creating a new one",
                extra={"payment_id": payment.id, "charge_id": payment.gateway_charge_id},
            )
            return None
        return secret or payment.client_secret

    async def get_payment_for_reservation(self, reservation_id: str, actor: Actor) -> Payment:
        payment = await self._payment_repo.get_by_reservation(reservation_id)
        if payment is None:
            raise PaymentNotFoundError(reservation_id=reservation_id)
        await self._authorize_view(payment, actor)
        return payment

    async def get_payment(self, payment_id: str, actor: Actor) -> Payment:
        payment = await self._require_payment(payment_id)
        await self._authorize_view(payment, actor)
        return payment

    async def refund_payment(
        self,
        payment_id: str,
        amount: Decimal | None = None,
        reason: str | None = None,
    ) -> Payment:
        """
        Refund a succeeded payment, fully or partially.

        A full refund also cancels the reservation when it can still be
        cancelled; an active or finished rental keeps its status.
        """
        payment = await self._require_payment(payment_id)
        if payment.status == PaymentStatus.REFUNDED:
            raise InvalidRefundError("Payment has already been refunded")
        if payment.status != PaymentStatus.SUCCEEDED:
            raise InvalidRefundError("Only successful payments can be refunded")

        refund_amount = quantize_amount(Decimal(str(amount))) if amount is not None else payment.amount
        if refund_amount <= 0:
            raise InvalidRefundError("Refund amount must be positive")
        if refund_amount > payment.amount:
            raise InvalidRefundError("Refund amount cannot exceed the payment amount")

        refund_id = await self._payment_gateway.refund(
            charge_id=payment.gateway_charge_id,
            amount=refund_amount,
            reason=reason,
            currency=payment.currency,
        )

        async with self._transaction_manager.start():
            payment.mark_refunded(refund_amount, self._clock.now())
            refunded = await self._payment_repo.update(payment)

        self._logger.info(
            "Payment refunded",
            extra={
                "payment_id": payment_id,
                "refund_id": refund_id,
                "refund_amount": str(refund_amount),
                "reservation_id": payment.reservation_id,
            },
        )

        reservation = await self._reservation_repo.get(payment.reservation_id)
        if reservation is not None:
            if refund_amount >= payment.amount:
                await self._engine.cancel_from_refund(reservation.id)
            await self._notifier.payment_event(
                PAYMENT_REFUNDED, refunded, reservation.customer_id
            )
        return refunded

    async def list_payments(self) -> Sequence[Payment]:
        return await self._payment_repo.list_all()

    async def total_revenue(self) -> Decimal:
        return await self._payment_repo.total_revenue()

    async def _require_reservation(self, reservation_id: str) -> Reservation:
        reservation = await self._reservation_repo.get(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(reservation_id)
        return reservation

    async def _require_payment(self, payment_id: str) -> Payment:
        payment = await self._payment_repo.get(payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id=payment_id)
        return payment

    async def _authorize_view(self, payment: Payment, actor: Actor) -> None:
        if actor.is_operator:
            return
        reservation = await self._reservation_repo.get(payment.reservation_id)
        if reservation is None or not actor.owns(reservation.customer_id):
            raise AuthorizationError("You can only view your own payments")
