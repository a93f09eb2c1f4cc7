import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from kitchen_rental.api.schemas.payments import StripeWebhookEnvelope
from kitchen_rental.application.interfaces.payment_gateway import PaymentGateway
from kitchen_rental.application.interfaces.payment_repo import PaymentRepo
from kitchen_rental.application.use_cases.payment_reconciliation import (
    PaymentReconciliationHandler,
)
from kitchen_rental.domain.errors import ReservationNotFoundError, ValidationError

EVENT_PAYMENT_SUCCEEDED = "payment_intent.succeeded"
EVENT_PAYMENT_FAILED = "payment_intent.payment_failed"
EVENT_CHARGE_REFUNDED = "charge.refunded"

OUTCOME_PROCESSED = "processed"
OUTCOME_DUPLICATE = "duplicate"
OUTCOME_IGNORED = "ignored"


class HandleStripeWebhookUseCase:
    def __init__(
        self,
        reconciliation: PaymentReconciliationHandler,
        payment_repo: PaymentRepo,
        payment_gateway: PaymentGateway,
        stripe_webhook_secret: str | None,
    ) -> None:
        self._reconciliation = reconciliation
        self._payment_repo = payment_repo
        self._payment_gateway = payment_gateway
        self._stripe_webhook_secret = stripe_webhook_secret
        self._logger = logging.getLogger(__name__)

    async def execute(self, raw_body: bytes, signature: str | None) -> str:
        if not raw_body:
            raise ValidationError("Empty webhook body", code="INVALID_WEBHOOK")
        try:
            event_dict = await self._payment_gateway.parse_webhook_event(
                payload=raw_body,
                signature_header=signature,
                webhook_secret=self._stripe_webhook_secret,
            )
            event = StripeWebhookEnvelope.model_validate(event_dict)
        except (ValueError, PydanticValidationError) as exc:
            raise ValidationError(str(exc), code="INVALID_WEBHOOK") from exc

        if event.type not in (EVENT_PAYMENT_SUCCEEDED, EVENT_PAYMENT_FAILED):
            self._logger.info(
                "Stripe webhook acknowledged without action",
                extra={"stripe_event_id": event.id, "event_type": event.type},
            )
            return OUTCOME_IGNORED

        data_obj = self._data_object(event)
        charge_id = data_obj.get("id") or data_obj.get("payment_intent")
        payment = await self._payment_repo.get_by_charge_id(charge_id) if charge_id else None

        # A redelivered event still runs reconciliation: the handlers are
        # idempotent and the first delivery may have stopped half way.
        duplicate = bool(
            event.id and payment is not None and payment.last_event_id == event.id
        )

        metadata = data_obj.get("metadata") or {}
        reservation_id = metadata.get("reservation_id") or (
            payment.reservation_id if payment else None
        )
        if not reservation_id:
            self._logger.warning(
                "Stripe webhook without reservation reference",
                extra={"stripe_event_id": event.id, "charge_id": charge_id},
            )
            return OUTCOME_IGNORED

        try:
            if event.type == EVENT_PAYMENT_SUCCEEDED:
                await self._reconciliation.on_payment_succeeded(
                    reservation_id, charge_id=charge_id, event_id=event.id
                )
            else:
                await self._reconciliation.on_payment_failed(
                    reservation_id, charge_id=charge_id, event_id=event.id
                )
        except ReservationNotFoundError:
            self._logger.warning(
                "Stripe webhook for unknown reservation",
                extra={"stripe_event_id": event.id, "reservation_id": reservation_id},
            )
            return OUTCOME_IGNORED

        if duplicate:
            self._logger.info(
                "Stripe webhook already processed",
                extra={"stripe_event_id": event.id, "payment_id": payment.id},
            )
            return OUTCOME_DUPLICATE

        self._logger.info(
            "Stripe webhook processed",
            extra={
                "stripe_event_id": event.id,
                "event_type": event.type,
                "charge_id": charge_id,
                "reservation_id": reservation_id,
            },
        )
        return OUTCOME_PROCESSED

    @staticmethod
    def _data_object(event: StripeWebhookEnvelope) -> dict[str, Any]:
        data_obj = event.data.get("object", {}) if isinstance(event.data, dict) else {}
        return data_obj if isinstance(data_obj, dict) else {}
