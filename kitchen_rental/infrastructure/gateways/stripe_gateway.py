import asyncio
import json
import logging
from decimal import Decimal
from typing import Any, Callable

import stripe

from kitchen_rental.application.interfaces.payment_gateway import ChargeResult, PaymentGateway
from kitchen_rental.config import get_settings
from kitchen_rental.domain.errors import UpstreamError
from kitchen_rental.domain.value_objects.money import Money
from kitchen_rental.infrastructure.circuit_breaker import CircuitBreakerError, stripe_breaker

logger = logging.getLogger(__name__)

STRIPE_SERVICE = "stripe"
REFUND_REASONS = frozenset({"duplicate", "fraudulent", "requested_by_customer"})


class StripePaymentGateway(PaymentGateway):
    """
    Stripe PaymentIntents behind the PaymentGateway port.

    The SDK is synchronous, so every call runs in a worker thread under the
    shared circuit breaker and is bounded by ``timeout_seconds``.
    """

    def __init__(self, api_key: str | None = None, timeout_seconds: float | None = None) -> None:
        settings = get_settings()
        stripe.api_key = api_key or settings.stripe_api_key
        stripe.max_network_retries = 2
        self._timeout_seconds = timeout_seconds or settings.stripe_timeout_seconds

    async def create_charge(
        self,
        amount: Decimal,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> ChargeResult:
        intent = await self._call(
            "create payment intent",
            stripe.PaymentIntent.create,
            amount=Money(amount=amount, currency_code=currency).to_minor_units(),
            currency=currency.lower(),
            metadata=metadata,
            automatic_payment_methods={"enabled": True},
            idempotency_key=idempotency_key,
        )
        return ChargeResult(
            charge_id=intent.id,
            client_secret=intent.client_secret,
            status=intent.status,
        )

    async def retrieve_client_secret(self, charge_id: str) -> str | None:
        intent = await self._call(
            "retrieve payment intent", stripe.PaymentIntent.retrieve, charge_id
        )
        return intent.client_secret

    async def refund(
        self,
        charge_id: str,
        amount: Decimal | None = None,
        reason: str | None = None,
        currency: str = "usd",
    ) -> str:
        params: dict[str, Any] = {
            "payment_intent": charge_id,
            "reason": reason if reason in REFUND_REASONS else "requested_by_customer",
        }
        if amount is not None:
            params["amount"] = Money(amount=amount, currency_code=currency).to_minor_units()
        refund = await self._call("create refund", stripe.Refund.create, **params)
        return refund.id

    async def parse_webhook_event(
        self,
        payload: bytes,
        signature_header: str | None,
        webhook_secret: str | None,
    ) -> dict:
        if webhook_secret:
            if not signature_header:
                raise ValueError("Missing Stripe-Signature header")
            try:
                event = stripe.Webhook.construct_event(
                    payload=payload.decode(),
                    sig_header=signature_header,
                    secret=webhook_secret,
                )
            except stripe.SignatureVerificationError as exc:
                raise ValueError("Invalid Stripe signature") from exc
            except ValueError as exc:
                raise ValueError("Invalid Stripe webhook payload") from exc
        else:
            try:
                event = stripe.Event.construct_from(
                    json.loads(payload.decode() or "{}"), stripe.api_key
                )
            except (ValueError, UnicodeDecodeError) as exc:
                raise ValueError("Invalid webhook payload") from exc

        return event.to_dict() if hasattr(event, "to_dict") else dict(event)

    async def _call(self, operation: str, func: Callable[..., Any], *args, **kwargs) -> Any:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(stripe_breaker.call, func, *args, **kwargs),
                timeout=self._timeout_seconds,
            )
        except CircuitBreakerError as exc:
            logger.error(
                "Stripe circuit breaker is open - service unavailable",
                extra={"operation": operation, "circuit_state": str(exc)},
            )
            raise UpstreamError(STRIPE_SERVICE, "Payment provider temporarily unavailable") from exc
        except asyncio.TimeoutError as exc:
            logger.error(
                "Stripe call timed out",
                extra={"operation": operation, "timeout": self._timeout_seconds},
            )
            raise UpstreamError(STRIPE_SERVICE, f"Failed to {operation}: timeout") from exc
        except stripe.StripeError as exc:
            logger.error("Stripe API error", exc_info=exc, extra={"operation": operation})
            raise UpstreamError(STRIPE_SERVICE, f"Failed to {operation}") from exc
