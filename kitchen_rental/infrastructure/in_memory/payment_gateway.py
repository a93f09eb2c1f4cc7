import json
from decimal import Decimal
from uuid import uuid4

from kitchen_rental.application.interfaces.payment_gateway import ChargeResult, PaymentGateway


class StubPaymentGateway(PaymentGateway):
    """Gateway double used when no Stripe key is configured."""

    def __init__(self) -> None:
        self.charges: dict[str, ChargeResult] = {}
        self.refunds: list[tuple[str, Decimal | None, str | None, str]] = []
        self._by_idempotency_key: dict[str, str] = {}

    async def create_charge(
        self,
        amount: Decimal,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> ChargeResult:
        existing = self._by_idempotency_key.get(idempotency_key)
        if existing:
            return self.charges[existing]
        charge_id = f"pi_{uuid4().hex[:14]}"
        result = ChargeResult(
            charge_id=charge_id,
            client_secret=f"{charge_id}_secret_{uuid4().hex[:10]}",
        )
        self.charges[charge_id] = result
        self._by_idempotency_key[idempotency_key] = charge_id
        return result

    async def retrieve_client_secret(self, charge_id: str) -> str | None:
        charge = self.charges.get(charge_id)
        return charge.client_secret if charge else None

    async def refund(
        self,
        charge_id: str,
        amount: Decimal | None = None,
        reason: str | None = None,
        currency: str = "usd",
    ) -> str:
        self.refunds.append((charge_id, amount, reason, currency))
        return f"re_{uuid4().hex[:14]}"

    async def parse_webhook_event(
        self,
        payload: bytes,
        signature_header: str | None,
        webhook_secret: str | None,
    ) -> dict:
        if not payload:
            raise ValueError("Empty webhook payload")
        try:
            return json.loads(payload.decode() or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Invalid webhook payload") from exc
