from dataclasses import dataclass
from decimal import Decimal
from typing import Any


@dataclass
class ChargeResult:
    charge_id: str
    client_secret: str | None
    status: str = "requires_payment_method"


class PaymentGateway:
    async def create_charge(
        self,
        amount: Decimal,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> ChargeResult:
        raise NotImplementedError

    async def retrieve_client_secret(self, charge_id: str) -> str | None:
        raise NotImplementedError

    async def refund(
        self,
        charge_id: str,
        amount: Decimal | None = None,
        reason: str | None = None,
        currency: str = "usd",
    ) -> str:
        """
        Refund a charge, returning the gateway refund id.

        ``amount`` is in major units of ``currency``; None refunds the whole charge.
        """
        raise NotImplementedError

    async def parse_webhook_event(
        self,
        payload: bytes,
        signature_header: str | None,
        webhook_secret: str | None,
    ) -> dict[str, Any]:
        raise NotImplementedError
