from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Sequence

from kitchen_rental.application.interfaces.payment_repo import PaymentRepo
from kitchen_rental.domain.entities.payment import Payment, PaymentStatus
from kitchen_rental.domain.errors import PaymentNotFoundError

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class InMemoryPaymentRepo(PaymentRepo):
    def __init__(self) -> None:
        self._by_id: dict[str, Payment] = {}
        self._by_charge: dict[str, str] = {}

    async def create(self, payment: Payment) -> Payment:
        if payment.gateway_charge_id in self._by_charge:
            raise ValueError("Gateway charge id already recorded")
        self._by_id[payment.id] = replace(payment)
        self._by_charge[payment.gateway_charge_id] = payment.id
        return replace(payment)

    async def get(self, payment_id: str) -> Payment | None:
        stored = self._by_id.get(payment_id)
        return replace(stored) if stored else None

    async def get_by_reservation(self, reservation_id: str) -> Payment | None:
        candidates = [p for p in self._by_id.values() if p.reservation_id == reservation_id]
        if not candidates:
            return None
        latest = max(candidates, key=lambda p: p.created_at or _EPOCH)
        return replace(latest)

    async def get_by_charge_id(self, gateway_charge_id: str) -> Payment | None:
        payment_id = self._by_charge.get(gateway_charge_id)
        return await self.get(payment_id) if payment_id else None

    async def update(
        self, payment: Payment, expected_status: PaymentStatus | None = None
    ) -> Payment | None:
        stored = self._by_id.get(payment.id)
        if stored is None:
            raise PaymentNotFoundError(payment_id=payment.id)
        if expected_status is not None and stored.status != expected_status:
            return None
        self._by_id[payment.id] = replace(payment)
        return replace(payment)

    async def list_all(self) -> Sequence[Payment]:
        ordered = sorted(self._by_id.values(), key=lambda p: p.created_at or _EPOCH, reverse=True)
        return [replace(p) for p in ordered]

    async def total_revenue(self) -> Decimal:
        return sum(
            (
                p.net_amount
                for p in self._by_id.values()
                if p.status in (PaymentStatus.SUCCEEDED, PaymentStatus.REFUNDED)
            ),
            Decimal("0"),
        )
