from decimal import Decimal
from typing import Sequence

from kitchen_rental.domain.entities.payment import Payment, PaymentStatus


class PaymentRepo:
    async def create(self, payment: Payment) -> Payment:
        raise NotImplementedError

    async def get(self, payment_id: str) -> Payment | None:
        raise NotImplementedError

    async def get_by_reservation(self, reservation_id: str) -> Payment | None:
        raise NotImplementedError

    async def get_by_charge_id(self, gateway_charge_id: str) -> Payment | None:
        raise NotImplementedError

    async def update(
        self, payment: Payment, expected_status: PaymentStatus | None = None
    ) -> Payment | None:
        """
        Persist ``payment``.

        With ``expected_status`` the write is a compare-and-set: it returns
        None, writing nothing, when the stored status differs.
        """
        raise NotImplementedError

    async def list_all(self) -> Sequence[Payment]:
        raise NotImplementedError

    async def total_revenue(self) -> Decimal:
        """Sum of succeeded and refunded payments, net of refunds."""
        raise NotImplementedError
