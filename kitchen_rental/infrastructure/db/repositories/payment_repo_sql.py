import logging
from decimal import Decimal
from typing import Sequence

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from kitchen_rental.application.interfaces.payment_repo import PaymentRepo
from kitchen_rental.domain.entities.payment import Payment, PaymentStatus
from kitchen_rental.domain.errors import PaymentNotFoundError, ReservationStoreError
from kitchen_rental.domain.value_objects.money import quantize_amount
from kitchen_rental.infrastructure.db.repositories._mapping import as_utc
from kitchen_rental.infrastructure.db.tables import payments

logger = logging.getLogger(__name__)


class PaymentRepoSQL(PaymentRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, payment: Payment) -> Payment:
        stmt = insert(payments).values(**self._to_row(payment))
        await self._execute(stmt, "create payment")
        return payment

    async def get(self, payment_id: str) -> Payment | None:
        return await self._fetch_one(payments.c.id == payment_id, "get payment")

    async def get_by_reservation(self, reservation_id: str) -> Payment | None:
        stmt = (
            select(payments)
            .where(payments.c.reservation_id == reservation_id)
            .order_by(payments.c.created_at.desc())
            .limit(1)
        )
        row = (await self._execute(stmt, "get payment by reservation")).mappings().first()
        return self._map_payment(row) if row else None

    async def get_by_charge_id(self, gateway_charge_id: str) -> Payment | None:
        return await self._fetch_one(
            payments.c.gateway_charge_id == gateway_charge_id, "get payment by charge"
        )

    async def update(
        self, payment: Payment, expected_status: PaymentStatus | None = None
    ) -> Payment | None:
        row = self._to_row(payment)
        row.pop("id")
        row.pop("created_at")
        stmt = update(payments).where(payments.c.id == payment.id).values(**row)
        if expected_status is not None:
            stmt = stmt.where(payments.c.status == expected_status.value)
        result = await self._execute(stmt, "update payment")
        if result.rowcount == 0:
            if expected_status is not None and await self.get(payment.id) is not None:
                return None
            raise PaymentNotFoundError(payment_id=payment.id)
        return payment

    async def list_all(self) -> Sequence[Payment]:
        stmt = select(payments).order_by(payments.c.created_at.desc())
        rows = (await self._execute(stmt, "list payments")).mappings().all()
        return [self._map_payment(row) for row in rows]

    async def total_revenue(self) -> Decimal:
        settled = [PaymentStatus.SUCCEEDED.value, PaymentStatus.REFUNDED.value]
        stmt = select(
            func.coalesce(func.sum(payments.c.amount), 0),
            func.coalesce(func.sum(payments.c.refund_amount), 0),
        ).where(payments.c.status.in_(settled))
        gross, refunded = (await self._execute(stmt, "total revenue")).one()
        return quantize_amount(Decimal(str(gross)) - Decimal(str(refunded)))

    async def _fetch_one(self, condition, operation: str) -> Payment | None:
        stmt = select(payments).where(condition)
        row = (await self._execute(stmt, operation)).mappings().first()
        return self._map_payment(row) if row else None

    async def _execute(self, stmt, operation: str):
        try:
            return await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            logger.error(
                "Payment store operation failed",
                exc_info=exc,
                extra={"operation": operation},
            )
            raise ReservationStoreError(operation) from exc

    @staticmethod
    def _to_row(payment: Payment) -> dict:
        return {
            "id": payment.id,
            "reservation_id": payment.reservation_id,
            "gateway_charge_id": payment.gateway_charge_id,
            "amount": payment.amount,
            "currency": payment.currency,
            "status": payment.status.value,
            "client_secret": payment.client_secret,
            "refund_amount": payment.refund_amount,
            "refunded_at": payment.refunded_at,
            "last_event_id": payment.last_event_id,
            "payment_metadata": payment.metadata or {},
            "created_at": payment.created_at,
            "updated_at": payment.updated_at,
        }

    @staticmethod
    def _map_payment(row) -> Payment:
        return Payment(
            id=row["id"],
            reservation_id=row["reservation_id"],
            gateway_charge_id=row["gateway_charge_id"],
            amount=row["amount"],
            currency=row["currency"],
            status=PaymentStatus(row["status"]),
            client_secret=row["client_secret"],
            refund_amount=row["refund_amount"],
            refunded_at=as_utc(row["refunded_at"]),
            last_event_id=row["last_event_id"],
            metadata=row["payment_metadata"] or {},
            created_at=as_utc(row["created_at"]),
            updated_at=as_utc(row["updated_at"]),
        )
