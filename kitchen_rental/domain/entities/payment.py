"""Payment entity: the gateway charge correlated with a reservation."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum


class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REFUNDED = "refunded"


@dataclass
class Payment:
    """
    A charge created at the payment gateway for one reservation.

    The gateway owns the charge semantics; this record only mirrors the
    outcome so the booking core can react to it.
    """

    reservation_id: str
    gateway_charge_id: str
    amount: Decimal
    currency: str = "USD"
    status: PaymentStatus = PaymentStatus.PENDING
    client_secret: str | None = None
    refund_amount: Decimal | None = None
    refunded_at: datetime | None = None
    last_event_id: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # === Properties ===

    @property
    def is_pending(self) -> bool:
        return self.status == PaymentStatus.PENDING

    @property
    def can_be_captured(self) -> bool:
        """A failed charge can still be captured when the gateway retries it."""
        return self.status in (PaymentStatus.PENDING, PaymentStatus.FAILED)

    @property
    def net_amount(self) -> Decimal:
        return self.amount - (self.refund_amount or Decimal("0"))

    # === Business methods ===

    def mark_succeeded(self, now: datetime, event_id: str | None = None) -> None:
        if not self.can_be_captured:
            raise ValueError(f"Cannot capture a payment in status {self.status.value}")
        self.status = PaymentStatus.SUCCEEDED
        self.last_event_id = event_id
        self.updated_at = now

    def mark_failed(self, now: datetime, event_id: str | None = None) -> None:
        if self.status == PaymentStatus.SUCCEEDED:
            raise ValueError("Cannot fail a payment that already succeeded")
        self.status = PaymentStatus.FAILED
        self.last_event_id = event_id
        self.updated_at = now

    def mark_refunded(self, amount: Decimal, now: datetime) -> None:
        if self.status != PaymentStatus.SUCCEEDED:
            raise ValueError("Only succeeded payments can be refunded")
        self.status = PaymentStatus.REFUNDED
        self.refund_amount = amount
        self.refunded_at = now
        self.updated_at = now

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reservation_id": self.reservation_id,
            "gateway_charge_id": self.gateway_charge_id,
            "amount": str(self.amount),
            "currency": self.currency,
            "status": self.status.value,
            "refund_amount": str(self.refund_amount) if self.refund_amount is not None else None,
            "refunded_at": self.refunded_at.isoformat() if self.refunded_at else None,
        }
