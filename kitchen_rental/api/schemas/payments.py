from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, condecimal, constr

from kitchen_rental.domain.entities.payment import PaymentStatus

RefundAmount = condecimal(gt=0, max_digits=12, decimal_places=2)


class CreatePaymentIntentRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reservation_id: constr(strip_whitespace=True, min_length=1)


class RefundPaymentRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: RefundAmount | None = None
    reason: str | None = Field(default=None, max_length=255)


class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    reservation_id: str
    gateway_charge_id: str
    amount: Decimal
    currency: str
    status: PaymentStatus
    refund_amount: Decimal | None = None
    refunded_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PaymentIntentOut(BaseModel):
    payment: PaymentOut
    client_secret: str | None


class RevenueOut(BaseModel):
    total_revenue: Decimal
    currency: str


class StripeWebhookEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    type: str
    data: dict[str, Any] = Field(default_factory=dict)
    livemode: bool | None = None
    created: int | None = None
