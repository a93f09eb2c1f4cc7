from fastapi import APIRouter, Depends, Request, status

from kitchen_rental.api.dependencies import get_actor, get_use_cases, require_admin
from kitchen_rental.api.schemas.envelope import Envelope
from kitchen_rental.api.schemas.payments import (
    CreatePaymentIntentRequest,
    PaymentIntentOut,
    PaymentOut,
    RefundPaymentRequest,
    RevenueOut,
)
from kitchen_rental.config import get_settings
from kitchen_rental.domain.entities.actor import Actor

router = APIRouter(prefix="/payments")


@router.post(
    "/intent",
    response_model=Envelope[PaymentIntentOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_payment_intent(
    payload: CreatePaymentIntentRequest,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
):
    intent = await use_cases["payments"].create_payment_intent(payload.reservation_id, actor)
    return Envelope(
        status=status.HTTP_201_CREATED,
        message="Payment intent created",
        data=PaymentIntentOut(
            payment=PaymentOut.model_validate(intent.payment),
            client_secret=intent.client_secret,
        ),
    )


@router.get("/booking/{reservation_id}", response_model=Envelope[PaymentOut])
async def get_payment_for_booking(
    reservation_id: str,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
):
    payment = await use_cases["payments"].get_payment_for_reservation(reservation_id, actor)
    return Envelope(data=PaymentOut.model_validate(payment))


@router.get("/revenue/total", response_model=Envelope[RevenueOut])
async def total_revenue(
    actor: Actor = Depends(require_admin),
    use_cases=Depends(get_use_cases),
):
    revenue = await use_cases["payments"].total_revenue()
    return Envelope(
        data=RevenueOut(total_revenue=revenue, currency=get_settings().currency.upper())
    )


@router.get("", response_model=Envelope[list[PaymentOut]])
async def list_payments(
    actor: Actor = Depends(require_admin),
    use_cases=Depends(get_use_cases),
):
    payments = await use_cases["payments"].list_payments()
    return Envelope(data=[PaymentOut.model_validate(p) for p in payments])


@router.post("/webhook", status_code=status.HTTP_200_OK)
async def stripe_webhook(
    request: Request,
    use_cases=Depends(get_use_cases),
) -> dict:
    raw_body = await request.body()
    signature = request.headers.get("Stripe-Signature")
    outcome = await use_cases["handle_webhook"].execute(raw_body=raw_body, signature=signature)
    return {"received": True, "outcome": outcome}


@router.get("/{payment_id}", response_model=Envelope[PaymentOut])
async def get_payment(
    payment_id: str,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
):
    payment = await use_cases["payments"].get_payment(payment_id, actor)
    return Envelope(data=PaymentOut.model_validate(payment))


@router.post("/{payment_id}/refund", response_model=Envelope[PaymentOut])
async def refund_payment(
    payment_id: str,
    payload: RefundPaymentRequest | None = None,
    actor: Actor = Depends(require_admin),
    use_cases=Depends(get_use_cases),
):
    payload = payload or RefundPaymentRequest()
    payment = await use_cases["payments"].refund_payment(
        payment_id, amount=payload.amount, reason=payload.reason
    )
    return Envelope(message="Payment refunded", data=PaymentOut.model_validate(payment))
