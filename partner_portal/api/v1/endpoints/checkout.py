from typing import Optional
import uuid

from fastapi import APIRouter, Body, status

from partner_portal.api.deps import DB, CurrentPartner, Payments
from partner_portal.schemas.order import OrderResponse
from partner_portal.schemas.payment import (
    CheckoutStartRequest,
    CheckoutStartResponse,
    CheckoutIntentResponse,
    CheckoutResult,
    PaymentConfirmation,
    PaymentOrderResponse,
)
from partner_portal.services.checkout_service import CheckoutService

router = APIRouter(tags=["Checkout"])


@router.post("/start", response_model=CheckoutStartResponse, status_code=status.HTTP_201_CREATED)
async def start_checkout(
    data: CheckoutStartRequest,
    db: DB,
    partner: CurrentPartner,
    payments: Payments,
):
    """
    Validate the cart and open a checkout.

    For online payment the response carries the Razorpay order the client
    opens the payment widget with.
    """
    service = CheckoutService(db, payment_service=payments)
    intent, razorpay_order = await service.start_checkout(
        partner,
        data.payment_method,
        data.shipping_address.model_dump(),
    )

    payment_order = None
    if razorpay_order:
        payment_order = PaymentOrderResponse(
            id=razorpay_order["id"],
            amount=razorpay_order["amount"],
            currency=razorpay_order.get("currency", "INR"),
        )

    return CheckoutStartResponse(
        intent=CheckoutIntentResponse.model_validate(intent),
        payment_order=payment_order,
        razorpay_key_id=payments.key_id if razorpay_order else None,
    )


@router.post("/{intent_id}/confirm", response_model=CheckoutResult)
async def confirm_checkout(
    intent_id: uuid.UUID,
    db: DB,
    partner: CurrentPartner,
    payments: Payments,
    payment: Optional[PaymentConfirmation] = Body(None),
):
    """
    Finalize a checkout into an order.

    Online checkouts post the payment widget's success payload; cash on
    delivery checkouts post no body.
    """
    service = CheckoutService(db, payment_service=payments)
    intent, order = await service.confirm_checkout(partner, intent_id, payment)

    return CheckoutResult(
        intent=CheckoutIntentResponse.model_validate(intent),
        order=OrderResponse.model_validate(order),
    )


@router.post("/{intent_id}/cancel", response_model=CheckoutIntentResponse)
async def cancel_checkout(
    intent_id: uuid.UUID,
    db: DB,
    partner: CurrentPartner,
    payments: Payments,
):
    """Payment widget dismissed. The cart is left as it was."""
    service = CheckoutService(db, payment_service=payments)
    intent = await service.cancel_checkout(partner, intent_id)
    return CheckoutIntentResponse.model_validate(intent)


@router.get("/{intent_id}", response_model=CheckoutIntentResponse)
async def get_checkout(intent_id: uuid.UUID, db: DB, partner: CurrentPartner, payments: Payments):
    service = CheckoutService(db, payment_service=payments)
    intent = await service.get_intent(partner.id, intent_id)
    return CheckoutIntentResponse.model_validate(intent)
