import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from partner_portal.api.deps import CurrentPartner, Payments
from partner_portal.core.exceptions import PortalError
from partner_portal.schemas.payment import CreatePaymentOrderRequest, PaymentOrderResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Payments"])


@router.post("/create-order", response_model=PaymentOrderResponse)
async def create_payment_order(
    data: CreatePaymentOrderRequest,
    partner: CurrentPartner,
    payments: Payments,
):
    """
    Create a Razorpay order for an amount in rupees.

    Returns the gateway order id, the amount in paise and the currency.
    Any failure is returned as {"error": ...} with status 500.
    """
    try:
        order = await run_in_threadpool(payments.create_order, data.amount)
    except PortalError as e:
        logger.error(f"Create order failed for partner {partner.id}: {e.message}")
        return JSONResponse(status_code=500, content={"error": e.message})

    return PaymentOrderResponse(
        id=order["id"],
        amount=order["amount"],
        currency=order.get("currency", "INR"),
    )
