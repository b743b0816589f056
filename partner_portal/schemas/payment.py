from pydantic import BaseModel, Field
from typing import Optional
from decimal import Decimal
from datetime import datetime
import uuid

from partner_portal.models.order import PaymentMethod
from partner_portal.schemas.base import BaseResponseSchema, BaseCreateSchema
from partner_portal.schemas.order import OrderResponse
from partner_portal.schemas.partner import ShippingAddressCreate


# ==================== GATEWAY ====================

class CreatePaymentOrderRequest(BaseModel):
    """Gateway order request. Amount is in rupees."""
    amount: Decimal = Field(..., gt=0)


class PaymentOrderResponse(BaseModel):
    """Gateway order as returned to the checkout widget."""
    id: str
    amount: int = Field(..., description="Amount in paise")
    currency: str = "INR"


class PaymentConfirmation(BaseModel):
    """Payload the checkout widget posts after a successful payment."""
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_order_id: Optional[str] = None
    razorpay_signature: Optional[str] = None


# ==================== CHECKOUT ====================

class CheckoutStartRequest(BaseCreateSchema):
    """Begin checkout of the current cart."""
    payment_method: PaymentMethod
    shipping_address: ShippingAddressCreate


class CheckoutIntentResponse(BaseResponseSchema):
    """Checkout intent state."""
    id: uuid.UUID
    partner_id: uuid.UUID
    payment_method: str
    amount: Decimal
    status: str
    gateway_order_id: Optional[str] = None
    payment_id: Optional[str] = None
    order_id: Optional[uuid.UUID] = None
    error: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CheckoutStartResponse(BaseModel):
    """Checkout intent plus what the client needs to open the gateway."""
    intent: CheckoutIntentResponse
    payment_order: Optional[PaymentOrderResponse] = None
    razorpay_key_id: Optional[str] = None


class CheckoutResult(BaseModel):
    """Finalized checkout."""
    intent: CheckoutIntentResponse
    order: OrderResponse
