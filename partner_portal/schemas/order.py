from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
import uuid

from partner_portal.models.order import DeliveryStatus
from partner_portal.schemas.base import BaseResponseSchema


class OrderItem(BaseModel):
    """Line item snapshot stored on the order."""
    product_id: uuid.UUID
    variant_id: uuid.UUID
    product_name: str
    variant_label: Optional[str] = None
    quantity: int
    unit_price: Decimal
    discount_percent: Decimal
    net_unit_price: Decimal
    line_total: Decimal


class OrderResponse(BaseResponseSchema):
    """Order response schema."""
    id: uuid.UUID
    order_number: str
    partner_id: uuid.UUID
    partner_role: str
    items: List[OrderItem]
    shipping_address: Optional[dict] = None
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    payment_method: str
    payment_status: str
    payment_id: str
    delivery_status: str
    created_at: datetime


class OrderListResponse(BaseModel):
    """Paginated order list."""
    items: List[OrderResponse]
    total: int
    page: int
    size: int
    pages: int


class DeliveryStatusUpdate(BaseModel):
    """Admin delivery status change."""
    status: DeliveryStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class DeliveryStatusUpdateResponse(BaseModel):
    """Result of a delivery status change and the follow-up email."""
    order: OrderResponse
    email_sent: bool
    email_error: Optional[str] = None


class PaymentLogResponse(BaseResponseSchema):
    """Payment log entry."""
    id: uuid.UUID
    order_id: uuid.UUID
    partner_id: uuid.UUID
    amount_paid: Decimal
    remaining_balance: Decimal
    transaction_id: Optional[str] = None
    created_at: datetime


class OrderSummary(BaseModel):
    """Partner order statistics."""
    total_orders: int = Field(default=0)
    total_spent: Decimal = Field(default=Decimal("0"))
