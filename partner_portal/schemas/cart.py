from pydantic import BaseModel, Field
from typing import List
from decimal import Decimal
import uuid

from partner_portal.schemas.base import BaseCreateSchema


class CartAddRequest(BaseCreateSchema):
    """Add (or replace) a cart line."""
    product_id: uuid.UUID
    variant_id: uuid.UUID
    quantity: int = Field(..., gt=0, description="Must meet the minimum order quantity")


class CartQuantityUpdate(BaseModel):
    """Change the quantity of a cart line."""
    quantity: int = Field(..., gt=0)


class CartLineResponse(BaseModel):
    """Cart line with captured pricing."""
    id: uuid.UUID
    product_id: uuid.UUID
    variant_id: uuid.UUID
    product_name: str
    variant_label: str
    quantity: int
    unit_price: Decimal
    discount_percent: Decimal
    net_unit_price: Decimal
    line_total: Decimal


class CartTotalsResponse(BaseModel):
    """Cart totals rounded for display."""
    subtotal: Decimal
    total_discount: Decimal
    net_total: Decimal


class CartResponse(BaseModel):
    """Full cart for the current partner."""
    items: List[CartLineResponse]
    totals: CartTotalsResponse
    item_count: int


class CartCountResponse(BaseModel):
    item_count: int
