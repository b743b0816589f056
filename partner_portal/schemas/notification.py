from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional, List
from decimal import Decimal


class StatusEmailItem(BaseModel):
    """Order item as sent by the admin order screen."""
    model_config = ConfigDict(extra='ignore')

    product_name: Optional[str] = None
    name: Optional[str] = None
    quantity: int = 0

    @property
    def display_name(self) -> str:
        return self.product_name or self.name or "Item"


class StatusEmailRequest(BaseModel):
    """Order status email request (camelCase wire format)."""
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    order_id: str = Field(..., alias="orderId")
    status: str
    customer_name: Optional[str] = Field(None, alias="customerName")
    items: List[StatusEmailItem] = Field(default_factory=list)
    customer_email: EmailStr = Field(..., alias="customerEmail")
    total_amount: Decimal = Field(..., alias="totalAmount")


class StatusEmailResponse(BaseModel):
    success: bool
