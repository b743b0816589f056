from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
import re
import uuid

from partner_portal.models.partner import PartnerRole, ApprovalStatus
from partner_portal.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema


GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$")

PARTNER_ROLES = [
    PartnerRole.DEALER,
    PartnerRole.MAIN_DEALER,
    PartnerRole.SUB_DEALER,
    PartnerRole.RETAILER_OUTLET,
]


def _normalize_gst(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().upper()
    if not value:
        return None
    if len(value) != 15:
        raise ValueError("GST number must be exactly 15 characters")
    if not GSTIN_PATTERN.match(value):
        raise ValueError("Invalid GST number format")
    return value


def _normalize_partner_role(value):
    if isinstance(value, str):
        value = value.strip().lower()
    role = PartnerRole(value)
    if role not in PARTNER_ROLES:
        raise ValueError("Role must be dealer, main dealer, sub dealer or retailer outlet")
    return role


# ==================== SHIPPING ADDRESS ====================

class ShippingAddressBase(BaseModel):
    """Shipping address fields."""
    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=10, max_length=20)
    alt_phone: Optional[str] = Field(None, max_length=20)
    house_no: str = Field(..., min_length=1, max_length=255)
    area: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    pincode: str = Field(..., pattern=r"^\d{6}$")


class ShippingAddressCreate(ShippingAddressBase, BaseCreateSchema):
    pass


class ShippingAddressResponse(ShippingAddressBase, BaseResponseSchema):
    updated_at: Optional[datetime] = None


# ==================== REGISTRATION & LOGIN ====================

class PartnerRegister(BaseCreateSchema):
    """Self-registration request. Accounts start pending approval."""
    email: EmailStr = Field(..., description="Login email")
    password: str = Field(..., min_length=6, description="Password")
    phone: str = Field(..., min_length=10, max_length=20)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    company_name: str = Field(..., min_length=1, max_length=200)
    gst_number: Optional[str] = Field(None, description="15 character GSTIN")
    address: Optional[str] = None
    store_address: Optional[str] = None
    role: PartnerRole = Field(..., description="dealer, main dealer, sub dealer, retailer outlet")

    @field_validator("gst_number")
    @classmethod
    def validate_gst_number(cls, v):
        return _normalize_gst(v)

    @field_validator("role", mode="before")
    @classmethod
    def validate_role(cls, v):
        return _normalize_partner_role(v)


class PartnerOnboard(PartnerRegister):
    """Admin onboarding request. Accounts are created already approved."""
    pass


class LoginRequest(BaseModel):
    """Login request schema."""
    email: EmailStr = Field(..., description="Partner email address")
    password: str = Field(..., min_length=1, description="Partner password")


class PartnerResponse(BaseResponseSchema):
    """Partner account response schema."""
    id: uuid.UUID
    email: str
    phone: str
    first_name: str
    last_name: Optional[str] = None
    company_name: str
    display_name: Optional[str] = None
    gst_number: Optional[str] = None
    address: Optional[str] = None
    store_address: Optional[str] = None
    role: str
    approval_status: str
    approved_at: Optional[datetime] = None
    approved_by: Optional[uuid.UUID] = None
    created_at: datetime


class TokenResponse(BaseModel):
    """Token response schema."""
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token expiration in seconds")
    partner: PartnerResponse


class RegisterResponse(BaseModel):
    """Registration acknowledgement."""
    message: str
    partner: PartnerResponse


# ==================== PROFILE ====================

class PartnerProfileResponse(PartnerResponse):
    """Partner profile with order statistics."""
    total_orders: int = 0
    total_spent: Decimal = Decimal("0")
    shipping_address: Optional[ShippingAddressResponse] = None


class PartnerUpdate(BaseUpdateSchema):
    """Fields a partner may edit on their own profile."""
    display_name: Optional[str] = Field(None, max_length=200)
    address: Optional[str] = None
    store_address: Optional[str] = None


# ==================== ADMIN ====================

class ApprovalUpdate(BaseModel):
    """Approval status transition request."""
    status: ApprovalStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class PartnerListResponse(BaseModel):
    """Paginated partner list."""
    items: List[PartnerResponse]
    total: int
    page: int
    size: int
    pages: int


class DashboardStats(BaseModel):
    """Numbers behind the admin dashboard."""
    total_dealers: int
    total_main_dealers: int
    total_sub_dealers: int
    total_retailer_outlets: int
    pending_approvals: int
    total_products: int
    low_stock_variants: int
    total_orders: int
    new_orders: int
