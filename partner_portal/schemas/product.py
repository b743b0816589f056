from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
import uuid

from partner_portal.models.product import PriceTier
from partner_portal.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema


# ==================== CATEGORY ====================

class CategoryCreate(BaseCreateSchema):
    """Category creation schema."""
    name: str = Field(..., min_length=1, max_length=100)
    display_order: int = Field(default=0)


class CategoryUpdate(BaseUpdateSchema):
    """Category update schema."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    display_order: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryResponse(BaseResponseSchema):
    """Category response schema."""
    id: uuid.UUID
    name: str
    display_order: int
    is_active: bool
    created_at: datetime


# ==================== TIER PRICING ====================

class TierPricingFields(BaseModel):
    """Flat per-tier price and discount fields."""
    supplier_price: Optional[Decimal] = Field(None, ge=0)
    supplier_discount: Optional[Decimal] = Field(None, ge=0, le=100)
    dealer_price: Optional[Decimal] = Field(None, ge=0)
    dealer_discount: Optional[Decimal] = Field(None, ge=0, le=100)
    subdealer_price: Optional[Decimal] = Field(None, ge=0)
    subdealer_discount: Optional[Decimal] = Field(None, ge=0, le=100)
    retail_price: Optional[Decimal] = Field(None, ge=0)
    retail_discount: Optional[Decimal] = Field(None, ge=0, le=100)
    customer_price: Optional[Decimal] = Field(None, ge=0)
    customer_discount: Optional[Decimal] = Field(None, ge=0, le=100)


class VariantPricingUpdate(TierPricingFields, BaseUpdateSchema):
    """Admin update of all tier prices plus stock for one variant."""
    stock: int = Field(..., ge=0)


# ==================== VARIANT ====================

class VariantCreate(TierPricingFields, BaseCreateSchema):
    """Variant creation schema."""
    quantity_value: str = Field(..., min_length=1, max_length=20)
    quantity_unit: str = Field(..., min_length=1, max_length=20)
    stock: int = Field(default=0, ge=0)


class VariantResponse(BaseResponseSchema):
    """Variant with flattened tier pricing."""
    id: uuid.UUID
    product_id: uuid.UUID
    product_name: Optional[str] = None
    quantity_value: str
    quantity_unit: str
    stock: int
    supplier_price: Decimal = Decimal("0")
    supplier_discount: Decimal = Decimal("0")
    dealer_price: Decimal = Decimal("0")
    dealer_discount: Decimal = Decimal("0")
    subdealer_price: Decimal = Decimal("0")
    subdealer_discount: Decimal = Decimal("0")
    retail_price: Decimal = Decimal("0")
    retail_discount: Decimal = Decimal("0")
    customer_price: Decimal = Decimal("0")
    customer_discount: Decimal = Decimal("0")
    updated_at: Optional[datetime] = None


# ==================== PRODUCT ====================

def _clean_image_urls(urls: List[str]) -> List[str]:
    cleaned = [url.strip() for url in urls if url and url.strip()]
    if not cleaned:
        raise ValueError('At least one image required')
    for url in cleaned:
        if len(url) > 500:
            raise ValueError('Image URL must be at most 500 characters')
    return cleaned


class ProductCreate(BaseCreateSchema):
    """Product creation schema with its variants."""
    product_name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    image_urls: List[str] = Field(..., description="Gallery; the first image is the cover")
    category: Optional[str] = Field(None, max_length=100)
    subcategory: Optional[str] = Field(None, max_length=100)
    innercategory: Optional[str] = Field(None, max_length=100)
    variants: List[VariantCreate] = Field(default_factory=list)

    @field_validator('image_urls')
    @classmethod
    def validate_image_urls(cls, v: List[str]) -> List[str]:
        return _clean_image_urls(v)


class ProductUpdate(BaseUpdateSchema):
    """Product update schema."""
    product_name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    image_urls: Optional[List[str]] = None
    category: Optional[str] = Field(None, max_length=100)
    subcategory: Optional[str] = Field(None, max_length=100)
    innercategory: Optional[str] = Field(None, max_length=100)
    active: Optional[bool] = None

    @field_validator('image_urls')
    @classmethod
    def validate_image_urls(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return None if v is None else _clean_image_urls(v)


class ProductResponse(BaseResponseSchema):
    """Admin product response schema."""
    id: uuid.UUID
    product_name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    image_urls: List[str] = []
    category: Optional[str] = None
    subcategory: Optional[str] = None
    innercategory: Optional[str] = None
    active: bool
    variants: List[VariantResponse] = []
    created_at: datetime


# ==================== CATALOG ====================

class CatalogVariant(BaseModel):
    """Variant priced for the viewing partner's tier."""
    id: uuid.UUID
    quantity_value: str
    quantity_unit: str
    stock: int
    price: Decimal
    discount_percent: Decimal
    net_price: Decimal


class CatalogProduct(BaseModel):
    """Catalog entry as seen by one partner."""
    id: uuid.UUID
    product_name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    image_urls: List[str] = []
    category: Optional[str] = None
    subcategory: Optional[str] = None
    innercategory: Optional[str] = None
    tier: PriceTier
    variants: List[CatalogVariant]


class PriceQuoteResponse(BaseModel):
    """Resolved price of one variant."""
    variant_id: uuid.UUID
    tier: PriceTier
    gross_unit_price: Decimal
    discount_percent: Decimal
    net_unit_price: Decimal
