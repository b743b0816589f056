"""Catalog models: categories, products, variants and tier pricing."""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Text, Numeric
from sqlalchemy import UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from partner_portal.database import Base
from partner_portal.db_types import UUIDType, JSONType


class PriceTier(str, Enum):
    """Pricing tier applied per partner role."""
    SUPPLIER = "supplier"
    DEALER = "dealer"
    SUBDEALER = "subdealer"
    RETAIL = "retail"
    CUSTOMER = "customer"


class Category(Base):
    """Product category shown as a catalog filter."""
    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<Category(name='{self.name}')>"


class Product(Base):
    """Product master. Prices and stock live on the variants."""
    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    product_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Cover image, always image_urls[0]
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    image_urls: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    # Category labels (three levels, free text as entered by the admin)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    subcategory: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    innercategory: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    variants: Mapped[List["ProductVariant"]] = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariant.created_at"
    )

    def __repr__(self) -> str:
        return f"<Product(name='{self.product_name}')>"


class ProductVariant(Base):
    """
    Pack size of a product, e.g. 100 g or 1 L.
    Holds stock and the per-tier price/discount pairs.
    """
    __tablename__ = "product_variants"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_variant_stock_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    quantity_value: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity_unit: Mapped[str] = mapped_column(String(20), nullable=False)
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    product: Mapped["Product"] = relationship("Product", back_populates="variants")
    tier_prices: Mapped[List["VariantTierPrice"]] = relationship(
        "VariantTierPrice",
        back_populates="variant",
        cascade="all, delete-orphan"
    )

    @property
    def label(self) -> str:
        return f"{self.quantity_value} {self.quantity_unit}"

    def get_tier_price(self, tier: PriceTier | str) -> Optional["VariantTierPrice"]:
        """Return the price row for a tier, or None if the admin never set one."""
        tier_value = tier.value if isinstance(tier, PriceTier) else tier
        for row in self.tier_prices:
            if row.tier == tier_value:
                return row
        return None

    def __repr__(self) -> str:
        return f"<ProductVariant(product={self.product_id}, pack='{self.label}')>"


class VariantTierPrice(Base):
    """
    Tier-based variant pricing.
    One row per (variant, tier).
    """
    __tablename__ = "variant_tier_prices"
    __table_args__ = (
        UniqueConstraint("variant_id", "tier", name="uq_variant_tier_price"),
        CheckConstraint("price > 0", name="ck_tier_price_positive"),
        CheckConstraint("discount >= 0 AND discount <= 100", name="ck_tier_discount_range"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    variant_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("product_variants.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    tier: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="supplier, dealer, subdealer, retail, customer"
    )
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        default=Decimal("0"),
        nullable=False,
        comment="Percentage, 0-100"
    )

    variant: Mapped["ProductVariant"] = relationship("ProductVariant", back_populates="tier_prices")

    def __repr__(self) -> str:
        return f"<VariantTierPrice(tier='{self.tier}', price={self.price}, discount={self.discount})>"
