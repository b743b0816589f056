import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from partner_portal.database import Base
from partner_portal.db_types import UUIDType

if TYPE_CHECKING:
    from partner_portal.models.partner import Partner
    from partner_portal.models.product import Product, ProductVariant


class CartLine(Base):
    """
    Cart line for a partner.
    Captures the tier price and discount at the time the item was added.
    """
    __tablename__ = "cart_lines"
    __table_args__ = (
        UniqueConstraint("partner_id", "product_id", "variant_id", name="uq_cart_partner_product_variant"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    partner_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("partners.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False
    )
    variant_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("product_variants.id", ondelete="CASCADE"),
        nullable=False
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        comment="Gross tier price when added"
    )
    discount_percent: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        default=Decimal("0"),
        nullable=False
    )

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
    partner: Mapped["Partner"] = relationship("Partner", back_populates="cart_lines")
    product: Mapped["Product"] = relationship("Product")
    variant: Mapped["ProductVariant"] = relationship("ProductVariant")

    @property
    def net_unit_price(self) -> Decimal:
        return Decimal(self.unit_price) * (1 - Decimal(self.discount_percent) / 100)

    def __repr__(self) -> str:
        return f"<CartLine(partner={self.partner_id}, variant={self.variant_id}, qty={self.quantity})>"
