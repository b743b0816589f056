"""Order, payment log and checkout intent models.

Orders carry a snapshot of their line items and shipping address so later
price or address changes never alter history.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional
from decimal import Decimal

from sqlalchemy import String, DateTime, ForeignKey, Numeric, Text, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from partner_portal.database import Base
from partner_portal.db_types import UUIDType, JSONType

if TYPE_CHECKING:
    from partner_portal.models.partner import Partner


class PaymentMethod(str, Enum):
    """Payment method enumeration."""
    ONLINE = "online"
    COD = "cod"


class PaymentStatus(str, Enum):
    """Payment status enumeration."""
    PAID = "paid"
    PENDING = "pending"


class DeliveryStatus(str, Enum):
    """Delivery status enumeration."""
    PENDING = "pending"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class CheckoutStatus(str, Enum):
    """Checkout intent status - initiated -> paid -> finalized."""
    INITIATED = "initiated"
    PAID = "paid"
    FINALIZED = "finalized"
    CANCELLED = "cancelled"
    FAILED = "failed"


class Order(Base):
    """
    Partner order.
    Immutable after creation apart from delivery/payment status.
    """
    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_partner_created", "partner_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    order_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="Role prefixed display number e.g. D-00001"
    )
    partner_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("partners.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    partner_role: Mapped[str] = mapped_column(String(30), nullable=False, index=True)

    # Snapshots
    items: Mapped[list] = mapped_column(JSONType, nullable=False)
    shipping_address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    # Amounts
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    remaining_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)

    # Payment
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False, comment="online, cod")
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, comment="paid, pending")
    payment_id: Mapped[str] = mapped_column(String(100), nullable=False)

    # Fulfilment
    delivery_status: Mapped[str] = mapped_column(
        String(20),
        default=DeliveryStatus.PENDING.value,
        nullable=False,
        index=True
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

    partner: Mapped["Partner"] = relationship("Partner", back_populates="orders")

    def __repr__(self) -> str:
        return f"<Order(number='{self.order_number}', total={self.total_amount})>"


class PaymentLog(Base):
    """Append-only record of money received against an order."""
    __tablename__ = "payment_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("orders.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    partner_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("partners.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    remaining_balance: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    transaction_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Gateway payment id; empty for cash/UPI collected offline"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    partner: Mapped["Partner"] = relationship("Partner", back_populates="payment_logs")

    def __repr__(self) -> str:
        return f"<PaymentLog(order={self.order_id}, amount={self.amount_paid})>"


class CheckoutIntent(Base):
    """
    Checkout saga record.
    Written before payment so an interrupted checkout can be inspected.
    """
    __tablename__ = "checkout_intents"

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
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=CheckoutStatus.INITIATED.value,
        nullable=False,
        index=True,
        comment="initiated, paid, finalized, cancelled, failed"
    )

    gateway_order_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    payment_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

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

    def __repr__(self) -> str:
        return f"<CheckoutIntent(partner={self.partner_id}, status='{self.status}')>"


class OrderSequence(Base):
    """
    Last order number issued per prefix.
    The row is locked while an order is numbered.
    """
    __tablename__ = "order_sequences"

    prefix: Mapped[str] = mapped_column(String(10), primary_key=True, comment="D, SD, RT")
    current_number: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<OrderSequence(prefix='{self.prefix}', current={self.current_number})>"
