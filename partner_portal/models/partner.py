"""Partner account models.

Supports:
- Dealer, main dealer, sub dealer and retailer outlet accounts
- Admin (supplier) accounts that approve partners
- Approval lifecycle gating login
- Saved shipping address used to prefill checkout
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, DateTime, ForeignKey, Integer, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from partner_portal.database import Base
from partner_portal.db_types import UUIDType

if TYPE_CHECKING:
    from partner_portal.models.cart import CartLine
    from partner_portal.models.order import Order, PaymentLog


class PartnerRole(str, Enum):
    """Partner role enumeration. Values match what the registration form submits."""
    DEALER = "dealer"
    MAIN_DEALER = "main dealer"
    SUB_DEALER = "sub dealer"
    RETAILER_OUTLET = "retailer outlet"
    ADMIN = "admin"


class ApprovalStatus(str, Enum):
    """Partner approval status enumeration."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Partner(Base):
    """
    Partner account.
    One row per portal login, including admins.
    """
    __tablename__ = "partners"
    __table_args__ = (
        Index("ix_partners_role_status", "role", "approval_status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    # Credentials
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)

    # Identity
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    company_name: Mapped[str] = mapped_column(String(200), nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    gst_number: Mapped[Optional[str]] = mapped_column(
        String(15),
        nullable=True,
        comment="15 character GSTIN"
    )

    # Addresses
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    store_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Role & Approval
    role: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        index=True,
        comment="dealer, main dealer, sub dealer, retailer outlet, admin"
    )
    approval_status: Mapped[str] = mapped_column(
        String(20),
        default=ApprovalStatus.PENDING.value,
        nullable=False,
        index=True,
        comment="pending, approved, rejected"
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)

    # Timestamps
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
    shipping_address: Mapped[Optional["ShippingAddress"]] = relationship(
        "ShippingAddress",
        back_populates="partner",
        uselist=False,
        cascade="all, delete-orphan"
    )
    cart_lines: Mapped[List["CartLine"]] = relationship(
        "CartLine",
        back_populates="partner",
        cascade="all, delete-orphan"
    )
    orders: Mapped[List["Order"]] = relationship("Order", back_populates="partner")
    payment_logs: Mapped[List["PaymentLog"]] = relationship("PaymentLog", back_populates="partner")

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    @property
    def is_admin(self) -> bool:
        return (self.role or "").strip().lower() == PartnerRole.ADMIN.value

    def __repr__(self) -> str:
        return f"<Partner(email='{self.email}', role='{self.role}', status='{self.approval_status}')>"


class ShippingAddress(Base):
    """Last shipping address a partner checked out with."""
    __tablename__ = "shipping_addresses"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    partner_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("partners.id", ondelete="CASCADE"),
        unique=True,
        nullable=False
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    alt_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    house_no: Mapped[str] = mapped_column(String(255), nullable=False)
    area: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    pincode: Mapped[str] = mapped_column(String(10), nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    partner: Mapped["Partner"] = relationship("Partner", back_populates="shipping_address")


class SupplierSettings(Base):
    """Single-row supplier state used by the admin dashboard."""
    __tablename__ = "supplier_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    last_seen_order_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )
