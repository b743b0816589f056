"""
Partner Service - accounts, approval and admin dashboard.

Approval lifecycle:
    pending -> approved | rejected

An admin may move an account between any two states. Only approved
accounts can log in.
"""
from datetime import datetime, timezone
from typing import Optional, List, Tuple, Dict, Any
from math import ceil
import uuid
import logging

from sqlalchemy import select, func, or_, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from partner_portal.config import settings
from partner_portal.core.exceptions import (
    ValidationError, AuthenticationError, AuthorizationError, NotFoundError,
)
from partner_portal.core.security import (
    get_password_hash,
    verify_and_check_needs_rehash,
    create_access_token,
)
from partner_portal.models.order import Order
from partner_portal.models.partner import (
    Partner, PartnerRole, ApprovalStatus, ShippingAddress, SupplierSettings,
)
from partner_portal.models.product import Product
from partner_portal.services.pricing_service import (
    PricingService, normalize_role, round_currency, to_decimal,
)

logger = logging.getLogger(__name__)


LOGIN_BLOCKED_MESSAGES = {
    ApprovalStatus.PENDING: "Your account is pending approval. Please wait for admin approval.",
    ApprovalStatus.REJECTED: "Your account has been rejected. Please contact the administrator.",
}


# ==================== APPROVAL STATE MACHINE ====================

def can_authenticate(status: ApprovalStatus | str) -> bool:
    """Only approved accounts may log in."""
    try:
        return ApprovalStatus(status) == ApprovalStatus.APPROVED
    except ValueError:
        return False


def transition(
    partner: Partner,
    target: ApprovalStatus | str,
    actor: Optional[Partner],
) -> Partner:
    """
    Move a partner to a new approval status.

    Approving stamps approved_at/approved_by; any other status clears them.

    Raises:
        AuthorizationError: actor is not an admin
    """
    if actor is None or not actor.is_admin:
        raise AuthorizationError("Only administrators can change approval status")

    status = ApprovalStatus(target)
    partner.approval_status = status.value

    if status == ApprovalStatus.APPROVED:
        partner.approved_at = datetime.now(timezone.utc)
        partner.approved_by = actor.id
    else:
        partner.approved_at = None
        partner.approved_by = None

    return partner


# ==================== SERVICE ====================

class PartnerService:
    """Service for partner accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== REGISTRATION ====================

    async def get_partner_by_email(self, email: str) -> Optional[Partner]:
        result = await self.db.execute(
            select(Partner).where(Partner.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_partner(self, partner_id: uuid.UUID) -> Partner:
        result = await self.db.execute(
            select(Partner)
            .options(selectinload(Partner.shipping_address))
            .where(Partner.id == partner_id)
            .execution_options(populate_existing=True)
        )
        partner = result.scalar_one_or_none()
        if not partner:
            raise NotFoundError("Partner not found", {"partner_id": str(partner_id)})
        return partner

    async def register(
        self,
        data: Dict[str, Any],
        approval_status: ApprovalStatus = ApprovalStatus.PENDING,
        approved_by: Optional[uuid.UUID] = None,
    ) -> Partner:
        """
        Create a partner account.

        Self-registered accounts start pending; onboarding passes approved.

        Raises:
            ValidationError: email already registered
        """
        email = str(data["email"]).strip().lower()
        if await self.get_partner_by_email(email):
            raise ValidationError("Email already registered", {"email": email})

        partner = Partner(
            email=email,
            password_hash=get_password_hash(data["password"]),
            phone=data["phone"],
            first_name=data["first_name"],
            last_name=data.get("last_name"),
            company_name=data["company_name"],
            gst_number=data.get("gst_number"),
            address=data.get("address"),
            store_address=data.get("store_address"),
            role=normalize_role(data["role"]),
            approval_status=approval_status.value,
        )
        if approval_status == ApprovalStatus.APPROVED:
            partner.approved_at = datetime.now(timezone.utc)
            partner.approved_by = approved_by

        self.db.add(partner)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ValidationError("Email already registered", {"email": email}) from e

        logger.info(f"Partner registered: {email} ({partner.role}, {partner.approval_status})")
        return partner

    async def onboard(self, data: Dict[str, Any], actor: Partner) -> Partner:
        """Admin creates a partner that can log in immediately."""
        if not actor.is_admin:
            raise AuthorizationError("Only administrators can onboard partners")
        return await self.register(data, ApprovalStatus.APPROVED, approved_by=actor.id)

    # ==================== LOGIN ====================

    async def authenticate(self, email: str, password: str) -> Partner:
        """
        Check credentials and approval status.

        Raises:
            AuthenticationError: unknown email or wrong password
            AuthorizationError: account pending or rejected; no token is issued
        """
        partner = await self.get_partner_by_email(email)
        if partner is None:
            raise AuthenticationError("Invalid email or password")

        is_valid, needs_rehash = verify_and_check_needs_rehash(password, partner.password_hash)
        if not is_valid:
            raise AuthenticationError("Invalid email or password")

        if not can_authenticate(partner.approval_status):
            logger.warning(f"Login blocked for {partner.email}: {partner.approval_status}")
            status = ApprovalStatus(partner.approval_status)
            raise AuthorizationError(
                LOGIN_BLOCKED_MESSAGES.get(status, "Your account is not approved."),
                {"approval_status": status.value},
            )

        if needs_rehash:
            partner.password_hash = get_password_hash(password)
            await self.db.commit()

        return partner

    def create_token(self, partner: Partner) -> Tuple[str, int]:
        """Access token and its lifetime in seconds."""
        access_token = create_access_token(
            subject=partner.id,
            additional_claims={"email": partner.email, "role": partner.role},
        )
        return access_token, settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    # ==================== APPROVAL ====================

    async def update_approval(
        self,
        partner_id: uuid.UUID,
        target: ApprovalStatus,
        actor: Partner,
    ) -> Partner:
        partner = await self.get_partner(partner_id)
        old_status = partner.approval_status

        transition(partner, target, actor)
        await self.db.commit()

        logger.info(f"Partner {partner.email}: {old_status} -> {partner.approval_status} by {actor.email}")
        return partner

    async def list_partners(
        self,
        role: Optional[str] = None,
        approval_status: Optional[ApprovalStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        size: int = 20,
    ) -> Tuple[List[Partner], int, int]:
        """Partners other than admins, newest first. Returns (items, total, pages)."""
        filters = [Partner.role != PartnerRole.ADMIN.value]

        if role:
            filters.append(Partner.role == normalize_role(role))

        if approval_status:
            filters.append(Partner.approval_status == ApprovalStatus(approval_status).value)

        if search:
            search_filter = f"%{search}%"
            filters.append(
                or_(
                    Partner.email.ilike(search_filter),
                    Partner.company_name.ilike(search_filter),
                    Partner.first_name.ilike(search_filter),
                    Partner.phone.ilike(search_filter),
                )
            )

        count_stmt = select(func.count(Partner.id)).where(and_(*filters))
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = (
            select(Partner)
            .where(and_(*filters))
            .order_by(Partner.created_at.desc())
            .offset((page - 1) * size)
            .limit(size)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total, ceil(total / size) if total > 0 else 1

    # ==================== PROFILE ====================

    async def get_profile(self, partner_id: uuid.UUID) -> Dict[str, Any]:
        """Partner with total orders and total spent."""
        partner = await self.get_partner(partner_id)

        result = await self.db.execute(
            select(func.count(Order.id), func.coalesce(func.sum(Order.total_amount), 0))
            .where(Order.partner_id == partner_id)
        )
        total_orders, total_spent = result.one()

        return {
            "partner": partner,
            "total_orders": total_orders or 0,
            "total_spent": round_currency(to_decimal(total_spent)),
        }

    async def update_profile(self, partner_id: uuid.UUID, data: Dict[str, Any]) -> Partner:
        """Apply partner-editable fields (display name, addresses)."""
        partner = await self.get_partner(partner_id)

        for key in ("display_name", "address", "store_address"):
            if key in data and data[key] is not None:
                setattr(partner, key, data[key].strip() if isinstance(data[key], str) else data[key])

        await self.db.commit()
        return partner

    # ==================== SHIPPING ADDRESS ====================

    async def get_shipping_address(self, partner_id: uuid.UUID) -> Optional[ShippingAddress]:
        result = await self.db.execute(
            select(ShippingAddress).where(ShippingAddress.partner_id == partner_id)
        )
        return result.scalar_one_or_none()

    async def save_shipping_address(
        self,
        partner_id: uuid.UUID,
        data: Dict[str, Any],
    ) -> ShippingAddress:
        """Upsert the partner's saved shipping address."""
        address = await self.get_shipping_address(partner_id)
        if address is None:
            address = ShippingAddress(partner_id=partner_id, **data)
            self.db.add(address)
        else:
            for key, value in data.items():
                setattr(address, key, value)

        await self.db.commit()
        return address

    # ==================== DASHBOARD ====================

    async def get_dashboard_stats(self) -> Dict[str, int]:
        """Counts for the admin dashboard."""
        role_counts = dict(
            (await self.db.execute(
                select(Partner.role, func.count(Partner.id)).group_by(Partner.role)
            )).all()
        )
        pending = (await self.db.execute(
            select(func.count(Partner.id)).where(
                Partner.approval_status == ApprovalStatus.PENDING.value,
                Partner.role != PartnerRole.ADMIN.value,
            )
        )).scalar() or 0
        total_products = (await self.db.execute(select(func.count(Product.id)))).scalar() or 0
        low_stock = await PricingService(self.db).count_low_stock()
        total_orders = (await self.db.execute(select(func.count(Order.id)))).scalar() or 0

        supplier = await self._get_supplier_settings()

        return {
            "total_dealers": role_counts.get(PartnerRole.DEALER.value, 0),
            "total_main_dealers": role_counts.get(PartnerRole.MAIN_DEALER.value, 0),
            "total_sub_dealers": role_counts.get(PartnerRole.SUB_DEALER.value, 0),
            "total_retailer_outlets": role_counts.get(PartnerRole.RETAILER_OUTLET.value, 0),
            "pending_approvals": pending,
            "total_products": total_products,
            "low_stock_variants": low_stock,
            "total_orders": total_orders,
            "new_orders": max(total_orders - supplier.last_seen_order_count, 0),
        }

    async def mark_orders_seen(self) -> int:
        """Reset the new orders indicator. Returns the order count recorded."""
        total_orders = (await self.db.execute(select(func.count(Order.id)))).scalar() or 0
        supplier = await self._get_supplier_settings()
        supplier.last_seen_order_count = total_orders
        await self.db.commit()
        return total_orders

    async def _get_supplier_settings(self) -> SupplierSettings:
        supplier = await self.db.get(SupplierSettings, 1)
        if supplier is None:
            supplier = SupplierSettings(id=1, last_seen_order_count=0)
            self.db.add(supplier)
            await self.db.flush()
        return supplier
