"""Order Service.

``build_order`` and ``build_payment_log_entry`` turn a priced cart into the
immutable order record and its payment log entry. ``OrderService`` persists
them and handles order history and admin fulfilment.

Payment rules:
- online: paid in full at checkout, one payment log entry
- cod: nothing paid yet, remaining = total, no payment log entry
"""
from typing import List, Optional, Tuple, Any, Iterable
from decimal import Decimal
import uuid
import logging

from pydantic import BaseModel, ConfigDict
from sqlalchemy import select, func, and_, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from partner_portal.config import settings
from partner_portal.core.exceptions import (
    ValidationError, BelowMinimumOrderError, InsufficientStockError, NotFoundError,
    ExternalServiceError,
)
from partner_portal.models.order import (
    Order, OrderSequence, PaymentLog, PaymentMethod, PaymentStatus, DeliveryStatus,
)
from partner_portal.models.partner import PartnerRole
from partner_portal.models.product import ProductVariant
from partner_portal.services.cart_service import CartTotals, aggregate
from partner_portal.services.email_service import EmailService
from partner_portal.services.pricing_service import normalize_role, round_currency, to_decimal

logger = logging.getLogger(__name__)


ORDER_NUMBER_PREFIXES = {
    PartnerRole.DEALER.value: "D",
    PartnerRole.MAIN_DEALER.value: "D",
    PartnerRole.SUB_DEALER.value: "SD",
    PartnerRole.RETAILER_OUTLET.value: "RT",
}

ORDER_NUMBER_ATTEMPTS = 3


# ==================== ORDER LEDGER BUILDER ====================

class OrderDraft(BaseModel):
    """Order ready to persist."""
    model_config = ConfigDict(frozen=True)

    partner_id: uuid.UUID
    partner_role: str
    items: List[dict]
    shipping_address: Optional[dict] = None
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    payment_id: str
    delivery_status: DeliveryStatus = DeliveryStatus.PENDING


class PaymentLogDraft(BaseModel):
    """Payment log entry ready to persist."""
    model_config = ConfigDict(frozen=True)

    order_id: Optional[uuid.UUID] = None
    partner_id: uuid.UUID
    amount_paid: Decimal
    remaining_balance: Decimal
    transaction_id: Optional[str] = None


def ensure_minimum_order(totals: CartTotals) -> None:
    """Reject carts whose net total is under the gateway minimum."""
    net_total = round_currency(totals.net_total)
    if net_total < settings.MINIMUM_ORDER_AMOUNT:
        raise BelowMinimumOrderError(
            f"Order amount must be at least ₹{settings.MINIMUM_ORDER_AMOUNT}",
            {"net_total": str(net_total), "minimum": str(settings.MINIMUM_ORDER_AMOUNT)},
        )


def _line_snapshot(line: Any) -> dict:
    product = getattr(line, "product", None)
    variant = getattr(line, "variant", None)
    gross = to_decimal(line.unit_price)
    discount = to_decimal(line.discount_percent)
    net_unit = gross * (1 - discount / 100)

    return {
        "product_id": str(line.product_id),
        "variant_id": str(line.variant_id),
        "product_name": product.product_name if product else getattr(line, "product_name", ""),
        "variant_label": variant.label if variant else getattr(line, "variant_label", None),
        "quantity": line.quantity,
        "unit_price": str(round_currency(gross)),
        "discount_percent": str(discount),
        "net_unit_price": str(round_currency(net_unit)),
        "line_total": str(round_currency(net_unit * line.quantity)),
    }


def build_order(
    partner_id: uuid.UUID,
    cart_lines: Iterable[Any],
    payment_method: PaymentMethod | str,
    payment_confirmation: Optional[str],
    shipping_address: Optional[dict],
    partner_role: Optional[str] = None,
) -> OrderDraft:
    """
    Build the order for a checked-out cart.

    The minimum order amount is checked by the caller with
    ``ensure_minimum_order`` before this runs.

    Args:
        partner_id: Ordering partner
        cart_lines: Lines with quantity, unit_price and discount_percent
        payment_method: online or cod
        payment_confirmation: Gateway payment id; required for online
        shipping_address: Address snapshot
        partner_role: Role snapshot stored on the order

    Raises:
        ValidationError: empty cart or online payment without confirmation
    """
    lines = list(cart_lines)
    if not lines:
        raise ValidationError("Cart is empty")

    method = PaymentMethod(payment_method)
    net_total = round_currency(aggregate(lines).net_total)

    if method == PaymentMethod.ONLINE:
        if not payment_confirmation:
            raise ValidationError("Online payment requires a payment confirmation")
        paid = net_total
        remaining = Decimal("0")
        payment_status = PaymentStatus.PAID
        payment_id = payment_confirmation
    else:
        paid = Decimal("0")
        remaining = net_total
        payment_status = PaymentStatus.PENDING
        payment_id = settings.COD_PAYMENT_ID

    return OrderDraft(
        partner_id=partner_id,
        partner_role=normalize_role(partner_role) or PartnerRole.RETAILER_OUTLET.value,
        items=[_line_snapshot(line) for line in lines],
        shipping_address=dict(shipping_address) if shipping_address else None,
        total_amount=net_total,
        paid_amount=paid,
        remaining_amount=remaining,
        payment_method=method,
        payment_status=payment_status,
        payment_id=payment_id,
        delivery_status=DeliveryStatus.PENDING,
    )


def build_payment_log_entry(order: Any) -> Optional[PaymentLogDraft]:
    """Payment log entry for an order, or None when nothing was paid at checkout (cod)."""
    if PaymentMethod(order.payment_method) != PaymentMethod.ONLINE:
        return None

    return PaymentLogDraft(
        order_id=getattr(order, "id", None),
        partner_id=order.partner_id,
        amount_paid=to_decimal(order.paid_amount),
        remaining_balance=to_decimal(order.remaining_amount),
        transaction_id=order.payment_id,
    )


def order_number_prefix(role: Optional[str]) -> str:
    return ORDER_NUMBER_PREFIXES.get(normalize_role(role), "RT")


# ==================== SERVICE ====================

class OrderService:
    """Service for persisting orders, order history and fulfilment."""

    def __init__(self, db: AsyncSession, email_service: Optional[EmailService] = None):
        self.db = db
        self.email_service = email_service or EmailService()

    async def generate_order_number(self, role: Optional[str]) -> str:
        """
        Next order number for the role's prefix: D-00001, SD-00001, RT-00001.

        The sequence row is locked until the order commits. It never falls
        behind the highest number already stored.
        """
        prefix = order_number_prefix(role)

        result = await self.db.execute(
            select(OrderSequence)
            .where(OrderSequence.prefix == prefix)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        sequence = result.scalar_one_or_none()
        if sequence is None:
            sequence = OrderSequence(prefix=prefix, current_number=0)
            self.db.add(sequence)

        last_number = (await self.db.execute(
            select(func.max(Order.order_number)).where(Order.order_number.like(f"{prefix}-%"))
        )).scalar()
        stored = int(last_number.split("-", 1)[1]) if last_number else 0

        sequence.current_number = max(sequence.current_number, stored) + 1
        await self.db.flush()
        return f"{prefix}-{sequence.current_number:05d}"

    async def persist_order(self, draft: OrderDraft) -> Order:
        """
        Insert the order and decrement stock in one transaction.

        Nothing is written if any variant no longer has enough stock. An
        order number taken by a concurrent checkout is retried with the next
        number.
        """
        for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
            if settings.STOCK_CHECK_ENABLED:
                await self._decrement_stock(draft.items)

            try:
                order = Order(
                    order_number=await self.generate_order_number(draft.partner_role),
                    partner_id=draft.partner_id,
                    partner_role=draft.partner_role,
                    items=draft.items,
                    shipping_address=draft.shipping_address,
                    total_amount=draft.total_amount,
                    paid_amount=draft.paid_amount,
                    remaining_amount=draft.remaining_amount,
                    payment_method=draft.payment_method.value,
                    payment_status=draft.payment_status.value,
                    payment_id=draft.payment_id,
                    delivery_status=draft.delivery_status.value,
                )
                self.db.add(order)
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                if attempt == ORDER_NUMBER_ATTEMPTS:
                    logger.error(f"Order for partner {draft.partner_id} not saved: {e}")
                    raise ExternalServiceError("Could not save order") from e
                logger.warning(f"Order number clash for partner {draft.partner_id}, retrying ({attempt})")
                continue
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(f"Order for partner {draft.partner_id} not saved: {e}")
                raise ExternalServiceError("Could not save order") from e

            logger.info(
                f"Order {order.order_number} placed by partner {draft.partner_id}: "
                f"₹{draft.total_amount} ({draft.payment_method.value})"
            )
            return order

    async def persist_payment_log(self, draft: PaymentLogDraft) -> PaymentLog:
        log = PaymentLog(
            order_id=draft.order_id,
            partner_id=draft.partner_id,
            amount_paid=draft.amount_paid,
            remaining_balance=draft.remaining_balance,
            transaction_id=draft.transaction_id,
        )
        self.db.add(log)
        await self.db.commit()
        return log

    async def _decrement_stock(self, items: List[dict]) -> None:
        """Check every line first, then decrement, so a shortfall leaves stock untouched."""
        variants = []
        for item in items:
            variant = await self.db.get(ProductVariant, uuid.UUID(item["variant_id"]))
            if variant is None:
                raise NotFoundError("Product variant not found", {"variant_id": item["variant_id"]})
            if variant.stock < item["quantity"]:
                raise InsufficientStockError(
                    f"Only {variant.stock} units of {item['product_name']} {variant.label} in stock",
                    {"variant_id": item["variant_id"], "available": variant.stock,
                     "requested": item["quantity"]},
                )
            variants.append((variant, item["quantity"]))

        for variant, quantity in variants:
            variant.stock -= quantity

    # ==================== QUERIES ====================

    async def get_order_by_id(self, order_id: uuid.UUID) -> Order:
        result = await self.db.execute(
            select(Order).options(selectinload(Order.partner)).where(Order.id == order_id)
        )
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError("Order not found", {"order_id": str(order_id)})
        return order

    async def get_partner_orders(
        self,
        partner_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Order], int]:
        """Partner's own order history, newest first."""
        stmt = (
            select(Order)
            .where(Order.partner_id == partner_id)
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        count_stmt = select(func.count(Order.id)).where(Order.partner_id == partner_id)

        total = (await self.db.execute(count_stmt)).scalar() or 0
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def get_orders(
        self,
        role: Optional[str] = None,
        delivery_status: Optional[DeliveryStatus] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Order], int]:
        """All partners' orders for the admin order screen."""
        filters = []

        if role:
            filters.append(Order.partner_role == normalize_role(role))

        if delivery_status:
            filters.append(Order.delivery_status == DeliveryStatus(delivery_status).value)

        if search:
            search_filter = f"%{search}%"
            filters.append(
                or_(
                    Order.order_number.ilike(search_filter),
                    Order.payment_id.ilike(search_filter),
                )
            )

        stmt = select(Order).order_by(Order.created_at.desc())
        count_stmt = select(func.count(Order.id))
        if filters:
            stmt = stmt.where(and_(*filters))
            count_stmt = count_stmt.where(and_(*filters))

        total = (await self.db.execute(count_stmt)).scalar() or 0
        result = await self.db.execute(stmt.offset(skip).limit(limit))
        return list(result.scalars().all()), total

    # ==================== FULFILMENT ====================

    async def update_delivery_status(
        self,
        order_id: uuid.UUID,
        new_status: DeliveryStatus,
    ) -> Tuple[Order, bool, Optional[str]]:
        """
        Update delivery status, then email the partner.

        The status change is committed first; a failed email is reported
        back to the caller and does not undo it.

        Returns:
            (order, email_sent, email_error)
        """
        order = await self.get_order_by_id(order_id)
        old_status = order.delivery_status
        order.delivery_status = DeliveryStatus(new_status).value

        await self.db.commit()
        logger.info(f"Order {order.order_number}: {old_status} -> {order.delivery_status}")

        partner = order.partner
        if partner is None or not partner.email:
            return order, False, "Partner has no email address"

        try:
            await self.email_service.send_order_status_email(
                to_email=partner.email,
                customer_name=partner.display_name or partner.full_name,
                order_number=order.order_number,
                status=order.delivery_status,
                items=order.items,
                total_amount=to_decimal(order.total_amount),
            )
        except ExternalServiceError as e:
            logger.warning(f"Status email for order {order.order_number} not sent: {e.message}")
            return order, False, e.message

        return order, True, None

