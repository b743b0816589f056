"""Cart Service.

Cart lines capture the partner's tier price at the time they are added.
Totals are aggregated at full precision and rounded once for display.
"""
from typing import List, Iterable, Callable, Awaitable, Any
from decimal import Decimal
import uuid
import logging

from pydantic import BaseModel, ConfigDict
from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from partner_portal.config import settings
from partner_portal.core.exceptions import (
    ValidationError, NotFoundError, InsufficientStockError,
)
from partner_portal.models.cart import CartLine
from partner_portal.models.partner import Partner
from partner_portal.models.product import Product, ProductVariant
from partner_portal.services.pricing_service import (
    resolve_price, round_currency, to_decimal,
)

logger = logging.getLogger(__name__)


# ==================== AGGREGATION ====================

class CartTotals(BaseModel):
    """Cart totals at full precision."""
    model_config = ConfigDict(frozen=True)

    subtotal: Decimal = Decimal("0")
    total_discount: Decimal = Decimal("0")
    net_total: Decimal = Decimal("0")

    def rounded(self) -> "CartTotals":
        return CartTotals(
            subtotal=round_currency(self.subtotal),
            total_discount=round_currency(self.total_discount),
            net_total=round_currency(self.net_total),
        )


def aggregate(lines: Iterable[Any]) -> CartTotals:
    """
    Sum gross, discount and net totals over cart lines.

    Each line needs ``quantity``, ``unit_price`` (gross) and ``discount_percent``.
    """
    subtotal = Decimal("0")
    total_discount = Decimal("0")
    for line in lines:
        gross = to_decimal(line.unit_price) * line.quantity
        subtotal += gross
        total_discount += gross * to_decimal(line.discount_percent) / 100

    return CartTotals(
        subtotal=subtotal,
        total_discount=total_discount,
        net_total=subtotal - total_discount,
    )


def ensure_minimum_quantity(quantity: int) -> None:
    if quantity < settings.MINIMUM_ORDER_QUANTITY:
        raise ValidationError(
            f"Minimum order quantity is {settings.MINIMUM_ORDER_QUANTITY}",
            {"quantity": quantity, "minimum": settings.MINIMUM_ORDER_QUANTITY},
        )


def ensure_stock(variant: ProductVariant, quantity: int) -> None:
    if settings.STOCK_CHECK_ENABLED and quantity > variant.stock:
        raise InsufficientStockError(
            f"Only {variant.stock} units of {variant.label} in stock",
            {"variant_id": str(variant.id), "available": variant.stock, "requested": quantity},
        )


# ==================== CART CHANGED LISTENERS ====================

CartListener = Callable[[uuid.UUID], Awaitable[None]]

_cart_listeners: List[CartListener] = []


def on_cart_changed(listener: CartListener) -> CartListener:
    """Register a coroutine called with the partner id whenever a cart changes."""
    _cart_listeners.append(listener)
    return listener


def remove_cart_listener(listener: CartListener) -> None:
    if listener in _cart_listeners:
        _cart_listeners.remove(listener)


async def notify_cart_changed(partner_id: uuid.UUID) -> None:
    """Fan out a cart change. A failing listener is logged and skipped."""
    for listener in list(_cart_listeners):
        try:
            await listener(partner_id)
        except Exception as e:
            logger.error(f"Cart listener {listener!r} failed for partner {partner_id}: {e}")


# ==================== SERVICE ====================

class CartService:
    """
    Service for the partner's cart.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_lines(self, partner_id: uuid.UUID) -> List[CartLine]:
        """Cart lines with product and variant loaded."""
        result = await self.db.execute(
            select(CartLine)
            .options(
                selectinload(CartLine.product),
                selectinload(CartLine.variant),
            )
            .where(CartLine.partner_id == partner_id)
            .order_by(CartLine.created_at)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_cart(self, partner_id: uuid.UUID) -> dict:
        """Cart lines with display fields and rounded totals."""
        lines = await self.get_lines(partner_id)
        totals = aggregate(lines).rounded()

        items = []
        for line in lines:
            net_unit = line.net_unit_price
            items.append({
                "id": line.id,
                "product_id": line.product_id,
                "variant_id": line.variant_id,
                "product_name": line.product.product_name if line.product else "",
                "variant_label": line.variant.label if line.variant else "",
                "quantity": line.quantity,
                "unit_price": round_currency(line.unit_price),
                "discount_percent": to_decimal(line.discount_percent),
                "net_unit_price": round_currency(net_unit),
                "line_total": round_currency(net_unit * line.quantity),
            })

        return {
            "items": items,
            "totals": totals.model_dump(),
            "item_count": len(items),
        }

    async def add_item(
        self,
        partner: Partner,
        product_id: uuid.UUID,
        variant_id: uuid.UUID,
        quantity: int,
    ) -> CartLine:
        """
        Add a variant to the cart at the partner's tier price.

        An existing line for the same product and variant is replaced.
        """
        ensure_minimum_quantity(quantity)

        result = await self.db.execute(
            select(ProductVariant)
            .options(selectinload(ProductVariant.tier_prices))
            .where(ProductVariant.id == variant_id)
        )
        variant = result.scalar_one_or_none()
        if not variant or variant.product_id != product_id:
            raise NotFoundError("Product variant not found", {"variant_id": str(variant_id)})

        product = await self.db.get(Product, product_id)
        if not product or not product.active:
            raise NotFoundError("Product not found", {"product_id": str(product_id)})

        ensure_stock(variant, quantity)
        quote = resolve_price(partner.role, variant)

        result = await self.db.execute(
            select(CartLine).where(
                CartLine.partner_id == partner.id,
                CartLine.product_id == product_id,
                CartLine.variant_id == variant_id,
            )
        )
        line = result.scalar_one_or_none()

        if line:
            line.quantity = quantity
            line.unit_price = quote.gross_unit_price
            line.discount_percent = quote.discount_percent
        else:
            line = CartLine(
                partner_id=partner.id,
                product_id=product_id,
                variant_id=variant_id,
                quantity=quantity,
                unit_price=quote.gross_unit_price,
                discount_percent=quote.discount_percent,
            )
            self.db.add(line)

        await self.db.commit()
        logger.info(f"Partner {partner.id} cart: {product.product_name} {variant.label} x {quantity}")

        await notify_cart_changed(partner.id)
        return line

    async def update_quantity(
        self,
        partner_id: uuid.UUID,
        line_id: uuid.UUID,
        quantity: int,
    ) -> CartLine:
        """Change the quantity of one of the partner's cart lines."""
        ensure_minimum_quantity(quantity)

        line = await self._get_line(partner_id, line_id)
        variant = await self.db.get(ProductVariant, line.variant_id)
        if variant:
            ensure_stock(variant, quantity)

        line.quantity = quantity
        await self.db.commit()

        await notify_cart_changed(partner_id)
        return line

    async def remove_item(self, partner_id: uuid.UUID, line_id: uuid.UUID) -> None:
        line = await self._get_line(partner_id, line_id)
        await self.db.delete(line)
        await self.db.commit()

        await notify_cart_changed(partner_id)

    async def clear(self, partner_id: uuid.UUID, commit: bool = True) -> int:
        """Delete every cart line of the partner. Returns the number removed."""
        result = await self.db.execute(
            delete(CartLine).where(CartLine.partner_id == partner_id)
        )
        if commit:
            await self.db.commit()

        await notify_cart_changed(partner_id)
        return result.rowcount or 0

    async def count(self, partner_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count(CartLine.id)).where(CartLine.partner_id == partner_id)
        )
        return result.scalar() or 0

    async def _get_line(self, partner_id: uuid.UUID, line_id: uuid.UUID) -> CartLine:
        result = await self.db.execute(
            select(CartLine).where(
                CartLine.id == line_id,
                CartLine.partner_id == partner_id,
            )
        )
        line = result.scalar_one_or_none()
        if not line:
            raise NotFoundError("Cart item not found", {"cart_line_id": str(line_id)})
        return line
