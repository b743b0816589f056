"""Pricing Service for role-tiered catalog pricing.

Every surface that shows a price goes through ``tier_for_role`` and
``resolve_price``:

- Role → tier: dealer / main dealer → dealer, sub dealer → subdealer,
  retailer outlet and anything unrecognised → retail, guest → customer
- Net price = gross × (1 − discount/100), kept at full precision
- Rounding (half-up, 2 places) happens once, at the presentation boundary

Example:
- Retail price: ₹100.00, retail discount: 10%
- Net unit price: ₹90.00
- 25 units: ₹2,250.00 payable, ₹250.00 discount
"""
from typing import Optional, List, Dict, Any, Tuple
from decimal import Decimal, ROUND_HALF_UP
import uuid
import logging

from pydantic import BaseModel, ConfigDict
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from partner_portal.config import settings
from partner_portal.core.exceptions import NotFoundError, ValidationError
from partner_portal.models.partner import PartnerRole
from partner_portal.models.product import (
    Product, ProductVariant, VariantTierPrice, PriceTier,
)

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")

GUEST_ROLE = "customer"

ROLE_TIER_MAP: Dict[str, PriceTier] = {
    PartnerRole.DEALER.value: PriceTier.DEALER,
    PartnerRole.MAIN_DEALER.value: PriceTier.DEALER,
    PartnerRole.SUB_DEALER.value: PriceTier.SUBDEALER,
    PartnerRole.RETAILER_OUTLET.value: PriceTier.RETAIL,
    GUEST_ROLE: PriceTier.CUSTOMER,
}


def normalize_role(role: Optional[str]) -> str:
    """Lower-case and trim a role string the way the registration form stores it."""
    if role is None:
        return ""
    value = role.value if isinstance(role, PartnerRole) else str(role)
    return value.strip().lower()


def tier_for_role(role: Optional[str]) -> PriceTier:
    """Map a partner role to its pricing tier. Unknown roles price at retail."""
    return ROLE_TIER_MAP.get(normalize_role(role), PriceTier.RETAIL)


def to_decimal(value: Any) -> Decimal:
    """Coerce a stored amount to Decimal. Missing values count as zero."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_currency(value: Decimal) -> Decimal:
    """Round to paise using half-up rounding."""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


class PriceQuote(BaseModel):
    """Resolved price for one variant as seen by one tier."""
    model_config = ConfigDict(frozen=True)

    tier: PriceTier
    gross_unit_price: Decimal
    discount_percent: Decimal
    net_unit_price: Decimal

    @property
    def display_net_unit_price(self) -> Decimal:
        return round_currency(self.net_unit_price)


def resolve_price(role: Optional[str], variant: Optional[ProductVariant]) -> PriceQuote:
    """
    Resolve the gross, discount and net unit price of a variant for a role.

    Raises:
        NotFoundError: variant is missing
    """
    if variant is None:
        raise NotFoundError("Product variant not found")

    tier = tier_for_role(role)
    row = variant.get_tier_price(tier)

    # A tier the admin never priced resolves to zero rather than failing
    gross = to_decimal(row.price if row else None)
    discount = to_decimal(row.discount if row else None)
    net = gross * (1 - discount / 100)

    return PriceQuote(
        tier=tier,
        gross_unit_price=gross,
        discount_percent=discount,
        net_unit_price=net,
    )


def flatten_tier_prices(variant: ProductVariant) -> Dict[str, Decimal]:
    """Expose tier rows as ``{tier}_price`` / ``{tier}_discount`` fields."""
    flat: Dict[str, Decimal] = {}
    for tier in PriceTier:
        row = variant.get_tier_price(tier)
        flat[f"{tier.value}_price"] = to_decimal(row.price if row else None)
        flat[f"{tier.value}_discount"] = to_decimal(row.discount if row else None)
    return flat


def validate_tier_price(tier: str, price: Any, discount: Any) -> Tuple[Decimal, Decimal]:
    """Check price > 0 and discount within [0, 100]."""
    price_value = to_decimal(price)
    discount_value = to_decimal(discount)
    if price_value <= 0:
        raise ValidationError(f"{tier} price must be greater than 0", {"tier": tier})
    if discount_value < 0 or discount_value > 100:
        raise ValidationError(f"{tier} discount must be between 0 and 100", {"tier": tier})
    return price_value, discount_value


def apply_tier_prices(variant: ProductVariant, prices: Dict[str, Any]) -> None:
    """
    Write flat ``{tier}_price`` / ``{tier}_discount`` values onto a variant.

    A tier whose price is missing or zero is removed, so it resolves to 0.
    """
    for tier in PriceTier:
        price = prices.get(f"{tier.value}_price")
        discount = prices.get(f"{tier.value}_discount")
        row = variant.get_tier_price(tier)

        if price is None or to_decimal(price) == 0:
            if row is not None:
                variant.tier_prices.remove(row)
            continue

        price_value, discount_value = validate_tier_price(tier.value, price, discount)
        if row is None:
            variant.tier_prices.append(
                VariantTierPrice(tier=tier.value, price=price_value, discount=discount_value)
            )
        else:
            row.price = price_value
            row.discount = discount_value


class PricingService:
    """
    Service for tier pricing lookups and admin price/stock maintenance.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_variant(self, variant_id: uuid.UUID) -> ProductVariant:
        """Load a variant with its product and tier prices."""
        result = await self.db.execute(
            select(ProductVariant)
            .options(
                selectinload(ProductVariant.tier_prices),
                selectinload(ProductVariant.product),
            )
            .where(ProductVariant.id == variant_id)
        )
        variant = result.scalar_one_or_none()
        if not variant:
            raise NotFoundError("Product variant not found", {"variant_id": str(variant_id)})
        return variant

    async def quote(self, role: Optional[str], variant_id: uuid.UUID) -> PriceQuote:
        """Resolve the price of a stored variant for a role."""
        variant = await self.get_variant(variant_id)
        return resolve_price(role, variant)

    async def list_catalog(
        self,
        role: Optional[str],
        search: Optional[str] = None,
        category: Optional[str] = None,
        subcategory: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        List active products with every variant priced for the role's tier.
        """
        query = (
            select(Product)
            .options(
                selectinload(Product.variants).selectinload(ProductVariant.tier_prices)
            )
            .where(Product.active == True)  # noqa: E712
            .order_by(Product.product_name)
        )
        if search:
            query = query.where(Product.product_name.ilike(f"%{search}%"))
        if category:
            query = query.where(Product.category == category)
        if subcategory:
            query = query.where(Product.subcategory == subcategory)

        result = await self.db.execute(query)
        products = result.scalars().all()

        catalog = []
        for product in products:
            variants = []
            for variant in product.variants:
                quote = resolve_price(role, variant)
                variants.append({
                    "id": variant.id,
                    "quantity_value": variant.quantity_value,
                    "quantity_unit": variant.quantity_unit,
                    "stock": variant.stock,
                    "price": round_currency(quote.gross_unit_price),
                    "discount_percent": quote.discount_percent,
                    "net_price": quote.display_net_unit_price,
                })
            catalog.append({
                "id": product.id,
                "product_name": product.product_name,
                "description": product.description,
                "image_url": product.image_url,
                "image_urls": list(product.image_urls or []),
                "category": product.category,
                "subcategory": product.subcategory,
                "innercategory": product.innercategory,
                "tier": tier_for_role(role),
                "variants": variants,
            })
        return catalog

    async def list_variants(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[ProductVariant]:
        """List variants of active products for the admin pricing screen."""
        query = (
            select(ProductVariant)
            .join(Product, ProductVariant.product_id == Product.id)
            .options(
                selectinload(ProductVariant.tier_prices),
                selectinload(ProductVariant.product),
            )
            .where(Product.active == True)  # noqa: E712
            .order_by(Product.product_name, ProductVariant.created_at)
        )
        if search:
            query = query.where(Product.product_name.ilike(f"%{search}%"))
        if category:
            query = query.where(Product.category == category)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update_variant_pricing(
        self,
        variant_id: uuid.UUID,
        prices: Dict[str, Any],
        stock: int,
    ) -> ProductVariant:
        """
        Replace all tier prices and the stock of a variant in one write.

        Concurrent admin edits are last-write-wins.
        """
        if stock < 0:
            raise ValidationError("Stock cannot be negative")

        variant = await self.get_variant(variant_id)
        apply_tier_prices(variant, prices)
        variant.stock = stock

        await self.db.commit()

        logger.info(f"Updated pricing and stock ({stock}) for variant {variant_id}")
        return variant

    async def count_low_stock(self, threshold: Optional[int] = None) -> int:
        """Count variants whose stock is below the threshold."""
        limit = settings.LOW_STOCK_THRESHOLD if threshold is None else threshold
        result = await self.db.execute(
            select(func.count(ProductVariant.id)).where(ProductVariant.stock < limit)
        )
        return result.scalar() or 0

