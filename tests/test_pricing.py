"""Tier resolution and unit price tests."""
from decimal import Decimal

import pytest

from partner_portal.core.exceptions import NotFoundError, ValidationError
from partner_portal.models.product import PriceTier, ProductVariant, VariantTierPrice
from partner_portal.services.cart_service import aggregate
from partner_portal.services.pricing_service import (
    apply_tier_prices,
    flatten_tier_prices,
    resolve_price,
    round_currency,
    tier_for_role,
)


def make_variant(**tiers) -> ProductVariant:
    return ProductVariant(
        quantity_value="1",
        quantity_unit="L",
        stock=100,
        tier_prices=[
            VariantTierPrice(tier=tier, price=Decimal(price), discount=Decimal(discount))
            for tier, (price, discount) in tiers.items()
        ],
    )


@pytest.mark.parametrize("role, tier", [
    ("dealer", PriceTier.DEALER),
    ("main dealer", PriceTier.DEALER),
    ("sub dealer", PriceTier.SUBDEALER),
    ("  Sub Dealer ", PriceTier.SUBDEALER),
    ("retailer outlet", PriceTier.RETAIL),
    ("customer", PriceTier.CUSTOMER),
    ("distributor", PriceTier.RETAIL),
    (None, PriceTier.RETAIL),
])
def test_tier_for_role(role, tier):
    assert tier_for_role(role) == tier


def test_retailer_line_total():
    variant = make_variant(retail=("100", "10"))

    quote = resolve_price("retailer outlet", variant)
    assert quote.tier == PriceTier.RETAIL
    assert quote.net_unit_price == Decimal("90")
    assert quote.display_net_unit_price == Decimal("90.00")

    line = type("Line", (), {
        "quantity": 25,
        "unit_price": quote.gross_unit_price,
        "discount_percent": quote.discount_percent,
    })()
    totals = aggregate([line]).rounded()
    assert totals.net_total == Decimal("2250.00")
    assert totals.total_discount == Decimal("250.00")


def test_zero_discount_keeps_gross_price():
    variant = make_variant(dealer=("125.50", "0"))
    quote = resolve_price("dealer", variant)
    assert quote.net_unit_price == quote.gross_unit_price == Decimal("125.50")


def test_net_price_is_not_rounded_before_presentation():
    variant = make_variant(subdealer=("33.33", "12.5"))
    quote = resolve_price("sub dealer", variant)
    assert quote.net_unit_price == Decimal("33.33") * (1 - Decimal("12.5") / 100)
    assert quote.display_net_unit_price == round_currency(quote.net_unit_price)


def test_unpriced_tier_resolves_to_zero():
    variant = make_variant(dealer=("100", "10"))
    quote = resolve_price("retailer outlet", variant)
    assert quote.gross_unit_price == Decimal("0")
    assert quote.net_unit_price == Decimal("0")


def test_resolve_price_is_deterministic():
    variant = make_variant(dealer=("80", "2.5"))
    assert resolve_price("dealer", variant) == resolve_price("dealer", variant)


def test_missing_variant_raises():
    with pytest.raises(NotFoundError):
        resolve_price("dealer", None)


def test_apply_tier_prices_replaces_and_clears_rows():
    variant = make_variant(dealer=("100", "10"), retail=("120", "5"))

    apply_tier_prices(variant, {
        "dealer_price": Decimal("95"),
        "dealer_discount": Decimal("0"),
        "retail_price": None,
        "customer_price": Decimal("150"),
        "customer_discount": None,
    })

    flat = flatten_tier_prices(variant)
    assert flat["dealer_price"] == Decimal("95")
    assert flat["dealer_discount"] == Decimal("0")
    assert flat["retail_price"] == Decimal("0")
    assert flat["customer_price"] == Decimal("150")
    assert {row.tier for row in variant.tier_prices} == {"dealer", "customer"}


def test_apply_tier_prices_rejects_discount_over_100():
    variant = make_variant()
    with pytest.raises(ValidationError):
        apply_tier_prices(variant, {"dealer_price": Decimal("100"), "dealer_discount": Decimal("120")})
