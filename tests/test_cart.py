"""Cart aggregation, minimum quantity, stock and listener tests."""
from decimal import Decimal
from types import SimpleNamespace
import random
import uuid

import pytest

from partner_portal.core.exceptions import InsufficientStockError, ValidationError
from partner_portal.models.product import ProductVariant
from partner_portal.services.cart_service import (
    CartTotals,
    aggregate,
    ensure_minimum_quantity,
    ensure_stock,
    notify_cart_changed,
    on_cart_changed,
    remove_cart_listener,
)


def line(unit_price: str, quantity: int, discount: str = "0") -> SimpleNamespace:
    return SimpleNamespace(
        unit_price=Decimal(unit_price),
        quantity=quantity,
        discount_percent=Decimal(discount),
    )


def test_empty_cart_totals_are_zero():
    assert aggregate([]) == CartTotals(
        subtotal=Decimal("0"), total_discount=Decimal("0"), net_total=Decimal("0")
    )


def test_two_line_cart():
    totals = aggregate([line("500", 25), line("200", 25, "20")])
    assert totals.subtotal == Decimal("17500")
    assert totals.total_discount == Decimal("1000")
    assert totals.net_total == Decimal("16500")


def test_aggregate_ignores_line_order():
    lines = [line("99.99", 25, "7.5"), line("12.40", 40, "0"), line("310", 30, "12")]
    expected = aggregate(lines)

    shuffled = lines[:]
    random.Random(7).shuffle(shuffled)
    assert aggregate(shuffled) == expected
    assert aggregate(reversed(lines)) == expected


def test_rounded_totals_use_half_up():
    totals = aggregate([line("0.125", 25, "0")]).rounded()
    assert totals.subtotal == Decimal("3.13")


def test_minimum_order_quantity():
    ensure_minimum_quantity(25)
    with pytest.raises(ValidationError):
        ensure_minimum_quantity(24)


def test_quantity_above_stock_is_rejected():
    variant = ProductVariant(id=uuid.uuid4(), quantity_value="500", quantity_unit="ml", stock=10)
    ensure_stock(variant, 10)
    with pytest.raises(InsufficientStockError) as exc_info:
        ensure_stock(variant, 25)
    assert exc_info.value.details["available"] == 10


async def test_cart_listeners_are_notified_and_failures_skipped():
    seen = []

    async def broken(partner_id):
        raise RuntimeError("badge widget gone")

    async def badge(partner_id):
        seen.append(partner_id)

    on_cart_changed(broken)
    on_cart_changed(badge)
    try:
        partner_id = uuid.uuid4()
        await notify_cart_changed(partner_id)
        assert seen == [partner_id]
    finally:
        remove_cart_listener(broken)
        remove_cart_listener(badge)
