"""Order and payment log construction tests."""
from decimal import Decimal
from types import SimpleNamespace
import uuid

import pytest

from partner_portal.core.exceptions import BelowMinimumOrderError, ValidationError
from partner_portal.models.order import PaymentMethod, PaymentStatus, DeliveryStatus
from partner_portal.services.cart_service import aggregate
from partner_portal.services.order_service import (
    build_order,
    build_payment_log_entry,
    ensure_minimum_order,
    order_number_prefix,
)

PARTNER_ID = uuid.uuid4()


def cart_line(unit_price="100", quantity=25, discount="10"):
    return SimpleNamespace(
        product_id=uuid.uuid4(),
        variant_id=uuid.uuid4(),
        product_name="Aqua Mineral Water",
        variant_label="1 L",
        quantity=quantity,
        unit_price=Decimal(unit_price),
        discount_percent=Decimal(discount),
    )


def test_order_below_minimum_amount_is_rejected():
    totals = aggregate([cart_line(unit_price="0.02", quantity=25, discount="0")])
    assert totals.net_total == Decimal("0.50")
    with pytest.raises(BelowMinimumOrderError):
        ensure_minimum_order(totals)


def test_online_order_is_paid_in_full():
    order = build_order(
        partner_id=PARTNER_ID,
        cart_lines=[cart_line()],
        payment_method="online",
        payment_confirmation="pay_123",
        shipping_address={"city": "Hyderabad"},
        partner_role="dealer",
    )

    assert order.total_amount == Decimal("2250.00")
    assert order.paid_amount == Decimal("2250.00")
    assert order.remaining_amount == Decimal("0")
    assert order.payment_status == PaymentStatus.PAID
    assert order.payment_id == "pay_123"
    assert order.delivery_status == DeliveryStatus.PENDING

    entry = build_payment_log_entry(order)
    assert entry is not None
    assert entry.amount_paid == Decimal("2250.00")
    assert entry.remaining_balance == Decimal("0")
    assert entry.transaction_id == "pay_123"


def test_cod_order_is_unpaid():
    order = build_order(
        partner_id=PARTNER_ID,
        cart_lines=[cart_line()],
        payment_method=PaymentMethod.COD,
        payment_confirmation=None,
        shipping_address=None,
    )

    assert order.paid_amount == Decimal("0")
    assert order.remaining_amount == Decimal("2250.00")
    assert order.payment_status == PaymentStatus.PENDING
    assert order.payment_id == "CASH_ON_DELIVERY"
    assert build_payment_log_entry(order) is None


def test_online_order_needs_confirmation():
    with pytest.raises(ValidationError):
        build_order(PARTNER_ID, [cart_line()], "online", None, None)


def test_empty_cart_cannot_be_ordered():
    with pytest.raises(ValidationError):
        build_order(PARTNER_ID, [], "cod", None, None)


def test_items_are_snapshotted():
    line = cart_line(unit_price="99.99", quantity=30, discount="5")
    order = build_order(PARTNER_ID, [line], "cod", None, None, partner_role="sub dealer")

    item = order.items[0]
    assert item["product_name"] == "Aqua Mineral Water"
    assert item["variant_label"] == "1 L"
    assert item["quantity"] == 30
    assert item["unit_price"] == "99.99"
    assert item["net_unit_price"] == "94.99"
    assert order.partner_role == "sub dealer"


@pytest.mark.parametrize("role, prefix", [
    ("dealer", "D"),
    ("main dealer", "D"),
    ("sub dealer", "SD"),
    ("retailer outlet", "RT"),
    ("admin", "RT"),
])
def test_order_number_prefix(role, prefix):
    assert order_number_prefix(role) == prefix
