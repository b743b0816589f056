"""Razorpay order creation and signature tests."""
from decimal import Decimal
from types import SimpleNamespace

import pytest

from partner_portal.core.exceptions import ExternalServiceError, ValidationError
from partner_portal.services.payment_service import PaymentService, amount_to_paise

from conftest import TEST_KEY_ID, TEST_KEY_SECRET, sign


@pytest.mark.parametrize("amount, paise", [
    (Decimal("500.00"), 50000),
    ("10.999", 1099),
    (2250, 225000),
    (Decimal("0.009"), 0),
])
def test_amount_to_paise(amount, paise):
    assert amount_to_paise(amount) == paise


def gateway(create):
    return SimpleNamespace(order=SimpleNamespace(create=create))


def test_create_order_sends_paise():
    service = PaymentService(key_id=TEST_KEY_ID, key_secret=TEST_KEY_SECRET)
    sent = {}

    def create(data):
        sent.update(data)
        return {"id": "order_abc", "amount": data["amount"], "currency": data["currency"]}

    service.client = gateway(create)
    order = service.create_order(Decimal("2250.00"), receipt="chk_1")

    assert order["id"] == "order_abc"
    assert sent == {"amount": 225000, "currency": "INR", "receipt": "chk_1"}


def test_create_order_without_keys():
    service = PaymentService(key_id="", key_secret="")
    with pytest.raises(ExternalServiceError, match="Keys missing"):
        service.create_order(Decimal("100"))


def test_create_order_rejects_zero_paise():
    service = PaymentService(key_id=TEST_KEY_ID, key_secret=TEST_KEY_SECRET)
    with pytest.raises(ValidationError):
        service.create_order(Decimal("0.001"))


def test_gateway_error_description_is_reported():
    class BadRequest(Exception):
        description = "The amount must be atleast INR 1.00"

    def create(data):
        raise BadRequest("bad request")

    service = PaymentService(key_id=TEST_KEY_ID, key_secret=TEST_KEY_SECRET)
    service.client = gateway(create)

    with pytest.raises(ExternalServiceError) as exc_info:
        service.create_order(Decimal("0.50"))
    assert exc_info.value.message == "The amount must be atleast INR 1.00"


def test_verify_signature():
    service = PaymentService(key_id=TEST_KEY_ID, key_secret=TEST_KEY_SECRET)
    signature = sign("order_abc", "pay_123")

    assert service.verify_signature("order_abc", "pay_123", signature)
    assert not service.verify_signature("order_abc", "pay_999", signature)
    assert not service.verify_signature("order_abc", "pay_123", sign("order_abc", "pay_123", "other"))
