"""Order status email tests."""
from decimal import Decimal

import pytest

from partner_portal.core.exceptions import ExternalServiceError
from partner_portal.services import email_service as email_module
from partner_portal.services.email_service import EmailService


class RecordingSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.messages = []
        RecordingSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, user, password):
        self.user = user

    def sendmail(self, from_addr, to_addr, message):
        self.messages.append((from_addr, to_addr, message))


@pytest.fixture
def smtp(monkeypatch):
    RecordingSMTP.instances = []
    monkeypatch.setattr(email_module.smtplib, "SMTP", RecordingSMTP)
    return RecordingSMTP


def mailer() -> EmailService:
    return EmailService(
        smtp_host="smtp.test",
        smtp_port=587,
        smtp_user="orders@prakruthiaqua.test",
        smtp_password="app-password",
        from_name="Prakruthi Aqua",
    )


def test_render_order_status_email():
    subject, html, text = mailer().render_order_status_email(
        customer_name="Ravi <Traders>",
        order_number="D-00001",
        status="shipped",
        items=[{"product_name": "Aqua Mineral Water", "quantity": 25}, {"name": "Jar", "quantity": 30}],
        total_amount=Decimal("2250"),
    )

    assert subject == "Order D-00001: shipped"
    assert "Ravi &lt;Traders&gt;" in html
    assert "Aqua Mineral Water" in html
    assert "x30" in html
    assert "₹2,250.00" in text


async def test_send_order_status_email(smtp):
    sent = await mailer().send_order_status_email(
        to_email="dealer@example.com",
        customer_name="Ravi",
        order_number="SD-00004",
        status="delivered",
        items=[],
        total_amount=Decimal("100"),
    )

    assert sent is True
    server = smtp.instances[0]
    assert server.host == "smtp.test"
    from_addr, to_addr, message = server.messages[0]
    assert to_addr == "dealer@example.com"
    assert "SD-00004" in message


def test_unconfigured_smtp_raises():
    service = EmailService(smtp_user="", smtp_password="")
    with pytest.raises(ExternalServiceError):
        service.send_email("dealer@example.com", "Hi", "<p>Hi</p>")
