"""
Shared fixtures: a fresh SQLite database per test, the FastAPI app wired to
it, and in-memory stand-ins for Razorpay and SMTP.
"""
from decimal import Decimal
from typing import Optional
import hashlib
import hmac

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from partner_portal import models  # noqa: F401
from partner_portal.api.deps import get_payment_service, get_email_service
from partner_portal.core.exceptions import ExternalServiceError
from partner_portal.core.security import create_access_token, get_password_hash
from partner_portal.database import Base, get_db
from partner_portal.main import app
from partner_portal.models.partner import Partner, PartnerRole, ApprovalStatus
from partner_portal.models.product import Product, ProductVariant, VariantTierPrice
from partner_portal.services.email_service import EmailService
from partner_portal.services.payment_service import PaymentService, amount_to_paise

TEST_KEY_ID = "rzp_test_key"
TEST_KEY_SECRET = "rzp_test_secret"
PASSWORD = "secret123"


# ==================== EXTERNAL SERVICES ====================

class FakePaymentService(PaymentService):
    """Razorpay client that hands out order ids without calling the gateway."""

    def __init__(self):
        super().__init__(key_id=TEST_KEY_ID, key_secret=TEST_KEY_SECRET)
        self.orders = []
        self.error: Optional[Exception] = None

    def create_order(self, amount, receipt=None, notes=None):
        if self.error is not None:
            raise self.error
        order = {
            "id": f"order_test{len(self.orders) + 1}",
            "amount": amount_to_paise(amount),
            "currency": "INR",
            "receipt": receipt,
            "notes": notes or {},
        }
        self.orders.append(order)
        return order


class FakeEmailService(EmailService):
    """Mailer that records messages instead of talking to SMTP."""

    def __init__(self):
        super().__init__(smtp_user="orders@prakruthiaqua.test", smtp_password="app-password")
        self.sent = []
        self.fail = False

    def send_email(self, to_email, subject, html_content, text_content=None):
        if self.fail:
            raise ExternalServiceError("SMTP error: connection refused")
        self.sent.append({
            "to": to_email,
            "subject": subject,
            "html": html_content,
            "text": text_content,
        })
        return True


def sign(order_id: str, payment_id: str, secret: str = TEST_KEY_SECRET) -> str:
    return hmac.new(secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


# ==================== DATABASE ====================

@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'portal.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def payment_service():
    return FakePaymentService()


@pytest.fixture
def email_service():
    return FakeEmailService()


@pytest_asyncio.fixture
async def client(session_factory, payment_service, email_service):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_service] = lambda: payment_service
    app.dependency_overrides[get_email_service] = lambda: email_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ==================== DATA ====================

async def create_partner(
    db: AsyncSession,
    email: str,
    role: str = PartnerRole.DEALER.value,
    approval_status: ApprovalStatus = ApprovalStatus.APPROVED,
    password: str = PASSWORD,
) -> Partner:
    partner = Partner(
        email=email,
        password_hash=get_password_hash(password),
        phone="9876543210",
        first_name="Ravi",
        last_name="Kumar",
        company_name="Kumar Aqua Traders",
        role=role,
        approval_status=approval_status.value,
    )
    db.add(partner)
    await db.commit()
    return partner


async def create_product(
    db: AsyncSession,
    name: str = "Aqua Mineral Water",
    stock: int = 100,
    prices: Optional[dict] = None,
) -> tuple[Product, ProductVariant]:
    """Product with one 1 L variant. ``prices`` maps tier -> (price, discount)."""
    prices = prices or {
        "dealer": ("100", "10"),
        "subdealer": ("110", "5"),
        "retail": ("100", "10"),
        "customer": ("150", "0"),
    }
    product = Product(product_name=name, category="Water", subcategory="Bottled", active=True)
    variant = ProductVariant(
        quantity_value="1",
        quantity_unit="L",
        stock=stock,
        tier_prices=[
            VariantTierPrice(tier=tier, price=Decimal(price), discount=Decimal(discount))
            for tier, (price, discount) in prices.items()
        ],
    )
    product.variants = [variant]
    db.add(product)
    await db.commit()
    return product, variant


def auth_headers(partner: Partner) -> dict:
    return {"Authorization": f"Bearer {create_access_token(subject=partner.id)}"}


@pytest_asyncio.fixture
async def admin(db):
    return await create_partner(db, "admin@prakruthiaqua.test", role=PartnerRole.ADMIN.value)


@pytest_asyncio.fixture
async def dealer(db):
    return await create_partner(db, "dealer@example.com", role=PartnerRole.DEALER.value)


@pytest_asyncio.fixture
async def catalog(db):
    return await create_product(db)


SHIPPING_ADDRESS = {
    "name": "Ravi Kumar",
    "phone": "9876543210",
    "house_no": "12-3",
    "area": "MG Road",
    "city": "Hyderabad",
    "state": "Telangana",
    "pincode": "500001",
}
