from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import select

from partner_portal.config import settings
from partner_portal.api.v1.router import api_router
from partner_portal.core.exceptions import PortalError
from partner_portal.core.security import get_password_hash
from partner_portal.database import init_db, get_db_session
from partner_portal.models.partner import Partner, PartnerRole, ApprovalStatus

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def auto_seed_admin() -> None:
    """Create the first admin account from ADMIN_EMAIL/ADMIN_PASSWORD if no admin exists."""
    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        logger.info("ADMIN_EMAIL/ADMIN_PASSWORD not set. Skipping admin seed.")
        return

    async with get_db_session() as session:
        result = await session.execute(
            select(Partner).where(Partner.role == PartnerRole.ADMIN.value).limit(1)
        )
        if result.scalar_one_or_none() is not None:
            logger.info("Admin account exists. Skipping admin seed.")
            return

        session.add(Partner(
            email=settings.ADMIN_EMAIL.strip().lower(),
            password_hash=get_password_hash(settings.ADMIN_PASSWORD),
            phone="0000000000",
            first_name="Admin",
            company_name=settings.APP_NAME,
            role=PartnerRole.ADMIN.value,
            approval_status=ApprovalStatus.APPROVED.value,
        ))
        logger.info(f"Created admin account: {settings.ADMIN_EMAIL}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: create tables and seed the admin account.
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()
    await auto_seed_admin()

    yield

    logger.info("Shutting down...")


OPENAPI_TAGS = [
    {"name": "Authentication", "description": "Partner registration, login and profile"},
    {"name": "Catalog", "description": "Products priced for the partner's tier"},
    {"name": "Cart", "description": "Partner cart with minimum order quantity"},
    {"name": "Checkout", "description": "Checkout from cart to order, online or cash on delivery"},
    {"name": "Payments", "description": "Razorpay order creation"},
    {"name": "Orders", "description": "Order history and delivery status"},
    {"name": "Partners", "description": "Partner approval, onboarding and ledger (admin)"},
    {"name": "Products", "description": "Products, variants, tier prices and stock (admin)"},
    {"name": "Categories", "description": "Catalog categories (admin)"},
    {"name": "Dashboard", "description": "Admin dashboard counters"},
    {"name": "Notifications", "description": "Order status emails"},
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="B2B ordering portal for Prakruthi Aqua dealers, sub dealers and retailer outlets.",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    """Domain errors become {"error", "type", "details"} with the exception's status code."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.message,
            "type": type(exc).__name__,
            "details": exc.details,
        },
    )


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
    }
