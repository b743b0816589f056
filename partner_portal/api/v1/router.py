from fastapi import APIRouter

from partner_portal.api.v1.endpoints import (
    # Partner facing
    auth,
    catalog,
    cart,
    checkout,
    orders,
    payments,
    # Admin (supplier)
    partners,
    products,
    categories,
    dashboard,
    notifications,
    # Health
    health,
)

# Create main API router
api_router = APIRouter(prefix="/api/v1")

# ==================== Authentication ====================
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Authentication"]
)

# ==================== Catalog & Cart ====================
api_router.include_router(
    catalog.router,
    prefix="/catalog",
    tags=["Catalog"]
)
api_router.include_router(
    cart.router,
    prefix="/cart",
    tags=["Cart"]
)

# ==================== Checkout & Payments ====================
api_router.include_router(
    checkout.router,
    prefix="/checkout",
    tags=["Checkout"]
)
api_router.include_router(
    payments.router,
    prefix="/payments",
    tags=["Payments"]
)

# ==================== Orders ====================
api_router.include_router(
    orders.router,
    prefix="/orders",
    tags=["Orders"]
)

# ==================== Admin ====================
api_router.include_router(
    partners.router,
    prefix="/partners",
    tags=["Partners"]
)
api_router.include_router(
    products.router,
    prefix="/products",
    tags=["Products"]
)
api_router.include_router(
    categories.router,
    prefix="/categories",
    tags=["Categories"]
)
api_router.include_router(
    dashboard.router,
    prefix="/dashboard",
    tags=["Dashboard"]
)
api_router.include_router(
    notifications.router,
    prefix="/notifications",
    tags=["Notifications"]
)

# ==================== Health ====================
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["Health"]
)
