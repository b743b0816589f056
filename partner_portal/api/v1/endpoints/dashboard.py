from fastapi import APIRouter

from partner_portal.api.deps import DB, AdminPartner
from partner_portal.schemas.partner import DashboardStats
from partner_portal.services.partner_service import PartnerService

router = APIRouter(tags=["Dashboard"])


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(db: DB, admin: AdminPartner):
    """Partner counts by role, pending approvals, catalog and order counts."""
    service = PartnerService(db)
    return DashboardStats(**await service.get_dashboard_stats())


@router.post("/orders/seen")
async def mark_orders_seen(db: DB, admin: AdminPartner):
    """Clear the new orders indicator."""
    service = PartnerService(db)
    seen = await service.mark_orders_seen()
    return {"last_seen_order_count": seen}
