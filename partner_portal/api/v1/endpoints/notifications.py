import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from partner_portal.api.deps import AdminPartner, Mailer
from partner_portal.core.exceptions import PortalError
from partner_portal.schemas.notification import StatusEmailRequest, StatusEmailResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Notifications"])


@router.post("/send-status-email", response_model=StatusEmailResponse)
async def send_status_email(data: StatusEmailRequest, admin: AdminPartner, mailer: Mailer):
    """
    Email a customer that their order status changed.
    SMTP failures are returned as {"error": ...} with status 500.
    """
    try:
        await mailer.send_order_status_email(
            to_email=str(data.customer_email),
            customer_name=data.customer_name,
            order_number=data.order_id,
            status=data.status,
            items=data.items,
            total_amount=data.total_amount,
        )
    except PortalError as e:
        logger.error(f"Status email for order {data.order_id} failed: {e.message}")
        return JSONResponse(status_code=500, content={"error": e.message})

    return StatusEmailResponse(success=True)
