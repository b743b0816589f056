from typing import Optional
from math import ceil
import uuid

from fastapi import APIRouter, Query

from partner_portal.api.deps import DB, CurrentPartner, AdminPartner, Mailer
from partner_portal.core.exceptions import NotFoundError
from partner_portal.models.order import DeliveryStatus
from partner_portal.schemas.order import (
    OrderResponse,
    OrderListResponse,
    DeliveryStatusUpdate,
    DeliveryStatusUpdateResponse,
)
from partner_portal.services.order_service import OrderService

router = APIRouter(tags=["Orders"])


@router.get("/my", response_model=OrderListResponse)
async def list_my_orders(
    db: DB,
    partner: CurrentPartner,
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
):
    """Current partner's order history, newest first."""
    service = OrderService(db)
    orders, total = await service.get_partner_orders(partner.id, skip=(page - 1) * size, limit=size)

    return OrderListResponse(
        items=[OrderResponse.model_validate(o) for o in orders],
        total=total,
        page=page,
        size=size,
        pages=ceil(total / size) if total > 0 else 1,
    )


@router.get("/my/{order_id}", response_model=OrderResponse)
async def get_my_order(order_id: uuid.UUID, db: DB, partner: CurrentPartner):
    service = OrderService(db)
    order = await service.get_order_by_id(order_id)
    if order.partner_id != partner.id:
        raise NotFoundError("Order not found", {"order_id": str(order_id)})
    return OrderResponse.model_validate(order)


@router.get("", response_model=OrderListResponse)
async def list_orders(
    db: DB,
    admin: AdminPartner,
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    role: Optional[str] = Query(None, description="dealer, main dealer, sub dealer, retailer outlet"),
    delivery_status: Optional[DeliveryStatus] = Query(None),
    search: Optional[str] = Query(None, description="Order number or payment id"),
):
    """All partners' orders (admin)."""
    service = OrderService(db)
    orders, total = await service.get_orders(
        role=role,
        delivery_status=delivery_status,
        search=search,
        skip=(page - 1) * size,
        limit=size,
    )

    return OrderListResponse(
        items=[OrderResponse.model_validate(o) for o in orders],
        total=total,
        page=page,
        size=size,
        pages=ceil(total / size) if total > 0 else 1,
    )


@router.put("/{order_id}/status", response_model=DeliveryStatusUpdateResponse)
async def update_delivery_status(
    order_id: uuid.UUID,
    data: DeliveryStatusUpdate,
    db: DB,
    admin: AdminPartner,
    mailer: Mailer,
):
    """
    Update delivery status (admin), then email the partner.
    An email failure is reported in the response; the status change stands.
    """
    service = OrderService(db, email_service=mailer)
    order, email_sent, email_error = await service.update_delivery_status(order_id, data.status)

    return DeliveryStatusUpdateResponse(
        order=OrderResponse.model_validate(order),
        email_sent=email_sent,
        email_error=email_error,
    )
