import uuid

from fastapi import APIRouter, status

from partner_portal.api.deps import DB, CurrentPartner
from partner_portal.schemas.cart import (
    CartAddRequest,
    CartQuantityUpdate,
    CartResponse,
    CartCountResponse,
)
from partner_portal.services.cart_service import CartService

router = APIRouter(tags=["Cart"])


@router.get("", response_model=CartResponse)
async def get_cart(db: DB, partner: CurrentPartner):
    """Cart lines and totals."""
    service = CartService(db)
    return await service.get_cart(partner.id)


@router.get("/count", response_model=CartCountResponse)
async def get_cart_count(db: DB, partner: CurrentPartner):
    service = CartService(db)
    return CartCountResponse(item_count=await service.count(partner.id))


@router.post("/items", response_model=CartResponse, status_code=status.HTTP_201_CREATED)
async def add_to_cart(data: CartAddRequest, db: DB, partner: CurrentPartner):
    """
    Add a variant at the partner's tier price.
    Adding the same variant again replaces its quantity.
    """
    service = CartService(db)
    await service.add_item(partner, data.product_id, data.variant_id, data.quantity)
    return await service.get_cart(partner.id)


@router.patch("/items/{line_id}", response_model=CartResponse)
async def update_cart_item(line_id: uuid.UUID, data: CartQuantityUpdate, db: DB, partner: CurrentPartner):
    service = CartService(db)
    await service.update_quantity(partner.id, line_id, data.quantity)
    return await service.get_cart(partner.id)


@router.delete("/items/{line_id}", response_model=CartResponse)
async def remove_cart_item(line_id: uuid.UUID, db: DB, partner: CurrentPartner):
    service = CartService(db)
    await service.remove_item(partner.id, line_id)
    return await service.get_cart(partner.id)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cart(db: DB, partner: CurrentPartner):
    service = CartService(db)
    await service.clear(partner.id)
