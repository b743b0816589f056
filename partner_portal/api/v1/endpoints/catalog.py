from typing import Optional, List
import uuid

from fastapi import APIRouter, Query

from partner_portal.api.deps import DB, CurrentPartner
from partner_portal.schemas.product import (
    CatalogProduct,
    CategoryResponse,
    PriceQuoteResponse,
)
from partner_portal.services.pricing_service import PricingService, round_currency
from partner_portal.services.product_service import ProductService

router = APIRouter(tags=["Catalog"])


@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(db: DB, partner: CurrentPartner):
    """Active categories for the catalog filter."""
    service = ProductService(db)
    categories = await service.get_categories()
    return [CategoryResponse.model_validate(c) for c in categories]


@router.get("/products", response_model=List[CatalogProduct])
async def list_catalog_products(
    db: DB,
    partner: CurrentPartner,
    search: Optional[str] = Query(None, description="Product name contains"),
    category: Optional[str] = Query(None),
    subcategory: Optional[str] = Query(None),
):
    """
    Active products with each variant priced for the partner's tier.
    """
    service = PricingService(db)
    return await service.list_catalog(
        partner.role,
        search=search,
        category=category,
        subcategory=subcategory,
    )


@router.get("/variants/{variant_id}/price", response_model=PriceQuoteResponse)
async def get_variant_price(variant_id: uuid.UUID, db: DB, partner: CurrentPartner):
    service = PricingService(db)
    quote = await service.quote(partner.role, variant_id)

    return PriceQuoteResponse(
        variant_id=variant_id,
        tier=quote.tier,
        gross_unit_price=round_currency(quote.gross_unit_price),
        discount_percent=quote.discount_percent,
        net_unit_price=quote.display_net_unit_price,
    )
