from typing import Optional, List
import uuid

from fastapi import APIRouter, Query, status

from partner_portal.api.deps import DB, AdminPartner
from partner_portal.models.product import Product, ProductVariant
from partner_portal.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    VariantCreate,
    VariantResponse,
    VariantPricingUpdate,
)
from partner_portal.services.pricing_service import PricingService, flatten_tier_prices
from partner_portal.services.product_service import ProductService

router = APIRouter(tags=["Products"])


def _variant_response(variant: ProductVariant, product_name: Optional[str]) -> VariantResponse:
    return VariantResponse(
        id=variant.id,
        product_id=variant.product_id,
        product_name=product_name,
        quantity_value=variant.quantity_value,
        quantity_unit=variant.quantity_unit,
        stock=variant.stock,
        updated_at=variant.updated_at,
        **flatten_tier_prices(variant),
    )


def _product_response(product: Product) -> ProductResponse:
    return ProductResponse(
        id=product.id,
        product_name=product.product_name,
        description=product.description,
        image_url=product.image_url,
        image_urls=list(product.image_urls or []),
        category=product.category,
        subcategory=product.subcategory,
        innercategory=product.innercategory,
        active=product.active,
        variants=[_variant_response(v, product.product_name) for v in product.variants],
        created_at=product.created_at,
    )


@router.get("")
async def list_products(
    db: DB,
    admin: AdminPartner,
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    include_inactive: bool = Query(True),
):
    """All products with variants and tier prices (admin)."""
    service = ProductService(db)
    products, total, pages = await service.get_products(
        category=category,
        search=search,
        include_inactive=include_inactive,
        page=page,
        size=size,
    )

    return {
        "items": [_product_response(p) for p in products],
        "total": total,
        "page": page,
        "size": size,
        "pages": pages,
    }


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(data: ProductCreate, db: DB, admin: AdminPartner):
    service = ProductService(db)
    product = await service.create_product(data)
    return _product_response(product)


@router.get("/variants", response_model=List[VariantResponse])
async def list_variants(
    db: DB,
    admin: AdminPartner,
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
):
    """Every variant of active products with all tier prices, for bulk price editing."""
    service = PricingService(db)
    variants = await service.list_variants(search=search, category=category)
    return [_variant_response(v, v.product.product_name) for v in variants]


@router.put("/variants/{variant_id}/pricing", response_model=VariantResponse)
async def update_variant_pricing(
    variant_id: uuid.UUID,
    data: VariantPricingUpdate,
    db: DB,
    admin: AdminPartner,
):
    """
    Replace all tier prices and the stock of one variant.
    A tier sent with no price (or 0) is cleared.
    """
    service = PricingService(db)
    variant = await service.update_variant_pricing(
        variant_id,
        data.model_dump(exclude={"stock"}),
        data.stock,
    )
    return _variant_response(variant, variant.product.product_name)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: uuid.UUID, db: DB, admin: AdminPartner):
    service = ProductService(db)
    return _product_response(await service.get_product_by_id(product_id))


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(product_id: uuid.UUID, data: ProductUpdate, db: DB, admin: AdminPartner):
    service = ProductService(db)
    product = await service.update_product(product_id, data)
    return _product_response(product)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(product_id: uuid.UUID, db: DB, admin: AdminPartner):
    """Deactivate a product. It disappears from the catalog; orders keep their snapshots."""
    service = ProductService(db)
    await service.delete_product(product_id)


@router.post("/{product_id}/variants", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def add_variant(product_id: uuid.UUID, data: VariantCreate, db: DB, admin: AdminPartner):
    service = ProductService(db)
    product = await service.add_variant(product_id, data)
    return _product_response(product)
