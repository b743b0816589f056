from typing import List
import uuid

from fastapi import APIRouter, status

from partner_portal.api.deps import DB, AdminPartner
from partner_portal.schemas.product import CategoryCreate, CategoryUpdate, CategoryResponse
from partner_portal.services.product_service import ProductService

router = APIRouter(tags=["Categories"])


@router.get("", response_model=List[CategoryResponse])
async def list_categories(db: DB, admin: AdminPartner):
    """All categories, including inactive ones."""
    service = ProductService(db)
    categories = await service.get_categories(include_inactive=True)
    return [CategoryResponse.model_validate(c) for c in categories]


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(data: CategoryCreate, db: DB, admin: AdminPartner):
    service = ProductService(db)
    category = await service.create_category(data)
    return CategoryResponse.model_validate(category)


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(category_id: uuid.UUID, data: CategoryUpdate, db: DB, admin: AdminPartner):
    service = ProductService(db)
    category = await service.update_category(category_id, data)
    return CategoryResponse.model_validate(category)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(category_id: uuid.UUID, db: DB, admin: AdminPartner):
    service = ProductService(db)
    await service.delete_category(category_id)
