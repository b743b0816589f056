from typing import List, Optional, Tuple, Dict, Any
from math import ceil
import uuid
import logging

from sqlalchemy import select, func, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from partner_portal.core.exceptions import NotFoundError, ValidationError
from partner_portal.models.product import Category, Product, ProductVariant
from partner_portal.schemas.product import (
    CategoryCreate, CategoryUpdate, ProductCreate, ProductUpdate, VariantCreate,
)
from partner_portal.services.pricing_service import apply_tier_prices

logger = logging.getLogger(__name__)


class ProductService:
    """Service for managing categories, products and variants."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== CATEGORY METHODS ====================

    async def get_categories(self, include_inactive: bool = False) -> List[Category]:
        """Categories in display order."""
        stmt = select(Category).order_by(Category.display_order, Category.name)
        if not include_inactive:
            stmt = stmt.where(Category.is_active == True)  # noqa: E712
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_category_by_id(self, category_id: uuid.UUID) -> Category:
        category = await self.db.get(Category, category_id)
        if not category:
            raise NotFoundError("Category not found", {"category_id": str(category_id)})
        return category

    async def create_category(self, data: CategoryCreate) -> Category:
        name = data.name.strip()
        existing = await self.db.execute(select(Category).where(Category.name == name))
        if existing.scalar_one_or_none():
            raise ValidationError("Category already exists", {"name": name})

        category = Category(name=name, display_order=data.display_order)
        self.db.add(category)
        await self.db.commit()
        await self.db.refresh(category)

        logger.info(f"Category created: {name}")
        return category

    async def update_category(self, category_id: uuid.UUID, data: CategoryUpdate) -> Category:
        category = await self.get_category_by_id(category_id)

        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(category, key, value.strip() if isinstance(value, str) else value)

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ValidationError("Category already exists", {"name": data.name}) from e

        await self.db.refresh(category)
        return category

    async def delete_category(self, category_id: uuid.UUID) -> None:
        category = await self.get_category_by_id(category_id)
        await self.db.delete(category)
        await self.db.commit()
        logger.info(f"Category deleted: {category_id}")

    # ==================== PRODUCT METHODS ====================

    async def get_products(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        include_inactive: bool = True,
        page: int = 1,
        size: int = 20,
    ) -> Tuple[List[Product], int, int]:
        """Paginated products with variants and tier prices. Returns (items, total, pages)."""
        filters = []
        if category:
            filters.append(Product.category == category)
        if search:
            filters.append(Product.product_name.ilike(f"%{search}%"))
        if not include_inactive:
            filters.append(Product.active == True)  # noqa: E712

        count_stmt = select(func.count(Product.id))
        stmt = (
            select(Product)
            .options(selectinload(Product.variants).selectinload(ProductVariant.tier_prices))
            .order_by(Product.created_at.desc())
        )
        if filters:
            count_stmt = count_stmt.where(and_(*filters))
            stmt = stmt.where(and_(*filters))

        total = (await self.db.execute(count_stmt)).scalar() or 0
        result = await self.db.execute(stmt.offset((page - 1) * size).limit(size))
        return list(result.scalars().all()), total, ceil(total / size) if total > 0 else 1

    async def get_product_by_id(self, product_id: uuid.UUID) -> Product:
        result = await self.db.execute(
            select(Product)
            .options(selectinload(Product.variants).selectinload(ProductVariant.tier_prices))
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        product = result.scalar_one_or_none()
        if not product:
            raise NotFoundError("Product not found", {"product_id": str(product_id)})
        return product

    async def create_product(self, data: ProductCreate) -> Product:
        """Create a product together with its variants and their tier prices."""
        product = Product(**data.model_dump(exclude={"variants"}))
        product.image_url = data.image_urls[0]
        self.db.add(product)
        await self.db.flush()

        for var_data in data.variants:
            self.db.add(self._build_variant(product.id, var_data))

        await self.db.commit()
        logger.info(f"Product created: {product.product_name} ({len(data.variants)} variants)")

        # Reload with all relations
        return await self.get_product_by_id(product.id)

    async def update_product(self, product_id: uuid.UUID, data: ProductUpdate) -> Product:
        product = await self.get_product_by_id(product_id)

        updates = data.model_dump(exclude_unset=True)
        image_urls = updates.pop("image_urls", None)
        for key, value in updates.items():
            setattr(product, key, value)
        if image_urls:
            product.image_urls = image_urls
            product.image_url = image_urls[0]

        await self.db.commit()
        return await self.get_product_by_id(product_id)

    async def delete_product(self, product_id: uuid.UUID) -> None:
        """Soft delete a product by deactivating it; past orders keep their snapshots."""
        product = await self.get_product_by_id(product_id)
        product.active = False
        await self.db.commit()
        logger.info(f"Product deactivated: {product.product_name}")

    async def add_variant(self, product_id: uuid.UUID, data: VariantCreate) -> Product:
        """Add a pack size to a product. Returns the reloaded product."""
        product = await self.get_product_by_id(product_id)
        self.db.add(self._build_variant(product.id, data))
        await self.db.commit()
        return await self.get_product_by_id(product_id)

    def _build_variant(self, product_id: uuid.UUID, data: VariantCreate) -> ProductVariant:
        payload: Dict[str, Any] = data.model_dump()
        variant = ProductVariant(
            product_id=product_id,
            quantity_value=payload["quantity_value"],
            quantity_unit=payload["quantity_unit"],
            stock=payload["stock"],
            tier_prices=[],
        )
        apply_tier_prices(variant, payload)
        return variant
