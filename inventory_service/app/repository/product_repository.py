"""Product repository for database operations"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.product import Product
from ..schemas.product import ProductCreate, ProductUpdate


class ProductRepository:
    """
    Repository for product database operations.

    Every read goes through ``_active()`` so logically deleted products are
    invisible to all callers. Methods flush but never commit; the service owns
    the transaction boundary.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _active() -> Select:
        return select(Product).where(Product.is_active.is_(True))

    async def create_product(self, product_data: ProductCreate) -> Product:
        """Add a new active product and flush to obtain its id"""
        now = utcnow()
        product = Product(
            name=product_data.name,
            description=product_data.description,
            price=product_data.price,
            stock_quantity=product_data.stock_quantity,
            category=product_data.category,
            image_url=product_data.image_url,
            is_active=True,
            created_at=now,
            updated_at=now,
        )

        self.db.add(product)
        await self.db.flush()
        return product

    async def get_active_product(self, product_id: int) -> Optional[Product]:
        """Get active product by ID"""
        query = self._active().where(Product.id == product_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_active_products(
        self, category: Optional[str] = None
    ) -> List[Product]:
        """List active products by name, optionally filtered by category (case-insensitive)"""
        query = self._active()
        if category is not None:
            query = query.where(func.lower(Product.category) == category.lower())
        query = query.order_by(Product.name.asc(), Product.id.asc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update_product(
        self, product: Product, product_data: ProductUpdate
    ) -> Product:
        """Overwrite every mutable field of a loaded product"""
        for field, value in product_data.model_dump().items():
            setattr(product, field, value)
        product.updated_at = max(utcnow(), product.created_at)

        await self.db.flush()
        return product

    async def deactivate_product(self, product: Product) -> Product:
        """Soft delete by setting is_active=False"""
        product.is_active = False
        product.updated_at = max(utcnow(), product.created_at)

        await self.db.flush()
        return product

    async def compare_and_set_stock(
        self, product: Product, new_stock: int, expected_version: int
    ) -> bool:
        """
        Atomically write ``new_stock`` only if nobody changed the row since it
        was read at ``expected_version``. Returns False when the race is lost.
        """
        now: datetime = max(utcnow(), product.created_at)
        stmt = (
            update(Product)
            .where(
                Product.id == product.id,
                Product.is_active.is_(True),
                Product.version == expected_version,
            )
            .values(
                stock_quantity=new_stock,
                updated_at=now,
                version=Product.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount != 1:
            return False

        await self.db.refresh(product)
        return True

    async def count_products(self) -> int:
        """Count all product rows, active or not"""
        result = await self.db.execute(select(func.count(Product.id)))
        return result.scalar_one()

    async def get_stats(self) -> Tuple[int, Decimal, Dict[str, int]]:
        """Aggregate count, inventory value and per-category counts over active products"""
        totals_query = select(
            func.count(Product.id),
            func.coalesce(func.sum(Product.price * Product.stock_quantity), 0),
        ).where(Product.is_active.is_(True))
        total_products, total_value = (await self.db.execute(totals_query)).one()

        categories_query = (
            select(Product.category, func.count(Product.id))
            .where(Product.is_active.is_(True))
            .group_by(Product.category)
            .order_by(Product.category)
        )
        categories = {
            category: count
            for category, count in (await self.db.execute(categories_query)).all()
        }

        return total_products, Decimal(str(total_value)), categories
