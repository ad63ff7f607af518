"""Sample catalog loaded at startup when SEED_SAMPLE_DATA is set"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..repository.product_repository import ProductRepository
from ..schemas.product import ProductCreate
from ..utils.logging import setup_inventory_logging as setup_logging

logger = setup_logging("inventory_service.seed")

SAMPLE_PRODUCTS = [
    ProductCreate(
        name="Laptop Pro",
        description="High-performance laptop for professionals",
        price=Decimal("1299.99"),
        stock_quantity=50,
        category="Electronics",
    ),
    ProductCreate(
        name="Wireless Mouse",
        description="Ergonomic wireless mouse",
        price=Decimal("29.99"),
        stock_quantity=100,
        category="Accessories",
    ),
    ProductCreate(
        name="Programming Book",
        description="Learn modern software development",
        price=Decimal("49.99"),
        stock_quantity=25,
        category="Books",
    ),
]


async def seed_sample_products(
    session_maker: async_sessionmaker[AsyncSession],
) -> int:
    """Insert the sample catalog into an empty store; no events are recorded"""
    async with session_maker() as session:
        repository = ProductRepository(session)
        if await repository.count_products() > 0:
            logger.info("Catalog already populated, skipping sample data")
            return 0

        for product_data in SAMPLE_PRODUCTS:
            await repository.create_product(product_data)
        await session.commit()

    logger.info(
        "Sample products loaded",
        extra={"operation": "seed", "count": len(SAMPLE_PRODUCTS)},
    )
    return len(SAMPLE_PRODUCTS)
