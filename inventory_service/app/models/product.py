from decimal import Decimal

from sqlalchemy import DECIMAL, CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import InventoryServiceBaseModel


class Product(InventoryServiceBaseModel):
    __tablename__ = "products"

    # id, created_at, updated_at are inherited from InventoryServiceBaseModel
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    price: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False)
    stock_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(200), nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    # Optimistic concurrency counter, bumped on every write
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("price > 0", name="ck_products_price_positive"),
        CheckConstraint(
            "stock_quantity >= 0", name="ck_products_stock_non_negative"
        ),
        Index("ix_products_category", "category"),
        Index("ix_products_is_active", "is_active"),
    )

    def __repr__(self) -> str:
        return (
            f"<Product(id={self.id}, name='{self.name}', "
            f"stock_quantity={self.stock_quantity}, is_active={self.is_active})>"
        )
