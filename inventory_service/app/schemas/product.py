from datetime import datetime
from decimal import Decimal
from typing import Annotated, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel

# Decimals travel as JSON numbers, matching the catalog's wire format
Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]


class CamelModel(BaseModel):
    """Accepts camelCase or snake_case input, serializes camelCase"""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class ProductBase(CamelModel):
    name: str = Field(
        ..., min_length=1, max_length=100, description="Product name (required)"
    )
    description: Optional[str] = Field(None, max_length=500)
    price: Money = Field(
        ...,
        gt=0,
        max_digits=10,
        decimal_places=2,
        description="Unit price (must be positive, two decimals)",
    )
    stock_quantity: int = Field(
        ..., ge=0, description="Units on hand (must be non-negative)"
    )
    category: str = Field(..., min_length=1, max_length=50)
    image_url: Optional[str] = Field(None, max_length=200)

    @field_validator("name", "category")
    @classmethod
    def validate_not_blank(cls, v, info):
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} cannot be empty or whitespace only")
        return v.strip()


class ProductCreate(ProductBase):
    pass


class ProductUpdate(ProductBase):
    """Full overwrite of every mutable field"""

    pass


class ProductResponse(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Money
    stock_quantity: int
    category: str
    image_url: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class StockUpdate(CamelModel):
    quantity: int = Field(
        ...,
        description="Units to remove; negative values add stock. "
        "Stock never drops below zero.",
    )


class StockAdjustmentResponse(CamelModel):
    product_id: int
    previous_stock: int
    stock_quantity: int
    out_of_stock: bool


class ProductStatsResponse(CamelModel):
    total_products: int
    total_inventory_value: Money
    categories: Dict[str, int]
    timestamp: int
