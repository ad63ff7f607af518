"""
Inventory Service Event Schemas
===============================

Payload schemas for every event the service announces. Payloads are stored in
the outbox without a timestamp; ``timestamp`` is stamped at publication.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ...schemas.product import Money

# Routing keys
PRODUCT_CREATED = "product.created"
PRODUCT_OUT_OF_STOCK = "product.outofstock"
PRODUCT_STOCK_UPDATED = "product.stock.updated"


class ProductEventData(BaseModel):
    """Base product event payload"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product_id: int
    timestamp: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude={"timestamp"})


class ProductCreatedEventData(ProductEventData):
    event_type: Literal["PRODUCT_CREATED"] = "PRODUCT_CREATED"
    name: str
    category: str
    price: Money
    stock_quantity: int


class ProductOutOfStockEventData(ProductEventData):
    event_type: Literal["PRODUCT_OUT_OF_STOCK"] = "PRODUCT_OUT_OF_STOCK"
    name: str
    category: str


class StockUpdatedEventData(ProductEventData):
    event_type: Literal["STOCK_UPDATED"] = "STOCK_UPDATED"
    name: str
    new_stock_quantity: int
    quantity_changed: int

