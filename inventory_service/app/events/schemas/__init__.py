"""
Inventory Service Event Schemas
===============================

Event payload schemas and routing keys for the inventory domain.
"""

from .event_schemas import (
    PRODUCT_CREATED,
    PRODUCT_OUT_OF_STOCK,
    PRODUCT_STOCK_UPDATED,
    ProductCreatedEventData,
    ProductEventData,
    ProductOutOfStockEventData,
    StockUpdatedEventData,
)

__all__ = [
    # Base class
    "ProductEventData",
    # Payloads
    "ProductCreatedEventData",
    "ProductOutOfStockEventData",
    "StockUpdatedEventData",
    # Routing keys
    "PRODUCT_CREATED",
    "PRODUCT_OUT_OF_STOCK",
    "PRODUCT_STOCK_UPDATED",
]
