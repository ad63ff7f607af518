"""Inventory Service Models"""

from .base import InventoryServiceBase, InventoryServiceBaseModel, utcnow
from .outbox import OutboxEvent, OutboxStatus
from .product import Product

__all__ = [
    "InventoryServiceBase",
    "InventoryServiceBaseModel",
    "OutboxEvent",
    "OutboxStatus",
    "Product",
    "utcnow",
]
