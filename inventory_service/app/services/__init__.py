"""Service layer for Inventory Service"""

from .inventory_service import InventoryService

__all__ = [
    "InventoryService",
]
