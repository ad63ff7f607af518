"""
Error middleware for Inventory Service.
"""

from .error_handler import InventoryServiceErrorHandler, setup_inventory_error_handling

__all__ = ["InventoryServiceErrorHandler", "setup_inventory_error_handling"]
