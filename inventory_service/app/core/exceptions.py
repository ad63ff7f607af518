"""
Inventory Service domain exceptions.

Each class maps to one distinguishable failure outcome; the HTTP mapping lives
in ``middleware/error/error_handler.py``.
"""

from typing import Any, Dict, List, Optional


class InventoryServiceError(Exception):
    """Base class for all Inventory Service errors"""

    error_type = "inventory_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ProductValidationError(InventoryServiceError):
    """Product input violates a catalog invariant"""

    error_type = "validation_error"

    def __init__(self, errors: List[Dict[str, str]]):
        fields = ", ".join(error["field"] for error in errors)
        super().__init__(
            f"Product validation failed: {fields}",
            details={"validation_errors": errors},
        )
        self.errors = errors


class ProductNotFoundError(InventoryServiceError):
    """No active product matches the given identifier"""

    error_type = "not_found"

    def __init__(self, product_id: int):
        super().__init__(
            f"Product {product_id} not found", details={"product_id": product_id}
        )
        self.product_id = product_id


class PersistenceError(InventoryServiceError):
    """The catalog store was unavailable or rejected the write; nothing committed"""

    error_type = "persistence_error"


class NotificationError(InventoryServiceError):
    """
    Event publication failed after the store write committed.

    ``result`` carries the committed outcome so callers can still report it.
    The pending outbox record is left for the relay.
    """

    error_type = "notification_error"

    def __init__(self, message: str, result: Any = None, event_ids: Optional[List[str]] = None):
        super().__init__(message, details={"event_ids": event_ids or []})
        self.result = result
        self.event_ids = event_ids or []
