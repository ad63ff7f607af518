"""Repository layer for Inventory Service"""

from .outbox_repository import OutboxRepository
from .product_repository import ProductRepository

__all__ = [
    "ProductRepository",
    "OutboxRepository",
]
