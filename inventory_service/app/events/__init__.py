"""
Events module for the Inventory Service.

Producers:
    - ProductEventProducer: publishes outbox records to Kafka
    - build_*_event: turn a product state change into an outbox record

Relay:
    - OutboxRelay: re-delivers pending outbox records in the background

Event Types:
    product.created, product.outofstock, product.stock.updated
"""

from .event_producers import (
    ProductEventProducer,
    build_out_of_stock_event,
    build_product_created_event,
    build_stock_updated_event,
)
from .outbox_relay import OutboxRelay

__all__ = [
    "ProductEventProducer",
    "build_product_created_event",
    "build_out_of_stock_event",
    "build_stock_updated_event",
    "OutboxRelay",
]
