"""
Inventory Service Event Producers
=================================

Builds outbox records for product events and publishes them through the
managed Kafka client. Building is pure; publishing is the only I/O.
"""

import uuid
from typing import Optional

from ..core.setting import get_settings
from ..models.outbox import OutboxEvent, OutboxStatus
from ..models.product import Product
from ..utils.logging import setup_inventory_logging as setup_logging
from .base import BaseEvent, EventPublisher
from .schemas import (
    PRODUCT_CREATED,
    PRODUCT_OUT_OF_STOCK,
    PRODUCT_STOCK_UPDATED,
    ProductCreatedEventData,
    ProductEventData,
    ProductOutOfStockEventData,
    StockUpdatedEventData,
)

settings = get_settings()
logger = setup_logging(
    "inventory_service.events.producers", log_level=settings.LOG_LEVEL
)


def _outbox_record(routing_key: str, data: ProductEventData) -> OutboxEvent:
    return OutboxEvent(
        event_id=uuid.uuid4().hex,
        event_type=routing_key,
        aggregate_id=data.product_id,
        payload=data.to_dict(),
        status=OutboxStatus.PENDING.value,
        attempts=0,
    )


def build_product_created_event(product: Product) -> OutboxEvent:
    return _outbox_record(
        PRODUCT_CREATED,
        ProductCreatedEventData(
            product_id=product.id,
            name=product.name,
            category=product.category,
            price=product.price,
            stock_quantity=product.stock_quantity,
        ),
    )


def build_out_of_stock_event(product: Product) -> OutboxEvent:
    return _outbox_record(
        PRODUCT_OUT_OF_STOCK,
        ProductOutOfStockEventData(
            product_id=product.id,
            name=product.name,
            category=product.category,
        ),
    )


def build_stock_updated_event(product: Product, quantity_changed: int) -> OutboxEvent:
    return _outbox_record(
        PRODUCT_STOCK_UPDATED,
        StockUpdatedEventData(
            product_id=product.id,
            name=product.name,
            new_stock_quantity=product.stock_quantity,
            quantity_changed=quantity_changed,
        ),
    )


class ProductEventProducer:
    """
    Publishes outbox records for the inventory domain.

    Topics are ``<topic_prefix><routing key>``; the product id is the message
    key so events for one product share a partition.
    """

    def __init__(
        self,
        publisher: EventPublisher,
        topic_prefix: str = "",
        source_service: str = "inventory-service",
    ):
        self.publisher = publisher
        self.topic_prefix = topic_prefix
        self.source_service = source_service

    def topic_for(self, routing_key: str) -> str:
        return f"{self.topic_prefix}{routing_key}"

    async def publish(
        self, record: OutboxEvent, correlation_id: Optional[str] = None
    ) -> None:
        """Publish one outbox record; raises EventPublishError on failure"""
        event = BaseEvent(
            event_id=record.event_id,
            event_type=record.event_type,
            aggregate_id=record.aggregate_id,
            source_service=self.source_service,
            correlation_id=correlation_id,
            data=record.payload,
        )

        await self.publisher.publish(event, topic=self.topic_for(record.event_type))
        logger.info(
            "Published product event",
            extra={
                "event_id": record.event_id,
                "event_type": record.event_type,
                "product_id": record.aggregate_id,
                "correlation_id": correlation_id,
            },
        )
