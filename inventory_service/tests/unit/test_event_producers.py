"""
Unit tests for product event builders and the event producer.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from inventory_service.app.events.base import BaseEvent, EventPublisher, EventPublishError
from inventory_service.app.events.event_producers import (
    ProductEventProducer,
    build_out_of_stock_event,
    build_product_created_event,
    build_stock_updated_event,
)
from inventory_service.app.models.outbox import OutboxStatus


class TestEventBuilders:
    def test_product_created_payload(self, laptop):
        record = build_product_created_event(laptop)

        assert record.event_type == "product.created"
        assert record.aggregate_id == 1
        assert record.status == OutboxStatus.PENDING.value
        assert record.attempts == 0
        assert len(record.event_id) == 32
        assert record.payload == {
            "productId": 1,
            "eventType": "PRODUCT_CREATED",
            "name": "Laptop Pro",
            "category": "Electronics",
            "price": 1299.99,
            "stockQuantity": 50,
        }

    def test_stock_updated_payload(self, laptop):
        laptop.stock_quantity = 45

        record = build_stock_updated_event(laptop, -5)

        assert record.event_type == "product.stock.updated"
        assert record.payload == {
            "productId": 1,
            "eventType": "STOCK_UPDATED",
            "name": "Laptop Pro",
            "newStockQuantity": 45,
            "quantityChanged": -5,
        }

    def test_out_of_stock_payload_has_no_timestamp_until_published(self, laptop):
        record = build_out_of_stock_event(laptop)

        assert record.event_type == "product.outofstock"
        assert "timestamp" not in record.payload

    def test_event_ids_are_unique(self, laptop):
        ids = {build_out_of_stock_event(laptop).event_id for _ in range(10)}
        assert len(ids) == 10


class TestProductEventProducer:
    @pytest.fixture
    def mock_publisher(self):
        publisher = Mock(spec=EventPublisher)
        publisher.publish = AsyncMock()
        return publisher

    async def test_publish_routes_to_prefixed_topic(self, mock_publisher, laptop):
        producer = ProductEventProducer(mock_publisher, topic_prefix="shop.")
        record = build_out_of_stock_event(laptop)

        await producer.publish(record, correlation_id="corr-9")

        event = mock_publisher.publish.call_args.args[0]
        assert isinstance(event, BaseEvent)
        assert event.event_id == record.event_id
        assert event.event_type == "product.outofstock"
        assert event.aggregate_id == 1
        assert event.correlation_id == "corr-9"
        assert event.source_service == "inventory-service"
        assert mock_publisher.publish.call_args.kwargs["topic"] == "shop.product.outofstock"

    async def test_message_is_stamped_with_timestamp(self, mock_publisher, laptop):
        producer = ProductEventProducer(mock_publisher)

        await producer.publish(build_product_created_event(laptop))

        message = mock_publisher.publish.call_args.args[0].to_message()
        assert message["productId"] == 1
        assert message["eventType"] == "PRODUCT_CREATED"
        assert isinstance(message["timestamp"], int)
        assert message["timestamp"] > 1_600_000_000_000

    async def test_publish_failure_propagates(self, mock_publisher, laptop):
        mock_publisher.publish.side_effect = EventPublishError("no brokers")
        producer = ProductEventProducer(mock_publisher)

        with pytest.raises(EventPublishError):
            await producer.publish(build_out_of_stock_event(laptop))

    def test_topic_for_without_prefix(self, mock_publisher):
        producer = ProductEventProducer(mock_publisher)
        assert producer.topic_for("product.created") == "product.created"
