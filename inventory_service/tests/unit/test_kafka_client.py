"""
Unit tests for the managed Kafka publisher.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiokafka.errors import KafkaConnectionError, KafkaTimeoutError, ProducerClosed

from inventory_service.app.events.base import BaseEvent, EventPublishError
from inventory_service.app.events.base.kafka_client import KafkaEventPublisher


def _mock_producer():
    producer = MagicMock()
    producer.start = AsyncMock()
    producer.stop = AsyncMock()
    producer.send_and_wait = AsyncMock()
    return producer


class TestKafkaEventPublisher:
    @pytest.fixture
    def publisher(self):
        publisher = KafkaEventPublisher(
            bootstrap_servers="localhost:9092",
            client_id="inventory-service-test",
            max_retries=3,
            retry_delay=0,
        )
        publisher.ensure_topic_exists = AsyncMock()
        return publisher

    @pytest.fixture
    def event(self):
        return BaseEvent(
            event_type="product.outofstock",
            aggregate_id=7,
            correlation_id="corr-1",
            data={"productId": 7, "eventType": "PRODUCT_OUT_OF_STOCK"},
        )

    async def test_start_connects(self, publisher):
        producer = _mock_producer()

        with patch.object(publisher, "_create_producer", return_value=producer):
            connected = await publisher.start(timeout=1.0)

        assert connected is True
        assert publisher.is_connected is True
        assert publisher.producer is producer

    async def test_start_retries_then_gives_up(self, publisher):
        producers = [_mock_producer() for _ in range(3)]
        for producer in producers:
            producer.start.side_effect = KafkaConnectionError("refused")

        with patch.object(publisher, "_create_producer", side_effect=producers):
            connected = await publisher.start(timeout=1.0)

        assert connected is False
        assert publisher.is_connected is False
        assert publisher.producer is None
        for producer in producers:
            producer.stop.assert_awaited_once()

    async def test_publish_sends_keyed_message_with_headers(self, publisher, event):
        producer = _mock_producer()
        publisher.producer = producer
        publisher.is_connected = True

        await publisher.publish(event, topic="product.outofstock")

        kwargs = producer.send_and_wait.call_args.kwargs
        assert kwargs["topic"] == "product.outofstock"
        assert kwargs["key"] == "7"
        assert kwargs["value"]["productId"] == 7
        assert "timestamp" in kwargs["value"]
        assert ("event_id", event.event_id.encode("utf-8")) in kwargs["headers"]
        assert ("event_type", b"product.outofstock") in kwargs["headers"]
        publisher.ensure_topic_exists.assert_awaited_once_with("product.outofstock")

    async def test_publish_wraps_kafka_errors(self, publisher, event):
        producer = _mock_producer()
        producer.send_and_wait.side_effect = KafkaTimeoutError()
        publisher.producer = producer
        publisher.is_connected = True

        with pytest.raises(EventPublishError):
            await publisher.publish(event)

    async def test_publish_connection_loss_marks_disconnected(self, publisher, event):
        producer = _mock_producer()
        producer.send_and_wait.side_effect = KafkaConnectionError("gone")
        publisher.producer = producer
        publisher.is_connected = True

        with pytest.raises(EventPublishError):
            await publisher.publish(event)

        assert publisher.is_connected is False

    async def test_publish_reconnects_when_disconnected(self, publisher, event):
        producer = _mock_producer()

        with patch.object(publisher, "_create_producer", return_value=producer):
            await publisher.publish(event, topic="product.outofstock")

        producer.start.assert_awaited_once()
        producer.send_and_wait.assert_awaited_once()

    async def test_publish_raises_when_reconnect_fails(self, publisher, event):
        producer = _mock_producer()
        producer.start.side_effect = KafkaConnectionError("refused")

        with patch.object(publisher, "_create_producer", return_value=producer):
            with pytest.raises(EventPublishError):
                await publisher.publish(event)

        producer.send_and_wait.assert_not_called()

    async def test_stop_releases_producer(self, publisher):
        producer = _mock_producer()
        publisher.producer = producer
        publisher.is_connected = True

        await publisher.stop()

        producer.stop.assert_awaited_once()
        assert publisher.producer is None
        assert publisher.is_connected is False

    async def test_health_check_without_connection(self, publisher):
        assert await publisher.health_check() is False

    async def test_health_check_with_brokers(self, publisher):
        producer = _mock_producer()
        metadata = MagicMock()
        metadata.brokers.return_value = {MagicMock()}
        producer.client.fetch_all_metadata = AsyncMock(return_value=metadata)
        publisher.producer = producer
        publisher.is_connected = True

        assert await publisher.health_check() is True


class TestKafkaEventPublisherBrokerOutage:
    """Topic checks run for real against a mocked admin client."""

    ADMIN = "inventory_service.app.events.base.kafka_client.AIOKafkaAdminClient"

    @pytest.fixture
    def publisher(self):
        return KafkaEventPublisher(
            bootstrap_servers="localhost:9092",
            client_id="inventory-service-test",
            max_retries=1,
            retry_delay=0,
        )

    @pytest.fixture
    def event(self):
        return BaseEvent(
            event_type="product.created",
            aggregate_id=3,
            data={"productId": 3, "eventType": "PRODUCT_CREATED"},
        )

    @pytest.fixture
    def unreachable_admin(self):
        admin = MagicMock()
        admin.start = AsyncMock(side_effect=KafkaConnectionError("broker down"))
        admin.close = AsyncMock()
        with patch(self.ADMIN, return_value=admin):
            yield admin

    @pytest.fixture
    def healthy_admin(self):
        admin = MagicMock()
        admin.start = AsyncMock()
        admin.close = AsyncMock()
        admin.list_topics = AsyncMock(return_value=set())
        admin.create_topics = AsyncMock()
        with patch(self.ADMIN, return_value=admin):
            yield admin

    async def test_topic_check_failure_with_dead_broker_raises_publish_error(
        self, publisher, event, unreachable_admin
    ):
        producer = _mock_producer()
        producer.send_and_wait.side_effect = KafkaConnectionError("broker down")
        publisher.producer = producer
        publisher.is_connected = True

        with pytest.raises(EventPublishError):
            await publisher.publish(event)

        assert publisher.is_connected is False
        unreachable_admin.close.assert_awaited_once()

    async def test_topic_check_failure_does_not_block_send(
        self, publisher, event, unreachable_admin
    ):
        producer = _mock_producer()
        publisher.producer = producer
        publisher.is_connected = True

        await publisher.publish(event)

        producer.send_and_wait.assert_awaited_once()
        assert "product.created" not in publisher._known_topics

    async def test_missing_topic_is_created_once(self, publisher, event, healthy_admin):
        producer = _mock_producer()
        publisher.producer = producer
        publisher.is_connected = True

        await publisher.publish(event)
        await publisher.publish(event)

        healthy_admin.create_topics.assert_awaited_once()
        assert producer.send_and_wait.await_count == 2

    async def test_concurrent_publishes_share_one_reconnect(
        self, publisher, event, healthy_admin
    ):
        producer = _mock_producer()

        async def slow_start():
            await asyncio.sleep(0)

        producer.start.side_effect = slow_start

        with patch.object(
            publisher, "_create_producer", return_value=producer
        ) as create_producer:
            await asyncio.gather(publisher.publish(event), publisher.publish(event))

        assert create_producer.call_count == 1
        producer.stop.assert_not_called()
        assert producer.send_and_wait.await_count == 2

    async def test_producer_released_mid_publish_raises_publish_error(
        self, publisher, event
    ):
        producer = _mock_producer()
        producer.send_and_wait.side_effect = ProducerClosed()
        publisher.producer = producer
        publisher.is_connected = True

        async def stop_during_topic_check(topic):
            await publisher.stop()

        publisher.ensure_topic_exists = AsyncMock(side_effect=stop_during_topic_check)

        with pytest.raises(EventPublishError):
            await publisher.publish(event)
