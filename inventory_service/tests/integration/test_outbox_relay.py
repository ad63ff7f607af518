"""
Outbox persistence and relay tests against the SQLite test database.
"""

import asyncio
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiokafka.errors import KafkaConnectionError

from inventory_service.app.core.exceptions import NotificationError
from inventory_service.app.events.event_producers import build_out_of_stock_event
from inventory_service.app.events.outbox_relay import OutboxRelay
from inventory_service.app.models.base import utcnow
from inventory_service.app.models.outbox import OutboxStatus
from inventory_service.app.repository.outbox_repository import OutboxRepository
from inventory_service.app.repository.product_repository import ProductRepository
from inventory_service.app.schemas.product import ProductCreate
from inventory_service.app.services.inventory_service import InventoryService


async def _pending_event(session_maker, age_seconds=60):
    """Store a product with one pending out-of-stock record."""
    async with session_maker() as session:
        product = await ProductRepository(session).create_product(
            ProductCreate(
                name="Laptop Pro",
                price=Decimal("1299.99"),
                stock_quantity=0,
                category="Electronics",
            )
        )
        record = OutboxRepository(session).add(build_out_of_stock_event(product))
        record.created_at = utcnow() - timedelta(seconds=age_seconds)
        await session.commit()
        return product.id, record.event_id


def _relay(session_maker, producer, **kwargs):
    options = {"interval_seconds": 0.01, "grace_seconds": 5, "max_attempts": 3}
    options.update(kwargs)
    return OutboxRelay(session_maker, lambda: producer, **options)


class TestOutboxRelay:
    async def test_publishes_pending_records(self, session_maker, fake_producer):
        product_id, event_id = await _pending_event(session_maker)

        published = await _relay(session_maker, fake_producer).run_once()

        assert published == 1
        assert [r.event_id for r in fake_producer.published] == [event_id]
        async with session_maker() as session:
            (record,) = await OutboxRepository(session).get_by_aggregate(product_id)
        assert record.status == OutboxStatus.PUBLISHED.value
        assert record.attempts == 1
        assert record.published_at is not None

    async def test_skips_records_inside_grace_period(self, session_maker, fake_producer):
        await _pending_event(session_maker, age_seconds=0)

        published = await _relay(session_maker, fake_producer, grace_seconds=60).run_once()

        assert published == 0
        assert fake_producer.published == []

    async def test_failed_delivery_stays_pending_then_gives_up(
        self, session_maker, fake_producer
    ):
        product_id, _ = await _pending_event(session_maker)
        fake_producer.fail = True
        relay = _relay(session_maker, fake_producer, max_attempts=2)

        await relay.run_once()
        async with session_maker() as session:
            (record,) = await OutboxRepository(session).get_by_aggregate(product_id)
        assert record.status == OutboxStatus.PENDING.value
        assert record.attempts == 1
        assert record.last_error == "broker unavailable"

        await relay.run_once()
        async with session_maker() as session:
            (record,) = await OutboxRepository(session).get_by_aggregate(product_id)
        assert record.status == OutboxStatus.FAILED.value
        assert record.attempts == 2

    async def test_no_producer_skips_pass(self, session_maker):
        await _pending_event(session_maker)

        relay = OutboxRelay(session_maker, lambda: None)

        assert await relay.run_once() == 0

    async def test_start_and_stop(self, session_maker, fake_producer):
        relay = _relay(session_maker, fake_producer)

        relay.start()
        assert relay.running is True
        await relay.stop()

        assert relay.running is False


class TestOutboxWithService:
    async def test_broker_outage_leaves_record_for_relay(
        self, session_maker, fake_producer
    ):
        """Created while the broker is down, delivered once it is back."""
        fake_producer.fail = True
        async with session_maker() as session:
            service = InventoryService(session, fake_producer)
            with pytest.raises(NotificationError) as exc_info:
                await service.create_product(
                    ProductCreate(
                        name="Laptop Pro",
                        price=Decimal("1299.99"),
                        stock_quantity=50,
                        category="Electronics",
                    )
                )
        product_id = exc_info.value.result.id

        fake_producer.fail = False
        published = await _relay(session_maker, fake_producer, grace_seconds=0).run_once()

        assert published == 1
        assert fake_producer.event_types == ["product.created"]
        assert fake_producer.published[0].aggregate_id == product_id

    async def test_unexpected_error_does_not_end_relay(self, session_maker):
        """A pass that blows up is logged and the next pass still runs."""
        await _pending_event(session_maker)
        producer = MagicMock()
        producer.publish = AsyncMock(side_effect=KafkaConnectionError("broker down"))
        relay = _relay(session_maker, producer, grace_seconds=0)

        relay.start()
        for _ in range(200):
            if producer.publish.await_count >= 2:
                break
            await asyncio.sleep(0.01)

        assert producer.publish.await_count >= 2
        assert relay.running is True
        await relay.stop()
        assert relay.running is False
