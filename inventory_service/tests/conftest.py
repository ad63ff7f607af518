"""
Pytest configuration and fixtures for inventory service tests.
"""

import asyncio
import os
from datetime import datetime
from decimal import Decimal
from typing import Any, AsyncGenerator, List, Optional

import pytest
from fastapi.testclient import TestClient

# Set up test environment variables before importing anything else
os.environ.setdefault("APP_NAME", "Inventory Service Test")
os.environ.setdefault("APP_VERSION", "1.0.0")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SERVICE_NAME", "inventory-service")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("INVENTORY_DATABASE_URL", "sqlite+aiosqlite:///./test_inventory.db")
os.environ.setdefault("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092")
os.environ.setdefault("EVENTS_ENABLED", "false")
os.environ.setdefault("PUBLISH_STOCK_UPDATED_EVENTS", "true")
os.environ.setdefault("OUTBOX_RELAY_ENABLED", "false")
os.environ.setdefault("SEED_SAMPLE_DATA", "false")
os.environ.setdefault("CORS_ORIGINS", '["http://localhost:3000"]')

from sqlalchemy import delete

from inventory_service.app.api.dependencies import get_product_event_producer
from inventory_service.app.core.database import database_manager
from inventory_service.app.events.base import EventPublishError
from inventory_service.app.main import app
from inventory_service.app.models.outbox import OutboxEvent
from inventory_service.app.models.product import Product

TEST_DB_FILE = "test_inventory.db"


class FakeEventProducer:
    """Records published outbox records in memory; can be told to fail."""

    def __init__(self) -> None:
        self.published: List[OutboxEvent] = []
        self.correlation_ids: List[Optional[str]] = []
        self.fail = False

    async def publish(
        self, record: OutboxEvent, correlation_id: Optional[str] = None
    ) -> None:
        if self.fail:
            raise EventPublishError("broker unavailable")
        self.published.append(record)
        self.correlation_ids.append(correlation_id)

    @property
    def event_types(self) -> List[str]:
        return [record.event_type for record in self.published]


async def _clear_tables() -> None:
    async with database_manager.async_session_maker() as session:
        await session.execute(delete(OutboxEvent))
        await session.execute(delete(Product))
        await session.commit()


@pytest.fixture(scope="session")
def test_database_manager(request):
    """Create tables in the SQLite test database for the whole session."""
    asyncio.run(database_manager.create_tables())

    def cleanup():
        asyncio.run(database_manager.close())
        try:
            os.remove(TEST_DB_FILE)
        except FileNotFoundError:
            pass

    request.addfinalizer(cleanup)

    return database_manager


@pytest.fixture
def clean_database(test_database_manager):
    """Start every test from an empty catalog and outbox."""
    asyncio.run(_clear_tables())
    yield test_database_manager


@pytest.fixture
async def session_maker(test_database_manager) -> Any:
    """Session maker over an emptied test database."""
    await _clear_tables()
    return test_database_manager.async_session_maker


@pytest.fixture
async def db_session(session_maker: Any) -> AsyncGenerator[Any, None]:
    """Create a test database session with proper cleanup."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def fake_producer() -> FakeEventProducer:
    """In-memory event producer."""
    return FakeEventProducer()


@pytest.fixture
def client(clean_database, fake_producer) -> TestClient:
    """FastAPI test client wired to the fake event producer."""
    app.dependency_overrides[get_product_event_producer] = lambda: fake_producer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def laptop() -> Product:
    """A transient product as loaded from the store."""
    return Product(
        id=1,
        name="Laptop Pro",
        description="High-performance laptop for professionals",
        price=Decimal("1299.99"),
        stock_quantity=50,
        category="Electronics",
        image_url=None,
        is_active=True,
        version=1,
        created_at=datetime(2024, 1, 1, 12, 0, 0),
        updated_at=datetime(2024, 1, 1, 12, 0, 0),
    )
