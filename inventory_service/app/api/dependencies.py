"""
FastAPI dependency injection for Inventory Service

Provides database sessions, the event producer, the inventory service and
correlation ID extraction.
"""

from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db_session
from ..core.event_management import get_event_producer
from ..events.event_producers import ProductEventProducer
from ..services.inventory_service import InventoryService

# =====================================================
# DATABASE DEPENDENCIES
# =====================================================


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide async database session"""
    async for session in get_db_session():
        yield session


# =====================================================
# EVENT PUBLISHER DEPENDENCIES
# =====================================================


def get_product_event_producer() -> Optional[ProductEventProducer]:
    """Provide ProductEventProducer instance"""
    return get_event_producer()


# =====================================================
# SERVICE DEPENDENCIES
# =====================================================


def get_inventory_service(
    session: AsyncSession = Depends(get_async_session),
    event_producer: Optional[ProductEventProducer] = Depends(
        get_product_event_producer
    ),
) -> InventoryService:
    """Provide InventoryService instance with database and event publishing"""
    return InventoryService(session, event_producer)


# =====================================================
# REQUEST CONTEXT DEPENDENCIES
# =====================================================


def get_correlation_id(request: Request) -> Optional[str]:
    """Extract correlation ID from request headers or state"""
    correlation_id = (
        request.headers.get("X-Correlation-ID")
        or request.headers.get("correlation-id")
        or request.headers.get("x-request-id")
    )

    if not correlation_id:
        correlation_id = getattr(request.state, "correlation_id", None)
    else:
        # Error responses echo it back
        request.state.correlation_id = correlation_id

    return correlation_id


# =====================================================
# COMMON DEPENDENCY ALIASES
# =====================================================

CorrelationIdDep = Depends(get_correlation_id)
DatabaseDep = Depends(get_async_session)
InventoryServiceDep = Depends(get_inventory_service)
