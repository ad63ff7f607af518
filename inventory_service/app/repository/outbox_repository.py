"""Outbox repository for pending event records"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.outbox import OutboxEvent, OutboxStatus


class OutboxRepository:
    """Repository for outbox database operations"""

    def __init__(self, db: AsyncSession):
        self.db = db

    def add(self, event: OutboxEvent) -> OutboxEvent:
        """Stage an outbox record in the caller's transaction"""
        self.db.add(event)
        return event

    async def get_pending(
        self, limit: int = 100, older_than: Optional[datetime] = None
    ) -> List[OutboxEvent]:
        """Oldest pending records first"""
        query = select(OutboxEvent).where(
            OutboxEvent.status == OutboxStatus.PENDING.value
        )
        if older_than is not None:
            query = query.where(OutboxEvent.created_at <= older_than)
        query = query.order_by(OutboxEvent.created_at.asc(), OutboxEvent.id.asc())
        result = await self.db.execute(query.limit(limit))
        return list(result.scalars().all())

    async def get_by_aggregate(self, aggregate_id: int) -> List[OutboxEvent]:
        """All records for one product, oldest first"""
        query = (
            select(OutboxEvent)
            .where(OutboxEvent.aggregate_id == aggregate_id)
            .order_by(OutboxEvent.id.asc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    def mark_published(self, event: OutboxEvent) -> None:
        event.status = OutboxStatus.PUBLISHED.value
        event.attempts += 1
        event.published_at = utcnow()
        event.last_error = None

    def mark_failed(self, event: OutboxEvent, error: str, max_attempts: int) -> None:
        """Record a failed attempt; give up once max_attempts is reached"""
        event.attempts += 1
        event.last_error = error[:2000]
        if event.attempts >= max_attempts:
            event.status = OutboxStatus.FAILED.value
