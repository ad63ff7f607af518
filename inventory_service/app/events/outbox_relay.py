"""
Outbox relay
============

Background task that re-delivers outbox records whose immediate publication
failed. Delivery is at-least-once: a record published by the request path and
not yet marked may be sent again, consumers deduplicate on ``event_id``.
"""

import asyncio
from datetime import timedelta
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models.base import utcnow
from ..repository.outbox_repository import OutboxRepository
from ..utils.logging import setup_inventory_logging as setup_logging
from .base import EventPublishError
from .event_producers import ProductEventProducer

logger = setup_logging("inventory_service.events.outbox_relay")


class OutboxRelay:
    """Polls pending outbox records and publishes them with retry"""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        producer_provider: Callable[[], Optional[ProductEventProducer]],
        interval_seconds: float = 5.0,
        batch_size: int = 100,
        grace_seconds: float = 5.0,
        max_attempts: int = 10,
    ):
        self.session_maker = session_maker
        self.producer_provider = producer_provider
        self.interval_seconds = interval_seconds
        self.batch_size = batch_size
        self.grace_seconds = grace_seconds
        self.max_attempts = max_attempts
        self._task: Optional[asyncio.Task] = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int:
        """Deliver one batch of pending records; returns how many were published"""
        producer = self.producer_provider()
        if producer is None:
            logger.debug("No event producer available, relay pass skipped")
            return 0

        published = 0
        cutoff = utcnow() - timedelta(seconds=self.grace_seconds)

        async with self.session_maker() as session:
            outbox = OutboxRepository(session)
            records = await outbox.get_pending(limit=self.batch_size, older_than=cutoff)

            for record in records:
                try:
                    await producer.publish(record)
                except EventPublishError as e:
                    outbox.mark_failed(record, str(e), self.max_attempts)
                    logger.warning(
                        "Outbox relay delivery failed",
                        extra={
                            "event_id": record.event_id,
                            "event_type": record.event_type,
                            "attempts": record.attempts,
                            "status": record.status,
                            "error": str(e),
                        },
                    )
                    continue

                outbox.mark_published(record)
                published += 1

            await session.commit()

        if records:
            logger.info(
                "Outbox relay pass completed",
                extra={"pending": len(records), "published": published},
            )
        return published

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await self.run_once()
            except Exception as e:
                # One failed pass must not end the relay
                logger.error(
                    "Outbox relay pass failed",
                    extra={"error": str(e), "error_type": type(e).__name__},
                    exc_info=True,
                )
            try:
                await asyncio.wait_for(
                    self._stopping.wait(), timeout=self.interval_seconds
                )
            except asyncio.TimeoutError:
                pass

    def start(self) -> None:
        """Start the polling task on the running event loop"""
        if self.running:
            return
        self._stopping.clear()
        self._task = asyncio.create_task(self._run(), name="outbox-relay")
        logger.info(
            "Outbox relay started",
            extra={
                "interval_seconds": self.interval_seconds,
                "batch_size": self.batch_size,
            },
        )

    async def stop(self) -> None:
        """Signal the polling task and wait for the current pass to finish"""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None
        logger.info("Outbox relay stopped")
