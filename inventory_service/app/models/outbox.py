import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, TEXT, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import InventoryServiceBaseModel


class OutboxStatus(str, Enum):
    PENDING = "pending"
    PUBLISHED = "published"
    FAILED = "failed"


class OutboxEvent(InventoryServiceBaseModel):
    """
    An event waiting to be delivered to the broker.

    Rows are written in the same transaction as the catalog change they
    announce, so a committed change always has its announcement on disk.
    """

    __tablename__ = "outbox_events"

    event_id: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False, default=lambda: uuid.uuid4().hex
    )
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    aggregate_id: Mapped[int] = mapped_column(Integer, nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=OutboxStatus.PENDING.value, nullable=False
    )
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_error: Mapped[str | None] = mapped_column(TEXT, nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=False), nullable=True
    )

    __table_args__ = (Index("ix_outbox_events_status", "status", "created_at"),)
