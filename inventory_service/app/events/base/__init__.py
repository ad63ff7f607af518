"""
Inventory Service event base classes and interfaces.
"""

import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    """Millisecond Unix timestamp"""
    return int(time.time() * 1000)


class EventPublishError(Exception):
    """The event sink was unreachable or rejected the message"""


class BaseEvent(BaseModel):
    """A routed event ready for the broker"""

    event_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    event_type: str
    aggregate_id: Optional[int] = None
    source_service: str = "inventory-service"
    correlation_id: Optional[str] = None
    data: Dict[str, Any] = {}

    model_config = ConfigDict(from_attributes=True)

    def to_message(self) -> Dict[str, Any]:
        """Broker body: the payload, stamped with the publication time"""
        return {**self.data, "timestamp": now_ms()}


class EventPublisher(ABC):
    """Abstract base class for event publishers"""

    @abstractmethod
    async def publish(self, event: BaseEvent, topic: Optional[str] = None) -> None:
        """Publish an event, raising EventPublishError on failure"""
        pass
