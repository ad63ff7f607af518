"""
Inventory Service Event Management
Owns the process-wide Kafka client, the product event producer and the
outbox relay, and exposes their lifecycle to the application.
"""

import socket
from typing import Optional

from ..events.base.kafka_client import KafkaEventPublisher
from ..events.event_producers import ProductEventProducer
from ..events.outbox_relay import OutboxRelay
from ..utils.logging import setup_inventory_logging as setup_logging
from .database import database_manager
from .setting import get_settings

# Setup structured logging for event management
logger = setup_logging("inventory_service.events", log_level=get_settings().LOG_LEVEL)

# Global instances
_kafka_publisher: Optional[KafkaEventPublisher] = None
_product_event_producer: Optional[ProductEventProducer] = None
_outbox_relay: Optional[OutboxRelay] = None


def kafka_reachable(bootstrap_servers: str, timeout: float = 1.0) -> bool:
    """Quick TCP probe of the first bootstrap server"""
    first = bootstrap_servers.split(",")[0].strip()
    if ":" not in first:
        return False
    host, port = first.rsplit(":", 1)
    try:
        with socket.create_connection((host, int(port)), timeout=timeout):
            return True
    except (OSError, ValueError):
        return False


async def init_events() -> bool:
    """Initialize event publishing infrastructure; returns whether Kafka connected"""
    global _kafka_publisher, _product_event_producer

    settings = get_settings()
    logger.info(
        "Initializing event publishing infrastructure",
        extra={
            "operation": "init_events",
            "kafka_servers": settings.KAFKA_BOOTSTRAP_SERVERS,
            "service_name": settings.SERVICE_NAME,
        },
    )

    _kafka_publisher = KafkaEventPublisher(
        bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
        client_id=f"{settings.SERVICE_NAME}-producer",
        max_retries=settings.KAFKA_MAX_RETRIES,
        retry_delay=settings.KAFKA_RETRY_DELAY,
    )
    _product_event_producer = ProductEventProducer(
        _kafka_publisher,
        topic_prefix=settings.KAFKA_TOPIC_PREFIX,
        source_service=settings.SERVICE_NAME,
    )

    if not kafka_reachable(settings.KAFKA_BOOTSTRAP_SERVERS):
        # The producer stays registered; publish() reconnects on demand
        logger.warning(
            "Kafka not reachable at startup, events stay in the outbox until it is",
            extra={"operation": "init_events", "degraded_mode": True},
        )
        return False

    connected = await _kafka_publisher.start(timeout=30.0)
    logger.info(
        "Event publishing infrastructure initialized",
        extra={"operation": "init_events_complete", "connected": connected},
    )
    return connected


def start_outbox_relay() -> OutboxRelay:
    """Start the background outbox relay bound to the global session maker"""
    global _outbox_relay

    settings = get_settings()
    _outbox_relay = OutboxRelay(
        session_maker=database_manager.async_session_maker,
        producer_provider=get_event_producer,
        interval_seconds=settings.OUTBOX_RELAY_INTERVAL_SECONDS,
        batch_size=settings.OUTBOX_RELAY_BATCH_SIZE,
        grace_seconds=settings.OUTBOX_RELAY_GRACE_SECONDS,
        max_attempts=settings.OUTBOX_MAX_ATTEMPTS,
    )
    _outbox_relay.start()
    return _outbox_relay


async def close_events() -> None:
    """Stop the relay, then close the Kafka connection"""
    global _kafka_publisher, _product_event_producer, _outbox_relay

    try:
        if _outbox_relay:
            await _outbox_relay.stop()
        if _kafka_publisher:
            await _kafka_publisher.stop()
        logger.info(
            "Event publishing infrastructure closed",
            extra={"operation": "close_events_complete"},
        )
    finally:
        _kafka_publisher = None
        _product_event_producer = None
        _outbox_relay = None


def get_event_producer() -> Optional[ProductEventProducer]:
    """Get the product event producer instance"""
    return _product_event_producer


async def health_check_events() -> bool:
    """Check if event publishing is healthy"""
    if _kafka_publisher is None:
        return False
    return await _kafka_publisher.health_check()
