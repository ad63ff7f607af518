import asyncio
import json
from typing import Optional, Set

from aiokafka import AIOKafkaProducer  # type: ignore
from aiokafka.admin import AIOKafkaAdminClient, NewTopic  # type: ignore
from aiokafka.errors import KafkaConnectionError, KafkaError  # type: ignore

from ...core.setting import get_settings
from ...utils.logging import setup_inventory_logging as setup_logging
from . import BaseEvent, EventPublisher, EventPublishError

logger = setup_logging(
    "inventory_service.events.kafka", log_level=get_settings().LOG_LEVEL
)


class KafkaEventPublisher(EventPublisher):
    """
    Managed Kafka producer for the Inventory Service.

    Owns one long-lived producer connection with an explicit lifecycle:
    ``start`` connects with exponential backoff, ``publish`` reconnects once
    when the connection was lost, ``stop`` releases it. Publishing never
    degrades to logging; failures surface as ``EventPublishError`` so the
    outbox keeps the record for the relay.
    """

    def __init__(
        self,
        bootstrap_servers: str,
        client_id: str,
        max_retries: int = 5,
        retry_delay: float = 2.0,
    ):
        self.bootstrap_servers = bootstrap_servers
        self.client_id = client_id
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.producer: Optional[AIOKafkaProducer] = None
        self.is_connected = False
        self._known_topics: Set[str] = set()
        self._connection_lock = asyncio.Lock()

    def _create_producer(self) -> AIOKafkaProducer:
        return AIOKafkaProducer(
            bootstrap_servers=self.bootstrap_servers,
            client_id=self.client_id,
            value_serializer=lambda x: json.dumps(x, default=str).encode("utf-8"),  # type: ignore
            key_serializer=lambda x: x.encode("utf-8") if x else None,  # type: ignore
            acks="all",
            retry_backoff_ms=1000,
            request_timeout_ms=30000,
            connections_max_idle_ms=540000,
        )

    async def ensure_topic_exists(self, topic_name: str) -> None:
        """Ensure a Kafka topic exists, creating it if necessary."""
        if topic_name in self._known_topics:
            return

        admin_client = AIOKafkaAdminClient(bootstrap_servers=self.bootstrap_servers)
        try:
            await admin_client.start()  # type: ignore
            topics = await admin_client.list_topics()
            if topic_name not in topics:
                await admin_client.create_topics(
                    [NewTopic(name=topic_name, num_partitions=1, replication_factor=1)]
                )
                logger.info(
                    "Created Kafka topic",
                    extra={"topic_name": topic_name, "operation": "create_topic"},
                )
            self._known_topics.add(topic_name)
        except KafkaError as e:
            # Broker-side auto creation may still accept the send
            logger.warning(
                "Error ensuring Kafka topic exists",
                extra={
                    "topic_name": topic_name,
                    "error": str(e),
                    "operation": "ensure_topic_exists",
                },
            )
        finally:
            await admin_client.close()  # type: ignore

    async def start(
        self, timeout: float = 30.0, max_retries: Optional[int] = None
    ) -> bool:
        """Start Kafka producer with retry logic; returns whether it connected"""
        attempts = max_retries if max_retries is not None else self.max_retries

        async with self._connection_lock:
            if self.producer and self.is_connected:
                return True
            return await self._connect(timeout, attempts)

    async def _connect(self, timeout: float, attempts: int) -> bool:
        """Connection loop; the caller holds the connection lock"""
        for attempt in range(attempts):
            producer = self._create_producer()
            try:
                logger.info(
                    "Attempting Kafka connection",
                    extra={
                        "attempt": attempt + 1,
                        "max_retries": attempts,
                        "operation": "kafka_connect",
                    },
                )
                await asyncio.wait_for(producer.start(), timeout=timeout)  # type: ignore

                self.producer = producer
                self.is_connected = True
                logger.info("Successfully connected to Kafka")
                return True

            except (KafkaError, asyncio.TimeoutError) as e:
                await self._discard(producer)
                delay = self.retry_delay * (2**attempt)
                logger.warning(
                    f"Kafka connection attempt {attempt + 1} failed: {e}",
                    extra={"retry_in_seconds": delay, "operation": "kafka_connect"},
                )
                if attempt < attempts - 1:
                    await asyncio.sleep(delay)

        logger.error(
            f"Failed to connect to Kafka after {attempts} attempts",
            extra={"bootstrap_servers": self.bootstrap_servers},
        )
        self.is_connected = False
        return False

    async def _discard(self, producer: AIOKafkaProducer) -> None:
        try:
            await producer.stop()  # type: ignore
        except KafkaError as e:
            logger.debug(
                "Error discarding Kafka producer",
                extra={"error": str(e), "operation": "discard_producer"},
            )

    async def _release(self) -> None:
        """Stop and forget the current producer; the caller holds the lock"""
        if self.producer:
            try:
                await self.producer.stop()  # type: ignore
                logger.info("Kafka producer stopped")
            except KafkaError as e:
                logger.warning(
                    "Error stopping Kafka producer",
                    extra={"error": str(e), "operation": "stop_producer"},
                )
            finally:
                self.producer = None
                self.is_connected = False

    async def stop(self) -> None:
        """Stop Kafka producer"""
        async with self._connection_lock:
            await self._release()

    async def reconnect(self, timeout: float = 10.0) -> bool:
        """Replace a lost connection with a single new attempt"""
        async with self._connection_lock:
            # Another publisher may have reconnected while we waited
            if self.producer and self.is_connected:
                return True
            await self._release()
            return await self._connect(timeout, attempts=1)

    async def publish(self, event: BaseEvent, topic: Optional[str] = None) -> None:
        """Publish event; raises EventPublishError when the broker cannot take it"""
        if not self.is_connected or not self.producer:
            logger.warning(
                "Kafka producer not connected, reconnecting before publish",
                extra={"event_id": event.event_id, "event_type": event.event_type},
            )
            if not await self.reconnect():
                raise EventPublishError(
                    f"Kafka not reachable at {self.bootstrap_servers}"
                )

        producer = self.producer
        if producer is None:
            raise EventPublishError("Kafka producer was released during publish")

        topic = topic or event.event_type
        key = str(event.aggregate_id) if event.aggregate_id is not None else None
        headers = [
            ("event_id", event.event_id.encode("utf-8")),
            ("event_type", event.event_type.encode("utf-8")),
        ]

        try:
            await self.ensure_topic_exists(topic)
            await producer.send_and_wait(  # type: ignore
                topic=topic,
                value=event.to_message(),
                key=key,
                headers=headers,
            )
        except KafkaError as e:
            if isinstance(e, KafkaConnectionError) and self.producer is producer:
                self.is_connected = False
            logger.error(
                "Failed to publish event to Kafka",
                extra={
                    "event_type": event.event_type,
                    "event_id": event.event_id,
                    "topic": topic,
                    "error": str(e),
                    "operation": "publish_event_failed",
                },
            )
            raise EventPublishError(str(e)) from e

        logger.info(
            "Published event to Kafka topic",
            extra={
                "event_type": event.event_type,
                "event_id": event.event_id,
                "topic": topic,
                "correlation_id": event.correlation_id,
                "operation": "publish_event",
            },
        )

    async def health_check(self) -> bool:
        """Check if Kafka connection is healthy"""
        if not self.producer or not self.is_connected:
            return False
        try:
            metadata = await self.producer.client.fetch_all_metadata()  # type: ignore
            return len(metadata.brokers()) > 0  # type: ignore
        except KafkaError as e:
            logger.warning(
                "Kafka health check failed",
                extra={"error": str(e), "operation": "health_check"},
            )
            return False
