"""
Inventory Service configuration
"""

from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the inventory service directory path
INVENTORY_SERVICE_DIR = Path(__file__).parent.parent.parent
ENV_FILE = INVENTORY_SERVICE_DIR / ".env"


class InventorySettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Inventory Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Service specific
    SERVICE_NAME: str = "inventory-service"

    # Database
    INVENTORY_DATABASE_URL: str = "sqlite+aiosqlite:///./inventory.db"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 40

    # Kafka for events
    KAFKA_BOOTSTRAP_SERVERS: str = "localhost:9092"
    KAFKA_TOPIC_PREFIX: str = ""
    KAFKA_MAX_RETRIES: int = 5
    KAFKA_RETRY_DELAY: float = 2.0
    EVENTS_ENABLED: bool = True
    PUBLISH_STOCK_UPDATED_EVENTS: bool = True

    # Stock mutation
    STOCK_UPDATE_MAX_RETRIES: int = 5

    # Outbox relay
    OUTBOX_RELAY_ENABLED: bool = True
    OUTBOX_RELAY_INTERVAL_SECONDS: float = 5.0
    OUTBOX_RELAY_BATCH_SIZE: int = 100
    OUTBOX_RELAY_GRACE_SECONDS: float = 5.0
    OUTBOX_MAX_ATTEMPTS: int = 10

    # Sample catalog
    SEED_SAMPLE_DATA: bool = False

    # CORS
    CORS_ORIGINS: List[str] = ["*"]
    CORS_CREDENTIALS: bool = False
    CORS_METHODS: List[str] = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
    CORS_HEADERS: List[str] = ["*"]


# Create a singleton instance
_settings_instance = None


def get_settings() -> InventorySettings:
    """Get settings singleton instance"""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = InventorySettings()
    return _settings_instance
