from typing import Any, AsyncGenerator, Dict

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from ..models.base import InventoryServiceBase
from ..utils.logging import setup_inventory_logging as setup_logging
from .setting import get_settings

# Setup structured logging for database operations
logger = setup_logging(
    "inventory_service.database", log_level=get_settings().LOG_LEVEL
)


def _mask_url(database_url: str) -> str:
    if "@" not in database_url:
        return database_url
    return database_url.split("://")[0] + "://***@" + database_url.split("@")[-1]


class InventoryServiceDatabaseManager:
    """Database manager for the Inventory Service catalog and outbox tables."""

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        pool_size: int = 20,
        max_overflow: int = 40,
    ) -> None:
        logger.info(
            "Initializing Inventory Service database manager",
            extra={
                "operation": "database_manager_init",
                "database_url": _mask_url(database_url),
                "echo": echo,
            },
        )

        engine_kwargs: Dict[str, Any] = {"echo": echo, "future": True}

        if "sqlite" in database_url:
            # SQLite for development and tests; a fresh connection per session
            engine_kwargs["connect_args"] = {
                "timeout": 60,
                "check_same_thread": False,
            }
            engine_kwargs["poolclass"] = NullPool
            logger.info(
                "Configured SQLite database settings",
                extra={"database_type": "sqlite", "timeout": 60},
            )
        else:
            engine_kwargs.update(
                {
                    "pool_size": pool_size,
                    "max_overflow": max_overflow,
                    "pool_timeout": 45,
                    "pool_recycle": 3600,
                    "pool_pre_ping": True,
                    "connect_args": {
                        "command_timeout": 30,
                        # Disable prepared statements to stay pgbouncer-friendly
                        "prepared_statement_cache_size": 0,
                    },
                }
            )
            logger.info(
                "Configured PostgreSQL database settings",
                extra={
                    "database_type": "postgresql",
                    "pool_size": pool_size,
                    "max_overflow": max_overflow,
                },
            )

        self.database_url = database_url
        self.async_engine = create_async_engine(database_url, **engine_kwargs)
        self.async_session_maker = async_sessionmaker(
            bind=self.async_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def create_tables(self) -> None:
        """Create all Inventory Service database tables."""
        async with self.async_engine.begin() as conn:
            await conn.run_sync(InventoryServiceBase.metadata.create_all, checkfirst=True)
        logger.info(
            "Database tables created successfully",
            extra={"operation": "create_tables"},
        )

    async def check_connection(self) -> bool:
        """Round-trip a trivial query; used by the health endpoint."""
        try:
            async with self.async_engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning(
                "Database health check failed",
                extra={"operation": "check_connection", "error": str(e)},
            )
            return False

    async def get_async_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get async database session."""
        async with self.async_session_maker() as session:
            yield session

    async def close(self) -> None:
        """Dispose the engine and its pooled connections."""
        await self.async_engine.dispose()
        logger.info(
            "Inventory Service database connections closed",
            extra={"operation": "database_close"},
        )


settings = get_settings()
database_manager = InventoryServiceDatabaseManager(
    database_url=settings.INVENTORY_DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=settings.DATABASE_POOL_SIZE,
    max_overflow=settings.DATABASE_MAX_OVERFLOW,
)


# Dependency injection function for FastAPI
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session for dependency injection."""
    async for session in database_manager.get_async_session():
        yield session
