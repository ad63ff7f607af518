"""
Inventory Service FastAPI Application
=====================================

Main application entry point for the Inventory Service.
Manages the product catalog and stock levels, and announces catalog changes
to the rest of the platform through Kafka.
"""

import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.v1.health import router as health_router
from .api.v1.products import router as products_router
from .core.database import database_manager
from .core.event_management import close_events, init_events, start_outbox_relay
from .core.seed import seed_sample_products
from .core.setting import get_settings
from .middleware.error import setup_inventory_error_handling
from .utils.logging import setup_inventory_logging as setup_logging

settings = get_settings()
environment = settings.ENVIRONMENT.lower()
enable_file_logging = environment in ["production", "staging"]

logger = setup_logging(
    "inventory_service",
    log_level=settings.LOG_LEVEL,
    enable_file_logging=enable_file_logging,
)


# Lifespan management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager for startup and shutdown."""
    startup_start = time.time()

    try:
        await _initialize_services(startup_start)
    except Exception as e:
        await _handle_startup_error(startup_start, e)
        raise

    yield

    await _shutdown_services()


async def _initialize_services(startup_start: float) -> None:
    """Initialize all application services during startup."""
    logger.info(
        "Starting inventory service initialization",
        extra={
            "environment": environment,
            "debug_mode": settings.DEBUG,
            "file_logging_enabled": enable_file_logging,
            "service_version": settings.APP_VERSION,
        },
    )

    # Database is required
    db_duration = await _init_database()

    seeded = 0
    if settings.SEED_SAMPLE_DATA:
        seeded = await seed_sample_products(database_manager.async_session_maker)

    event_duration = 0
    relay_started = False
    if settings.EVENTS_ENABLED:
        event_duration = await _init_event_publisher()
        if settings.OUTBOX_RELAY_ENABLED:
            start_outbox_relay()
            relay_started = True
    else:
        logger.info("Event publishing disabled by configuration")

    total_startup = int((time.time() - startup_start) * 1000)
    logger.info(
        "Inventory service started successfully",
        extra={
            "total_startup_duration_ms": total_startup,
            "database_init_ms": db_duration,
            "event_publisher_init_ms": event_duration,
            "outbox_relay_started": relay_started,
            "seeded_products": seeded,
        },
    )


async def _init_event_publisher() -> int:
    """Initialize event publisher and return duration in ms."""
    start_time = time.time()

    connected = await init_events()
    duration = int((time.time() - start_time) * 1000)
    if connected:
        logger.info("Event publisher started", extra={"duration_ms": duration})
    else:
        logger.warning(
            "Event publisher not connected, continuing in degraded mode",
            extra={"duration_ms": duration},
        )
    return duration


async def _init_database() -> int:
    """Initialize database and return duration in ms."""
    start_time = time.time()
    await database_manager.create_tables()
    duration = int((time.time() - start_time) * 1000)
    logger.info("Database initialization completed", extra={"duration_ms": duration})
    return duration


async def _handle_startup_error(startup_start: float, error: Exception) -> None:
    """Handle startup errors with proper logging."""
    logger.error(
        "Failed to start inventory service",
        exc_info=True,
        extra={
            "startup_duration_ms": int((time.time() - startup_start) * 1000),
            "error_type": type(error).__name__,
        },
    )


async def _shutdown_services() -> None:
    """Shutdown all application services gracefully."""
    shutdown_start = time.time()

    try:
        logger.info("Starting inventory service shutdown")

        await close_events()
        await database_manager.close()

        shutdown_duration = int((time.time() - shutdown_start) * 1000)
        logger.info(
            "Inventory service shutdown completed",
            extra={"shutdown_duration_ms": shutdown_duration},
        )

    except Exception as e:
        logger.error(
            "Error during inventory service shutdown",
            exc_info=True,
            extra={
                "shutdown_duration_ms": int((time.time() - shutdown_start) * 1000),
                "error_type": type(e).__name__,
            },
        )
        raise


# Application factory
def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    setup_inventory_error_handling(app)
    _setup_cors(app)
    _setup_routers(app)

    return app


def _setup_cors(app: FastAPI) -> None:
    """Configure CORS settings with logging."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_CREDENTIALS,
        allow_methods=settings.CORS_METHODS,
        allow_headers=settings.CORS_HEADERS,
        expose_headers=["X-Event-Delivery"],
    )

    logger.info(
        "CORS middleware configured",
        extra={
            "allowed_origins": len(settings.CORS_ORIGINS),
            "credentials_allowed": settings.CORS_CREDENTIALS,
        },
    )


def _setup_routers(app: FastAPI) -> None:
    """Configure all application routers with detailed logging."""
    routers_info: list[dict[str, Any]] = []

    app.include_router(health_router, tags=["Health"])
    routers_info.append({"router": "health", "prefix": "", "tags": ["Health"]})

    app.include_router(products_router, prefix="/api/v1", tags=["Product Management"])
    routers_info.append(
        {"router": "products", "prefix": "/api/v1", "tags": ["Product Management"]}
    )

    logger.info(
        "API routes configured",
        extra={"total_routers": len(routers_info), "routers": routers_info},
    )


app = create_app()
