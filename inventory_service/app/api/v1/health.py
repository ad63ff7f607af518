from typing import Any, Dict

from fastapi import APIRouter

from ...core.database import database_manager
from ...core.event_management import health_check_events
from ...core.setting import get_settings
from ...utils.service_health import InventoryServiceHealthChecker

router = APIRouter()


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """Detailed health of the inventory service and its dependencies."""
    settings = get_settings()
    health_checker = InventoryServiceHealthChecker(
        settings.SERVICE_NAME, settings.APP_VERSION
    )
    health_checker.add_inventory_specific_checks(
        database_check=database_manager.check_connection,
        events_check=health_check_events,
        events_enabled=settings.EVENTS_ENABLED,
    )
    return await health_checker.run_checks()
