"""
Inventory Service Health Check Utilities
========================================

Aggregates component checks (database, event sink) into one health report.
"""

import time
from typing import Any, Awaitable, Callable, Dict

HealthCheck = Callable[[], Awaitable[Dict[str, Any]]]


class InventoryServiceHealthChecker:
    """Inventory Service specific health checker"""

    def __init__(self, service_name: str = "inventory-service", version: str = "1.0.0") -> None:
        self.service_name = service_name
        self.version = version
        self.checks: Dict[str, HealthCheck] = {}
        self.start_time = time.time()

    def add_check(self, name: str, check_func: HealthCheck) -> None:
        """Add a health check coroutine function"""
        self.checks[name] = check_func

    async def run_checks(self) -> Dict[str, Any]:
        """Run all checks; the service is healthy when the database is"""
        results: Dict[str, Dict[str, Any]] = {}
        check_start_time = time.time()

        for name, check_func in self.checks.items():
            individual_start = time.time()
            try:
                result = await check_func()
            except Exception as e:
                result = {"status": "error", "error": str(e)}
            result["duration_ms"] = round((time.time() - individual_start) * 1000, 2)
            results[name] = result

        total_time = (time.time() - check_start_time) * 1000
        uptime = time.time() - self.start_time
        database_ok = results.get("database", {}).get("status") == "healthy"
        degraded = any(r.get("status") != "healthy" for r in results.values())

        return {
            "service": self.service_name,
            "version": self.version,
            "status": "unhealthy" if not database_ok else "degraded" if degraded else "healthy",
            "checks": results,
            "total_duration_ms": round(total_time, 2),
            "uptime_seconds": round(uptime, 2),
            "timestamp": time.time(),
        }

    def add_inventory_specific_checks(
        self,
        database_check: Callable[[], Awaitable[bool]],
        events_check: Callable[[], Awaitable[bool]],
        events_enabled: bool = True,
    ) -> None:
        """Register the catalog store and event sink checks"""

        async def check_database() -> Dict[str, Any]:
            if await database_check():
                return {
                    "status": "healthy",
                    "message": "Catalog store reachable",
                    "component": "database",
                }
            return {
                "status": "unhealthy",
                "message": "Catalog store unreachable",
                "component": "database",
            }

        async def check_events() -> Dict[str, Any]:
            if not events_enabled:
                return {
                    "status": "healthy",
                    "message": "Event publishing disabled",
                    "component": "events",
                }
            if await events_check():
                return {
                    "status": "healthy",
                    "message": "Kafka brokers reachable",
                    "component": "events",
                }
            return {
                "status": "unhealthy",
                "message": "Kafka unavailable, events held in the outbox",
                "component": "events",
            }

        self.add_check("database", check_database)
        self.add_check("events", check_events)
