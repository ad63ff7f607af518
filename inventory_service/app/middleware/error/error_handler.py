"""
Error handling middleware for Inventory Service.
Provides centralized exception handling and standardized error responses.
"""

import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...core.exceptions import (
    InventoryServiceError,
    NotificationError,
    PersistenceError,
    ProductNotFoundError,
    ProductValidationError,
)
from ...utils.logging import setup_inventory_logging

logger = setup_inventory_logging("inventory_service_error_handler")

# Domain exception -> HTTP status
STATUS_CODES: Dict[type, int] = {
    ProductValidationError: 400,
    ProductNotFoundError: 404,
    PersistenceError: 503,
    NotificationError: 502,
}


def _field_errors(exc: Any) -> list[Dict[str, Any]]:
    error_details: list[Dict[str, Any]] = []
    for error in exc.errors():
        # Drop the "body" prefix FastAPI adds to request body locations
        loc = [str(part) for part in error["loc"] if part != "body"]
        error_details.append(
            {
                "field": ".".join(loc),
                "message": error["msg"],
                "type": error["type"],
            }
        )
    return error_details


class InventoryServiceErrorHandler:
    """
    Centralized error handling for Inventory Service.

    Features:
    - Standardized error response format
    - Domain exception to status code mapping
    - Correlation ID tracking
    """

    @staticmethod
    def setup_error_handlers(app: FastAPI) -> None:
        """
        Setup all error handlers for the FastAPI application.
        """

        @app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(
            request: Request, exc: StarletteHTTPException
        ) -> JSONResponse:
            """Handle HTTP exceptions from Starlette/FastAPI."""
            return InventoryServiceErrorHandler._create_error_response(
                request=request,
                status_code=exc.status_code,
                error_type="http_error",
                message=str(exc.detail),
            )

        @app.exception_handler(RequestValidationError)
        async def validation_exception_handler(
            request: Request, exc: RequestValidationError
        ) -> JSONResponse:
            """Handle request validation errors as bad requests."""
            return InventoryServiceErrorHandler._create_error_response(
                request=request,
                status_code=400,
                error_type="validation_error",
                message="Request validation failed",
                details={"validation_errors": _field_errors(exc)},
            )

        @app.exception_handler(ValidationError)
        async def pydantic_validation_exception_handler(
            request: Request, exc: ValidationError
        ) -> JSONResponse:
            """Handle Pydantic validation errors in business logic."""
            return InventoryServiceErrorHandler._create_error_response(
                request=request,
                status_code=400,
                error_type="data_validation_error",
                message="Data validation failed",
                details={"validation_errors": _field_errors(exc)},
            )

        @app.exception_handler(InventoryServiceError)
        async def inventory_exception_handler(
            request: Request, exc: InventoryServiceError
        ) -> JSONResponse:
            """Handle inventory domain exceptions."""
            status_code = STATUS_CODES.get(type(exc), 500)
            if status_code >= 500:
                logger.error(
                    "Inventory operation failed",
                    extra={
                        "correlation_id": InventoryServiceErrorHandler._correlation_id(
                            request
                        ),
                        "path": request.url.path,
                        "method": request.method,
                        "exception_type": type(exc).__name__,
                        "exception_message": exc.message,
                        "service": "inventory_service",
                    },
                )
            return InventoryServiceErrorHandler._create_error_response(
                request=request,
                status_code=status_code,
                error_type=exc.error_type,
                message=exc.message,
                details=exc.details,
            )

        @app.exception_handler(Exception)
        async def general_exception_handler(
            request: Request, exc: Exception
        ) -> JSONResponse:
            """Handle anything no other handler claimed."""
            logger.error(
                "Unhandled exception occurred",
                extra={
                    "correlation_id": InventoryServiceErrorHandler._correlation_id(
                        request
                    ),
                    "path": request.url.path,
                    "method": request.method,
                    "exception_type": type(exc).__name__,
                    "exception_message": str(exc),
                    "traceback": traceback.format_exc(),
                    "service": "inventory_service",
                    "event_type": "unhandled_exception",
                },
                exc_info=True,
            )

            return InventoryServiceErrorHandler._create_error_response(
                request=request,
                status_code=500,
                error_type="internal_server_error",
                message="An internal server error occurred",
                details={"exception_type": type(exc).__name__},
            )

    @staticmethod
    def _correlation_id(request: Request) -> str:
        return (
            getattr(request.state, "correlation_id", None)
            or request.headers.get("X-Correlation-ID")
            or request.headers.get("x-request-id")
            or "unknown"
        )

    @staticmethod
    def _create_error_response(
        request: Request,
        status_code: int,
        error_type: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> JSONResponse:
        """
        Create a standardized error response.

        Args:
            request: The FastAPI request object
            status_code: HTTP status code
            error_type: Type of error for categorization
            message: Human-readable error message
            details: Additional error details

        Returns:
            JSONResponse with standardized error format
        """
        correlation_id = InventoryServiceErrorHandler._correlation_id(request)

        error_response: Dict[str, Any] = {
            "error": {
                "type": error_type,
                "message": message,
                "correlation_id": correlation_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "path": request.url.path,
                "method": request.method,
            }
        }

        if details:
            error_response["error"]["details"] = details

        if status_code < 500:
            logger.warning(
                f"Client error: {error_type}",
                extra={
                    "correlation_id": correlation_id,
                    "status_code": status_code,
                    "error_type": error_type,
                    "path": request.url.path,
                    "method": request.method,
                    "service": "inventory_service",
                    "event_type": "client_error",
                },
            )

        return JSONResponse(status_code=status_code, content=error_response)


def setup_inventory_error_handling(app: FastAPI) -> None:
    """
    Convenience function to setup error handling for Inventory Service.

    Args:
        app: FastAPI application instance
    """
    error_handler = InventoryServiceErrorHandler()
    error_handler.setup_error_handlers(app)

    logger.info(
        "Inventory Service error handling configured",
        extra={"service": "inventory_service", "event_type": "error_handler_setup"},
    )
