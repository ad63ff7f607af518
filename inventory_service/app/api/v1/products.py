"""Product catalog API endpoints"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Response, status

from ...core.exceptions import NotificationError
from ...core.setting import get_settings
from ...events.base import now_ms
from ...schemas.product import (
    ProductCreate,
    ProductResponse,
    ProductStatsResponse,
    ProductUpdate,
    StockAdjustmentResponse,
    StockUpdate,
)
from ...services.inventory_service import InventoryService
from ...utils.logging import setup_inventory_logging as setup_logging
from ..dependencies import CorrelationIdDep, InventoryServiceDep

logger = setup_logging("products_api")
router = APIRouter(prefix="/products")

EVENT_DELIVERY_HEADER = "X-Event-Delivery"


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    response: Response,
    correlation_id: Optional[str] = CorrelationIdDep,
    service: InventoryService = InventoryServiceDep,
):
    """Create a new product"""
    try:
        product = await service.create_product(
            product_data=product_data, correlation_id=correlation_id
        )
        response.headers[EVENT_DELIVERY_HEADER] = "published"
    except NotificationError as e:
        # The product exists; its event waits in the outbox
        logger.warning(
            "Product created with pending event delivery",
            extra={"event_ids": e.event_ids, "correlation_id": correlation_id},
        )
        product = e.result
        response.headers[EVENT_DELIVERY_HEADER] = "pending"

    return product


@router.get("/stats", response_model=ProductStatsResponse)
async def get_product_stats(service: InventoryService = InventoryServiceDep):
    """Catalog-wide statistics over active products"""
    return await service.get_stats()


@router.get("/health")
async def products_health() -> Dict[str, Any]:
    """Liveness probe for the product API"""
    return {
        "status": "UP",
        "service": get_settings().SERVICE_NAME,
        "timestamp": now_ms(),
    }


@router.get("/category/{category}", response_model=List[ProductResponse])
async def get_products_by_category(
    category: str, service: InventoryService = InventoryServiceDep
):
    """Active products in a category, matched case-insensitively"""
    return await service.list_products_by_category(category)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    correlation_id: Optional[str] = CorrelationIdDep,
    service: InventoryService = InventoryServiceDep,
):
    """Get product details by ID"""
    return await service.get_product(product_id, correlation_id=correlation_id)


@router.get("", response_model=List[ProductResponse])
async def list_products(service: InventoryService = InventoryServiceDep):
    """List all active products ordered by name"""
    return await service.list_products()


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    product_data: ProductUpdate,
    correlation_id: Optional[str] = CorrelationIdDep,
    service: InventoryService = InventoryServiceDep,
):
    """Replace every mutable field of a product"""
    return await service.update_product(
        product_id, product_data, correlation_id=correlation_id
    )


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: int,
    correlation_id: Optional[str] = CorrelationIdDep,
    service: InventoryService = InventoryServiceDep,
) -> Response:
    """Soft delete a product"""
    await service.delete_product(product_id, correlation_id=correlation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{product_id}/stock", response_model=StockAdjustmentResponse)
async def update_stock(
    product_id: int,
    stock_update: StockUpdate,
    correlation_id: Optional[str] = CorrelationIdDep,
    service: InventoryService = InventoryServiceDep,
):
    """Remove units from stock (negative quantity adds); clamps at zero"""
    return await service.adjust_stock(
        product_id, stock_update.quantity, correlation_id=correlation_id
    )
