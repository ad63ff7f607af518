"""Inventory service for catalog business logic"""

from decimal import Decimal
from typing import Dict, List, NoReturn, Optional

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import (
    NotificationError,
    PersistenceError,
    ProductNotFoundError,
    ProductValidationError,
)
from ..core.setting import get_settings
from ..events.base import EventPublishError, now_ms
from ..events.event_producers import (
    ProductEventProducer,
    build_out_of_stock_event,
    build_product_created_event,
    build_stock_updated_event,
)
from ..models.outbox import OutboxEvent
from ..models.product import Product
from ..repository.outbox_repository import OutboxRepository
from ..repository.product_repository import ProductRepository
from ..schemas.product import (
    ProductCreate,
    ProductResponse,
    ProductStatsResponse,
    ProductUpdate,
    StockAdjustmentResponse,
)
from ..utils.logging import setup_inventory_logging as setup_logging

# Setup structured logging for the service
logger = setup_logging("inventory_service.service")

CENT = Decimal("0.01")


class InventoryService:
    """
    Service class for catalog business logic.

    Every write commits the catalog change together with its outbox records,
    then publishes those records immediately. A failed publication never
    undoes the write; the record stays pending for the outbox relay.
    """

    def __init__(
        self,
        db: AsyncSession,
        event_producer: Optional[ProductEventProducer] = None,
        publish_stock_updates: Optional[bool] = None,
        max_stock_retries: Optional[int] = None,
        max_outbox_attempts: Optional[int] = None,
    ):
        settings = get_settings()
        self.db = db
        self.repository = ProductRepository(db)
        self.outbox = OutboxRepository(db)
        self.event_producer = event_producer
        self.publish_stock_updates = (
            settings.PUBLISH_STOCK_UPDATED_EVENTS
            if publish_stock_updates is None
            else publish_stock_updates
        )
        self.max_stock_retries = max_stock_retries or settings.STOCK_UPDATE_MAX_RETRIES
        self.max_outbox_attempts = max_outbox_attempts or settings.OUTBOX_MAX_ATTEMPTS

    @staticmethod
    def _to_response(product: Product) -> ProductResponse:
        return ProductResponse.model_validate(product)

    @staticmethod
    def _validate(product_data: BaseModel) -> None:
        """Re-check catalog invariants for inputs that bypassed schema validation"""
        errors: List[Dict[str, str]] = []

        for field, limit in (("name", 100), ("category", 50)):
            value = getattr(product_data, field, None)
            if not isinstance(value, str) or not value.strip():
                errors.append({"field": field, "message": f"{field} is required"})
            elif len(value) > limit:
                errors.append(
                    {"field": field, "message": f"{field} exceeds {limit} characters"}
                )

        for field, limit in (("description", 500), ("image_url", 200)):
            value = getattr(product_data, field, None)
            if value is not None and len(value) > limit:
                errors.append(
                    {"field": field, "message": f"{field} exceeds {limit} characters"}
                )

        price = getattr(product_data, "price", None)
        if not isinstance(price, Decimal) or price <= 0:
            errors.append({"field": "price", "message": "price must be greater than 0"})
        elif price != price.quantize(CENT):
            errors.append(
                {"field": "price", "message": "price allows at most two decimals"}
            )

        stock = getattr(product_data, "stock_quantity", None)
        if not isinstance(stock, int) or isinstance(stock, bool) or stock < 0:
            errors.append(
                {
                    "field": "stock_quantity",
                    "message": "stock quantity must be non-negative",
                }
            )

        if errors:
            raise ProductValidationError(errors)

    async def _rollback_and_raise(
        self, operation: str, error: SQLAlchemyError, **context
    ) -> NoReturn:
        await self.db.rollback()
        logger.error(
            f"Failed to {operation}: {str(error)}",
            extra={"operation": operation, "error": str(error), **context},
            exc_info=True,
        )
        raise PersistenceError(f"Failed to {operation}") from error

    async def _get_active_or_raise(self, product_id: int) -> Product:
        try:
            product = await self.repository.get_active_product(product_id)
        except SQLAlchemyError as e:
            await self._rollback_and_raise("load product", e, product_id=product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    async def _dispatch(
        self, records: List[OutboxEvent], correlation_id: Optional[str] = None
    ) -> bool:
        """Publish committed outbox records now; returns whether all went out"""
        if not records:
            return True

        if self.event_producer is None:
            logger.warning(
                "Event producer unavailable, leaving events to the outbox relay",
                extra={
                    "event_ids": [r.event_id for r in records],
                    "correlation_id": correlation_id,
                },
            )
            return False

        delivered = True
        for record in records:
            try:
                await self.event_producer.publish(record, correlation_id=correlation_id)
                self.outbox.mark_published(record)
            except EventPublishError as e:
                delivered = False
                self.outbox.mark_failed(record, str(e), self.max_outbox_attempts)
                logger.warning(
                    "Event publication failed, left pending for the outbox relay",
                    extra={
                        "event_id": record.event_id,
                        "event_type": record.event_type,
                        "product_id": record.aggregate_id,
                        "correlation_id": correlation_id,
                        "error": str(e),
                    },
                )

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            # The relay may publish these again; delivery is at-least-once
            await self.db.rollback()
            logger.warning(
                "Failed to record outbox delivery status",
                extra={"error": str(e), "correlation_id": correlation_id},
            )

        return delivered

    async def create_product(
        self, product_data: ProductCreate, correlation_id: Optional[str] = None
    ) -> ProductResponse:
        """
        Create a product and announce it.

        Raises NotificationError (carrying the created product) when the record
        was stored but the product.created event could not be published.
        """
        self._validate(product_data)

        try:
            product = await self.repository.create_product(product_data)
            record = self.outbox.add(build_product_created_event(product))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._rollback_and_raise(
                "create product",
                e,
                product_name=product_data.name,
                correlation_id=correlation_id,
            )

        response = self._to_response(product)
        logger.info(
            "Product created successfully",
            extra={
                "product_id": product.id,
                "category": product.category,
                "correlation_id": correlation_id,
            },
        )

        if not await self._dispatch([record], correlation_id):
            raise NotificationError(
                f"Product {product.id} created but product.created was not published",
                result=response,
                event_ids=[record.event_id],
            )

        return response

    async def get_product(
        self, product_id: int, correlation_id: Optional[str] = None
    ) -> ProductResponse:
        """Get active product by ID"""
        product = await self._get_active_or_raise(product_id)

        logger.debug(
            "Product retrieved",
            extra={"product_id": product_id, "correlation_id": correlation_id},
        )
        return self._to_response(product)

    async def list_products(self) -> List[ProductResponse]:
        """All active products ordered by name"""
        try:
            products = await self.repository.list_active_products()
        except SQLAlchemyError as e:
            await self._rollback_and_raise("list products", e)
        return [self._to_response(p) for p in products]

    async def list_products_by_category(self, category: str) -> List[ProductResponse]:
        """Active products in a category (case-insensitive) ordered by name"""
        try:
            products = await self.repository.list_active_products(category=category)
        except SQLAlchemyError as e:
            await self._rollback_and_raise("list products", e, category=category)
        return [self._to_response(p) for p in products]

    async def update_product(
        self,
        product_id: int,
        product_data: ProductUpdate,
        correlation_id: Optional[str] = None,
    ) -> ProductResponse:
        """Overwrite every mutable field of an active product"""
        self._validate(product_data)
        product = await self._get_active_or_raise(product_id)

        try:
            await self.repository.update_product(product, product_data)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._rollback_and_raise(
                "update product",
                e,
                product_id=product_id,
                correlation_id=correlation_id,
            )

        logger.info(
            "Product updated successfully",
            extra={"product_id": product_id, "correlation_id": correlation_id},
        )
        return self._to_response(product)

    async def delete_product(
        self, product_id: int, correlation_id: Optional[str] = None
    ) -> None:
        """Soft delete; the product disappears from every read path"""
        product = await self._get_active_or_raise(product_id)

        try:
            await self.repository.deactivate_product(product)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._rollback_and_raise(
                "delete product",
                e,
                product_id=product_id,
                correlation_id=correlation_id,
            )

        logger.info(
            "Product deleted successfully",
            extra={"product_id": product_id, "correlation_id": correlation_id},
        )

    async def adjust_stock(
        self,
        product_id: int,
        quantity: int,
        correlation_id: Optional[str] = None,
    ) -> StockAdjustmentResponse:
        """
        Remove ``quantity`` units (negative adds), clamping at zero.

        The write is a compare-and-set on the product version, retried when a
        concurrent writer got there first. product.outofstock is recorded only
        on the transition from positive stock to zero.
        """
        for attempt in range(1, self.max_stock_retries + 1):
            product = await self._get_active_or_raise(product_id)
            previous_stock = product.stock_quantity
            new_stock = max(0, previous_stock - quantity)

            try:
                applied = await self.repository.compare_and_set_stock(
                    product, new_stock, expected_version=product.version
                )
                if not applied:
                    await self.db.rollback()
                    logger.info(
                        "Concurrent stock update detected, retrying",
                        extra={
                            "product_id": product_id,
                            "attempt": attempt,
                            "correlation_id": correlation_id,
                        },
                    )
                    continue

                records: List[OutboxEvent] = []
                if self.publish_stock_updates:
                    records.append(
                        build_stock_updated_event(product, new_stock - previous_stock)
                    )
                depleted = previous_stock > 0 and new_stock == 0
                if depleted:
                    records.append(build_out_of_stock_event(product))
                for record in records:
                    self.outbox.add(record)

                await self.db.commit()
            except SQLAlchemyError as e:
                await self._rollback_and_raise(
                    "adjust stock",
                    e,
                    product_id=product_id,
                    correlation_id=correlation_id,
                )

            logger.info(
                "Stock adjusted successfully",
                extra={
                    "product_id": product_id,
                    "previous_stock": previous_stock,
                    "new_stock": new_stock,
                    "quantity": quantity,
                    "out_of_stock": depleted,
                    "correlation_id": correlation_id,
                },
            )

            # Stock changes are reported as applied whatever the broker says
            await self._dispatch(records, correlation_id)

            return StockAdjustmentResponse(
                product_id=product_id,
                previous_stock=previous_stock,
                stock_quantity=new_stock,
                out_of_stock=depleted,
            )

        logger.error(
            "Stock update abandoned after repeated concurrent modifications",
            extra={
                "product_id": product_id,
                "attempts": self.max_stock_retries,
                "correlation_id": correlation_id,
            },
        )
        raise PersistenceError(
            f"Stock update for product {product_id} kept conflicting with "
            f"concurrent writers"
        )

    async def get_stats(self) -> ProductStatsResponse:
        """Catalog-wide summary over active products, recomputed on every call"""
        try:
            total_products, total_value, categories = await self.repository.get_stats()
        except SQLAlchemyError as e:
            await self._rollback_and_raise("compute stats", e)

        return ProductStatsResponse(
            total_products=total_products,
            total_inventory_value=total_value.quantize(CENT),
            categories=categories,
            timestamp=now_ms(),
        )
