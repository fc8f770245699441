"""Owner-driven order status corrections."""

import logging
import uuid

from libs.common.errors import Forbidden, NotFound
from services.marketplace_service.models import Order, OrderStatus
from services.marketplace_service.services._helpers import commit_or_raise
from services.marketplace_service.services.product_ops import ProductService
from services.marketplace_service.services.transitions import apply_owner_status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload


class OrderStatusService:
    def __init__(self, db: AsyncSession, *, logger: logging.Logger):
        self.db = db
        self.logger = logger
        self.products = ProductService(db, logger=logger)

    async def update_status(
        self, order_id: uuid.UUID, user_id: uuid.UUID, target: OrderStatus
    ) -> Order:
        """Write ``target`` on behalf of the product owner.

        Reverting a successful order to failed puts its quantity back in stock.
        """
        order = await self._load(order_id)
        if not order:
            self.logger.warning(
                "Order not found for status update",
                extra={"extra_fields": {"order_id": str(order_id)}},
            )
            raise NotFound("Order not found")

        product = order.product
        if product.owner_id != user_id:
            self.logger.warning(
                "User not authorized to update order status",
                extra={
                    "extra_fields": {
                        "order_id": str(order_id),
                        "user_id": str(user_id),
                        "owner_id": str(product.owner_id),
                    }
                },
            )
            raise Forbidden("Only the product owner can update order status")

        old_status = order.status
        change = apply_owner_status(
            current=old_status,
            target=target,
            quantity=order.quantity,
            product_stock=product.stock,
            product_status=product.status,
        )

        if not await self._transition(order, old_status, change.order_status):
            # Another request moved the order first; its stock effects stand
            self.logger.warning(
                "Order status changed concurrently; update skipped",
                extra={
                    "extra_fields": {
                        "order_id": str(order_id),
                        "user_id": str(user_id),
                        "expected_status": old_status.value,
                    }
                },
            )
            await self.db.rollback()
            order = await self._load(order_id)
            await self.db.refresh(order.product)
            return order

        if change.restores_stock:
            await self.products.restore_stock(product.id, order.quantity)

        await commit_or_raise(
            self.db,
            self.logger,
            "Failed to update order status",
            order_id=str(order_id),
            user_id=str(user_id),
        )

        order = await self._load(order_id)
        await self.db.refresh(order.product)

        self.logger.info(
            "Order status updated",
            extra={
                "extra_fields": {
                    "order_id": str(order_id),
                    "user_id": str(user_id),
                    "old_status": old_status.value,
                    "new_status": order.status.value,
                    "stock_restored": change.restores_stock,
                }
            },
        )
        return order

    async def _load(self, order_id: uuid.UUID) -> Order | None:
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .options(selectinload(Order.product))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _transition(
        self, order: Order, expected: OrderStatus, status: OrderStatus
    ) -> bool:
        """Write ``status`` only if the order is still ``expected``."""
        result = await self.db.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == expected)
            .values(status=status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
