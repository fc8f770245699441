"""Read-side order queries for buyers and product owners."""

import logging
import uuid
from typing import Optional

from libs.common.errors import Forbidden, NotFound
from services.marketplace_service.models import Order, OrderStatus, Product
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload


class OrderQueryService:
    def __init__(self, db: AsyncSession, *, logger: logging.Logger):
        self.db = db
        self.logger = logger

    async def list_buyer_orders(
        self, user_id: uuid.UUID, status: Optional[OrderStatus] = None
    ) -> list[Order]:
        query = (
            select(Order)
            .where(Order.buyer_id == user_id)
            .options(selectinload(Order.product))
            .order_by(Order.created_at.desc())
        )
        if status:
            query = query.where(Order.status == status)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_owner_orders(
        self, user_id: uuid.UUID, status: Optional[OrderStatus] = None
    ) -> list[Order]:
        """Orders placed against any product the user owns, deleted ones included."""
        query = (
            select(Order)
            .join(Product, Order.product_id == Product.id)
            .where(Product.owner_id == user_id)
            .options(selectinload(Order.product))
            .order_by(Order.created_at.desc())
        )
        if status:
            query = query.where(Order.status == status)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_order(self, order_id: uuid.UUID, user_id: uuid.UUID) -> Order:
        """Order visible to its buyer or the product owner.

        A missing order is NotFound; an existing order seen by anyone else is
        Forbidden.
        """
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .options(selectinload(Order.product))
        )
        order = result.scalar_one_or_none()
        if not order:
            self.logger.warning(
                "Order not found", extra={"extra_fields": {"order_id": str(order_id)}}
            )
            raise NotFound("Order not found")

        if order.buyer_id != user_id and order.product.owner_id != user_id:
            self.logger.warning(
                "User not authorized to access order",
                extra={
                    "extra_fields": {
                        "order_id": str(order_id),
                        "user_id": str(user_id),
                    }
                },
            )
            raise Forbidden("You do not have access to this order")

        return order
