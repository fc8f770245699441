"""Product store: owner CRUD plus the stock bookkeeping used by orders."""

import logging
import uuid

from libs.common.errors import Forbidden, InvalidState, NotFound
from services.marketplace_service.models import Product, ProductStatus
from services.marketplace_service.schemas import ProductCreate, ProductUpdate
from services.marketplace_service.services._helpers import commit_or_raise
from services.marketplace_service.services.transitions import stock_status_after
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession


class ProductService:
    """Product lifecycle for owners and stock bookkeeping for the order flows.

    The stock methods (``debit_stock``/``restore_stock``) do not commit; the
    order flow that calls them owns the transaction.
    """

    def __init__(self, db: AsyncSession, *, logger: logging.Logger):
        self.db = db
        self.logger = logger

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def _find_live(self, product_id: uuid.UUID) -> Product | None:
        result = await self.db.execute(
            select(Product)
            .where(Product.id == product_id, Product.status != ProductStatus.DELETED)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get(self, product_id: uuid.UUID) -> Product | None:
        """Fetch any product, deleted ones included (order history joins)."""
        result = await self.db.execute(
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_products(self) -> list[Product]:
        result = await self.db.execute(
            select(Product)
            .where(Product.status != ProductStatus.DELETED)
            .order_by(Product.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_owned_products(self, owner_id: uuid.UUID) -> list[Product]:
        result = await self.db.execute(
            select(Product)
            .where(
                Product.owner_id == owner_id,
                Product.status != ProductStatus.DELETED,
            )
            .order_by(Product.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_public_product(self, product_id: uuid.UUID) -> Product:
        product = await self._find_live(product_id)
        if not product or not product.is_available:
            self.logger.warning(
                "Product not found or out of stock",
                extra={"extra_fields": {"product_id": str(product_id)}},
            )
            raise NotFound("Product not found or unavailable")
        return product

    async def get_owned_product(
        self, product_id: uuid.UUID, user_id: uuid.UUID
    ) -> Product:
        product = await self._find_live(product_id)
        if not product:
            raise NotFound("Product not found")
        self._ensure_owner(product, user_id, "access")
        return product

    async def get_product_status(self, product_id: uuid.UUID) -> dict:
        product = await self._find_live(product_id)
        if not product:
            raise NotFound("Product not found")
        return {
            "status": product.status,
            "stock": product.stock,
            "is_available": product.is_available,
        }

    # ------------------------------------------------------------------
    # Owner mutations
    # ------------------------------------------------------------------

    async def create_product(self, owner_id: uuid.UUID, data: ProductCreate) -> Product:
        product = Product(
            owner_id=owner_id,
            title=data.title,
            description=data.description,
            price=data.price,
            stock=data.stock,
            status=stock_status_after(data.stock, ProductStatus.ACTIVE),
        )
        self.db.add(product)
        await commit_or_raise(
            self.db,
            self.logger,
            "Failed to create product",
            owner_id=str(owner_id),
        )
        await self.db.refresh(product)

        self.logger.info(
            "Product created",
            extra={
                "extra_fields": {
                    "product_id": str(product.id),
                    "owner_id": str(owner_id),
                }
            },
        )
        return product

    async def update_product(
        self, product_id: uuid.UUID, user_id: uuid.UUID, data: ProductUpdate
    ) -> Product:
        product = await self._find_live(product_id)
        if not product:
            raise NotFound("Product not found")
        self._ensure_owner(product, user_id, "update")

        if data.status == ProductStatus.DELETED:
            raise InvalidState(
                "Cannot set status to deleted. Use the delete endpoint instead"
            )

        changes = data.model_dump(exclude_unset=True)
        for field in ("title", "description", "price"):
            if changes.get(field) is not None:
                setattr(product, field, changes[field])

        if changes.get("stock") is not None:
            product.stock = changes["stock"]
            if changes.get("status") is None:
                product.status = stock_status_after(product.stock, product.status)

        if changes.get("status") is not None:
            if changes["status"] == ProductStatus.ACTIVE and product.stock == 0:
                raise InvalidState("Cannot activate a product with no stock")
            product.status = changes["status"]

        await commit_or_raise(
            self.db,
            self.logger,
            "Failed to update product",
            product_id=str(product_id),
            user_id=str(user_id),
        )
        await self.db.refresh(product)

        self.logger.info(
            "Product updated",
            extra={
                "extra_fields": {
                    "product_id": str(product_id),
                    "updated_fields": sorted(changes),
                }
            },
        )
        return product

    async def delete_product(self, product_id: uuid.UUID, user_id: uuid.UUID) -> None:
        product = await self._find_live(product_id)
        if not product:
            raise NotFound("Product not found")
        self._ensure_owner(product, user_id, "delete")

        product.status = ProductStatus.DELETED
        await commit_or_raise(
            self.db,
            self.logger,
            "Failed to delete product",
            product_id=str(product_id),
            user_id=str(user_id),
        )
        self.logger.info(
            "Product deleted",
            extra={"extra_fields": {"product_id": str(product_id)}},
        )

    def _ensure_owner(self, product: Product, user_id: uuid.UUID, action: str) -> None:
        if product.owner_id != user_id:
            self.logger.warning(
                "User not authorized to %s product",
                action,
                extra={
                    "extra_fields": {
                        "product_id": str(product.id),
                        "user_id": str(user_id),
                        "owner_id": str(product.owner_id),
                    }
                },
            )
            raise Forbidden(f"You do not have permission to {action} this product")

    # ------------------------------------------------------------------
    # Stock bookkeeping (stock and status move together)
    # ------------------------------------------------------------------

    async def debit_stock(self, product_id: uuid.UUID, quantity: int) -> bool:
        """Take ``quantity`` units off the shelf if they are still there.

        The availability check and the decrement are one conditional UPDATE,
        so concurrent debits cannot drive stock below zero. Returns False
        when there was not enough stock.
        """
        result = await self.db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False

        await self.db.execute(
            update(Product)
            .where(
                Product.id == product_id,
                Product.stock == 0,
                Product.status == ProductStatus.ACTIVE,
            )
            .values(status=ProductStatus.OUT_OF_STOCK)
            .execution_options(synchronize_session=False)
        )
        return True

    async def restore_stock(self, product_id: uuid.UUID, quantity: int) -> None:
        """Put ``quantity`` units back and reactivate an out-of-stock product."""
        await self.db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(
            update(Product)
            .where(
                Product.id == product_id,
                Product.stock > 0,
                Product.status == ProductStatus.OUT_OF_STOCK,
            )
            .values(status=ProductStatus.ACTIVE)
            .execution_options(synchronize_session=False)
        )
