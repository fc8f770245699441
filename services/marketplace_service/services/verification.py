"""Webhook-driven payment verification and stock reconciliation."""

import json
import logging

from libs.common.config import Settings
from libs.common.errors import (
    InvalidSignature,
    InvalidState,
    NotFound,
    PaymentNotConfirmed,
    UpstreamFailure,
)
from pydantic import ValidationError
from services.marketplace_service.chapa_client import (
    ChapaError,
    verify_webhook_signature,
)
from services.marketplace_service.models import Order, OrderStatus
from services.marketplace_service.schemas import WebhookReceipt
from services.marketplace_service.services._helpers import commit_or_raise
from services.marketplace_service.services.product_ops import ProductService
from services.marketplace_service.services.transitions import (
    ReconcileOutcome,
    reconcile_payment,
)
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload


class VerificationService:
    """Turns a signed gateway notification into a final order status.

    Safe to call repeatedly for the same transaction: once an order has left
    ``pending`` it is returned as-is.
    """

    def __init__(
        self,
        db: AsyncSession,
        gateway,
        *,
        settings: Settings,
        logger: logging.Logger,
    ):
        self.db = db
        self.gateway = gateway
        self.settings = settings
        self.logger = logger
        self.products = ProductService(db, logger=logger)

    def authenticate(self, raw_body: bytes, signature: str | None) -> WebhookReceipt:
        """Check the HMAC over the exact raw body, then parse it."""
        if not verify_webhook_signature(
            self.settings.CHAPA_WEBHOOK_SECRET, raw_body, signature or ""
        ):
            self.logger.warning("Webhook rejected: invalid signature")
            raise InvalidSignature("Invalid Chapa signature")

        try:
            payload = json.loads(raw_body.decode("utf-8") or "{}")
            return WebhookReceipt.model_validate(payload)
        except (ValueError, ValidationError):
            raise InvalidState("Webhook payload has no transaction reference")

    async def handle_webhook(self, raw_body: bytes, signature: str | None) -> Order:
        receipt = self.authenticate(raw_body, signature)
        return await self.verify_payment(receipt.tx_ref)

    async def verify_payment(self, tx_ref: str) -> Order:
        """Confirm payment with the gateway and settle the order.

        1. Ask the gateway for the transaction status (never trust the payload)
        2. Load the order; already-resolved orders are returned unchanged
        3. Debit stock if it is still there, else fail the order
        """
        try:
            verification = await self.gateway.verify(tx_ref)
        except ChapaError as e:
            raise UpstreamFailure(
                "Payment provider error", tx_ref=tx_ref, error=e.message
            ) from e

        if not verification.is_successful:
            self.logger.warning(
                "Payment verification failed",
                extra={
                    "extra_fields": {"tx_ref": tx_ref, "status": verification.status}
                },
            )
            raise PaymentNotConfirmed("Payment verification failed")

        order = await self._load_order(verification.tx_ref or tx_ref)
        if not order:
            self.logger.warning(
                "Order not found for tx_ref", extra={"extra_fields": {"tx_ref": tx_ref}}
            )
            raise NotFound("Order not found")

        tx_ref = order.tx_ref
        product = order.product
        await self.db.refresh(product)
        plan = reconcile_payment(
            order_status=order.status,
            quantity=order.quantity,
            product_stock=product.stock,
            product_status=product.status,
        )

        if plan.outcome == ReconcileOutcome.NOOP:
            self.logger.info(
                "Order already processed",
                extra={
                    "extra_fields": {
                        "tx_ref": order.tx_ref,
                        "status": order.status.value,
                    }
                },
            )
            return order

        if plan.outcome == ReconcileOutcome.FULFIL and await self.products.debit_stock(
            product.id, order.quantity
        ):
            if not await self._resolve(order, OrderStatus.SUCCESSFUL):
                # Lost a race with another delivery of the same webhook
                await self.db.rollback()
                return await self._reload(tx_ref)

            await commit_or_raise(
                self.db,
                self.logger,
                "Failed to complete order verification",
                order_id=str(order.id),
                tx_ref=tx_ref,
            )
            order = await self._reload(tx_ref)
            self.logger.info(
                "Order verified and completed",
                extra={
                    "extra_fields": {
                        "order_id": str(order.id),
                        "tx_ref": order.tx_ref,
                        "product_id": str(product.id),
                        "new_stock": order.product.stock,
                    }
                },
            )
            return order

        return await self._fail_for_stock(order, tx_ref)

    async def _fail_for_stock(self, order: Order, tx_ref: str) -> Order:
        if not await self._resolve(order, OrderStatus.FAILED):
            await self.db.rollback()
            return await self._reload(tx_ref)

        await commit_or_raise(
            self.db,
            self.logger,
            "Failed to record stock shortfall",
            order_id=str(order.id),
            tx_ref=tx_ref,
        )
        order = await self._reload(tx_ref)
        self.logger.warning(
            "Insufficient stock during verification; manual refund required",
            extra={
                "extra_fields": {
                    "order_id": str(order.id),
                    "tx_ref": order.tx_ref,
                    "required": order.quantity,
                    "available": order.product.stock,
                }
            },
        )
        raise InvalidState(
            "Insufficient stock to complete order. Payment will be refunded.",
            order_id=str(order.id),
        )

    async def _resolve(self, order: Order, status: OrderStatus) -> bool:
        """Move a pending order to ``status``; False if it already moved."""
        result = await self.db.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == OrderStatus.PENDING)
            .values(status=status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def _load_order(self, tx_ref: str) -> Order | None:
        result = await self.db.execute(
            select(Order)
            .where(Order.tx_ref == tx_ref)
            .options(selectinload(Order.product))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _reload(self, tx_ref: str) -> Order:
        order = await self._load_order(tx_ref)
        await self.db.refresh(order.product)
        return order
