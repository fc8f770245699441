"""Checkout initiation: validate, record a pending order, open a hosted checkout."""

import logging
import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from libs.common.config import Settings
from libs.common.errors import InvalidState, NotFound, UpstreamFailure
from services.marketplace_service.chapa_client import ChapaError
from services.marketplace_service.models import (
    Order,
    OrderStatus,
    Product,
    ProductStatus,
    User,
)
from services.marketplace_service.services._helpers import commit_or_raise
from sqlalchemy.ext.asyncio import AsyncSession

CENTS = Decimal("0.01")
WEBHOOK_PATH = "/orders/verify"


@dataclass
class CheckoutResult:
    checkout_url: str
    tx_ref: str
    order_id: uuid.UUID


def order_total(price: Decimal, quantity: int) -> Decimal:
    """Price snapshot for an order, kept at storage precision."""
    return (Decimal(price) * quantity).quantize(CENTS, rounding=ROUND_HALF_UP)


class CheckoutService:
    """Creates orders and hands the buyer off to the payment gateway.

    No stock is reserved here. The order is written as ``pending`` before the
    gateway is called; stock is only debited once the webhook confirms
    payment.
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

    @property
    def callback_url(self) -> str:
        return f"{self.settings.CALLBACK_URL.rstrip('/')}{WEBHOOK_PATH}"

    async def create_order(
        self, buyer_id: uuid.UUID, product_id: uuid.UUID, quantity: int
    ) -> CheckoutResult:
        """Validate the purchase, persist a pending order and start checkout.

        Flow:
        1. Buyer and product must exist
        2. Product must be active with enough stock
        3. Insert the pending order with a fresh tx_ref
        4. Initialize the hosted checkout; on failure mark the order failed
        """
        buyer = await self.db.get(User, buyer_id)
        if not buyer:
            raise NotFound("User not found")

        product = await self.db.get(Product, product_id)
        if not product:
            self.logger.warning(
                "Product not found for order",
                extra={
                    "extra_fields": {
                        "product_id": str(product_id),
                        "buyer_id": str(buyer_id),
                    }
                },
            )
            raise NotFound("Product not found")

        self._ensure_purchasable(product, quantity, buyer_id)

        total_price = order_total(product.price, quantity)
        order = Order(
            buyer_id=buyer_id,
            product_id=product.id,
            quantity=quantity,
            total_price=total_price,
            tx_ref=Order.generate_tx_ref(),
            status=OrderStatus.PENDING,
        )
        self.db.add(order)
        await commit_or_raise(
            self.db,
            self.logger,
            "Failed to create order",
            buyer_id=str(buyer_id),
            product_id=str(product_id),
        )

        self.logger.info(
            "Order created",
            extra={
                "extra_fields": {
                    "order_id": str(order.id),
                    "tx_ref": order.tx_ref,
                    "product_id": str(product.id),
                    "quantity": quantity,
                    "total_price": str(total_price),
                }
            },
        )

        try:
            session = await self.gateway.initialize(
                first_name=buyer.first_name,
                last_name=buyer.last_name,
                email=buyer.email,
                amount=total_price,
                currency=self.settings.CHECKOUT_CURRENCY,
                tx_ref=order.tx_ref,
                callback_url=self.callback_url,
                title="Product order",
                description=f"Purchase of {quantity} {product.title}",
            )
            if not session or not session.checkout_url:
                raise ChapaError("Gateway returned no checkout URL")
        except Exception as e:
            await self._mark_failed(order, e)
            raise UpstreamFailure(
                "Could not process payment",
                order_id=str(order.id),
                tx_ref=order.tx_ref,
            ) from e

        return CheckoutResult(
            checkout_url=session.checkout_url,
            tx_ref=order.tx_ref,
            order_id=order.id,
        )

    def _ensure_purchasable(
        self, product: Product, quantity: int, buyer_id: uuid.UUID
    ) -> None:
        context = {
            "product_id": str(product.id),
            "buyer_id": str(buyer_id),
            "status": product.status.value,
        }
        if product.status == ProductStatus.DELETED:
            self.logger.warning(
                "Attempted to order deleted product", extra={"extra_fields": context}
            )
            raise InvalidState("Product is no longer available")

        if product.status != ProductStatus.ACTIVE:
            self.logger.warning(
                "Attempted to order non-active product",
                extra={"extra_fields": context},
            )
            raise InvalidState(
                f"Product is not available for purchase (status: {product.status.value})"
            )

        if product.stock < quantity:
            self.logger.warning(
                "Insufficient stock for order",
                extra={
                    "extra_fields": {
                        **context,
                        "requested": quantity,
                        "available": product.stock,
                    }
                },
            )
            raise InvalidState(
                f"Insufficient stock. Available: {product.stock}, Requested: {quantity}"
            )

    async def _mark_failed(self, order: Order, error: Exception) -> None:
        """Compensating write so no pending order is left without a payment."""
        order.status = OrderStatus.FAILED
        await commit_or_raise(
            self.db,
            self.logger,
            "Failed to mark order failed after payment init error",
            order_id=str(order.id),
        )
        self.logger.error(
            "Failed to initialize payment",
            extra={
                "extra_fields": {
                    "order_id": str(order.id),
                    "tx_ref": order.tx_ref,
                    "error": str(error),
                }
            },
        )
