"""Marketplace business logic, independent of the HTTP layer."""

from services.marketplace_service.services.checkout import (
    CheckoutResult,
    CheckoutService,
)
from services.marketplace_service.services.order_queries import OrderQueryService
from services.marketplace_service.services.order_status import OrderStatusService
from services.marketplace_service.services.product_ops import ProductService
from services.marketplace_service.services.verification import VerificationService

__all__ = [
    "CheckoutResult",
    "CheckoutService",
    "OrderQueryService",
    "OrderStatusService",
    "ProductService",
    "VerificationService",
]
