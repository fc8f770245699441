"""Marketplace Service models package."""

from services.marketplace_service.models.enums import OrderStatus, ProductStatus
from services.marketplace_service.models.order import Order
from services.marketplace_service.models.product import Product
from services.marketplace_service.models.user import User

__all__ = [
    "Order",
    "OrderStatus",
    "Product",
    "ProductStatus",
    "User",
]
