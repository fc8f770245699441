"""Marketplace service routers package."""

from services.marketplace_service.routers.orders import router as orders_router
from services.marketplace_service.routers.products import router as products_router
from services.marketplace_service.routers.webhooks import router as webhooks_router

__all__ = [
    "orders_router",
    "products_router",
    "webhooks_router",
]
