"""FastAPI providers that build services with their collaborators.

Settings, loggers and the payment gateway are passed in explicitly so tests
can swap any of them through ``app.dependency_overrides``.
"""

from fastapi import Depends
from libs.common.config import Settings, get_settings
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.marketplace_service.chapa_client import ChapaClient
from services.marketplace_service.services import (
    CheckoutService,
    OrderQueryService,
    OrderStatusService,
    ProductService,
    VerificationService,
)
from sqlalchemy.ext.asyncio import AsyncSession

SERVICE_LOGGER = "services.marketplace_service"


def get_payment_gateway(settings: Settings = Depends(get_settings)) -> ChapaClient:
    return ChapaClient.from_settings(
        settings, logger=get_logger(f"{SERVICE_LOGGER}.chapa")
    )


def get_product_service(db: AsyncSession = Depends(get_async_db)) -> ProductService:
    return ProductService(db, logger=get_logger(f"{SERVICE_LOGGER}.products"))


def get_checkout_service(
    db: AsyncSession = Depends(get_async_db),
    gateway: ChapaClient = Depends(get_payment_gateway),
    settings: Settings = Depends(get_settings),
) -> CheckoutService:
    return CheckoutService(
        db,
        gateway,
        settings=settings,
        logger=get_logger(f"{SERVICE_LOGGER}.checkout"),
    )


def get_verification_service(
    db: AsyncSession = Depends(get_async_db),
    gateway: ChapaClient = Depends(get_payment_gateway),
    settings: Settings = Depends(get_settings),
) -> VerificationService:
    return VerificationService(
        db,
        gateway,
        settings=settings,
        logger=get_logger(f"{SERVICE_LOGGER}.verification"),
    )


def get_order_status_service(
    db: AsyncSession = Depends(get_async_db),
) -> OrderStatusService:
    return OrderStatusService(db, logger=get_logger(f"{SERVICE_LOGGER}.orders"))


def get_order_query_service(
    db: AsyncSession = Depends(get_async_db),
) -> OrderQueryService:
    return OrderQueryService(db, logger=get_logger(f"{SERVICE_LOGGER}.orders"))
