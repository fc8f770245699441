"""Orders router: checkout, order history and owner status updates."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.rate_limit import checkout_limit
from services.marketplace_service.dependencies import (
    get_checkout_service,
    get_order_query_service,
    get_order_status_service,
)
from services.marketplace_service.models import OrderStatus
from services.marketplace_service.schemas import (
    CheckoutResponse,
    CreateOrderRequest,
    OrderResponse,
    UpdateOrderStatusRequest,
)
from services.marketplace_service.services import (
    CheckoutService,
    OrderQueryService,
    OrderStatusService,
)

router = APIRouter(prefix="/orders", tags=["orders"])


# ============================================================================
# CHECKOUT
# ============================================================================


@router.post(
    "", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED
)
@checkout_limit
async def create_order(
    request: Request,
    payload: CreateOrderRequest,
    current_user: AuthUser = Depends(get_current_user),
    service: CheckoutService = Depends(get_checkout_service),
):
    """Create a pending order and return the hosted checkout URL."""
    result = await service.create_order(
        buyer_id=current_user.user_id,
        product_id=payload.product_id,
        quantity=payload.quantity,
    )
    return CheckoutResponse(checkout_url=result.checkout_url, tx_ref=result.tx_ref)


# ============================================================================
# ORDERS
# ============================================================================


@router.get("/me", response_model=list[OrderResponse])
async def list_my_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    current_user: AuthUser = Depends(get_current_user),
    service: OrderQueryService = Depends(get_order_query_service),
):
    """List the caller's purchases, newest first."""
    return await service.list_buyer_orders(current_user.user_id, status_filter)


@router.get("/my-products", response_model=list[OrderResponse])
async def list_orders_for_my_products(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    current_user: AuthUser = Depends(get_current_user),
    service: OrderQueryService = Depends(get_order_query_service),
):
    """List orders placed against the caller's products, newest first."""
    return await service.list_owner_orders(current_user.user_id, status_filter)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    service: OrderQueryService = Depends(get_order_query_service),
):
    return await service.get_order(order_id, current_user.user_id)


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    payload: UpdateOrderStatusRequest,
    current_user: AuthUser = Depends(get_current_user),
    service: OrderStatusService = Depends(get_order_status_service),
):
    """Product owner override of an order's status."""
    return await service.update_status(order_id, current_user.user_id, payload.status)
