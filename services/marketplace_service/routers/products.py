"""Product catalog router: public browsing and owner management."""

import uuid

from fastapi import APIRouter, Depends, Response, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from services.marketplace_service.dependencies import get_product_service
from services.marketplace_service.schemas import (
    ProductCreate,
    ProductResponse,
    ProductStatusResponse,
    ProductUpdate,
)
from services.marketplace_service.services import ProductService

router = APIRouter(prefix="/products", tags=["products"])


# ============================================================================
# PUBLIC
# ============================================================================


@router.get("", response_model=list[ProductResponse])
async def list_products(service: ProductService = Depends(get_product_service)):
    """List every product that has not been deleted."""
    return await service.list_products()


@router.get("/me", response_model=list[ProductResponse])
async def list_my_products(
    current_user: AuthUser = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
):
    return await service.list_owned_products(current_user.user_id)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: uuid.UUID,
    service: ProductService = Depends(get_product_service),
):
    """Public product page; only purchasable products are visible."""
    return await service.get_public_product(product_id)


@router.get("/{product_id}/status", response_model=ProductStatusResponse)
async def get_product_status(
    product_id: uuid.UUID,
    service: ProductService = Depends(get_product_service),
):
    return await service.get_product_status(product_id)


# ============================================================================
# OWNER
# ============================================================================


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreate,
    current_user: AuthUser = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
):
    return await service.create_product(current_user.user_id, payload)


@router.get("/{product_id}/manage", response_model=ProductResponse)
async def get_my_product(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
):
    """Owner view of a product, including out-of-stock ones."""
    return await service.get_owned_product(product_id, current_user.user_id)


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    current_user: AuthUser = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
):
    return await service.update_product(product_id, current_user.user_id, payload)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
):
    await service.delete_product(product_id, current_user.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
