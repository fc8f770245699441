"""Pydantic schemas for the marketplace service.

Fields are snake_case in Python and camelCase on the wire; input accepts
either form.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from services.marketplace_service.models import OrderStatus, ProductStatus


class APIModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ============================================================================
# PRODUCT SCHEMAS
# ============================================================================


class ProductCreate(APIModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    stock: int = Field(1, ge=0)


class ProductUpdate(APIModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    stock: Optional[int] = Field(None, ge=0)
    status: Optional[ProductStatus] = None


class ProductResponse(APIModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    description: str
    price: Decimal
    stock: int
    status: ProductStatus
    is_available: bool
    created_at: datetime
    updated_at: datetime


class ProductSummary(APIModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    price: Decimal
    status: ProductStatus


class ProductStatusResponse(APIModel):
    status: ProductStatus
    stock: int
    is_available: bool


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class CreateOrderRequest(APIModel):
    product_id: uuid.UUID
    quantity: int = Field(..., ge=1)


class CheckoutResponse(APIModel):
    checkout_url: str
    tx_ref: str


class UpdateOrderStatusRequest(APIModel):
    status: OrderStatus


class OrderResponse(APIModel):
    id: uuid.UUID
    buyer_id: Optional[uuid.UUID] = None
    product_id: uuid.UUID
    quantity: int
    total_price: Decimal
    tx_ref: str
    status: OrderStatus
    created_at: datetime
    updated_at: datetime
    product: Optional[ProductSummary] = None


class WebhookReceipt(APIModel):
    """Subset of the Chapa webhook body we read. Everything else is ignored."""

    model_config = ConfigDict(extra="ignore")

    tx_ref: str = Field(..., min_length=1, alias="tx_ref")
    status: Optional[str] = None
