"""Pure order/product state transitions.

Nothing here touches the database. Services load a snapshot, ask these
functions what the next state is, then persist the result with guarded
updates.
"""

import enum
from dataclasses import dataclass

from services.marketplace_service.models import OrderStatus, ProductStatus


def stock_status_after(stock: int, status: ProductStatus) -> ProductStatus:
    """Auto-demote/promote an availability status after a stock change.

    Deleted products stay deleted whatever their stock.
    """
    if status == ProductStatus.ACTIVE and stock == 0:
        return ProductStatus.OUT_OF_STOCK
    if status == ProductStatus.OUT_OF_STOCK and stock > 0:
        return ProductStatus.ACTIVE
    return status


class ReconcileOutcome(str, enum.Enum):
    NOOP = "noop"  # already resolved, webhook replay
    FULFIL = "fulfil"
    INSUFFICIENT_STOCK = "insufficient_stock"


@dataclass(frozen=True)
class Reconciliation:
    outcome: ReconcileOutcome
    order_status: OrderStatus
    product_stock: int
    product_status: ProductStatus


def reconcile_payment(
    *,
    order_status: OrderStatus,
    quantity: int,
    product_stock: int,
    product_status: ProductStatus,
) -> Reconciliation:
    """Decide what a confirmed payment does to an order and its product."""
    if order_status != OrderStatus.PENDING:
        return Reconciliation(
            ReconcileOutcome.NOOP, order_status, product_stock, product_status
        )

    if product_stock < quantity:
        return Reconciliation(
            ReconcileOutcome.INSUFFICIENT_STOCK,
            OrderStatus.FAILED,
            product_stock,
            product_status,
        )

    remaining = product_stock - quantity
    new_status = product_status
    if remaining == 0 and product_status == ProductStatus.ACTIVE:
        new_status = ProductStatus.OUT_OF_STOCK
    return Reconciliation(
        ReconcileOutcome.FULFIL, OrderStatus.SUCCESSFUL, remaining, new_status
    )


@dataclass(frozen=True)
class OwnerStatusChange:
    order_status: OrderStatus
    restores_stock: bool
    product_stock: int
    product_status: ProductStatus


def apply_owner_status(
    *,
    current: OrderStatus,
    target: OrderStatus,
    quantity: int,
    product_stock: int,
    product_status: ProductStatus,
) -> OwnerStatusChange:
    """Owner-driven status write.

    Any target is allowed. Only successful -> failed has a side effect: the
    sold quantity goes back on the shelf.
    """
    if current == OrderStatus.SUCCESSFUL and target == OrderStatus.FAILED:
        restored = product_stock + quantity
        new_status = product_status
        if product_status == ProductStatus.OUT_OF_STOCK and restored > 0:
            new_status = ProductStatus.ACTIVE
        return OwnerStatusChange(target, True, restored, new_status)

    return OwnerStatusChange(target, False, product_stock, product_status)
