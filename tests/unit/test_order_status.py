"""Unit tests for owner status updates and order visibility."""

import logging
import uuid

import pytest
from libs.common.errors import Forbidden, NotFound
from services.marketplace_service.models import (
    Order,
    OrderStatus,
    Product,
    ProductStatus,
)
from services.marketplace_service.services import (
    OrderQueryService,
    OrderStatusService,
)
from sqlalchemy import update
from tests.factories import OrderFactory, UserFactory, seed_listing

logger = logging.getLogger("tests.orders")


async def _order(db, product, buyer, **overrides):
    order = OrderFactory.create(buyer_id=buyer.id, product_id=product.id, **overrides)
    db.add(order)
    await db.commit()
    return order


# ---------------------------------------------------------------------------
# OrderStatusService
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reverting_successful_order_restores_stock(db_session):
    owner, buyer, product = await seed_listing(db_session, stock=5)
    order = await _order(
        db_session, product, buyer, quantity=3, status=OrderStatus.SUCCESSFUL
    )

    updated = await OrderStatusService(db_session, logger=logger).update_status(
        order.id, owner.id, OrderStatus.FAILED
    )

    assert updated.status == OrderStatus.FAILED
    assert updated.product.stock == 8


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reverting_reactivates_out_of_stock_product(db_session):
    owner, buyer, product = await seed_listing(
        db_session, stock=0, status=ProductStatus.OUT_OF_STOCK
    )
    order = await _order(db_session, product, buyer, status=OrderStatus.SUCCESSFUL)

    updated = await OrderStatusService(db_session, logger=logger).update_status(
        order.id, owner.id, OrderStatus.FAILED
    )

    assert updated.product.stock == 1
    assert updated.product.status == ProductStatus.ACTIVE


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reverting_does_not_undelete_product(db_session):
    owner, buyer, product = await seed_listing(
        db_session, stock=0, status=ProductStatus.DELETED
    )
    order = await _order(db_session, product, buyer, status=OrderStatus.SUCCESSFUL)

    updated = await OrderStatusService(db_session, logger=logger).update_status(
        order.id, owner.id, OrderStatus.FAILED
    )

    assert updated.product.stock == 1
    assert updated.product.status == ProductStatus.DELETED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_other_transitions_leave_stock_alone(db_session):
    owner, buyer, product = await seed_listing(db_session, stock=4)
    order = await _order(db_session, product, buyer, quantity=2)

    updated = await OrderStatusService(db_session, logger=logger).update_status(
        order.id, owner.id, OrderStatus.SUCCESSFUL
    )

    assert updated.status == OrderStatus.SUCCESSFUL
    assert updated.product.stock == 4


@pytest.mark.asyncio
@pytest.mark.unit
async def test_concurrent_revert_restores_stock_once(db_session):
    """Two owner reverts of the same order: the one that loses the race is a no-op."""
    owner, buyer, product = await seed_listing(db_session, stock=5)
    order = await _order(
        db_session, product, buyer, quantity=3, status=OrderStatus.SUCCESSFUL
    )
    service = OrderStatusService(db_session, logger=logger)
    original_load = service._load
    calls = []

    async def load_then_race(order_id):
        loaded = await original_load(order_id)
        if not calls:
            # The other request commits its revert after our snapshot was taken
            await db_session.execute(
                update(Order)
                .where(Order.id == order_id)
                .values(status=OrderStatus.FAILED)
                .execution_options(synchronize_session=False)
            )
            await db_session.execute(
                update(Product)
                .where(Product.id == product.id)
                .values(stock=Product.stock + 3)
                .execution_options(synchronize_session=False)
            )
            await db_session.commit()
        calls.append(order_id)
        return loaded

    service._load = load_then_race

    updated = await service.update_status(order.id, owner.id, OrderStatus.FAILED)

    assert updated.status == OrderStatus.FAILED
    assert updated.product.stock == 8


@pytest.mark.asyncio
@pytest.mark.unit
async def test_only_owner_can_update_status(db_session):
    _, buyer, product = await seed_listing(db_session)
    order = await _order(db_session, product, buyer)

    with pytest.raises(Forbidden):
        await OrderStatusService(db_session, logger=logger).update_status(
            order.id, buyer.id, OrderStatus.SUCCESSFUL
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_status_unknown_order(db_session):
    with pytest.raises(NotFound):
        await OrderStatusService(db_session, logger=logger).update_status(
            uuid.uuid4(), uuid.uuid4(), OrderStatus.FAILED
        )


# ---------------------------------------------------------------------------
# OrderQueryService
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_get_order_visible_to_buyer_and_owner(db_session):
    owner, buyer, product = await seed_listing(db_session)
    order = await _order(db_session, product, buyer)
    service = OrderQueryService(db_session, logger=logger)

    assert (await service.get_order(order.id, buyer.id)).id == order.id
    assert (await service.get_order(order.id, owner.id)).id == order.id


@pytest.mark.asyncio
@pytest.mark.unit
async def test_get_order_forbidden_for_strangers(db_session):
    _, buyer, product = await seed_listing(db_session)
    order = await _order(db_session, product, buyer)
    stranger = UserFactory.create()
    db_session.add(stranger)
    await db_session.commit()

    with pytest.raises(Forbidden):
        await OrderQueryService(db_session, logger=logger).get_order(
            order.id, stranger.id
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_get_order_missing_is_not_found(db_session):
    with pytest.raises(NotFound):
        await OrderQueryService(db_session, logger=logger).get_order(
            uuid.uuid4(), uuid.uuid4()
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_owner_listing_includes_deleted_products(db_session):
    owner, buyer, product = await seed_listing(db_session)
    await _order(db_session, product, buyer, status=OrderStatus.SUCCESSFUL)
    await _order(db_session, product, buyer, status=OrderStatus.FAILED)
    product.status = ProductStatus.DELETED
    await db_session.commit()
    service = OrderQueryService(db_session, logger=logger)

    every = await service.list_owner_orders(owner.id)
    failed = await service.list_owner_orders(owner.id, OrderStatus.FAILED)

    assert len(every) == 2
    assert [o.status for o in failed] == [OrderStatus.FAILED]
    assert await service.list_owner_orders(buyer.id) == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_buyer_listing_filters_by_status(db_session):
    _, buyer, product = await seed_listing(db_session)
    await _order(db_session, product, buyer, status=OrderStatus.PENDING)
    await _order(db_session, product, buyer, status=OrderStatus.SUCCESSFUL)
    service = OrderQueryService(db_session, logger=logger)

    assert len(await service.list_buyer_orders(buyer.id)) == 2
    pending = await service.list_buyer_orders(buyer.id, OrderStatus.PENDING)
    assert [o.status for o in pending] == [OrderStatus.PENDING]
