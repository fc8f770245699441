"""
Model factories for creating valid test data.

Every factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs.

Usage:
    user = UserFactory.create(email="custom@test.com")
    db_session.add(user)
    await db_session.commit()
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _unique_email() -> str:
    return f"test-{uuid.uuid4().hex[:8]}@test.com"


# ---------------------------------------------------------------------------
# Marketplace Service
# ---------------------------------------------------------------------------


class UserFactory:
    @staticmethod
    def create(**overrides):
        from services.marketplace_service.models import User

        defaults = {
            "id": _uuid(),
            "first_name": "Abebe",
            "last_name": "Kebede",
            "email": _unique_email(),
            "created_at": _now(),
        }
        defaults.update(overrides)
        return User(**defaults)


class ProductFactory:
    @staticmethod
    def create(**overrides):
        from services.marketplace_service.models import Product, ProductStatus

        defaults = {
            "id": _uuid(),
            "title": "Handwoven Gabi",
            "description": "Cotton gabi from Dorze weavers",
            "price": Decimal("250.00"),
            "stock": 5,
            "status": ProductStatus.ACTIVE,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Product(**defaults)


class OrderFactory:
    @staticmethod
    def create(**overrides):
        from services.marketplace_service.models import Order, OrderStatus

        defaults = {
            "id": _uuid(),
            "quantity": 1,
            "total_price": Decimal("250.00"),
            "tx_ref": Order.generate_tx_ref(),
            "status": OrderStatus.PENDING,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Order(**defaults)


async def seed_listing(db, *, stock: int = 5, price: str = "250.00", **product_overrides):
    """Insert an owner, a buyer and one product owned by the owner."""
    owner = UserFactory.create(first_name="Owner")
    buyer = UserFactory.create(first_name="Buyer")
    product = ProductFactory.create(
        owner_id=owner.id,
        stock=stock,
        price=Decimal(price),
        **product_overrides,
    )
    db.add_all([owner, buyer])
    await db.flush()
    db.add(product)
    await db.commit()
    return owner, buyer, product
