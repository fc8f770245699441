"""Purchase attempts tied to a single product and payment transaction."""

import secrets
import string
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.marketplace_service.models.enums import OrderStatus, enum_values
from sqlalchemy import CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

TX_REF_PREFIX = "TX-"
TX_REF_ALPHABET = string.ascii_letters + string.digits


class Order(Base):
    """Orders.

    ``total_price`` is a snapshot taken at checkout and is never recomputed.
    ``tx_ref`` correlates the order with the gateway payment; it is unique and
    must not change once assigned.
    """

    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Weak reference: orders survive the loss of the buyer's account
    buyer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id"), nullable=False, index=True
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    tx_ref: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(
            OrderStatus,
            values_callable=enum_values,
            name="order_status_enum",
        ),
        default=OrderStatus.PENDING,
        server_default="pending",
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="positive_quantity"),
        Index("ix_orders_buyer_id_status", "buyer_id", "status"),
    )

    product = relationship("Product")
    buyer = relationship("User")

    @staticmethod
    def generate_tx_ref(size: int = 20) -> str:
        """Generate a transaction reference like TX-a1B2c3D4e5F6g7H8i9J0."""
        random_part = "".join(secrets.choice(TX_REF_ALPHABET) for _ in range(size))
        return f"{TX_REF_PREFIX}{random_part}"

    def __repr__(self):
        return f"<Order {self.tx_ref} status={self.status}>"
