"""Customer order models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.db.base import Base, utcnow
from app.models.hotel import PARCEL_SEAT_ID
from app.models.validators import non_negative, one_of, positive


class OrderStatus(str, Enum):
    """Status of a customer order."""

    PENDING = "pending"
    PREPARING = "preparing"
    SERVED = "served"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    PAID = "paid"


class ItemStatus(str, Enum):
    """Status of a single order line."""

    PENDING = "pending"
    SERVED = "served"


# An active order holds its seat: not yet completed, cancelled or paid.
ACTIVE_STATUSES = (OrderStatus.PENDING.value, OrderStatus.PREPARING.value, OrderStatus.SERVED.value)

# Working views also show completed orders, which are waiting for payment.
OPEN_STATUSES = ACTIVE_STATUSES + (OrderStatus.COMPLETED.value,)

TERMINAL_STATUSES = (OrderStatus.CANCELLED.value, OrderStatus.PAID.value)


class Order(Base):
    """An order placed against a seat, or against the parcel sentinel."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    hotel_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # No foreign key: seat 0 is the parcel sentinel and need not exist as a row
    seat_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20), default=OrderStatus.PENDING.value, nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    # Denormalised at creation so reports survive staff account deletion
    waiter_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    waiter_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    parcel_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Relationships
    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    @validates("status")
    def _validate_status(self, key, value):
        return one_of(key, value, {s.value for s in OrderStatus})

    @validates("total_amount")
    def _validate_total(self, key, value):
        return non_negative(key, value)

    @property
    def is_parcel(self) -> bool:
        return self.seat_id == PARCEL_SEAT_ID

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def unserved_items(self) -> list["OrderItem"]:
        return [item for item in self.items if not item.is_served]


class OrderItem(Base):
    """A single menu line in an order, priced at the time it was ordered."""

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    menu_item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("menu_items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    # NULL is read as pending
    status: Mapped[Optional[str]] = mapped_column(String(20), default=ItemStatus.PENDING.value, nullable=True)
    variant_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    # Relationships
    order: Mapped["Order"] = relationship("Order", back_populates="items")
    menu_item: Mapped[Optional["MenuItem"]] = relationship("MenuItem", lazy="joined")

    @validates("quantity")
    def _validate_quantity(self, key, value):
        return positive(key, value)

    @validates("price")
    def _validate_price(self, key, value):
        return non_negative(key, value)

    @property
    def effective_status(self) -> str:
        return self.status or ItemStatus.PENDING.value

    @property
    def is_served(self) -> bool:
        return self.effective_status == ItemStatus.SERVED.value

    @property
    def line_total(self) -> Decimal:
        return Decimal(str(self.price)) * self.quantity


# Forward references
from app.models.menu import MenuItem  # noqa: E402
