"""Read-Model Refresh - authoritative views clients re-fetch after any change."""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.core.errors import NotFoundError
from app.db.session import store_call
from app.models.hotel import Seat
from app.models.menu import Category, MenuItem
from app.models.order import OPEN_STATUSES, Order, OrderStatus
from app.services.seat_occupancy import SeatOccupancy

logger = logging.getLogger(__name__)

KITCHEN_STATUSES = (OrderStatus.PENDING.value, OrderStatus.PREPARING.value)


class ReadModel:
    """Fetches seats, menu and open orders for one hotel."""

    def __init__(self, db: Session):
        self.db = db
        self.occupancy = SeatOccupancy(db)

    def seats(self, hotel_id: str, reconcile: bool = True) -> List[Seat]:
        """Seats with the parcel sentinel first, reconciled against active orders."""
        if reconcile:
            self.occupancy.reconcile(hotel_id)
        with store_call(self.db, "load tables"):
            return self.occupancy.list_seats(hotel_id)

    def categories(self, hotel_id: str) -> List[Category]:
        with store_call(self.db, "load categories"):
            return list(
                self.db.scalars(select(Category).where(Category.hotel_id == hotel_id).order_by(Category.name))
            )

    def menu_items(self, hotel_id: str) -> List[MenuItem]:
        """Every item, sold-out ones included; callers filter on ``available``."""
        with store_call(self.db, "load menu"):
            return list(
                self.db.scalars(select(MenuItem).where(MenuItem.hotel_id == hotel_id).order_by(MenuItem.name))
            )

    def open_orders(self, hotel_id: str) -> List[Order]:
        """Active orders plus completed ones awaiting payment, newest first."""
        with store_call(self.db, "load orders"):
            return list(
                self.db.scalars(
                    select(Order)
                    .options(selectinload(Order.items))
                    .where(Order.hotel_id == hotel_id, Order.status.in_(OPEN_STATUSES))
                    .order_by(Order.created_at.desc(), Order.id.desc())
                )
            )

    def kitchen_queue(self, hotel_id: str) -> List[Order]:
        """Orders still cooking, or served with items appended since, oldest first."""
        queue = [
            order for order in self.open_orders(hotel_id)
            if order.status in KITCHEN_STATUSES
            or (order.status == OrderStatus.SERVED.value and order.unserved_items)
        ]
        return list(reversed(queue))

    def order(self, hotel_id: str, order_id: int) -> Order:
        with store_call(self.db, "load order"):
            order = self.db.scalars(
                select(Order)
                .options(selectinload(Order.items))
                .where(Order.id == order_id, Order.hotel_id == hotel_id)
            ).first()
        if order is None:
            raise NotFoundError("Order", order_id)
        return order
