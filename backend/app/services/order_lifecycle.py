"""Order Lifecycle - status transitions after placement.

    pending/preparing --serve--> served --close--> completed --pay--> paid
    any active order --cancel--> cancelled (guarded)
    removing the last item of an active order cancels it

Every transition commits the order write first, then frees the seat and
releases stock as separate best-effort steps.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.core.errors import GuardViolationError, NotFoundError, TransientStoreError
from app.db.session import store_call
from app.models.order import ItemStatus, Order, OrderItem, OrderStatus
from app.services.seat_occupancy import SeatOccupancy
from app.services.stock_ledger import StockLedger

logger = logging.getLogger(__name__)

UNSERVED_STATUSES = (OrderStatus.PENDING.value, OrderStatus.PREPARING.value)


@dataclass
class TransitionResult:
    """Outcome of a lifecycle transition, with what it touched."""

    order: Order
    seat_freed: bool = False
    order_cancelled: bool = False
    stock_failures: List[Dict[str, Any]] = field(default_factory=list)
    touched_tables: List[str] = field(default_factory=lambda: ["orders"])


class OrderLifecycle:
    """Status transitions for the orders of one hotel."""

    def __init__(
        self,
        db: Session,
        ledger: Optional[StockLedger] = None,
        seats: Optional[SeatOccupancy] = None,
    ):
        self.db = db
        self.ledger = ledger or StockLedger(db)
        self.seats = seats or SeatOccupancy(db)

    def get_order(self, hotel_id: str, order_id: int) -> Order:
        order = self.db.scalars(
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.id == order_id, Order.hotel_id == hotel_id)
        ).first()
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def _get_item(self, order: Order, item_id: int) -> OrderItem:
        for item in order.items:
            if item.id == item_id:
                return item
        raise NotFoundError("Order item", item_id)

    def _require_active(self, order: Order, action: str) -> None:
        if not order.is_active:
            logger.info(f"Refused to {action} order {order.id}: status is {order.status}")
            raise GuardViolationError(
                f"Order #{order.id} is {order.status} and can no longer be changed",
                status=order.status,
            )

    def recompute_status(self, order: Order) -> bool:
        """Promote an unserved order to served once every item is served.

        Returns True if the status changed. The caller commits.
        """
        if order.status not in UNSERVED_STATUSES or not order.items:
            return False
        if order.unserved_items:
            return False
        order.status = OrderStatus.SERVED.value
        logger.info(f"Order {order.id} auto-promoted to served")
        return True

    # ===== SERVING =====

    def mark_item_served(self, hotel_id: str, order_id: int, item_id: int) -> TransitionResult:
        order = self.get_order(hotel_id, order_id)
        self._require_active(order, "serve an item of")
        item = self._get_item(order, item_id)

        with store_call(self.db, "update item status"):
            item.status = ItemStatus.SERVED.value
            self.recompute_status(order)
            self.db.commit()

        return TransitionResult(order=order, touched_tables=["order_items", "orders"])

    def mark_served(self, hotel_id: str, order_id: int) -> TransitionResult:
        """Serve the order and force every item to served."""
        order = self.get_order(hotel_id, order_id)
        self._require_active(order, "serve")

        with store_call(self.db, "update order status"):
            order.status = OrderStatus.SERVED.value
            for item in order.items:
                item.status = ItemStatus.SERVED.value
            self.db.commit()

        return TransitionResult(order=order, touched_tables=["orders", "order_items"])

    # ===== BILLING =====

    def close(self, hotel_id: str, order_id: int) -> TransitionResult:
        """Complete a fully served order and free its seat. Stock is kept."""
        order = self.get_order(hotel_id, order_id)
        self._require_active(order, "close")

        if not order.items:
            raise GuardViolationError(
                "An order without items cannot be closed; cancel it instead", count=0, status=order.status
            )
        unserved = len(order.unserved_items)
        if unserved:
            logger.info(f"Refused to close order {order.id}: {unserved} unserved item(s)")
            raise GuardViolationError(
                f"{unserved} item(s) not served yet. Serve all items before closing.",
                count=unserved,
                status=order.status,
            )

        with store_call(self.db, "close order"):
            order.status = OrderStatus.COMPLETED.value
            self.db.commit()

        seat_freed = self.seats.free(order.hotel_id, order.seat_id) if not order.is_parcel else False
        logger.info(f"Order {order.id} completed")
        return TransitionResult(order=order, seat_freed=seat_freed, touched_tables=["orders", "seats"])

    def mark_paid(self, hotel_id: str, order_id: int) -> TransitionResult:
        order = self.get_order(hotel_id, order_id)
        if order.status != OrderStatus.COMPLETED.value:
            raise GuardViolationError(
                f"Only completed orders can be paid; order #{order.id} is {order.status}",
                status=order.status,
            )

        with store_call(self.db, "mark order paid"):
            order.status = OrderStatus.PAID.value
            self.db.commit()

        logger.info(f"Order {order.id} paid")
        return TransitionResult(order=order)

    # ===== CANCELLATION =====

    def cancel(self, hotel_id: str, order_id: int) -> TransitionResult:
        """Cancel an order with no unserved items, free its seat and release its stock."""
        order = self.get_order(hotel_id, order_id)
        self._require_active(order, "cancel")

        unserved = len(order.unserved_items)
        if unserved:
            logger.info(f"Refused to cancel order {order.id}: {unserved} unserved item(s)")
            raise GuardViolationError(
                f"{unserved} item(s) still pending. Remove them individually before cancelling.",
                count=unserved,
                status=order.status,
            )
        if order.status == OrderStatus.SERVED.value and order.items:
            raise GuardViolationError(
                "A served order with items cannot be cancelled; remove its items first",
                count=len(order.items),
                status=order.status,
            )

        return self._cancel(order)

    def cancel_item(self, hotel_id: str, order_id: int, item_id: int) -> TransitionResult:
        """Remove one line and release its stock.

        Removing the last line cancels the order and frees its seat.
        """
        order = self.get_order(hotel_id, order_id)
        self._require_active(order, "remove an item from")
        item = self._get_item(order, item_id)
        released = [(item.menu_item_id, item.quantity, item.variant_name)]

        with store_call(self.db, "remove item"):
            order.items.remove(item)
            order.total_amount = max(Decimal(str(order.total_amount)) - item.line_total, Decimal("0"))
            self.db.commit()

        logger.info(f"Removed item {item_id} from order {order.id}")
        stock_failures = self._release(order.id, released)

        if order.items:
            return TransitionResult(
                order=order,
                stock_failures=stock_failures,
                touched_tables=["order_items", "orders", "menu_items"],
            )

        result = self._cancel(order)
        result.stock_failures = stock_failures + result.stock_failures
        return result

    def _cancel(self, order: Order) -> TransitionResult:
        released = [(oi.menu_item_id, oi.quantity, oi.variant_name) for oi in order.items]

        with store_call(self.db, "cancel order"):
            order.status = OrderStatus.CANCELLED.value
            self.db.commit()

        logger.info(f"Order {order.id} cancelled")
        stock_failures = self._release(order.id, released)
        seat_freed = self.seats.free(order.hotel_id, order.seat_id) if not order.is_parcel else False
        return TransitionResult(
            order=order,
            seat_freed=seat_freed,
            order_cancelled=True,
            stock_failures=stock_failures,
            touched_tables=["orders", "order_items", "seats", "menu_items"],
        )

    def _release(self, order_id: int, lines) -> List[Dict[str, Any]]:
        failures = []
        for menu_item_id, quantity, variant_name in lines:
            if menu_item_id is None:
                continue
            try:
                self.ledger.release_portions(menu_item_id, quantity, variant_name)
            except TransientStoreError as e:
                logger.warning(f"Stock not released for order {order_id}, menu item {menu_item_id}: {e.message}")
                failures.append({"menu_item_id": menu_item_id, "variant_name": variant_name, "detail": e.message})
        return failures
