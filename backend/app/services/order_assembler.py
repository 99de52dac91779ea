"""Order Assembler - turns a cart and a target seat into a persisted order.

Placement sequence:
1. Refuse if the shop is closed or the cart is empty.
2. Resolve the target: the seat's active order for a table, the explicitly
   chosen parcel for seat 0, otherwise a new order (parcels get a number).
3. Insert one OrderItem per cart line at the resolved price and grow
   ``total_amount`` by the cart subtotal.
4. Reserve stock per inserted line (best-effort).
5. Mark the seat occupied (best-effort).
6. Clear the cart.

Steps 4 and 5 run after the order commit. Their failures are logged and
reported on the result, never rolled back into the order.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.core.errors import (
    GuardViolationError,
    InsufficientStockError,
    InvalidCartError,
    NotFoundError,
    ShopClosedError,
    TransientStoreError,
)
from app.db.base import utcnow
from app.db.session import store_call
from app.models.hotel import PARCEL_SEAT_ID, Hotel, Profile
from app.models.menu import MenuItem
from app.models.order import ACTIVE_STATUSES, ItemStatus, Order, OrderItem, OrderStatus
from app.services.cart import Cart, CartLine
from app.services.seat_occupancy import SeatOccupancy
from app.services.stock_ledger import StockLedger, ensure_fits, weighted_units

logger = logging.getLogger(__name__)


@dataclass
class PlacementResult:
    """Outcome of a submission."""

    order: Order
    created: bool
    subtotal: Decimal
    stock_failures: List[Dict[str, Any]] = field(default_factory=list)
    seat_synced: bool = True

    @property
    def touched_tables(self) -> List[str]:
        tables = ["orders", "order_items", "menu_items"]
        if self.seat_synced and not self.order.is_parcel:
            tables.append("seats")
        return tables


class OrderAssembler:
    """Places carts as orders for one hotel session."""

    def __init__(
        self,
        db: Session,
        ledger: Optional[StockLedger] = None,
        seats: Optional[SeatOccupancy] = None,
        clock: Callable = utcnow,
    ):
        self.db = db
        self.ledger = ledger or StockLedger(db)
        self.seats = seats or SeatOccupancy(db)
        self.clock = clock

    # ===== READS =====

    def find_active_order(self, hotel_id: str, seat_id: int) -> Optional[Order]:
        """The one active order of a physical table, if any."""
        if seat_id == PARCEL_SEAT_ID:
            return None
        return self.db.scalars(
            select(Order)
            .where(
                Order.hotel_id == hotel_id,
                Order.seat_id == seat_id,
                Order.status.in_(ACTIVE_STATUSES),
            )
            .order_by(Order.created_at.desc())
            .limit(1)
        ).first()

    def active_parcels(self, profile: Profile) -> List[Order]:
        """Parcels still open: every parcel for admins, otherwise only the caller's own."""
        query = (
            select(Order)
            .options(selectinload(Order.items))
            .where(
                Order.hotel_id == profile.hotel_id,
                Order.seat_id == PARCEL_SEAT_ID,
                Order.status.in_(ACTIVE_STATUSES),
            )
        )
        if not profile.is_admin:
            query = query.where(Order.waiter_id == profile.id)
        return list(self.db.scalars(query.order_by(Order.created_at, Order.id)))

    def next_parcel_number(self, hotel: Hotel) -> int:
        """Parcels created since the shop last opened, plus one."""
        query = select(func.count(Order.id)).where(
            Order.hotel_id == hotel.id,
            Order.seat_id == PARCEL_SEAT_ID,
        )
        if hotel.last_opened_at is not None:
            query = query.where(Order.created_at >= hotel.last_opened_at)
        return (self.db.scalar(query) or 0) + 1

    # ===== PLACEMENT =====

    def submit(self, cart: Cart, profile: Profile, order_id: Optional[int] = None) -> PlacementResult:
        """Place ``cart`` against its seat on behalf of ``profile``.

        ``order_id`` selects an existing active parcel to continue and is
        only meaningful for the parcel seat; tables always append to their
        own active order.
        """
        hotel = self.db.get(Hotel, profile.hotel_id)
        if hotel is None:
            raise NotFoundError("Hotel", profile.hotel_id)
        if not hotel.is_open:
            logger.info(f"Placement refused for hotel {hotel.id}: shop closed")
            raise ShopClosedError(hotel.name)
        if cart.is_empty:
            raise InvalidCartError("Cart is empty")

        seat_id = cart.seat_id
        if seat_id != PARCEL_SEAT_ID and self.seats.get_seat(hotel.id, seat_id) is None:
            raise NotFoundError("Table", seat_id)

        lines = cart.lines()
        menu = self._load_menu(hotel.id, {line.menu_item_id for line in lines})
        self._check_stock(lines, menu)
        subtotal = cart.compute_subtotal(menu)

        with store_call(self.db, "place order"):
            order = self._resolve_target(hotel, profile, seat_id, order_id)
            created = order is None
            now = self.clock()

            if created:
                order = Order(
                    hotel_id=hotel.id,
                    seat_id=seat_id,
                    status=OrderStatus.PENDING.value,
                    created_at=now,
                    total_amount=subtotal,
                    waiter_id=profile.id,
                    waiter_name=profile.display_name,
                    parcel_number=self.next_parcel_number(hotel) if seat_id == PARCEL_SEAT_ID else None,
                )
                self.db.add(order)
            else:
                # Read-then-write; a concurrent append can overwrite this sum
                order.total_amount = Decimal(str(order.total_amount or 0)) + subtotal

            new_items = []
            for line in lines:
                item = menu[line.menu_item_id]
                order_item = OrderItem(
                    menu_item_id=item.id,
                    quantity=line.quantity,
                    price=item.resolved_price(line.variant_name),
                    status=ItemStatus.PENDING.value,
                    variant_name=line.variant_name,
                    notes=line.note,
                    created_at=now,
                )
                order.items.append(order_item)
                new_items.append(order_item)

            self.db.commit()
            order_id = order.id
            placed = [(oi.menu_item_id, oi.quantity, oi.variant_name) for oi in new_items]

        logger.info(
            f"{'Created' if created else 'Appended to'} order {order_id} for seat {seat_id} "
            f"({len(placed)} line(s), subtotal {subtotal}) by {profile.username}"
        )

        stock_failures = self._reserve_lines(order_id, placed)
        seat_synced = self.seats.occupy(hotel.id, seat_id) if seat_id != PARCEL_SEAT_ID else True
        cart.clear()

        self.db.refresh(order)
        return PlacementResult(
            order=order,
            created=created,
            subtotal=subtotal,
            stock_failures=stock_failures,
            seat_synced=seat_synced,
        )

    # ===== HELPERS =====

    def _load_menu(self, hotel_id: str, menu_item_ids: Iterable[int]) -> Dict[int, MenuItem]:
        ids = set(menu_item_ids)
        with store_call(self.db, "load menu"):
            items = self.db.scalars(
                select(MenuItem).where(MenuItem.hotel_id == hotel_id, MenuItem.id.in_(ids))
            ).all()
        menu = {item.id: item for item in items}
        missing = sorted(ids - set(menu))
        if missing:
            raise InvalidCartError(
                "Some items in the cart are no longer on the menu",
                menu_item_ids=missing,
            )
        return menu

    def _check_stock(self, lines: List[CartLine], menu: Dict[int, MenuItem]) -> None:
        """Refuse up front when the cart alone would overdraw an item."""
        needed: Dict[int, Decimal] = defaultdict(Decimal)
        for line in lines:
            needed[line.menu_item_id] += weighted_units(line.quantity, line.variant_name)
        for menu_item_id, units in needed.items():
            ensure_fits(menu[menu_item_id], units)

    def _resolve_target(
        self, hotel: Hotel, profile: Profile, seat_id: int, order_id: Optional[int]
    ) -> Optional[Order]:
        if seat_id != PARCEL_SEAT_ID:
            return self.find_active_order(hotel.id, seat_id)
        if order_id is None:
            return None

        order = self.db.get(Order, order_id)
        if order is None or order.hotel_id != hotel.id or order.seat_id != PARCEL_SEAT_ID:
            raise NotFoundError("Parcel order", order_id)
        # Same scoping as active_parcels: staff may only continue their own
        if not profile.is_admin and order.waiter_id != profile.id:
            logger.info(f"Refused {profile.username} continuing parcel {order.id} of {order.waiter_name}")
            raise NotFoundError("Parcel order", order_id)
        if not order.is_active:
            raise GuardViolationError(
                f"Parcel #{order.parcel_number} is already {order.status}; start a new parcel",
                status=order.status,
            )
        return order

    def _reserve_lines(self, order_id: int, placed) -> List[Dict[str, Any]]:
        failures = []
        for menu_item_id, quantity, variant_name in placed:
            try:
                self.ledger.reserve_portions(menu_item_id, quantity, variant_name)
            except (InsufficientStockError, NotFoundError, TransientStoreError) as e:
                logger.warning(
                    f"Stock not reserved for order {order_id}, menu item {menu_item_id} "
                    f"x{quantity} ({variant_name or 'no variant'}): {e.message}"
                )
                failures.append({"menu_item_id": menu_item_id, "variant_name": variant_name, "detail": e.message})
        return failures
