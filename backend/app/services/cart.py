"""Cart Builder - pending selections for one seat visit, before submission.

The cart never touches stock or the store. It only accumulates
(menu item, variant) -> quantity plus per-line notes, and performs the
optimistic stock pre-check so a waiter cannot pile more portions into the
cart than the item currently has.
"""

import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterator, List, Mapping, NamedTuple, Optional, Tuple

from app.core.errors import InvalidCartError
from app.models.menu import MenuItem
from app.services.stock_ledger import ensure_fits, portion_weight, weighted_units


class CartKey(NamedTuple):
    """Structured cart key; variant names may contain any character."""

    menu_item_id: int
    variant_name: Optional[str] = None


@dataclass
class CartLine:
    key: CartKey
    quantity: int
    note: Optional[str] = None

    @property
    def menu_item_id(self) -> int:
        return self.key.menu_item_id

    @property
    def variant_name(self) -> Optional[str]:
        return self.key.variant_name


class Cart:
    """In-memory selection set for one seat."""

    def __init__(self, seat_id: int):
        self.seat_id = seat_id
        self._quantities: Dict[CartKey, int] = {}
        self._notes: Dict[CartKey, str] = {}

    def __len__(self) -> int:
        return len(self._quantities)

    def __iter__(self) -> Iterator[CartLine]:
        return iter(self.lines())

    @property
    def is_empty(self) -> bool:
        return not self._quantities

    def quantity(self, key: CartKey) -> int:
        return self._quantities.get(key, 0)

    def cart_weight(self, menu_item_id: int) -> Decimal:
        """Stock units already claimed in the cart by every variant of an item."""
        return sum(
            (qty * portion_weight(key.variant_name)
             for key, qty in self._quantities.items()
             if key.menu_item_id == menu_item_id),
            Decimal("0"),
        )

    def update_quantity(self, item: MenuItem, delta: int, variant_name: Optional[str] = None) -> int:
        """Adjust a line by ``delta`` and return its new quantity.

        Dropping to zero or below removes the line. Increases that would
        exceed the item's stock raise InsufficientStockError and leave the
        cart unchanged.
        """
        key = CartKey(item.id, variant_name or None)
        current = self._quantities.get(key, 0)
        if delta > 0:
            ensure_fits(item, self.cart_weight(item.id) + weighted_units(delta, key.variant_name))

        new_quantity = current + delta
        if new_quantity <= 0:
            self._quantities.pop(key, None)
            self._notes.pop(key, None)
            return 0
        self._quantities[key] = new_quantity
        return new_quantity

    def set_note(self, key: CartKey, text: Optional[str]) -> None:
        """Attach free text to a line. Blank text clears the note."""
        text = (text or "").strip()
        if text:
            self._notes[key] = text
        else:
            self._notes.pop(key, None)

    def note(self, key: CartKey) -> Optional[str]:
        return self._notes.get(key)

    def lines(self) -> List[CartLine]:
        return [
            CartLine(key=key, quantity=qty, note=self._notes.get(key))
            for key, qty in self._quantities.items()
        ]

    def compute_subtotal(self, menu: Mapping[int, MenuItem]) -> Decimal:
        """Sum of resolved price x quantity over every line."""
        subtotal = Decimal("0")
        for key, qty in self._quantities.items():
            item = menu.get(key.menu_item_id)
            if item is None:
                raise InvalidCartError(
                    f"Menu item {key.menu_item_id} is no longer on the menu",
                    menu_item_id=key.menu_item_id,
                )
            subtotal += item.resolved_price(key.variant_name) * qty
        return subtotal

    def clear(self) -> None:
        self._quantities.clear()
        self._notes.clear()


class CartRegistry:
    """Process-local carts, one per (hotel, staff member, seat) visit."""

    def __init__(self):
        self._carts: Dict[Tuple[str, str, int], Cart] = {}
        self._lock = threading.Lock()

    def get(self, hotel_id: str, profile_id: str, seat_id: int) -> Cart:
        with self._lock:
            key = (hotel_id, profile_id, seat_id)
            cart = self._carts.get(key)
            if cart is None:
                cart = self._carts[key] = Cart(seat_id)
            return cart

    def discard(self, hotel_id: str, profile_id: str, seat_id: int) -> None:
        with self._lock:
            self._carts.pop((hotel_id, profile_id, seat_id), None)

    def reset(self) -> None:
        with self._lock:
            self._carts.clear()


cart_registry = CartRegistry()
