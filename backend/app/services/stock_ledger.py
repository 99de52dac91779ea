"""Stock Ledger - reserves and releases menu item inventory.

Stock is counted in raw units per menu item. A variant consumes a fraction
of a unit according to its portion weight:

    "Half ..."    -> 0.5
    "Quarter ..." -> 0.25
    "Full ..."    -> 1.0
    no variant / anything else -> 1.0

Both adjustments are single conditional UPDATE statements executed by the
store, never read-modify-write from Python, so two waiters racing for the
last portion cannot both succeed.
"""

import logging
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy import case, update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InsufficientStockError, NotFoundError
from app.db.session import store_call
from app.models.menu import MenuItem

logger = logging.getLogger(__name__)

Number = Union[int, float, Decimal]

ONE = Decimal("1")

# Checked in order; the first marker found in the lower-cased name wins
PORTION_WEIGHTS = (
    ("half", Decimal("0.5")),
    ("quarter", Decimal("0.25")),
    ("full", ONE),
)


def portion_weight(variant_name: Optional[str]) -> Decimal:
    """Fraction of one stock unit consumed by one unit of the given variant."""
    if not variant_name:
        return ONE
    name = variant_name.lower()
    for marker, weight in PORTION_WEIGHTS:
        if marker in name:
            return weight
    return ONE


def weighted_units(quantity: Number, variant_name: Optional[str]) -> Decimal:
    """Stock units consumed by ``quantity`` portions of a variant."""
    return Decimal(str(quantity)) * portion_weight(variant_name)


def ensure_fits(item: MenuItem, requested_units: Number) -> None:
    """Raise InsufficientStockError if ``requested_units`` exceeds current stock.

    A read-side check only: the count may change before the reservation, so
    ``StockLedger.reserve`` stays authoritative.
    """
    if not item.track_inventory:
        return
    requested = Decimal(str(requested_units))
    available = Decimal(str(item.stock_count or 0))
    if requested > available:
        raise InsufficientStockError(item.name, item.id, available=available, needed=requested)


class StockLedger:
    """Atomic stock adjustments for inventory-tracked menu items."""

    def __init__(self, db: Session, max_stock: Optional[Decimal] = None):
        self.db = db
        self.max_stock = max_stock if max_stock is not None else settings.max_stock_count

    def _get_item(self, menu_item_id: int) -> MenuItem:
        item = self.db.get(MenuItem, menu_item_id)
        if item is None:
            raise NotFoundError("Menu item", menu_item_id)
        return item

    def reserve(self, menu_item_id: int, quantity_units: Number) -> Optional[Decimal]:
        """Take ``quantity_units`` out of stock.

        Returns the remaining stock, or None for items without inventory
        tracking (nothing to reserve). Raises InsufficientStockError and
        leaves the count untouched if the decrement would go negative.
        """
        units = Decimal(str(quantity_units))
        if units <= 0:
            raise ValueError(f"quantity_units must be positive, got {quantity_units}")

        with store_call(self.db, "reserve stock"):
            item = self._get_item(menu_item_id)
            if not item.track_inventory:
                return None

            result = self.db.execute(
                update(MenuItem)
                .where(MenuItem.id == menu_item_id, MenuItem.stock_count >= units)
                .values(stock_count=MenuItem.stock_count - units)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                available = Decimal(str(item.stock_count or 0))
                logger.info(
                    f"Reservation refused for menu item {menu_item_id}: need {units}, have {available}"
                )
                raise InsufficientStockError(item.name, item.id, available=available, needed=units)

            self.db.commit()
            remaining = Decimal(str(item.stock_count))

        logger.debug(f"Reserved {units} of menu item {menu_item_id}, {remaining} left")
        return remaining

    def release(self, menu_item_id: int, quantity_units: Number) -> Optional[Decimal]:
        """Put ``quantity_units`` back into stock, capped at ``max_stock``.

        Returns the new stock, or None when the item is untracked. A menu
        item deleted since the order was placed is skipped silently.
        """
        units = Decimal(str(quantity_units))
        if units <= 0:
            raise ValueError(f"quantity_units must be positive, got {quantity_units}")

        with store_call(self.db, "release stock"):
            item = self.db.get(MenuItem, menu_item_id)
            if item is None:
                logger.info(f"Release skipped: menu item {menu_item_id} no longer exists")
                return None
            if not item.track_inventory:
                return None

            restocked = MenuItem.stock_count + units
            self.db.execute(
                update(MenuItem)
                .where(MenuItem.id == menu_item_id)
                .values(stock_count=case((restocked > self.max_stock, self.max_stock), else_=restocked))
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
            stock = Decimal(str(item.stock_count))

        logger.debug(f"Released {units} of menu item {menu_item_id}, stock now {stock}")
        return stock

    def reserve_portions(self, menu_item_id: int, quantity: int, variant_name: Optional[str]) -> Optional[Decimal]:
        return self.reserve(menu_item_id, weighted_units(quantity, variant_name))

    def release_portions(self, menu_item_id: int, quantity: int, variant_name: Optional[str]) -> Optional[Decimal]:
        return self.release(menu_item_id, weighted_units(quantity, variant_name))
