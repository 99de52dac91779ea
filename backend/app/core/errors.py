"""Domain errors raised by the order and inventory services.

Each error carries the HTTP status and a stable ``code`` used by the single
exception handler in ``app.main``; ``extra`` holds the structured detail the
UI needs to render a precise message (for example the unserved item count).
"""

from decimal import Decimal
from typing import Any, Dict, Optional


class FloorError(Exception):
    """Base class for expected business outcomes."""

    status_code = 400
    code = "floor_error"

    def __init__(self, message: str, **extra: Any):
        self.message = message
        self.extra: Dict[str, Any] = extra
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code, **self.extra}


class ShopClosedError(FloorError):
    """Placement attempted while the hotel is closed."""

    status_code = 409
    code = "shop_closed"

    def __init__(self, hotel_name: str = ""):
        super().__init__("Orders cannot be placed while the shop is closed.", hotel=hotel_name)


class InsufficientStockError(FloorError):
    """A reservation (or cart increment) would drive stock negative."""

    status_code = 409
    code = "insufficient_stock"

    def __init__(self, item_name: str, menu_item_id: int, available: Decimal, needed: Decimal):
        self.item_name = item_name
        self.menu_item_id = menu_item_id
        self.available = available
        self.needed = needed
        super().__init__(
            f"Not enough stock available for {item_name}: need {needed}, have {available}",
            menu_item_id=menu_item_id,
            item_name=item_name,
            available=float(available),
            needed=float(needed),
        )


class InvalidCartError(FloorError):
    """Empty cart, or a cart line referencing a menu item that no longer exists."""

    status_code = 400
    code = "invalid_cart"


class GuardViolationError(FloorError):
    """A lifecycle transition was refused by its guard."""

    status_code = 409
    code = "guard_violation"

    def __init__(self, message: str, count: int = 0, status: Optional[str] = None):
        self.count = count
        super().__init__(message, count=count, status=status)


class NotFoundError(FloorError):
    """Operating on a row that no longer exists (e.g. cancelled by another device)."""

    status_code = 404
    code = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found", entity=entity, id=entity_id)


class TransientStoreError(FloorError):
    """Underlying store I/O failed. Retry is left to the user."""

    status_code = 503
    code = "store_unavailable"

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Failed to {action}, check connection.", action=action)


class ConflictError(FloorError):
    """A uniquely named row (username, slug) already exists."""

    status_code = 409
    code = "conflict"
