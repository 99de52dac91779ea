"""SQLAlchemy models."""

from app.models.hotel import Hotel, Profile, ProfileRole, Seat, SeatStatus, PARCEL_SEAT_ID
from app.models.menu import Category, MenuItem
from app.models.order import (
    Order,
    OrderItem,
    OrderStatus,
    ItemStatus,
    ACTIVE_STATUSES,
    OPEN_STATUSES,
    TERMINAL_STATUSES,
)

__all__ = [
    "Hotel",
    "Profile",
    "ProfileRole",
    "Seat",
    "SeatStatus",
    "PARCEL_SEAT_ID",
    "Category",
    "MenuItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "ItemStatus",
    "ACTIVE_STATUSES",
    "OPEN_STATUSES",
    "TERMINAL_STATUSES",
]
