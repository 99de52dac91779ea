"""Customer order schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

OrderStatusName = Literal["pending", "preparing", "served", "completed", "cancelled", "paid"]


class OrderSubmit(BaseModel):
    """Place the caller's cart for ``seat_id``.

    ``order_id`` continues an existing active parcel; leave it out to start
    a new parcel. Tables always append to their own active order.
    """

    seat_id: int = Field(..., ge=0)
    order_id: Optional[int] = None


class OrderItemResponse(BaseModel):
    id: int
    menu_item_id: Optional[int] = None
    quantity: int
    price: Decimal
    status: Literal["pending", "served"] = Field(validation_alias="effective_status")
    variant_name: Optional[str] = None
    notes: Optional[str] = None
    line_total: Decimal

    model_config = {"from_attributes": True, "populate_by_name": True}


class OrderResponse(BaseModel):
    id: int
    seat_id: int
    status: OrderStatusName
    created_at: datetime
    total_amount: Decimal
    waiter_id: Optional[str] = None
    waiter_name: Optional[str] = None
    parcel_number: Optional[int] = None
    is_parcel: bool
    items: List[OrderItemResponse] = []

    model_config = {"from_attributes": True}


class PlacementResponse(BaseModel):
    order: OrderResponse
    created: bool
    subtotal: Decimal
    stock_failures: List[Dict[str, Any]] = []
    seat_synced: bool = True


class TransitionResponse(BaseModel):
    order: OrderResponse
    seat_freed: bool = False
    order_cancelled: bool = False
    stock_failures: List[Dict[str, Any]] = []
