"""Cart schemas."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class CartItemChange(BaseModel):
    """Add (positive delta) or remove (negative delta) portions of a line."""

    menu_item_id: int
    delta: int = Field(..., ge=-100, le=100)
    variant_name: Optional[str] = Field(default=None, max_length=100)

    @field_validator("delta")
    @classmethod
    def non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("delta must not be zero")
        return v


class CartNoteRequest(BaseModel):
    menu_item_id: int
    variant_name: Optional[str] = Field(default=None, max_length=100)
    note: Optional[str] = Field(default=None, max_length=1000)


class CartLineResponse(BaseModel):
    menu_item_id: int
    variant_name: Optional[str] = None
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    note: Optional[str] = None


class CartResponse(BaseModel):
    seat_id: int
    lines: List[CartLineResponse]
    subtotal: Decimal
