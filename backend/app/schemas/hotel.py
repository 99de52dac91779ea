"""Hotel, seat and staff schemas."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

RoleName = Literal["admin", "waiter", "kitchen"]


class HotelResponse(BaseModel):
    id: str
    name: str
    slug: str
    is_open: bool
    last_opened_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ProfileResponse(BaseModel):
    id: str
    hotel_id: str
    role: RoleName
    full_name: str
    username: str

    model_config = {"from_attributes": True}


class SeatResponse(BaseModel):
    id: int
    status: Literal["available", "occupied"]
    is_parcel: bool

    model_config = {"from_attributes": True}


class ShopStatusRequest(BaseModel):
    """Omit ``is_open`` to flip the current state."""

    is_open: Optional[bool] = None


class TableCountRequest(BaseModel):
    count: int = Field(..., ge=0, le=500)


class TableCountResponse(BaseModel):
    created: List[int]
    removed: List[int]
    kept_occupied: List[int]


class ReconcileResponse(BaseModel):
    corrected: dict[int, str]


class StaffCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=200)
    password: str = Field(..., min_length=6, max_length=128)
    full_name: str = Field("", max_length=200)
    role: RoleName = "waiter"


class StaffRepair(BaseModel):
    username: str = Field(..., min_length=3, max_length=200)
    full_name: Optional[str] = Field(default=None, max_length=200)
    role: Optional[RoleName] = None
    password: Optional[str] = Field(default=None, min_length=6, max_length=128)
