"""Menu schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class Variant(BaseModel):
    """A separately priced portion of an item, e.g. Half or Full."""

    name: str = Field(..., min_length=1, max_length=100)
    price: Decimal = Field(..., ge=0)


def _unique_variant_names(variants: Optional[List[Variant]]) -> Optional[List[Variant]]:
    if variants:
        names = [v.name for v in variants]
        if len(names) != len(set(names)):
            raise ValueError("Variant names must be unique")
    return variants


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    icon: Optional[str] = Field(default=None, max_length=10)


class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    icon: Optional[str] = None

    model_config = {"from_attributes": True}


class MenuItemCreate(BaseModel):
    """Items with variants take their default price from the first variant."""

    name: str = Field(..., min_length=1, max_length=200)
    price: Optional[Decimal] = Field(default=None, ge=0)
    category_id: Optional[int] = None
    is_veg: bool = True
    image_url: Optional[str] = Field(default=None, max_length=500)
    variants: Optional[List[Variant]] = None
    track_inventory: bool = False
    stock_count: Decimal = Field(default=Decimal("0"), ge=0)

    @field_validator("variants")
    @classmethod
    def check_variants(cls, v):
        return _unique_variant_names(v)

    @model_validator(mode="after")
    def require_price(self):
        if self.price is None and not self.variants:
            raise ValueError("Either price or at least one variant is required")
        return self


class MenuItemUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    price: Optional[Decimal] = Field(default=None, ge=0)
    category_id: Optional[int] = None
    is_veg: Optional[bool] = None
    image_url: Optional[str] = Field(default=None, max_length=500)
    variants: Optional[List[Variant]] = None
    track_inventory: Optional[bool] = None
    stock_count: Optional[Decimal] = Field(default=None, ge=0)

    @field_validator("variants")
    @classmethod
    def check_variants(cls, v):
        return _unique_variant_names(v)


class MenuItemResponse(BaseModel):
    id: int
    name: str
    price: Decimal
    category_id: Optional[int] = None
    is_veg: bool
    image_url: Optional[str] = None
    variants: Optional[List[Variant]] = None
    track_inventory: bool
    stock_count: Decimal
    available: bool
    updated_at: datetime

    model_config = {"from_attributes": True}


class RestockRequest(BaseModel):
    units: Decimal = Field(..., gt=0)


class MenuResponse(BaseModel):
    categories: List[CategoryResponse]
    items: List[MenuItemResponse]
