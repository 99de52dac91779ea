"""Sales report schemas."""

from datetime import date
from decimal import Decimal
from typing import List

from pydantic import BaseModel


class SalesDay(BaseModel):
    date: date
    orders: int
    subtotal: Decimal
    tax: Decimal
    total: Decimal


class WaiterSales(BaseModel):
    waiter_name: str
    orders: int
    revenue: Decimal


class TableSales(BaseModel):
    table: str
    orders: int
    revenue: Decimal


class SalesSummary(BaseModel):
    start: date
    end: date
    tax_rate: Decimal
    order_count: int
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    days: List[SalesDay]
    by_waiter: List[WaiterSales]
    by_table: List[TableSales]
