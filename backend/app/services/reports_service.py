"""Sales reporting over paid orders, with the flat tax rate applied."""

import io
import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import store_call
from app.models.hotel import PARCEL_SEAT_ID
from app.models.order import Order, OrderStatus

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def with_tax(subtotal: Decimal, tax_rate: Optional[Decimal] = None) -> Dict[str, Decimal]:
    rate = settings.tax_rate if tax_rate is None else tax_rate
    tax = money(subtotal * rate)
    return {"subtotal": money(subtotal), "tax": tax, "total": money(subtotal) + tax}


def seat_label(seat_id: int) -> str:
    return "Parcel" if seat_id == PARCEL_SEAT_ID else f"Table {seat_id}"


def _rollup(groups: Dict[str, List[Decimal]], key_name: str) -> List[Dict[str, Any]]:
    rows = [
        {key_name: key, "orders": len(amounts), "revenue": money(sum(amounts, Decimal("0")))}
        for key, amounts in groups.items()
    ]
    return sorted(rows, key=lambda row: row["revenue"], reverse=True)


class ReportsService:
    def __init__(self, db: Session, tax_rate: Optional[Decimal] = None):
        self.db = db
        self.tax_rate = settings.tax_rate if tax_rate is None else tax_rate

    def paid_orders(self, hotel_id: str, start: date, end: date) -> List[Order]:
        """Paid orders created between ``start`` and ``end``, both days inclusive."""
        with store_call(self.db, "load sales"):
            return list(
                self.db.scalars(
                    select(Order)
                    .where(
                        Order.hotel_id == hotel_id,
                        Order.status == OrderStatus.PAID.value,
                        Order.created_at >= datetime.combine(start, time.min),
                        Order.created_at < datetime.combine(end + timedelta(days=1), time.min),
                    )
                    .order_by(Order.created_at)
                )
            )

    def sales_summary(self, hotel_id: str, start: date, end: date) -> Dict[str, Any]:
        if end < start:
            raise ValueError("end date must not be before start date")

        orders = self.paid_orders(hotel_id, start, end)
        by_day: Dict[date, List[Decimal]] = defaultdict(list)
        by_waiter: Dict[str, List[Decimal]] = defaultdict(list)
        by_table: Dict[str, List[Decimal]] = defaultdict(list)

        for order in orders:
            amount = Decimal(str(order.total_amount or 0))
            by_day[order.created_at.date()].append(amount)
            by_waiter[order.waiter_name or "Unknown"].append(amount)
            by_table[seat_label(order.seat_id)].append(amount)

        days = [
            {"date": day, "orders": len(amounts), **with_tax(sum(amounts, Decimal("0")), self.tax_rate)}
            for day, amounts in sorted(by_day.items())
        ]
        subtotal = sum((Decimal(str(o.total_amount or 0)) for o in orders), Decimal("0"))

        return {
            "start": start,
            "end": end,
            "tax_rate": self.tax_rate,
            "order_count": len(orders),
            **with_tax(subtotal, self.tax_rate),
            "days": days,
            "by_waiter": _rollup(by_waiter, "waiter_name"),
            "by_table": _rollup(by_table, "table"),
        }

    def sales_xlsx(self, hotel_id: str, start: date, end: date) -> bytes:
        """Generate an Excel workbook of the sales summary."""
        summary = self.sales_summary(hotel_id, start, end)

        wb = Workbook()
        ws = wb.active
        ws.title = "Sales"

        # Styles
        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
        border = Border(
            left=Side(style="thin"),
            right=Side(style="thin"),
            top=Side(style="thin"),
            bottom=Side(style="thin"),
        )

        def header_row(row: int, headers: List[str]) -> None:
            for col, header in enumerate(headers, 1):
                cell = ws.cell(row=row, column=col, value=header)
                cell.font = header_font
                cell.fill = header_fill
                cell.border = border
                cell.alignment = Alignment(horizontal="center")

        ws["A1"] = f"Sales {start.isoformat()} to {end.isoformat()}"
        ws["A1"].font = Font(bold=True, size=14)
        ws.merge_cells("A1:E1")

        header_row(3, ["Date", "Orders", "Subtotal", "Tax", "Total"])
        row = 3
        for day in summary["days"]:
            row += 1
            values = [day["date"].isoformat(), day["orders"], float(day["subtotal"]), float(day["tax"]), float(day["total"])]
            for col, value in enumerate(values, 1):
                ws.cell(row=row, column=col, value=value).border = border

        row += 1
        ws.cell(row=row, column=1, value="Total").font = Font(bold=True)
        for col, key in ((2, "order_count"), (3, "subtotal"), (4, "tax"), (5, "total")):
            value = summary[key]
            ws.cell(row=row, column=col, value=value if key == "order_count" else float(value)).font = Font(bold=True)

        for title, rows, key in (("Waiter", summary["by_waiter"], "waiter_name"), ("Table", summary["by_table"], "table")):
            row += 2
            header_row(row, [title, "Orders", "Revenue"])
            for entry in rows:
                row += 1
                for col, value in enumerate([entry[key], entry["orders"], float(entry["revenue"])], 1):
                    ws.cell(row=row, column=col, value=value).border = border

        # Column widths
        ws.column_dimensions["A"].width = 20
        for letter in "BCDE":
            ws.column_dimensions[letter].width = 12

        buffer = io.BytesIO()
        wb.save(buffer)
        logger.info(f"Generated sales workbook for hotel {hotel_id}, {summary['order_count']} order(s)")
        return buffer.getvalue()
