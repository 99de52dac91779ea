"""Sales report routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Response, status

from app.core.rbac import RequireAdmin
from app.db.session import DbSession
from app.schemas.reports import SalesSummary
from app.services.reports_service import ReportsService

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _date_range(start: Optional[date], end: Optional[date]):
    end = end or date.today()
    start = start or end
    if end < start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end must not be before start",
        )
    return start, end


@router.get("/sales", response_model=SalesSummary)
def sales_summary(db: DbSession, admin: RequireAdmin, start: Optional[date] = None, end: Optional[date] = None):
    """Paid orders per day with tax, plus waiter and table rollups. Defaults to today."""
    start, end = _date_range(start, end)
    return ReportsService(db).sales_summary(admin.hotel_id, start, end)


@router.get("/sales.xlsx")
def sales_workbook(db: DbSession, admin: RequireAdmin, start: Optional[date] = None, end: Optional[date] = None):
    start, end = _date_range(start, end)
    content = ReportsService(db).sales_xlsx(admin.hotel_id, start, end)
    filename = f"sales_{start.isoformat()}_{end.isoformat()}.xlsx"
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
