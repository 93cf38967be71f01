from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.orm import Session

from ..core.config import settings
from ..db.session import get_db
from ..deps.auth import AuthContext, require_user
from ..schemas.summary import (
    AvailableMonthsOut,
    DayDetailOut,
    DaySummaryOut,
    MonthRef,
    MonthSummaryOut,
    MonthViewOut,
)
from ..services.summary import (
    day_detail,
    default_month,
    list_available_months,
    month_key,
    month_view,
    monthly_rows,
    parse_month_key,
)
from ..services.timecalc import local_date
from .api_tasks import serialize_task
from .api_workdays import serialize_workday

router = APIRouter(prefix="/api/v1/summary", tags=["summary"])


def _today() -> date:
    return local_date(datetime.now().astimezone(), settings.TZ)


def _ref(year: int, month: int) -> MonthRef:
    return MonthRef(year=year, month=month, key=month_key(year, month))


@router.get("/months", response_model=AvailableMonthsOut, summary="Months that have logged work")
def api_months(auth: AuthContext = Depends(require_user), db: Session = Depends(get_db)):
    months = list_available_months(db, auth.user_id)
    selected = default_month(months, _today())
    return AvailableMonthsOut(months=[_ref(y, m) for y, m in months], selected=_ref(*selected))


@router.get("/monthly", response_model=list[MonthSummaryOut], summary="Month-by-month totals")
def api_monthly(
    from_month: str = Query(..., description="YYYY-MM"),
    to_month: str | None = Query(default=None, description="YYYY-MM, defaults to from_month"),
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    try:
        first = parse_month_key(from_month)
        last = parse_month_key(to_month) if to_month else first
        rows = monthly_rows(db, auth.user_id, first, last)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return [row.as_dict() for row in rows]


@router.get("/days/{day}", response_model=DayDetailOut, summary="Sessions, tasks and hours of one day")
def api_day(day: date, auth: AuthContext = Depends(require_user), db: Session = Depends(get_db)):
    detail = day_detail(db, auth.user_id, day)
    return DayDetailOut(
        date=detail["date"],
        workdays=[serialize_workday(w) for w in detail["workdays"]],
        tasks=[serialize_task(t) for t in detail["tasks"]],
        hours=DaySummaryOut(**detail["hours"].as_dict()),
    )


@router.get("/{year}/{month}", response_model=MonthViewOut, summary="Calendar and totals for one month")
def api_month(
    year: int = Path(..., ge=1970, le=9999),
    month: int = Path(..., ge=1, le=12),
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    return month_view(db, auth.user_id, year, month, today=_today())
