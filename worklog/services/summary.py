"""Daily aggregation, monthly roll-ups and the calendar view."""

from __future__ import annotations

import calendar
from dataclasses import asdict, dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..core.config import settings
from ..models.task_log import TaskLog
from ..models.work_log import WorkLog
from .timecalc import (
    BaseWindow,
    as_interval,
    calculate_call_hours,
    calculate_task_hours_by_date,
    calculate_work_hours_by_date,
    default_window,
    hours_to_hm,
    local_date,
    local_date_key,
    to_storage_iso,
)

SIXTY = Decimal(60)


@dataclass
class DaySummary:
    base_hours: float = 0.0
    overtime_hours: float = 0.0
    call_hours: float = 0.0
    task_hours: float = 0.0

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class MonthSummary:
    month: str
    base_hours: float
    overtime_hours: float
    grand_total: float
    task_hours: float
    call_hours: float

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = asdict(self)
        payload["display"] = {
            key: hours_to_hm(payload[key])
            for key in ("base_hours", "overtime_hours", "grand_total", "task_hours", "call_hours")
        }
        return payload


@dataclass(frozen=True)
class CalendarDay:
    date: str
    day: int
    in_month: bool
    is_today: bool
    has_base: bool
    has_overtime: bool
    has_call: bool


def _zone(tz: str | ZoneInfo | None) -> ZoneInfo:
    if isinstance(tz, ZoneInfo):
        return tz
    return ZoneInfo(tz or settings.TZ)


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def parse_month_key(value: str) -> tuple[int, int]:
    try:
        year_s, month_s = value.split("-", 1)
        year, month = int(year_s), int(month_s)
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"'{value}' is not a YYYY-MM month") from exc
    if not 1 <= month <= 12:
        raise ValueError(f"'{value}' is not a YYYY-MM month")
    return year, month


def _next_month(year: int, month: int) -> tuple[int, int]:
    return (year + 1, 1) if month == 12 else (year, month + 1)


def month_bounds(year: int, month: int, tz: str | ZoneInfo | None = None) -> tuple[str, str]:
    """Storage-format bounds ``[start, end)`` of a local calendar month."""

    zone = _zone(tz)
    ny, nm = _next_month(year, month)
    start = datetime(year, month, 1, tzinfo=zone)
    end = datetime(ny, nm, 1, tzinfo=zone)
    return to_storage_iso(start), to_storage_iso(end)


def day_bounds(day: date, tz: str | ZoneInfo | None = None) -> tuple[str, str]:
    zone = _zone(tz)
    start = datetime(day.year, day.month, day.day, tzinfo=zone)
    following = date.fromordinal(day.toordinal() + 1)
    end = datetime(following.year, following.month, following.day, tzinfo=zone)
    return to_storage_iso(start), to_storage_iso(end)


def aggregate_days(
    work_logs: Iterable[Any],
    task_logs: Iterable[Any],
    window: BaseWindow | None = None,
    tz: str | ZoneInfo | None = None,
) -> dict[str, DaySummary]:
    """Bucket sessions, tasks and on-call intervals per local calendar day.

    Each interval is attributed entirely to the day it started on.
    """
    window = window or default_window()
    work = calculate_work_hours_by_date(work_logs, window, tz)

    tasks = [as_interval(item) for item in task_logs]
    task_hours = calculate_task_hours_by_date(tasks, tz)

    calls_by_day: dict[str, list[Any]] = {}
    for interval in tasks:
        if not interval.is_call or not interval.start or not interval.end:
            continue
        calls_by_day.setdefault(local_date_key(interval.start, tz), []).append(interval)

    days: dict[str, DaySummary] = {}
    for day in sorted(set(work) | set(task_hours) | set(calls_by_day)):
        hours = work.get(day)
        days[day] = DaySummary(
            base_hours=hours.base_hours if hours else 0.0,
            overtime_hours=hours.overtime_hours if hours else 0.0,
            call_hours=calculate_call_hours(calls_by_day.get(day, []), tz),
            task_hours=task_hours.get(day, 0.0),
        )
    return days


def _minutes(hours: float) -> int:
    return int((Decimal(str(hours or 0)) * SIXTY).to_integral_value())


def roll_up_months(days: Mapping[str, DaySummary]) -> list[MonthSummary]:
    """Sum daily buckets per ``YYYY-MM``; totals are accumulated in minutes."""

    by_month: dict[str, dict[str, int]] = {}
    for day, summary in days.items():
        bucket = by_month.setdefault(day[:7], {"base": 0, "over": 0, "task": 0, "call": 0})
        bucket["base"] += _minutes(summary.base_hours)
        bucket["over"] += _minutes(summary.overtime_hours)
        bucket["task"] += _minutes(summary.task_hours)
        bucket["call"] += _minutes(summary.call_hours)

    rows: list[MonthSummary] = []
    for month in sorted(by_month):
        bucket = by_month[month]
        rows.append(
            MonthSummary(
                month=month,
                base_hours=bucket["base"] / 60,
                overtime_hours=bucket["over"] / 60,
                # Task and call hours are reported separately, never in the grand total.
                grand_total=(bucket["base"] + bucket["over"]) / 60,
                task_hours=bucket["task"] / 60,
                call_hours=bucket["call"] / 60,
            )
        )
    return rows


def available_months(
    work_logs: Iterable[Any],
    task_logs: Iterable[Any],
    tz: str | ZoneInfo | None = None,
) -> list[tuple[int, int]]:
    """Distinct (year, month) pairs with workdays or regular task logs."""

    months: set[tuple[int, int]] = set()
    starts = [as_interval(item).start for item in work_logs]
    starts.extend(
        interval.start for interval in map(as_interval, task_logs) if not interval.is_call
    )
    for start in starts:
        day = local_date(start, tz)
        if day is not None:
            months.add((day.year, day.month))
    return sorted(months)


def default_month(months: list[tuple[int, int]], today: date) -> tuple[int, int]:
    current = (today.year, today.month)
    if current in months or not months:
        return current
    return months[-1]


def build_calendar(
    year: int,
    month: int,
    days: Mapping[str, DaySummary],
    today: date | None = None,
) -> list[list[CalendarDay]]:
    """Monday-first weeks covering ``month``, with per-day category markers."""

    if not 1 <= month <= 12:
        raise ValueError("month must be between 1 and 12")
    today = today or datetime.now(_zone(None)).date()
    weeks: list[list[CalendarDay]] = []
    for week in calendar.Calendar(firstweekday=calendar.MONDAY).monthdatescalendar(year, month):
        row: list[CalendarDay] = []
        for day in week:
            key = day.isoformat()
            summary = days.get(key)
            row.append(
                CalendarDay(
                    date=key,
                    day=day.day,
                    in_month=day.month == month,
                    is_today=day == today,
                    has_base=bool(summary and summary.base_hours > 0),
                    has_overtime=bool(summary and summary.overtime_hours > 0),
                    has_call=bool(summary and summary.call_hours > 0),
                )
            )
        weeks.append(row)
    return weeks


# ---- database-backed views -------------------------------------------------


def _closed_work_logs(db: Session, user_id: str, start: str, end: str) -> list[WorkLog]:
    stmt = (
        select(WorkLog)
        .where(
            WorkLog.user_id == user_id,
            WorkLog.start_iso >= start,
            WorkLog.start_iso < end,
            WorkLog.end_iso.is_not(None),
        )
        .order_by(WorkLog.start_iso)
    )
    return list(db.execute(stmt).scalars().all())


def _task_logs(db: Session, user_id: str, start: str, end: str, *, closed_only: bool = True) -> list[TaskLog]:
    stmt = select(TaskLog).where(
        TaskLog.user_id == user_id,
        TaskLog.start_iso >= start,
        TaskLog.start_iso < end,
    )
    if closed_only:
        stmt = stmt.where(TaskLog.end_iso.is_not(None))
    stmt = stmt.options(selectinload(TaskLog.images)).order_by(TaskLog.start_iso)
    return list(db.execute(stmt).scalars().all())


def list_available_months(db: Session, user_id: str, tz: str | ZoneInfo | None = None) -> list[tuple[int, int]]:
    work_starts = db.execute(select(WorkLog.start_iso).where(WorkLog.user_id == user_id)).scalars().all()
    task_starts = db.execute(
        select(TaskLog.start_iso).where(TaskLog.user_id == user_id, TaskLog.is_call == 0)
    ).scalars().all()
    return available_months([(s, None) for s in work_starts], [(s, None) for s in task_starts], tz)


def summarize_range(
    db: Session,
    user_id: str,
    start: str,
    end: str,
    *,
    window: BaseWindow | None = None,
    tz: str | ZoneInfo | None = None,
) -> dict[str, DaySummary]:
    return aggregate_days(
        _closed_work_logs(db, user_id, start, end),
        _task_logs(db, user_id, start, end),
        window,
        tz,
    )


def month_view(
    db: Session,
    user_id: str,
    year: int,
    month: int,
    *,
    window: BaseWindow | None = None,
    tz: str | ZoneInfo | None = None,
    today: date | None = None,
) -> dict[str, Any]:
    """Everything the monthly calendar page needs in one payload."""

    if not 1 <= month <= 12:
        raise ValueError("month must be between 1 and 12")
    start, end = month_bounds(year, month, tz)
    days = summarize_range(db, user_id, start, end, window=window, tz=tz)
    rows = roll_up_months(days)
    totals = rows[0] if rows else MonthSummary(month_key(year, month), 0.0, 0.0, 0.0, 0.0, 0.0)
    return {
        "year": year,
        "month": month,
        "days": {key: value.as_dict() for key, value in days.items()},
        "totals": totals.as_dict(),
        "calendar": [[asdict(cell) for cell in week] for week in build_calendar(year, month, days, today)],
    }


def monthly_rows(
    db: Session,
    user_id: str,
    from_month: tuple[int, int],
    to_month: tuple[int, int],
    *,
    window: BaseWindow | None = None,
    tz: str | ZoneInfo | None = None,
) -> list[MonthSummary]:
    if to_month < from_month:
        raise ValueError("to_month must not precede from_month")
    start, _ = month_bounds(*from_month, tz)
    _, end = month_bounds(*to_month, tz)
    return roll_up_months(summarize_range(db, user_id, start, end, window=window, tz=tz))


def day_detail(
    db: Session,
    user_id: str,
    day: date,
    *,
    window: BaseWindow | None = None,
    tz: str | ZoneInfo | None = None,
) -> dict[str, Any]:
    """Sessions, tasks and hour buckets for a single local day."""

    window = window or default_window()
    start, end = day_bounds(day, tz)
    workdays = list(
        db.execute(
            select(WorkLog)
            .where(WorkLog.user_id == user_id, WorkLog.start_iso >= start, WorkLog.start_iso < end)
            .order_by(WorkLog.start_iso)
        ).scalars().all()
    )
    tasks = _task_logs(db, user_id, start, end, closed_only=False)
    closed_workdays = [w for w in workdays if w.end_iso]
    days = aggregate_days(closed_workdays, [t for t in tasks if t.end_iso], window, tz)
    return {
        "date": day.isoformat(),
        "workdays": workdays,
        "tasks": tasks,
        "hours": days.get(day.isoformat(), DaySummary()),
    }


__all__ = [
    "CalendarDay",
    "DaySummary",
    "MonthSummary",
    "aggregate_days",
    "available_months",
    "build_calendar",
    "day_bounds",
    "day_detail",
    "default_month",
    "list_available_months",
    "month_bounds",
    "month_key",
    "month_view",
    "monthly_rows",
    "parse_month_key",
    "roll_up_months",
    "summarize_range",
]
