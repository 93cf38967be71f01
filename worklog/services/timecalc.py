"""Time math for workday sessions, task logs and on-call intervals.

Every persisted timestamp is a UTC ISO-8601 string (see ``to_storage_iso``).
Classification and day bucketing happen in the configured local timezone.
All hour figures returned from here are multiples of a quarter hour.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping, NamedTuple
from zoneinfo import ZoneInfo

from ..core.config import settings

QUARTER_MINUTES = 15
QUARTER = timedelta(minutes=QUARTER_MINUTES)
SIXTY = Decimal(60)


@dataclass(frozen=True)
class BaseWindow:
    """Standard working window within a calendar day; half-open ``[start, end)``."""

    start: time = time(9, 0)
    end: time = time(18, 0)

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError("base window end must be later than its start")

    def contains(self, moment: time) -> bool:
        return self.start <= moment < self.end


@dataclass(frozen=True)
class WorkHours:
    base_hours: float = 0.0
    overtime_hours: float = 0.0

    @property
    def total_hours(self) -> float:
        return self.base_hours + self.overtime_hours


class Interval(NamedTuple):
    start: Any
    end: Any
    is_call: bool = False


def default_window() -> BaseWindow:
    return BaseWindow(settings.BASE_HOURS_START, settings.BASE_HOURS_END)


def _zone(tz: str | ZoneInfo | None) -> ZoneInfo:
    if isinstance(tz, ZoneInfo):
        return tz
    return ZoneInfo(tz or settings.TZ)


def parse_iso(ts: Any, tz: str | ZoneInfo | None = None) -> datetime | None:
    """Parse an ISO-8601 timestamp string.

    Accepts a trailing ``Z`` and ``datetime`` instances. Naive values get the
    provided tz attached. Returns None if ts is falsy.
    """
    if not ts:
        return None
    if isinstance(ts, datetime):
        dt = ts
    else:
        dt = datetime.fromisoformat(str(ts).strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=_zone(tz))
    return dt


def to_storage_iso(dt: datetime) -> str:
    """UTC, seconds precision; keeps stored strings lexically ordered."""
    if dt.tzinfo is None:
        raise ValueError("naive datetimes cannot be stored")
    return dt.astimezone(timezone.utc).isoformat(timespec="seconds")


def local_date(ts: Any, tz: str | ZoneInfo | None = None) -> date | None:
    dt = parse_iso(ts, tz)
    if dt is None:
        return None
    return dt.astimezone(_zone(tz)).date()


def local_date_key(ts: Any, tz: str | ZoneInfo | None = None) -> str | None:
    day = local_date(ts, tz)
    return day.isoformat() if day else None


def as_interval(item: Any) -> Interval:
    """Coerce ORM rows, mappings and tuples into an ``Interval``."""

    if isinstance(item, Interval):
        return item
    if isinstance(item, Mapping):
        start = item.get("start_iso", item.get("start_time", item.get("start")))
        end = item.get("end_iso", item.get("end_time", item.get("end")))
        is_call = item.get("is_call", item.get("isCall", False))
        return Interval(start, end, bool(is_call))
    if isinstance(item, tuple):
        return Interval(*item)
    return Interval(
        getattr(item, "start_iso", None),
        getattr(item, "end_iso", None),
        bool(getattr(item, "is_call", False)),
    )


def compute_minutes(start_iso: Any, end_iso: Any, tz: str | ZoneInfo | None = None) -> int:
    """Return whole minutes between start and end (non-negative)."""
    s = parse_iso(start_iso, tz)
    e = parse_iso(end_iso, tz)
    if not s or not e:
        return 0
    delta = int((e - s).total_seconds() // 60)
    return max(delta, 0)


def _elapsed_minutes(start: Any, end: Any, tz: str | ZoneInfo | None) -> Decimal:
    s = parse_iso(start, tz)
    e = parse_iso(end, tz)
    if not s or not e or e <= s:
        return Decimal(0)
    return Decimal(str((e - s).total_seconds())) / SIXTY


def round_to_quarter_hour(minutes: float | int | Decimal) -> float:
    """Convert minutes to hours rounded to the nearest 0.25 h (halves round up)."""

    quarters = (Decimal(str(minutes)) / SIXTY * 4).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return float(quarters / 4)


def calculate_work_hours(
    start: Any,
    end: Any,
    window: BaseWindow | None = None,
    tz: str | ZoneInfo | None = None,
) -> WorkHours:
    """Split one session into base and overtime hours.

    The session is walked in 15 minute steps from ``start``. A step only
    counts once it completes at or before ``end``; each counted step is base
    time when its local start time lies inside ``window``.
    """
    window = window or default_window()
    zone = _zone(tz)
    s = parse_iso(start, zone)
    e = parse_iso(end, zone)
    if not s or not e or e <= s:
        return WorkHours()

    base_minutes = 0
    overtime_minutes = 0
    # Step in UTC so DST transitions do not distort elapsed time.
    cursor = s.astimezone(timezone.utc)
    stop = e.astimezone(timezone.utc)
    while cursor + QUARTER <= stop:
        if window.contains(cursor.astimezone(zone).time()):
            base_minutes += QUARTER_MINUTES
        else:
            overtime_minutes += QUARTER_MINUTES
        cursor += QUARTER

    return WorkHours(
        base_hours=round_to_quarter_hour(base_minutes),
        overtime_hours=round_to_quarter_hour(overtime_minutes),
    )


def calculate_call_hours(intervals: Iterable[Any], tz: str | ZoneInfo | None = None) -> float:
    """Total on-call hours; raw minutes are summed, then rounded once."""

    total = Decimal(0)
    for item in intervals:
        interval = as_interval(item)
        total += _elapsed_minutes(interval.start, interval.end, tz)
    return round_to_quarter_hour(total)


def calculate_task_hours_by_date(intervals: Iterable[Any], tz: str | ZoneInfo | None = None) -> dict[str, float]:
    """Sum non-call task hours per local start date (``YYYY-MM-DD``).

    Each task is rounded to the quarter hour before summing. A task without
    an end contributes 0 h but still marks its day.
    """
    by_date: dict[str, float] = {}
    for item in intervals:
        interval = as_interval(item)
        if interval.is_call or not interval.start:
            continue
        day = local_date_key(interval.start, tz)
        hours = round_to_quarter_hour(_elapsed_minutes(interval.start, interval.end or interval.start, tz))
        by_date[day] = by_date.get(day, 0.0) + hours
    return by_date


def calculate_task_hours_total(intervals: Iterable[Any], tz: str | ZoneInfo | None = None) -> float:
    return sum(calculate_task_hours_by_date(intervals, tz).values())


def calculate_work_hours_by_date(
    intervals: Iterable[Any],
    window: BaseWindow | None = None,
    tz: str | ZoneInfo | None = None,
) -> dict[str, WorkHours]:
    """Classify every closed session and sum the buckets per local start date."""

    window = window or default_window()
    result: dict[str, WorkHours] = {}
    for item in intervals:
        interval = as_interval(item)
        if not interval.start or not interval.end:
            continue
        hours = calculate_work_hours(interval.start, interval.end, window, tz)
        day = local_date_key(interval.start, tz)
        previous = result.get(day, WorkHours())
        result[day] = WorkHours(
            base_hours=round_to_quarter_hour(Decimal(str(previous.base_hours + hours.base_hours)) * SIXTY),
            overtime_hours=round_to_quarter_hour(Decimal(str(previous.overtime_hours + hours.overtime_hours)) * SIXTY),
        )
    return result


def hours_to_hm(hours: float | None) -> str:
    total = int((Decimal(str(hours or 0)) * SIXTY).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return f"{total // 60}h {total % 60}m"


__all__ = [
    "BaseWindow",
    "Interval",
    "WorkHours",
    "as_interval",
    "calculate_call_hours",
    "calculate_task_hours_by_date",
    "calculate_task_hours_total",
    "calculate_work_hours",
    "calculate_work_hours_by_date",
    "compute_minutes",
    "default_window",
    "hours_to_hm",
    "local_date",
    "local_date_key",
    "parse_iso",
    "round_to_quarter_hour",
    "to_storage_iso",
]
