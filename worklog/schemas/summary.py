"""Response models for the calendar, month table and day detail views."""

from __future__ import annotations

from pydantic import BaseModel, Field

from .task import TaskOut
from .workday import WorkdayOut


class DaySummaryOut(BaseModel):
    base_hours: float = 0.0
    overtime_hours: float = 0.0
    call_hours: float = 0.0
    task_hours: float = 0.0


class MonthSummaryOut(BaseModel):
    month: str
    base_hours: float
    overtime_hours: float
    grand_total: float
    task_hours: float
    call_hours: float
    # Same figures rendered as "7h 45m".
    display: dict[str, str] = Field(default_factory=dict)


class CalendarDayOut(BaseModel):
    date: str
    day: int
    in_month: bool
    is_today: bool
    has_base: bool
    has_overtime: bool
    has_call: bool


class MonthRef(BaseModel):
    year: int
    month: int
    key: str


class AvailableMonthsOut(BaseModel):
    months: list[MonthRef]
    selected: MonthRef


class MonthViewOut(BaseModel):
    year: int
    month: int
    days: dict[str, DaySummaryOut]
    totals: MonthSummaryOut
    calendar: list[list[CalendarDayOut]]


class DayDetailOut(BaseModel):
    date: str
    workdays: list[WorkdayOut]
    tasks: list[TaskOut]
    hours: DaySummaryOut
