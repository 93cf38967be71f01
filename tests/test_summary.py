"""Tests for daily aggregation, monthly roll-ups and the calendar grid."""

from datetime import date, time

import pytest

from worklog.services.summary import (
    DaySummary,
    aggregate_days,
    available_months,
    build_calendar,
    day_bounds,
    default_month,
    month_bounds,
    parse_month_key,
    roll_up_months,
)
from worklog.services.timecalc import BaseWindow

WINDOW = BaseWindow(time(9, 0), time(18, 0))

WORK_LOGS = [
    {"start_iso": "2024-05-02T08:00:00", "end_iso": "2024-05-02T19:00:00"},
    {"start_iso": "2024-05-06T09:00:00", "end_iso": None},
]
TASK_LOGS = [
    {"start_iso": "2024-05-02T10:00:00", "end_iso": "2024-05-02T11:30:00", "is_call": False},
    {"start_iso": "2024-05-03T22:00:00", "end_iso": "2024-05-03T23:10:00", "is_call": True},
]


def test_aggregate_days_buckets_every_category():
    days = aggregate_days(WORK_LOGS, TASK_LOGS, WINDOW, "UTC")
    assert list(days) == ["2024-05-02", "2024-05-03"]
    assert days["2024-05-02"] == DaySummary(base_hours=9.0, overtime_hours=2.0, call_hours=0.0, task_hours=1.5)
    # 70 minutes on call round to 1.25 h.
    assert days["2024-05-03"] == DaySummary(base_hours=0.0, overtime_hours=0.0, call_hours=1.25, task_hours=0.0)


def test_calls_do_not_count_as_task_hours():
    days = aggregate_days([], TASK_LOGS[1:], WINDOW, "UTC")
    assert days["2024-05-03"].task_hours == 0.0


def test_roll_up_keeps_task_and_call_hours_out_of_grand_total():
    days = aggregate_days(WORK_LOGS, TASK_LOGS, WINDOW, "UTC")
    (row,) = roll_up_months(days)
    assert row.month == "2024-05"
    assert row.base_hours == 9.0
    assert row.overtime_hours == 2.0
    assert row.grand_total == 11.0
    assert row.task_hours == 1.5
    assert row.call_hours == 1.25
    payload = row.as_dict()
    assert payload["display"]["grand_total"] == "11h 0m"
    assert payload["display"]["call_hours"] == "1h 15m"


def test_roll_up_orders_months():
    days = {
        "2024-06-01": DaySummary(base_hours=1.0),
        "2024-05-30": DaySummary(base_hours=2.25, overtime_hours=0.5),
        "2024-05-31": DaySummary(base_hours=0.75),
    }
    rows = roll_up_months(days)
    assert [r.month for r in rows] == ["2024-05", "2024-06"]
    assert rows[0].base_hours == 3.0
    assert rows[0].grand_total == 3.5
    assert rows[1].grand_total == 1.0


def test_roll_up_of_nothing_is_empty():
    assert roll_up_months({}) == []


def test_available_months_ignore_calls():
    work = [{"start_iso": "2024-05-02T08:00:00", "end_iso": None}]
    tasks = [
        {"start_iso": "2024-04-30T10:00:00", "is_call": False},
        {"start_iso": "2024-01-10T10:00:00", "is_call": True},
    ]
    assert available_months(work, tasks, "UTC") == [(2024, 4), (2024, 5)]


def test_default_month_prefers_current_then_latest():
    months = [(2024, 4), (2024, 5)]
    assert default_month(months, date(2024, 5, 20)) == (2024, 5)
    assert default_month(months, date(2024, 8, 1)) == (2024, 5)
    assert default_month([], date(2024, 8, 1)) == (2024, 8)


def test_calendar_weeks_start_on_monday():
    days = aggregate_days(WORK_LOGS, TASK_LOGS, WINDOW, "UTC")
    weeks = build_calendar(2024, 5, days, today=date(2024, 5, 2))
    assert len(weeks) == 5
    assert all(len(week) == 7 for week in weeks)
    first = weeks[0][0]
    assert first.date == "2024-04-29"
    assert first.in_month is False

    thursday = weeks[0][3]
    assert thursday.date == "2024-05-02"
    assert thursday.is_today
    assert thursday.has_base and thursday.has_overtime
    assert not thursday.has_call

    friday = weeks[0][4]
    assert friday.has_call
    assert not friday.has_base
    assert weeks[-1][-1].date == "2024-06-02"


def test_calendar_rejects_bad_month():
    with pytest.raises(ValueError):
        build_calendar(2024, 13, {})


def test_month_and_day_bounds_follow_local_midnight():
    assert month_bounds(2024, 5, "Europe/Riga") == (
        "2024-04-30T21:00:00+00:00",
        "2024-05-31T21:00:00+00:00",
    )
    assert month_bounds(2024, 12, "UTC") == ("2024-12-01T00:00:00+00:00", "2025-01-01T00:00:00+00:00")
    assert day_bounds(date(2024, 1, 15), "Europe/Riga") == (
        "2024-01-14T22:00:00+00:00",
        "2024-01-15T22:00:00+00:00",
    )


def test_parse_month_key():
    assert parse_month_key("2024-05") == (2024, 5)
    with pytest.raises(ValueError):
        parse_month_key("2024-13")
    with pytest.raises(ValueError):
        parse_month_key("May 2024")
