"""Daily spending series and calendar spending patterns."""

from __future__ import annotations

import calendar
from datetime import date
from typing import TypedDict

import pandas as pd

from analytics.aggregation import resolve_reference_date, snapshot_as_of

__all__ = [
    "DailySpending",
    "WeekdayPattern",
    "DayOfMonthPattern",
    "SpendingPatterns",
    "DEFAULT_DAILY_RANGE_DAYS",
    "resolve_date_range",
    "build_daily_spending",
    "build_spending_patterns",
]

DEFAULT_DAILY_RANGE_DAYS = 365


class DailySpending(TypedDict):
    date: date
    total: float
    count: int


class WeekdayPattern(TypedDict):
    day: str
    day_num: int
    total: float
    count: int
    avg_amount: float


class DayOfMonthPattern(TypedDict):
    day: int
    total: float
    count: int


class SpendingPatterns(TypedDict):
    day_of_week: list[WeekdayPattern]
    day_of_month: list[DayOfMonthPattern]


def resolve_date_range(
    reference: pd.Timestamp,
    start_date: date | str | None,
    end_date: date | str | None,
    default_days: int = DEFAULT_DAILY_RANGE_DAYS,
) -> tuple[pd.Timestamp, pd.Timestamp]:
    """Clamp a caller-supplied range instead of rejecting it.

    The end defaults to, and is capped at, ``reference``; the start defaults
    to ``default_days`` before the end. An inverted range is swapped.
    """

    end = reference if end_date is None else min(pd.Timestamp(end_date).normalize(), reference)
    start = end - pd.Timedelta(days=default_days) if start_date is None else pd.Timestamp(start_date).normalize()
    if start > end:
        start, end = end, start
    return start, end


def build_daily_spending(
    snapshot: pd.DataFrame,
    reference_date: date | pd.Timestamp,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
) -> list[DailySpending]:
    """Return per-day totals and counts for days with spend, e.g. for a heatmap."""

    reference = resolve_reference_date(reference_date)
    expenses = snapshot_as_of(snapshot, reference)
    if expenses.empty:
        return []

    start, end = resolve_date_range(reference, start_date, end_date)
    scoped = expenses.loc[(expenses["date"] >= start) & (expenses["date"] <= end)]
    daily = scoped.groupby("date", sort=True)["amount"].agg(["sum", "count"])
    return [
        {"date": pd.Timestamp(day).date(), "total": round(float(row["sum"]), 2), "count": int(row["count"])}
        for day, row in daily.iterrows()
    ]


def build_spending_patterns(snapshot: pd.DataFrame, reference_date: date | pd.Timestamp) -> SpendingPatterns:
    """Return spend grouped by weekday (Monday = 0) and by day of month."""

    expenses = snapshot_as_of(snapshot, resolve_reference_date(reference_date))
    if expenses.empty:
        return {"day_of_week": [], "day_of_month": []}

    by_weekday = expenses.groupby(expenses["date"].dt.dayofweek)["amount"].agg(["sum", "count", "mean"])
    by_day = expenses.groupby(expenses["date"].dt.day)["amount"].agg(["sum", "count"])

    return {
        "day_of_week": [
            {
                "day": calendar.day_name[int(day_num)],
                "day_num": int(day_num),
                "total": round(float(row["sum"]), 2),
                "count": int(row["count"]),
                "avg_amount": round(float(row["mean"]), 2),
            }
            for day_num, row in by_weekday.iterrows()
        ],
        "day_of_month": [
            {"day": int(day), "total": round(float(row["sum"]), 2), "count": int(row["count"])}
            for day, row in by_day.iterrows()
        ],
    }
