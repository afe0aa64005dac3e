"""Spending summary, monthly trend, merchant and category breakdowns."""

from __future__ import annotations

import calendar
from datetime import date
from typing import TypedDict

import numpy as np
import pandas as pd

from analytics.aggregation import (
    merchant_profiles,
    monthly_totals,
    resolve_reference_date,
    snapshot_as_of,
    split_current_month,
    summarise_groups,
)

__all__ = [
    "GroupBreakdown",
    "SpendingSummary",
    "MonthlyTrendRow",
    "MerchantStats",
    "CategoryDeepDive",
    "build_spending_summary",
    "build_monthly_trends",
    "build_merchant_summary",
    "build_category_deep_dive",
]

_WEEKDAY_NAMES = list(calendar.day_name)


class GroupBreakdown(TypedDict):
    name: str
    total: float
    count: int
    avg_amount: float


class SpendingSummary(TypedDict):
    total_spent: float
    transaction_count: int
    this_month: float
    last_month: float
    avg_monthly: float
    daily_rate: float
    projected_month_total: float
    mom_change_pct: float | None
    vs_avg_pct: float | None
    by_card: list[GroupBreakdown]
    by_category: list[GroupBreakdown]


class MonthlyTrendRow(TypedDict):
    month: str
    total: float
    count: int
    prev_total: float | None
    growth_pct: float | None
    rolling_3mo_avg: float


class MerchantStats(TypedDict):
    merchant: str
    total: float
    count: int
    avg_amount: float
    first_seen: date
    last_seen: date
    active_months: int
    monthly_frequency: float


class CategoryDeepDive(TypedDict):
    category: str
    total_spent: float
    transaction_count: int
    avg_amount: float
    monthly_trend: list[dict[str, object]]
    top_merchants: list[dict[str, object]]
    day_of_week: list[dict[str, object]]
    recent_transactions: list[dict[str, object]]


def _pct_change(current: float, baseline: float) -> float | None:
    if baseline <= 0:
        return None
    return round((current - baseline) / baseline * 100, 1)


def _group_rows(snapshot: pd.DataFrame, column: str) -> list[GroupBreakdown]:
    stats = summarise_groups(snapshot, column)
    if stats.empty:
        return []
    stats = stats.sort_values("sum", ascending=False, kind="mergesort")
    return [
        {
            "name": str(name),
            "total": round(float(row["sum"]), 2),
            "count": int(row["count"]),
            "avg_amount": round(float(row["mean"]), 2),
        }
        for name, row in stats.iterrows()
    ]


def build_spending_summary(snapshot: pd.DataFrame, reference_date: date | pd.Timestamp) -> SpendingSummary:
    """Return headline totals for the dashboard summary cards."""

    today = resolve_reference_date(reference_date)
    expenses = snapshot_as_of(snapshot, today)
    history, current = split_current_month(expenses, today)

    completed = monthly_totals(history)
    this_month = float(current["amount"].sum()) if not current.empty else 0.0
    last_month = float(completed.get(today.to_period("M") - 1, 0.0)) if not completed.empty else 0.0
    avg_monthly = float(completed.mean()) if not completed.empty else 0.0
    days_in_month = calendar.monthrange(today.year, today.month)[1]
    daily_rate = this_month / today.day

    return {
        "total_spent": round(float(expenses["amount"].sum()), 2) if not expenses.empty else 0.0,
        "transaction_count": int(len(expenses)),
        "this_month": round(this_month, 2),
        "last_month": round(last_month, 2),
        "avg_monthly": round(avg_monthly, 2),
        "daily_rate": round(daily_rate, 2),
        "projected_month_total": round(daily_rate * days_in_month, 2),
        "mom_change_pct": _pct_change(this_month, last_month),
        "vs_avg_pct": _pct_change(this_month, avg_monthly),
        "by_card": _group_rows(expenses, "card"),
        "by_category": _group_rows(expenses, "category"),
    }


def build_monthly_trends(snapshot: pd.DataFrame, reference_date: date | pd.Timestamp) -> list[MonthlyTrendRow]:
    """Return month-by-month totals with growth and a trailing 3-month average."""

    expenses = snapshot_as_of(snapshot, resolve_reference_date(reference_date))
    if expenses.empty:
        return []

    grouped = expenses.groupby("month", sort=True)["amount"]
    frame = pd.DataFrame({"total": grouped.sum(), "count": grouped.count()})
    frame["prev_total"] = frame["total"].shift(1)
    frame["growth_pct"] = np.where(
        frame["prev_total"] > 0,
        (frame["total"] - frame["prev_total"]) / frame["prev_total"] * 100,
        np.nan,
    )
    frame["rolling_3mo_avg"] = frame["total"].rolling(window=3, min_periods=1).mean()

    rows: list[MonthlyTrendRow] = []
    for month, row in frame.iterrows():
        prev_total = row["prev_total"]
        growth = row["growth_pct"]
        rows.append(
            {
                "month": str(month),
                "total": round(float(row["total"]), 2),
                "count": int(row["count"]),
                "prev_total": None if pd.isna(prev_total) else round(float(prev_total), 2),
                "growth_pct": None if pd.isna(growth) else round(float(growth), 1),
                "rolling_3mo_avg": round(float(row["rolling_3mo_avg"]), 2),
            }
        )
    return rows


def build_merchant_summary(
    snapshot: pd.DataFrame,
    reference_date: date | pd.Timestamp,
    *,
    limit: int | None = None,
) -> list[MerchantStats]:
    """Return per-merchant spend statistics ordered by total spend."""

    profiles = merchant_profiles(snapshot_as_of(snapshot, resolve_reference_date(reference_date)))
    if profiles.empty:
        return []

    profiles = profiles.sort_values("total", ascending=False, kind="mergesort")
    if limit is not None:
        profiles = profiles.head(limit)

    merchants: list[MerchantStats] = []
    for merchant, profile in profiles.iterrows():
        active_months = int(profile["active_months"])
        count = int(profile["count"])
        merchants.append(
            {
                "merchant": str(merchant),
                "total": round(float(profile["total"]), 2),
                "count": count,
                "avg_amount": round(float(profile["mean"]), 2),
                "first_seen": pd.Timestamp(profile["first_seen"]).date(),
                "last_seen": pd.Timestamp(profile["last_seen"]).date(),
                "active_months": active_months,
                "monthly_frequency": round(count / active_months, 2) if active_months else 0.0,
            }
        )
    return merchants


def build_category_deep_dive(
    snapshot: pd.DataFrame,
    category: str,
    reference_date: date | pd.Timestamp,
    *,
    top_merchants: int = 10,
    recent_limit: int = 10,
) -> CategoryDeepDive:
    """Return a detailed breakdown of one category; unknown categories are zeroed."""

    expenses = snapshot_as_of(snapshot, resolve_reference_date(reference_date))
    scoped = expenses.loc[expenses["category"] == category] if not expenses.empty else expenses
    if scoped.empty:
        return {
            "category": category,
            "total_spent": 0.0,
            "transaction_count": 0,
            "avg_amount": 0.0,
            "monthly_trend": [],
            "top_merchants": [],
            "day_of_week": [],
            "recent_transactions": [],
        }

    monthly = scoped.groupby("month", sort=True)["amount"].agg(["sum", "count"])
    merchants = summarise_groups(scoped, "merchant").sort_values("sum", ascending=False, kind="mergesort")
    weekday = scoped.groupby(scoped["date"].dt.dayofweek)["amount"].agg(["sum", "count"])
    recent = scoped.sort_values("date", ascending=False, kind="mergesort").head(recent_limit)

    return {
        "category": category,
        "total_spent": round(float(scoped["amount"].sum()), 2),
        "transaction_count": int(len(scoped)),
        "avg_amount": round(float(scoped["amount"].mean()), 2),
        "monthly_trend": [
            {"month": str(month), "total": round(float(row["sum"]), 2), "count": int(row["count"])}
            for month, row in monthly.iterrows()
        ],
        "top_merchants": [
            {
                "merchant": str(merchant),
                "total": round(float(row["sum"]), 2),
                "count": int(row["count"]),
                "avg_amount": round(float(row["mean"]), 2),
            }
            for merchant, row in merchants.head(top_merchants).iterrows()
        ],
        "day_of_week": [
            {
                "day": _WEEKDAY_NAMES[int(day_num)],
                "day_num": int(day_num),
                "total": round(float(row["sum"]), 2),
                "count": int(row["count"]),
            }
            for day_num, row in weekday.iterrows()
        ],
        "recent_transactions": [
            {
                "id": str(record["id"]),
                "date": pd.Timestamp(record["date"]).date(),
                "description": str(record["description"]),
                "amount": round(float(record["amount"]), 2),
            }
            for record in recent.to_dict(orient="records")
        ],
    }
