"""Behavioural habit diagnostics over a trailing window of spend."""

from __future__ import annotations

from datetime import date
from typing import TypedDict

import numpy as np
import pandas as pd

from analytics.aggregation import (
    daily_totals,
    month_key,
    monthly_totals,
    resolve_reference_date,
    snapshot_as_of,
    trailing_window,
)
from analytics.recurring import RecurringReport, detect_recurring_transactions
from config import Settings, get_settings
from core.formatting import format_currency, format_percent

__all__ = [
    "ImpulseSpending",
    "CategoryCreep",
    "WeekendSplurge",
    "SubscriptionBloat",
    "MerchantConcentration",
    "HabitReport",
    "detect_impulse_spending",
    "detect_category_creep",
    "detect_weekend_splurge",
    "detect_subscription_bloat",
    "detect_merchant_concentration",
    "detect_habits",
]


class ImpulseSpending(TypedDict):
    score: float
    label: str
    small_transaction_pct: float
    small_transaction_count: int
    avg_small_amount: float
    monthly_small_total: float
    message: str


class CategoryCreep(TypedDict):
    category: str
    trend: str
    change_pct: float
    first_half_avg: float
    second_half_avg: float
    monthly_totals: list[float]
    message: str


class WeekendSplurge(TypedDict):
    weekend_avg_daily: float
    weekday_avg_daily: float
    ratio: float
    label: str
    message: str


class SubscriptionBloat(TypedDict):
    total_monthly: float
    total_annual: float
    count: int
    potentially_forgotten: list[str]
    message: str


class MerchantConcentration(TypedDict):
    top_merchant: str
    top_merchant_pct: float
    top_3_pct: float
    hhi: float
    label: str
    message: str


class HabitReport(TypedDict):
    impulse_spending: ImpulseSpending
    category_creep: list[CategoryCreep]
    weekend_splurge: WeekendSplurge
    subscription_bloat: SubscriptionBloat
    merchant_concentration: MerchantConcentration


def _habit_window(snapshot: pd.DataFrame, today: pd.Timestamp, settings: Settings) -> pd.DataFrame:
    return trailing_window(snapshot_as_of(snapshot, today), today, settings.habit_window_days)


def detect_impulse_spending(
    snapshot: pd.DataFrame,
    reference_date: date | pd.Timestamp,
    *,
    settings: Settings | None = None,
) -> ImpulseSpending:
    """Measure how much of recent activity is small, unplanned-looking purchases."""

    settings = settings or get_settings()
    window = _habit_window(snapshot, resolve_reference_date(reference_date), settings)
    if window.empty:
        return {
            "score": 0.0,
            "label": "minimal",
            "small_transaction_pct": 0.0,
            "small_transaction_count": 0,
            "avg_small_amount": 0.0,
            "monthly_small_total": 0.0,
            "message": "Not enough recent transactions to assess small purchases.",
        }

    small = window.loc[window["amount"] < settings.impulse_amount_threshold, "amount"]
    pct = len(small) / len(window) * 100

    if pct > settings.impulse_high_pct:
        label, score = "high", settings.impulse_high_score
    elif pct > settings.impulse_moderate_pct:
        label, score = "moderate", settings.impulse_moderate_score
    elif pct > settings.impulse_low_pct:
        label, score = "low", settings.impulse_low_score
    else:
        label, score = "minimal", settings.impulse_minimal_score

    monthly_small_total = float(small.sum()) / settings.habit_window_months
    threshold = format_currency(settings.impulse_amount_threshold)
    return {
        "score": score,
        "label": label,
        "small_transaction_pct": round(pct, 1),
        "small_transaction_count": int(len(small)),
        "avg_small_amount": round(float(small.mean()), 2) if not small.empty else 0.0,
        "monthly_small_total": round(monthly_small_total, 2),
        "message": (
            f"{format_percent(pct)} of your purchases are under {threshold}, "
            f"about {format_currency(monthly_small_total)} a month"
        ),
    }


def detect_category_creep(
    snapshot: pd.DataFrame,
    reference_date: date | pd.Timestamp,
    *,
    settings: Settings | None = None,
) -> list[CategoryCreep]:
    """Find categories whose monthly spend drifted between the halves of a window.

    The window covers the ``creep_window_months`` completed calendar months
    before the reference month. Each category's months are split at the
    midpoint and the two halves' mean totals compared.
    """

    settings = settings or get_settings()
    today = resolve_reference_date(reference_date)
    expenses = snapshot_as_of(snapshot, today)
    if expenses.empty:
        return []

    current_month = month_key(today)
    first_month = current_month - settings.creep_window_months
    window = expenses.loc[(expenses["month"] >= first_month) & (expenses["month"] < current_month)]
    totals = monthly_totals(window, by="category")

    creeps: list[CategoryCreep] = []
    for category, series in totals.groupby(level=0):
        values = series.sort_index().to_numpy(dtype=float)
        if len(values) < settings.creep_min_months:
            continue

        midpoint = len(values) // 2
        first_half = float(values[:midpoint].mean())
        second_half = float(values[midpoint:].mean())
        if first_half < settings.creep_min_baseline:
            continue

        change_pct = (second_half - first_half) / first_half * 100
        if abs(change_pct) <= settings.creep_threshold_pct:
            continue

        trend = "increasing" if change_pct > 0 else "decreasing"
        creeps.append(
            {
                "category": str(category),
                "trend": trend,
                "change_pct": round(change_pct, 1),
                "first_half_avg": round(first_half, 2),
                "second_half_avg": round(second_half, 2),
                "monthly_totals": [round(float(v), 2) for v in values],
                "message": (
                    f"{category} spending is {trend}: {format_currency(second_half)}/month recently "
                    f"vs {format_currency(first_half)}/month before ({change_pct:+.0f}%)"
                ),
            }
        )

    creeps.sort(key=lambda row: -abs(row["change_pct"]))
    return creeps


def detect_weekend_splurge(
    snapshot: pd.DataFrame,
    reference_date: date | pd.Timestamp,
    *,
    settings: Settings | None = None,
) -> WeekendSplurge:
    """Compare average daily spend on weekends with weekdays."""

    settings = settings or get_settings()
    daily = daily_totals(_habit_window(snapshot, resolve_reference_date(reference_date), settings))

    weekend_mask = daily.index.dayofweek >= 5
    weekend = daily[weekend_mask]
    weekday = daily[~weekend_mask]
    weekend_avg = float(weekend.mean()) if not weekend.empty else 0.0
    weekday_avg = float(weekday.mean()) if not weekday.empty else 0.0
    ratio = weekend_avg / weekday_avg if weekday_avg > 0 else 1.0

    if ratio > settings.weekend_high_ratio:
        label = "high"
    elif ratio > settings.weekend_moderate_ratio:
        label = "moderate"
    elif ratio > settings.weekend_slight_ratio:
        label = "slight"
    else:
        label = "balanced"

    if label == "balanced":
        message = "Your weekend and weekday spending are well balanced."
    else:
        message = (
            f"You spend {ratio:.1f}x more per day on weekends "
            f"({format_currency(weekend_avg)} vs {format_currency(weekday_avg)})"
        )

    return {
        "weekend_avg_daily": round(weekend_avg, 2),
        "weekday_avg_daily": round(weekday_avg, 2),
        "ratio": round(ratio, 2),
        "label": label,
        "message": message,
    }


def detect_subscription_bloat(
    recurring: RecurringReport,
    *,
    settings: Settings | None = None,
) -> SubscriptionBloat:
    """Summarise recurring charges as a subscription footprint."""

    settings = settings or get_settings()
    active = [entry for entry in recurring["recurring"] if entry["status"] == "active"]
    forgotten = [
        entry["merchant"]
        for entry in recurring["recurring"]
        if entry["status"] == "inactive" and entry["active_months"] >= settings.recurring_forgotten_min_months
    ]
    total_monthly = sum(entry["avg_amount"] for entry in active)

    message = (
        f"{len(active)} active subscription(s) cost {format_currency(total_monthly, 2)}/month "
        f"({format_currency(total_monthly * 12)}/year)"
    )
    if forgotten:
        message += f"; {len(forgotten)} may be forgotten"

    return {
        "total_monthly": round(total_monthly, 2),
        "total_annual": round(total_monthly * 12, 2),
        "count": len(active),
        "potentially_forgotten": forgotten,
        "message": message,
    }


def detect_merchant_concentration(
    snapshot: pd.DataFrame,
    reference_date: date | pd.Timestamp,
    *,
    settings: Settings | None = None,
) -> MerchantConcentration:
    """Score how concentrated recent spend is across merchants using HHI."""

    settings = settings or get_settings()
    window = _habit_window(snapshot, resolve_reference_date(reference_date), settings)
    window_total = float(window["amount"].sum()) if not window.empty else 0.0
    if window_total <= 0:
        return {
            "top_merchant": "",
            "top_merchant_pct": 0.0,
            "top_3_pct": 0.0,
            "hhi": 0.0,
            "label": "diversified",
            "message": "No recent spending to analyse.",
        }

    merchant_totals = window.groupby("merchant")["amount"].sum().sort_values(ascending=False, kind="mergesort")
    shares = merchant_totals / window_total
    hhi = float(np.square(shares.to_numpy()).sum())

    if hhi > settings.concentration_high_hhi:
        label = "high"
    elif hhi > settings.concentration_moderate_hhi:
        label = "moderate"
    elif hhi > settings.concentration_mild_hhi:
        label = "mild"
    else:
        label = "diversified"

    top_merchant = str(shares.index[0])
    top_pct = float(shares.iloc[0]) * 100
    return {
        "top_merchant": top_merchant,
        "top_merchant_pct": round(top_pct, 1),
        "top_3_pct": round(float(shares.head(3).sum()) * 100, 1),
        "hhi": round(hhi, 4),
        "label": label,
        "message": f"{top_merchant} accounts for {format_percent(top_pct)} of your recent spending",
    }


def detect_habits(
    snapshot: pd.DataFrame,
    reference_date: date | pd.Timestamp,
    *,
    recurring: RecurringReport | None = None,
    settings: Settings | None = None,
) -> HabitReport:
    """Run all five habit detectors, reusing ``recurring`` when supplied."""

    settings = settings or get_settings()
    if recurring is None:
        recurring = detect_recurring_transactions(snapshot, reference_date, settings=settings)

    return {
        "impulse_spending": detect_impulse_spending(snapshot, reference_date, settings=settings),
        "category_creep": detect_category_creep(snapshot, reference_date, settings=settings),
        "weekend_splurge": detect_weekend_splurge(snapshot, reference_date, settings=settings),
        "subscription_bloat": detect_subscription_bloat(recurring, settings=settings),
        "merchant_concentration": detect_merchant_concentration(snapshot, reference_date, settings=settings),
    }
