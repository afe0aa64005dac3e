"""Month-end spend forecasting helpers."""

from __future__ import annotations

import calendar
from datetime import date
from typing import Iterable, TypedDict

import numpy as np
import pandas as pd

from analytics.aggregation import (
    daily_totals,
    monthly_totals,
    resolve_reference_date,
    snapshot_as_of,
    split_current_month,
)
from config import Settings, get_settings
from core.logging_setup import get_logger

__all__ = [
    "CurrentMonthStatus",
    "Projections",
    "Comparison",
    "CategoryForecast",
    "ForecastBundle",
    "linear_projection",
    "day_weighted_projection",
    "ewma_projection",
    "compare_to_baseline",
    "resolve_trajectory",
    "build_category_forecasts",
    "build_forecast",
]

_logger = get_logger("spendsight.forecasting")


class CurrentMonthStatus(TypedDict):
    month: str
    spent_so_far: float
    days_elapsed: int
    days_remaining: int
    days_in_month: int


class Projections(TypedDict):
    linear: float
    day_weighted: float
    ewma: float
    recommended: float


class Comparison(TypedDict):
    baseline: float
    diff: float
    diff_pct: float


class CategoryForecast(TypedDict):
    category: str
    spent_so_far: float
    projected: float
    avg_monthly: float
    vs_avg_pct: float
    trend: str


class ForecastBundle(TypedDict):
    current_month: CurrentMonthStatus
    projections: Projections
    avg_monthly: float
    last_month: float
    vs_last_month: Comparison | None
    vs_average: Comparison | None
    category_forecasts: list[CategoryForecast]
    trajectory: str


def linear_projection(spent_so_far: float, days_elapsed: int, days_in_month: int) -> float:
    """Extrapolate the month-to-date run rate across the whole month."""

    if days_elapsed <= 0:
        return 0.0
    return spent_so_far / days_elapsed * days_in_month


def day_weighted_projection(
    spent_so_far: float,
    days_elapsed: int,
    days_in_month: int,
    history: pd.DataFrame,
) -> float:
    """Add the typical spend of each remaining day-of-month to ``spent_so_far``.

    ``history`` holds completed months. Day ``d`` contributes its total spend
    across those months divided by the number of months that have a day ``d``
    (days without spend count as zero). When no historical month has that day
    number, the overall average daily total is used instead.
    """

    projected = float(spent_so_far)
    if history.empty:
        return projected

    month_lengths = np.array([period.days_in_month for period in history["month"].unique()])
    daily = daily_totals(history)
    by_day = daily.groupby(daily.index.day).sum()
    fallback = float(daily.sum()) / float(month_lengths.sum())

    for day in range(days_elapsed + 1, days_in_month + 1):
        months_with_day = int((month_lengths >= day).sum())
        if months_with_day == 0:
            projected += fallback
        else:
            projected += float(by_day.get(day, 0.0)) / months_with_day
    return projected


def ewma_projection(monthly_series: Iterable[float], alpha: float) -> float:
    """Exponentially weighted average of chronological monthly totals.

    Seeded with the first month, each later month ``t`` updates the running
    value as ``alpha * t + (1 - alpha) * running``.
    """

    values = pd.Series(list(monthly_series), dtype=float)
    if values.empty:
        return 0.0
    return float(values.ewm(alpha=alpha, adjust=False).mean().iloc[-1])


def compare_to_baseline(value: float, baseline: float) -> Comparison | None:
    if baseline == 0:
        return None
    diff = value - baseline
    return {
        "baseline": round(baseline, 2),
        "diff": round(diff, 2),
        "diff_pct": round(diff / baseline * 100, 1),
    }


def resolve_trajectory(recommended: float, avg_monthly: float, settings: Settings) -> str:
    if avg_monthly <= 0:
        return "near_average"
    ratio = recommended / avg_monthly
    if ratio < settings.trajectory_below:
        return "below_average"
    if ratio <= settings.trajectory_near:
        return "near_average"
    if ratio <= settings.trajectory_above:
        return "above_average"
    return "well_above_average"


def _category_trend(projected: float, avg_monthly: float, band: float) -> str:
    if projected > avg_monthly * (1 + band):
        return "up"
    if projected < avg_monthly * (1 - band):
        return "down"
    return "stable"


def build_category_forecasts(
    history: pd.DataFrame,
    current: pd.DataFrame,
    days_elapsed: int,
    days_in_month: int,
    settings: Settings,
) -> list[CategoryForecast]:
    """Linearly project each category with spend this month against its average."""

    if current.empty:
        return []

    category_history = monthly_totals(history, by="category")
    if category_history.empty:
        averages = pd.Series(dtype=float)
    else:
        averages = category_history.groupby(level=0).mean()

    forecasts: list[CategoryForecast] = []
    for category, spent in current.groupby("category")["amount"].sum().items():
        spent = float(spent)
        projected = linear_projection(spent, days_elapsed, days_in_month)
        avg_monthly = float(averages.get(category, 0.0))
        vs_avg_pct = (projected - avg_monthly) / avg_monthly * 100 if avg_monthly > 0 else 0.0
        forecasts.append(
            {
                "category": str(category),
                "spent_so_far": round(spent, 2),
                "projected": round(projected, 2),
                "avg_monthly": round(avg_monthly, 2),
                "vs_avg_pct": round(vs_avg_pct, 1),
                "trend": _category_trend(projected, avg_monthly, settings.category_trend_band),
            }
        )

    forecasts.sort(key=lambda row: -row["projected"])
    return forecasts


def build_forecast(
    snapshot: pd.DataFrame,
    reference_date: date | pd.Timestamp,
    *,
    settings: Settings | None = None,
) -> ForecastBundle:
    """Project the reference month's total spend three ways and reconcile them.

    Parameters
    ----------
    snapshot:
        Prepared transaction snapshot.
    reference_date:
        The "today" inside the month being forecast.
    settings:
        Threshold overrides, defaults to :func:`config.get_settings`.

    Returns
    -------
    ForecastBundle
        Month-to-date status, linear / day-weighted / EWMA projections with
        their mean as ``recommended``, comparisons against last month and the
        monthly average, per-category forecasts and a trajectory label.
    """

    settings = settings or get_settings()
    today = resolve_reference_date(reference_date)
    history, current = split_current_month(snapshot_as_of(snapshot, today), today)

    days_in_month = calendar.monthrange(today.year, today.month)[1]
    days_elapsed = int(today.day)
    spent_so_far = float(current["amount"].sum()) if not current.empty else 0.0

    completed = monthly_totals(history)
    last_period = today.to_period("M") - 1
    last_month = float(completed.get(last_period, 0.0)) if not completed.empty else 0.0
    avg_monthly = float(completed.mean()) if not completed.empty else 0.0

    linear = linear_projection(spent_so_far, days_elapsed, days_in_month)
    day_weighted = day_weighted_projection(spent_so_far, days_elapsed, days_in_month, history)
    ewma = ewma_projection(completed.to_numpy(dtype=float), settings.ewma_alpha)
    recommended = float(np.mean([linear, day_weighted, ewma]))

    _logger.debug(
        "Forecast for %s: linear=%.2f day_weighted=%.2f ewma=%.2f",
        today.strftime("%Y-%m"),
        linear,
        day_weighted,
        ewma,
    )

    return {
        "current_month": {
            "month": today.strftime("%Y-%m"),
            "spent_so_far": round(spent_so_far, 2),
            "days_elapsed": days_elapsed,
            "days_remaining": days_in_month - days_elapsed,
            "days_in_month": days_in_month,
        },
        "projections": {
            "linear": round(linear, 2),
            "day_weighted": round(day_weighted, 2),
            "ewma": round(ewma, 2),
            "recommended": round(recommended, 2),
        },
        "avg_monthly": round(avg_monthly, 2),
        "last_month": round(last_month, 2),
        "vs_last_month": compare_to_baseline(recommended, last_month),
        "vs_average": compare_to_baseline(recommended, avg_monthly),
        "category_forecasts": build_category_forecasts(history, current, days_elapsed, days_in_month, settings),
        "trajectory": resolve_trajectory(recommended, avg_monthly, settings),
    }
