"""Insight candidate generation, scoring and ranking."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, TypedDict

import pandas as pd

from analytics.anomalies import AnomalyReport, CategoryAnomaly, detect_anomalies
from analytics.forecasting import ForecastBundle, build_forecast
from analytics.habits import CategoryCreep, HabitReport, detect_habits
from analytics.recurring import RecurringReport, detect_recurring_transactions
from config import Settings, get_settings
from core.formatting import format_currency, format_percent
from core.logging_setup import get_logger

__all__ = [
    "Insight",
    "InsightCandidate",
    "score_anomaly",
    "score_pct_deviation",
    "score_forgotten_subscriptions",
    "build_insight_candidates",
    "rank_insights",
    "generate_insights",
]

_logger = get_logger("spendsight.insights")

_ANOMALY_SEVERITY = {"critical": "high", "high": "high", "elevated": "medium"}


class Insight(TypedDict):
    type: str
    severity: str
    icon: str
    title: str
    message: str
    metric: dict[str, Any] | None
    action: str | None
    category: str | None
    priority: float


@dataclass(frozen=True, slots=True)
class InsightCandidate:
    """An insight awaiting ranking, with its computed priority."""

    type: str
    severity: str
    icon: str
    title: str
    message: str
    priority: float
    metric: dict[str, Any] | None = None
    action: str | None = None
    category: str | None = None

    def to_insight(self) -> Insight:
        return {
            "type": self.type,
            "severity": self.severity,
            "icon": self.icon,
            "title": self.title,
            "message": self.message,
            "metric": self.metric,
            "action": self.action,
            "category": self.category,
            "priority": round(self.priority, 2),
        }


def score_anomaly(z_score: float, settings: Settings) -> float:
    """Priority for a category anomaly grows with its z-score."""

    priority = settings.anomaly_base_priority + z_score * settings.anomaly_z_weight
    return min(priority, settings.anomaly_max_priority)


def score_pct_deviation(pct: float, base: float, weight: float, settings: Settings) -> float:
    """Priority for percentage-driven checks, with the deviation capped."""

    return base + min(abs(pct), settings.pct_scaling_cap) * weight


def score_forgotten_subscriptions(count: int, settings: Settings) -> float:
    return settings.forgotten_base_priority + min(count, settings.forgotten_max_items) * settings.forgotten_item_weight


def _anomaly_candidate(anomaly: CategoryAnomaly, settings: Settings) -> InsightCandidate:
    return InsightCandidate(
        type="anomaly",
        severity=_ANOMALY_SEVERITY.get(anomaly["severity"], "medium"),
        icon="alert-triangle",
        title=f"Unusual {anomaly['category']} spending",
        message=anomaly["message"],
        priority=score_anomaly(anomaly["z_score"], settings),
        metric={
            "current": anomaly["current_month"],
            "average": anomaly["avg_monthly"],
            "z_score": anomaly["z_score"],
        },
        action=f"Review this month's {anomaly['category']} transactions",
        category=anomaly["category"],
    )


def _creep_candidate(creep: CategoryCreep, settings: Settings) -> InsightCandidate:
    return InsightCandidate(
        type="habit",
        severity="medium" if creep["change_pct"] > 2 * settings.creep_threshold_pct else "low",
        icon="trending-up",
        title=f"{creep['category']} is creeping up",
        message=creep["message"],
        priority=score_pct_deviation(
            creep["change_pct"], settings.creep_base_priority, settings.creep_pct_weight, settings
        ),
        metric={"change_pct": creep["change_pct"], "monthly_totals": creep["monthly_totals"]},
        action=f"Set a monthly budget for {creep['category']}",
        category=creep["category"],
    )


def build_insight_candidates(
    anomalies: AnomalyReport,
    forecast: ForecastBundle,
    habits: HabitReport,
    *,
    settings: Settings | None = None,
) -> list[InsightCandidate]:
    """Collect every insight whose trigger condition is met, in a fixed order."""

    settings = settings or get_settings()
    candidates: list[InsightCandidate] = []

    for anomaly in anomalies["category_anomalies"]:
        candidates.append(_anomaly_candidate(anomaly, settings))

    recommended = forecast["projections"]["recommended"]
    vs_last = forecast["vs_last_month"]
    if vs_last is not None and abs(vs_last["diff_pct"]) > settings.trend_threshold_pct:
        rising = vs_last["diff_pct"] > 0
        candidates.append(
            InsightCandidate(
                type="trend",
                severity="medium" if rising else "low",
                icon="trending-up" if rising else "trending-down",
                title="Spending up vs last month" if rising else "Spending down vs last month",
                message=(
                    f"You're on pace for {format_currency(recommended)} this month, "
                    f"{format_percent(abs(vs_last['diff_pct']))} {'more' if rising else 'less'} than "
                    f"last month's {format_currency(vs_last['baseline'])}"
                ),
                priority=score_pct_deviation(
                    vs_last["diff_pct"], settings.trend_base_priority, settings.trend_pct_weight, settings
                ),
                metric=dict(vs_last),
                action="Check which categories changed the most" if rising else None,
            )
        )

    vs_avg = forecast["vs_average"]
    if vs_avg is not None and vs_avg["diff_pct"] > settings.forecast_threshold_pct:
        candidates.append(
            InsightCandidate(
                type="forecast",
                severity="high" if vs_avg["diff_pct"] > settings.forecast_high_pct else "medium",
                icon="calendar",
                title="On track to overspend",
                message=(
                    f"Projected spend of {format_currency(recommended)} is "
                    f"{format_percent(vs_avg['diff_pct'])} above your {format_currency(vs_avg['baseline'])} average"
                ),
                priority=score_pct_deviation(
                    vs_avg["diff_pct"], settings.forecast_base_priority, settings.forecast_pct_weight, settings
                ),
                metric=dict(vs_avg),
                action="Trim discretionary spending for the rest of the month",
            )
        )

    impulse = habits["impulse_spending"]
    if impulse["label"] in ("high", "moderate"):
        candidates.append(
            InsightCandidate(
                type="habit",
                severity="medium" if impulse["label"] == "high" else "low",
                icon="shopping-cart",
                title="Frequent small purchases",
                message=impulse["message"],
                priority=settings.impulse_base_priority + impulse["score"] * settings.impulse_score_weight,
                metric={
                    "small_transaction_pct": impulse["small_transaction_pct"],
                    "monthly_small_total": impulse["monthly_small_total"],
                },
                action="Try a 24-hour pause before small unplanned purchases",
            )
        )

    for creep in habits["category_creep"]:
        if creep["trend"] == "increasing":
            candidates.append(_creep_candidate(creep, settings))

    weekend = habits["weekend_splurge"]
    if weekend["label"] in ("high", "moderate"):
        candidates.append(
            InsightCandidate(
                type="habit",
                severity="medium" if weekend["label"] == "high" else "low",
                icon="sun",
                title="Weekend splurging",
                message=weekend["message"],
                priority=settings.weekend_base_priority
                + min(weekend["ratio"], settings.weekend_ratio_cap) * settings.weekend_ratio_weight,
                metric={"ratio": weekend["ratio"]},
                action="Plan weekend activities with a set budget",
            )
        )

    bloat = habits["subscription_bloat"]
    forgotten = bloat["potentially_forgotten"]
    if forgotten:
        candidates.append(
            InsightCandidate(
                type="subscription",
                severity="high" if len(forgotten) > 1 else "medium",
                icon="repeat",
                title="Possibly forgotten subscriptions",
                message=f"These recurring charges stopped recently: {', '.join(forgotten)}",
                priority=score_forgotten_subscriptions(len(forgotten), settings),
                metric={"merchants": list(forgotten)},
                action="Confirm these subscriptions were cancelled on purpose",
            )
        )
    if bloat["count"] >= settings.subscription_count_threshold:
        candidates.append(
            InsightCandidate(
                type="subscription",
                severity="low",
                icon="repeat",
                title="Subscriptions add up",
                message=bloat["message"],
                priority=settings.subscription_base_priority + bloat["count"] * settings.subscription_count_weight,
                metric={"count": bloat["count"], "total_monthly": bloat["total_monthly"]},
                action="Review which subscriptions you still use",
            )
        )

    concentration = habits["merchant_concentration"]
    if concentration["label"] in ("high", "moderate"):
        candidates.append(
            InsightCandidate(
                type="habit",
                severity="low",
                icon="pie-chart",
                title=f"Spending concentrated at {concentration['top_merchant']}",
                message=concentration["message"],
                priority=settings.concentration_base_priority + concentration["hhi"] * settings.concentration_hhi_weight,
                metric={"hhi": concentration["hhi"], "top_3_pct": concentration["top_3_pct"]},
            )
        )

    avg_monthly = forecast["avg_monthly"]
    if avg_monthly > 0 and recommended < avg_monthly * settings.positive_ratio:
        candidates.append(
            InsightCandidate(
                type="positive",
                severity="low",
                icon="check-circle",
                title="Spending below average",
                message=(
                    f"You're on pace for {format_currency(recommended)}, below your "
                    f"{format_currency(avg_monthly)} monthly average"
                ),
                priority=settings.positive_priority,
                metric={"projected": recommended, "average": avg_monthly},
            )
        )

    return candidates


def rank_insights(candidates: Iterable[InsightCandidate], limit: int | None = None) -> list[Insight]:
    """Return the ``limit`` highest-priority insights.

    ``limit`` defaults to ``Settings.insight_limit``. Equal priorities keep
    their candidate order.
    """

    if limit is None:
        limit = get_settings().insight_limit
    ordered = sorted(candidates, key=lambda candidate: -candidate.priority)
    return [candidate.to_insight() for candidate in ordered[:limit]]


def generate_insights(
    snapshot: pd.DataFrame,
    reference_date: date | pd.Timestamp,
    *,
    settings: Settings | None = None,
    recurring: RecurringReport | None = None,
    anomalies: AnomalyReport | None = None,
    forecast: ForecastBundle | None = None,
    habits: HabitReport | None = None,
) -> list[Insight]:
    """Build the ranked insight feed, computing any detector output not supplied."""

    settings = settings or get_settings()
    if snapshot.empty:
        return []

    if anomalies is None:
        anomalies = detect_anomalies(snapshot, reference_date, settings=settings)
    if forecast is None:
        forecast = build_forecast(snapshot, reference_date, settings=settings)
    if habits is None:
        if recurring is None:
            recurring = detect_recurring_transactions(snapshot, reference_date, settings=settings)
        habits = detect_habits(snapshot, reference_date, recurring=recurring, settings=settings)

    candidates = build_insight_candidates(anomalies, forecast, habits, settings=settings)
    ranked = rank_insights(candidates, limit=settings.insight_limit)
    _logger.debug("Ranked %d of %d insight candidate(s)", len(ranked), len(candidates))
    return ranked
