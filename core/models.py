"""Shared data model definitions for the SpendSight engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, TypedDict

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from analytics.anomalies import AnomalyReport
    from analytics.breakdowns import MerchantStats, MonthlyTrendRow, SpendingSummary
    from analytics.forecasting import ForecastBundle
    from analytics.habits import HabitReport
    from analytics.insights import Insight
    from analytics.patterns import DailySpending, SpendingPatterns
    from analytics.recurring import RecurringReport


SNAPSHOT_COLUMNS: tuple[str, ...] = (
    "id",
    "date",
    "description",
    "merchant",
    "amount",
    "category",
    "card",
    "month",
)

UNCATEGORIZED = "Uncategorized"


@dataclass(frozen=True, slots=True)
class Transaction:
    """A single debit supplied by the upstream store."""

    id: str
    date: date
    description: str
    amount: Decimal | float
    category: str
    card: str
    merchant_normalized: str | None = None


class AnalyticsReport(TypedDict):
    reference_date: date
    transaction_count: int
    summary: "SpendingSummary"
    monthly_trends: list["MonthlyTrendRow"]
    merchants: list["MerchantStats"]
    recurring: "RecurringReport"
    anomalies: "AnomalyReport"
    forecast: "ForecastBundle"
    habits: "HabitReport"
    daily_spending: list["DailySpending"]
    patterns: "SpendingPatterns"
    insights: list["Insight"]


__all__ = [
    "SNAPSHOT_COLUMNS",
    "UNCATEGORIZED",
    "Transaction",
    "AnalyticsReport",
]
