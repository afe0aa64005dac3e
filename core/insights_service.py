"""Core logic for assembling a SpendSight analytics report."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Any, Iterable, Mapping

import pandas as pd

from analytics.aggregation import resolve_reference_date
from analytics.anomalies import detect_anomalies
from analytics.breakdowns import build_merchant_summary, build_monthly_trends, build_spending_summary
from analytics.forecasting import build_forecast
from analytics.habits import detect_habits
from analytics.insights import generate_insights
from analytics.patterns import build_daily_spending, build_spending_patterns
from analytics.recurring import detect_recurring_transactions
from config import Settings, get_settings
from core.data_loader import coerce_snapshot, load_transactions
from core.logging_setup import get_logger
from core.models import AnalyticsReport, Transaction

__all__ = ["prepare_analytics_report", "load_and_report"]

_logger = get_logger("spendsight.service")


def prepare_analytics_report(
    transactions: pd.DataFrame | Iterable[Transaction | Mapping[str, Any]],
    reference_date: date | pd.Timestamp,
    *,
    settings: Settings | None = None,
) -> AnalyticsReport:
    """Run every detector once over a single snapshot of ``transactions``.

    The snapshot is materialised up front so all detectors see the same
    rows; recurring output feeds the subscription habit and every detector
    output feeds the insight ranker without recomputation.
    """

    settings = settings or get_settings()
    snapshot = coerce_snapshot(transactions)
    today = resolve_reference_date(reference_date)

    recurring = detect_recurring_transactions(snapshot, today, settings=settings)
    anomalies = detect_anomalies(snapshot, today, settings=settings)
    forecast = build_forecast(snapshot, today, settings=settings)
    habits = detect_habits(snapshot, today, recurring=recurring, settings=settings)
    insights = generate_insights(
        snapshot,
        today,
        settings=settings,
        recurring=recurring,
        anomalies=anomalies,
        forecast=forecast,
        habits=habits,
    )

    _logger.info(
        "Built analytics report for %s over %d transaction(s) with %d insight(s)",
        today.date().isoformat(),
        len(snapshot),
        len(insights),
    )

    return {
        "reference_date": today.date(),
        "transaction_count": int(len(snapshot)),
        "summary": build_spending_summary(snapshot, today),
        "monthly_trends": build_monthly_trends(snapshot, today),
        "merchants": build_merchant_summary(snapshot, today),
        "recurring": recurring,
        "anomalies": anomalies,
        "forecast": forecast,
        "habits": habits,
        "daily_spending": build_daily_spending(snapshot, today),
        "patterns": build_spending_patterns(snapshot, today),
        "insights": insights,
    }


def load_and_report(
    csv_path: str | Path,
    reference_date: date | pd.Timestamp,
    *,
    settings: Settings | None = None,
) -> AnalyticsReport:
    """Build a report from a CSV export of the transaction store."""

    return prepare_analytics_report(load_transactions(csv_path), reference_date, settings=settings)
