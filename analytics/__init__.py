"""Analytics helpers shared across SpendSight services."""

from analytics.aggregation import (
    daily_totals,
    merchant_profiles,
    monthly_totals,
    split_current_month,
    summarise_groups,
    trailing_window,
)
from analytics.anomalies import AnomalyReport, detect_anomalies
from analytics.breakdowns import (
    build_category_deep_dive,
    build_merchant_summary,
    build_monthly_trends,
    build_spending_summary,
)
from analytics.forecasting import ForecastBundle, build_forecast
from analytics.habits import HabitReport, detect_habits
from analytics.insights import Insight, InsightCandidate, generate_insights, rank_insights
from analytics.patterns import build_daily_spending, build_spending_patterns
from analytics.recurring import RecurringEntry, RecurringReport, detect_recurring_transactions

__all__ = [
    "daily_totals",
    "merchant_profiles",
    "monthly_totals",
    "split_current_month",
    "summarise_groups",
    "trailing_window",
    "AnomalyReport",
    "detect_anomalies",
    "build_category_deep_dive",
    "build_merchant_summary",
    "build_monthly_trends",
    "build_spending_summary",
    "ForecastBundle",
    "build_forecast",
    "HabitReport",
    "detect_habits",
    "Insight",
    "InsightCandidate",
    "generate_insights",
    "rank_insights",
    "build_daily_spending",
    "build_spending_patterns",
    "RecurringEntry",
    "RecurringReport",
    "detect_recurring_transactions",
]
