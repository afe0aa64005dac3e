"""Category and transaction anomaly detection against historical baselines."""

from __future__ import annotations

from datetime import date
from typing import TypedDict

import pandas as pd

from analytics.aggregation import monthly_totals, resolve_reference_date, snapshot_as_of, split_current_month
from config import Settings, get_settings
from core.formatting import format_currency, format_percent
from core.logging_setup import get_logger

__all__ = [
    "CategoryAnomaly",
    "TransactionAnomaly",
    "AnomalyReport",
    "anomaly_severity",
    "detect_category_anomalies",
    "detect_transaction_anomalies",
    "detect_anomalies",
]

_logger = get_logger("spendsight.anomalies")


class CategoryAnomaly(TypedDict):
    category: str
    current_month: float
    avg_monthly: float
    stddev: float
    z_score: float
    severity: str
    pct_above_avg: float
    message: str


class TransactionAnomaly(TypedDict):
    id: str
    date: date
    description: str
    merchant: str
    amount: float
    category: str
    category_avg: float
    times_avg: float
    message: str


class AnomalyReport(TypedDict):
    category_anomalies: list[CategoryAnomaly]
    transaction_anomalies: list[TransactionAnomaly]


def anomaly_severity(z_score: float, settings: Settings) -> str:
    if z_score > settings.anomaly_z_critical:
        return "critical"
    if z_score > settings.anomaly_z_high:
        return "high"
    return "elevated"


def detect_category_anomalies(
    snapshot: pd.DataFrame,
    reference_date: date | pd.Timestamp,
    *,
    settings: Settings | None = None,
) -> list[CategoryAnomaly]:
    """Flag categories whose current-month total is far above their monthly norm.

    The baseline is built from completed months only; categories with fewer
    than ``anomaly_min_months`` months or a near-zero deviation are skipped.
    """

    settings = settings or get_settings()
    today = resolve_reference_date(reference_date)
    history, current = split_current_month(snapshot_as_of(snapshot, today), today)
    if history.empty or current.empty:
        return []

    monthly = monthly_totals(history, by="category").rename("total").reset_index()
    grouped = monthly.groupby("category")["total"]
    baseline = pd.DataFrame(
        {
            "months": grouped.count(),
            "mean": grouped.mean(),
            "stddev": grouped.std(ddof=0).fillna(0.0),
        }
    )
    current_totals = current.groupby("category")["amount"].sum()

    anomalies: list[CategoryAnomaly] = []
    for category, current_total in current_totals.items():
        if category not in baseline.index:
            continue
        row = baseline.loc[category]
        if int(row["months"]) < settings.anomaly_min_months:
            continue

        mean = float(row["mean"])
        stddev = float(row["stddev"])
        if stddev < settings.anomaly_min_stddev:
            continue

        current_total = float(current_total)
        z_score = (current_total - mean) / stddev
        if z_score <= settings.anomaly_z_threshold:
            continue

        pct_above = (current_total - mean) / mean * 100 if mean else 0.0
        anomalies.append(
            {
                "category": str(category),
                "current_month": round(current_total, 2),
                "avg_monthly": round(mean, 2),
                "stddev": round(stddev, 2),
                "z_score": round(z_score, 2),
                "severity": anomaly_severity(z_score, settings),
                "pct_above_avg": round(pct_above, 1),
                "message": (
                    f"{category} spending is {format_currency(current_total)} this month, "
                    f"{format_percent(pct_above)} above your {format_currency(mean)} monthly average"
                ),
            }
        )

    anomalies.sort(key=lambda row: -row["z_score"])
    return anomalies


def detect_transaction_anomalies(
    snapshot: pd.DataFrame,
    reference_date: date | pd.Timestamp,
    *,
    settings: Settings | None = None,
) -> list[TransactionAnomaly]:
    """Return current-month transactions far larger than their category's average."""

    settings = settings or get_settings()
    today = resolve_reference_date(reference_date)
    expenses = snapshot_as_of(snapshot, today)
    _, current = split_current_month(expenses, today)
    if current.empty:
        return []

    category_avg = expenses.groupby("category")["amount"].mean()
    candidates = current.assign(category_avg=current["category"].map(category_avg))
    candidates = candidates.loc[
        candidates["amount"] > settings.transaction_anomaly_multiplier * candidates["category_avg"]
    ]
    if candidates.empty:
        return []

    candidates = candidates.assign(times_avg=candidates["amount"] / candidates["category_avg"])
    candidates = candidates.sort_values("times_avg", ascending=False, kind="mergesort")
    candidates = candidates.head(settings.transaction_anomaly_limit)

    results: list[TransactionAnomaly] = []
    for record in candidates.to_dict(orient="records"):
        amount = float(record["amount"])
        times_avg = float(record["times_avg"])
        results.append(
            {
                "id": str(record["id"]),
                "date": pd.Timestamp(record["date"]).date(),
                "description": str(record["description"]),
                "merchant": str(record["merchant"]),
                "amount": round(amount, 2),
                "category": str(record["category"]),
                "category_avg": round(float(record["category_avg"]), 2),
                "times_avg": round(times_avg, 2),
                "message": (
                    f"{format_currency(amount, 2)} at {record['merchant']} is {times_avg:.1f}x "
                    f"your typical {record['category']} purchase"
                ),
            }
        )
    return results


def detect_anomalies(
    snapshot: pd.DataFrame,
    reference_date: date | pd.Timestamp,
    *,
    settings: Settings | None = None,
) -> AnomalyReport:
    settings = settings or get_settings()
    report: AnomalyReport = {
        "category_anomalies": detect_category_anomalies(snapshot, reference_date, settings=settings),
        "transaction_anomalies": detect_transaction_anomalies(snapshot, reference_date, settings=settings),
    }
    _logger.debug(
        "Found %d category and %d transaction anomalies",
        len(report["category_anomalies"]),
        len(report["transaction_anomalies"]),
    )
    return report
