"""Recurring charge detection helpers."""

from __future__ import annotations

from datetime import date
from typing import TypedDict

import pandas as pd

from analytics.aggregation import merchant_profiles, resolve_reference_date, snapshot_as_of, trailing_window
from config import Settings, get_settings
from core.logging_setup import get_logger

__all__ = [
    "RecurringEntry",
    "RecurringReport",
    "detect_recurring_transactions",
]

_logger = get_logger("spendsight.recurring")


class RecurringEntry(TypedDict):
    """Metadata describing a detected recurring charge."""

    merchant: str
    avg_amount: float
    stddev_amount: float
    frequency: str
    frequency_per_month: float
    transaction_count: int
    active_months: int
    first_seen: date
    last_seen: date
    last_gap_days: int
    status: str
    potentially_forgotten: bool
    estimated_annual: float


class RecurringReport(TypedDict):
    recurring: list[RecurringEntry]
    total_monthly_recurring: float
    total_annual_recurring: float


def detect_recurring_transactions(
    snapshot: pd.DataFrame,
    reference_date: date | pd.Timestamp,
    *,
    lookback_days: int | None = None,
    settings: Settings | None = None,
) -> RecurringReport:
    """Identify merchants billed at a near-monthly cadence with stable amounts.

    Parameters
    ----------
    snapshot:
        Prepared transaction snapshot.
    reference_date:
        The "today" used to measure how long ago each merchant last charged.
    lookback_days:
        Optional trailing window; defaults to ``settings.recurring_lookback_days``
        (the whole snapshot when unset).
    settings:
        Threshold overrides, defaults to :func:`config.get_settings`.

    Returns
    -------
    RecurringReport
        Recurring merchants sorted by average amount, plus monthly and annual
        totals over the active ones.
    """

    settings = settings or get_settings()
    today = resolve_reference_date(reference_date)
    expenses = snapshot_as_of(snapshot, today)

    window = lookback_days if lookback_days is not None else settings.recurring_lookback_days
    if window is not None:
        expenses = trailing_window(expenses, today, window)

    entries: list[RecurringEntry] = []
    for merchant, profile in merchant_profiles(expenses).iterrows():
        active_months = int(profile["active_months"])
        if active_months < settings.recurring_min_active_months:
            continue

        avg_amount = float(profile["mean"])
        stddev_amount = float(profile["stddev"])
        if abs(avg_amount) < settings.amount_epsilon:
            continue
        if stddev_amount > settings.recurring_max_stddev_ratio * avg_amount:
            continue

        count = int(profile["count"])
        frequency = count / active_months
        if not settings.recurring_min_frequency <= frequency <= settings.recurring_max_frequency:
            continue

        last_seen = pd.Timestamp(profile["last_seen"])
        last_gap_days = int((today - last_seen).days)
        status = "active" if last_gap_days <= settings.recurring_active_gap_days else "inactive"

        entries.append(
            {
                "merchant": str(merchant),
                "avg_amount": round(avg_amount, 2),
                "stddev_amount": round(stddev_amount, 2),
                "frequency": "biweekly" if frequency > settings.recurring_biweekly_frequency else "monthly",
                "frequency_per_month": round(frequency, 2),
                "transaction_count": count,
                "active_months": active_months,
                "first_seen": pd.Timestamp(profile["first_seen"]).date(),
                "last_seen": last_seen.date(),
                "last_gap_days": last_gap_days,
                "status": status,
                "potentially_forgotten": status == "inactive"
                and active_months >= settings.recurring_forgotten_min_months,
                "estimated_annual": round(avg_amount * 12, 2),
            }
        )

    entries.sort(key=lambda row: -row["avg_amount"])

    monthly = sum(entry["avg_amount"] for entry in entries if entry["status"] == "active")
    _logger.debug("Detected %d recurring merchant(s)", len(entries))
    return {
        "recurring": entries,
        "total_monthly_recurring": round(monthly, 2),
        "total_annual_recurring": round(monthly * 12, 2),
    }
