"""Grouping and summary statistics shared by every SpendSight detector."""

from __future__ import annotations

from datetime import date, datetime
from typing import Sequence

import pandas as pd

__all__ = [
    "CATEGORY",
    "CATEGORY_MONTH",
    "MERCHANT",
    "MERCHANT_MONTH",
    "DATE",
    "resolve_reference_date",
    "month_key",
    "snapshot_as_of",
    "trailing_window",
    "split_current_month",
    "summarise_groups",
    "monthly_totals",
    "daily_totals",
    "merchant_profiles",
]

CATEGORY: tuple[str, ...] = ("category",)
CATEGORY_MONTH: tuple[str, ...] = ("category", "month")
MERCHANT: tuple[str, ...] = ("merchant",)
MERCHANT_MONTH: tuple[str, ...] = ("merchant", "month")
DATE: tuple[str, ...] = ("date",)

_STAT_COLUMNS = ["count", "sum", "mean", "stddev"]
_PROFILE_COLUMNS = ["count", "total", "mean", "stddev", "active_months", "first_seen", "last_seen"]


def resolve_reference_date(reference_date: date | datetime | pd.Timestamp | str) -> pd.Timestamp:
    """Return ``reference_date`` as a midnight timestamp."""

    return pd.Timestamp(reference_date).normalize()


def month_key(value: date | datetime | pd.Timestamp) -> pd.Period:
    return pd.Period(pd.Timestamp(value), freq="M")


def snapshot_as_of(snapshot: pd.DataFrame, reference: pd.Timestamp) -> pd.DataFrame:
    """Drop transactions dated after ``reference``."""

    if snapshot.empty:
        return snapshot
    return snapshot.loc[snapshot["date"] <= reference]


def trailing_window(snapshot: pd.DataFrame, reference: pd.Timestamp, days: int) -> pd.DataFrame:
    """Return rows in the ``days``-long window ending on ``reference`` inclusive."""

    if snapshot.empty:
        return snapshot
    start = reference - pd.Timedelta(days=days)
    mask = (snapshot["date"] > start) & (snapshot["date"] <= reference)
    return snapshot.loc[mask]


def split_current_month(snapshot: pd.DataFrame, reference: pd.Timestamp) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Split into completed-month history and the partial reference month."""

    current_period = month_key(reference)
    if snapshot.empty:
        return snapshot, snapshot
    history = snapshot.loc[snapshot["month"] < current_period]
    current = snapshot.loc[(snapshot["month"] == current_period) & (snapshot["date"] <= reference)]
    return history, current


def summarise_groups(snapshot: pd.DataFrame, keys: str | Sequence[str]) -> pd.DataFrame:
    """Return ``count, sum, mean, stddev`` of amount for each distinct key.

    Parameters
    ----------
    snapshot:
        Prepared snapshot frame.
    keys:
        Column name or names to group by, e.g. :data:`CATEGORY_MONTH`.

    Returns
    -------
    pandas.DataFrame
        Indexed by the group key. ``stddev`` is the population standard
        deviation, so single-transaction groups report 0.
    """

    key_list = [keys] if isinstance(keys, str) else list(keys)
    if snapshot.empty:
        return pd.DataFrame(columns=_STAT_COLUMNS, dtype=float)

    grouped = snapshot.groupby(key_list, sort=True)["amount"]
    stats = grouped.agg(["count", "sum", "mean"])
    stats["stddev"] = grouped.std(ddof=0).fillna(0.0)
    return stats[_STAT_COLUMNS]


def monthly_totals(snapshot: pd.DataFrame, by: str | None = None) -> pd.Series:
    """Return amount totals per month, optionally per ``(by, month)``."""

    if snapshot.empty:
        return pd.Series(dtype=float)
    keys = ["month"] if by is None else [by, "month"]
    return snapshot.groupby(keys, sort=True)["amount"].sum()


def daily_totals(snapshot: pd.DataFrame) -> pd.Series:
    """Return amount totals for each calendar date that had spend."""

    if snapshot.empty:
        return pd.Series(dtype=float, index=pd.DatetimeIndex([]))
    return snapshot.groupby("date", sort=True)["amount"].sum()


def merchant_profiles(snapshot: pd.DataFrame) -> pd.DataFrame:
    """Return per-merchant amount statistics and activity span."""

    if snapshot.empty:
        return pd.DataFrame(columns=_PROFILE_COLUMNS)

    grouped = snapshot.groupby("merchant", sort=True)
    amounts = grouped["amount"]
    profiles = pd.DataFrame(
        {
            "count": amounts.count(),
            "total": amounts.sum(),
            "mean": amounts.mean(),
            "stddev": amounts.std(ddof=0).fillna(0.0),
            "active_months": grouped["month"].nunique(),
            "first_seen": grouped["date"].min(),
            "last_seen": grouped["date"].max(),
        }
    )
    return profiles[_PROFILE_COLUMNS]
