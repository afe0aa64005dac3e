"""Snapshot preparation for the SpendSight analytics engine.

Every detector works on the same prepared DataFrame: required fields are
validated here, the merchant and category fallbacks are resolved exactly once,
and non-expense rows are dropped so that ``amount > 0`` holds downstream.
"""

from __future__ import annotations

import math
from dataclasses import asdict
from functools import lru_cache
from pathlib import Path
from typing import Any, Final, Iterable, Mapping

import pandas as pd

from core.logging_setup import get_logger
from core.models import SNAPSHOT_COLUMNS, UNCATEGORIZED, Transaction

__all__ = [
    "SnapshotError",
    "REQUIRED_FIELDS",
    "resolve_merchant",
    "resolve_category",
    "empty_snapshot",
    "build_snapshot",
    "coerce_snapshot",
    "load_transactions",
]

_logger = get_logger("spendsight.data_loader")

REQUIRED_FIELDS: Final[tuple[str, ...]] = ("date", "description", "amount")
_CACHE_SIZE: Final[int] = 8
_CSV_DTYPES: Final[dict[str, str]] = {
    "id": "string",
    "description": "string",
    "merchant_normalized": "string",
    "category": "string",
    "card": "string",
}


class SnapshotError(ValueError):
    """Raised when upstream records break the transaction contract."""


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float):
        return math.isnan(value)
    return value is pd.NA or value is pd.NaT


def resolve_merchant(merchant_normalized: Any, description: Any) -> str:
    """Return the canonical merchant, falling back to the raw description."""

    if not _is_missing(merchant_normalized):
        return str(merchant_normalized).strip()
    if not _is_missing(description):
        return str(description).strip()
    return "Unknown merchant"


def resolve_category(category: Any) -> str:
    if _is_missing(category):
        return UNCATEGORIZED
    return str(category).strip()


def empty_snapshot() -> pd.DataFrame:
    """Return a snapshot frame with the expected columns and no rows."""

    return _finalise_frame(pd.DataFrame(columns=[c for c in SNAPSHOT_COLUMNS if c != "month"]))


def _record_to_mapping(record: Transaction | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(record, Transaction):
        return asdict(record)
    return dict(record)


def build_snapshot(records: Iterable[Transaction | Mapping[str, Any]]) -> pd.DataFrame:
    """Validate upstream records and return the prepared snapshot frame.

    Parameters
    ----------
    records:
        ``Transaction`` instances or mappings with the same field names.

    Returns
    -------
    pandas.DataFrame
        Columns ``id, date, description, merchant, amount, category, card,
        month`` sorted by date. Non-positive amounts are dropped.

    Raises
    ------
    SnapshotError
        When a record lacks a required field or carries an unparseable value.
    """

    rows: list[dict[str, Any]] = []
    for position, record in enumerate(records):
        data = _record_to_mapping(record)
        missing = [name for name in REQUIRED_FIELDS if _is_missing(data.get(name))]
        if missing:
            raise SnapshotError(
                f"Transaction at position {position} is missing required field(s): {', '.join(missing)}"
            )

        try:
            amount = float(data["amount"])
        except (TypeError, ValueError) as exc:
            raise SnapshotError(
                f"Transaction at position {position} has a non-numeric amount: {data['amount']!r}"
            ) from exc

        record_id = data.get("id")
        rows.append(
            {
                "id": str(position) if _is_missing(record_id) else str(record_id),
                "date": data["date"],
                "description": str(data["description"]).strip(),
                "merchant": resolve_merchant(data.get("merchant_normalized"), data["description"]),
                "amount": amount,
                "category": resolve_category(data.get("category")),
                "card": "" if _is_missing(data.get("card")) else str(data["card"]),
            }
        )

    if not rows:
        return empty_snapshot()

    frame = pd.DataFrame(rows, columns=[c for c in SNAPSHOT_COLUMNS if c != "month"])
    return _finalise_frame(frame)


def _finalise_frame(frame: pd.DataFrame) -> pd.DataFrame:
    try:
        frame["date"] = pd.to_datetime(frame["date"]).dt.normalize()
    except (TypeError, ValueError) as exc:
        raise SnapshotError(f"Unparseable transaction date: {exc}") from exc

    frame["amount"] = frame["amount"].astype(float)
    for column in ("id", "description", "merchant", "category", "card"):
        frame[column] = frame[column].astype(object)

    non_positive = frame["amount"] <= 0
    if non_positive.any():
        _logger.warning(
            "Dropping %d non-positive transaction(s); credits must be filtered upstream",
            int(non_positive.sum()),
        )
        frame = frame.loc[~non_positive].copy()

    frame["month"] = frame["date"].dt.to_period("M")
    frame = frame.sort_values("date", kind="mergesort").reset_index(drop=True)
    return frame


def coerce_snapshot(transactions: pd.DataFrame | Iterable[Transaction | Mapping[str, Any]]) -> pd.DataFrame:
    """Return a prepared snapshot from records or an existing frame."""

    if isinstance(transactions, pd.DataFrame):
        if set(SNAPSHOT_COLUMNS).issubset(transactions.columns):
            # already resolved; still enforce dates, positive amounts and ordering
            columns = [c for c in SNAPSHOT_COLUMNS if c != "month"]
            return _finalise_frame(transactions[columns].copy())
        return build_snapshot(transactions.to_dict(orient="records"))
    return build_snapshot(transactions)


@lru_cache(maxsize=_CACHE_SIZE)
def _load_cached(path: str, modified_ns: int) -> pd.DataFrame:
    df = pd.read_csv(path, dtype=_CSV_DTYPES)
    _logger.info("Loaded %d row(s) from %s", len(df), path)
    return build_snapshot(df.to_dict(orient="records"))


def load_transactions(csv_path: str | Path) -> pd.DataFrame:
    """Return a prepared snapshot for a CSV export of the transaction store.

    Results are cached per file path and modification time, so rewriting the
    export invalidates the cached snapshot.
    """

    path = Path(csv_path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")

    return _load_cached(str(path.resolve()), path.stat().st_mtime_ns)
