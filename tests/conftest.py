"""Shared fixtures for the SpendSight test-suite."""

from __future__ import annotations

from datetime import date
from typing import Callable, Sequence

import pandas as pd
import pytest

from config import Settings
from core.data_loader import build_snapshot

REFERENCE_DATE = date(2024, 6, 15)

Row = tuple  # (date, amount, merchant[, category[, card]])


@pytest.fixture()
def settings() -> Settings:
    return Settings()


@pytest.fixture()
def reference_date() -> date:
    return REFERENCE_DATE


@pytest.fixture()
def make_snapshot() -> Callable[[Sequence[Row]], pd.DataFrame]:
    """Build a prepared snapshot from compact ``(date, amount, merchant, ...)`` rows."""

    def _make(rows: Sequence[Row]) -> pd.DataFrame:
        records = []
        for index, row in enumerate(rows):
            day, amount, merchant, *rest = row
            category = rest[0] if rest else "General"
            card = rest[1] if len(rest) > 1 else "amex"
            records.append(
                {
                    "id": f"txn-{index}",
                    "date": day,
                    "description": f"{merchant.upper()} #{index}",
                    "merchant_normalized": merchant,
                    "amount": amount,
                    "category": category,
                    "card": card,
                }
            )
        return build_snapshot(records)

    return _make


@pytest.fixture()
def empty_snapshot() -> pd.DataFrame:
    return build_snapshot([])
