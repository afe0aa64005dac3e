"""Formatting helpers for SpendSight messages and serialisable reports."""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, Mapping

import numpy as np
import pandas as pd

__all__ = ["format_currency", "format_percent", "to_jsonable"]


def format_currency(value: float, decimals: int = 0) -> str:
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.{decimals}f}"


def format_percent(value: float, decimals: int = 0) -> str:
    return f"{value:.{decimals}f}%"


def to_jsonable(value: Any) -> Any:
    """Recursively convert a report into JSON-compatible primitives.

    Dates become ISO strings, numpy scalars become Python numbers and
    non-finite floats become ``None``.
    """

    if isinstance(value, Mapping):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, pd.Period):
        return str(value)
    if isinstance(value, (pd.Timestamp, datetime)):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value
