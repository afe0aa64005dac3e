"""Core domain package for the SpendSight engine.

The report entry points live in :mod:`core.insights_service`, which depends on
the ``analytics`` package and is therefore not imported here.
"""

from .data_loader import SnapshotError, build_snapshot, coerce_snapshot, load_transactions
from .formatting import to_jsonable
from .logging_setup import configure_logging, get_logger
from .models import AnalyticsReport, Transaction

__all__ = [
    "AnalyticsReport",
    "Transaction",
    "SnapshotError",
    "build_snapshot",
    "coerce_snapshot",
    "load_transactions",
    "to_jsonable",
    "configure_logging",
    "get_logger",
]
