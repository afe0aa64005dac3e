"""Tests for category and transaction anomaly detection."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from analytics.anomalies import (
    anomaly_severity,
    detect_anomalies,
    detect_category_anomalies,
    detect_transaction_anomalies,
)


def _dining_history(totals):
    months = ["2024-03-10", "2024-04-10", "2024-05-10"]
    return [(day, total, "Bistro", "Dining") for day, total in zip(months, totals)]


def test_flat_history_is_not_flagged(make_snapshot, reference_date, settings):
    snapshot = make_snapshot(_dining_history([100, 100, 100]) + [("2024-06-05", 150, "Bistro", "Dining")])

    assert detect_category_anomalies(snapshot, reference_date, settings=settings) == []


def test_spike_above_varied_history_is_critical(make_snapshot, reference_date, settings):
    snapshot = make_snapshot(_dining_history([80, 100, 120]) + [("2024-06-05", 150, "Bistro", "Dining")])

    anomalies = detect_category_anomalies(snapshot, reference_date, settings=settings)

    assert len(anomalies) == 1
    anomaly = anomalies[0]
    assert anomaly["category"] == "Dining"
    assert anomaly["avg_monthly"] == pytest.approx(100.0)
    assert anomaly["stddev"] == pytest.approx(16.33, abs=0.01)
    assert anomaly["z_score"] == pytest.approx(3.06, abs=0.01)
    assert anomaly["severity"] == "critical"
    assert anomaly["pct_above_avg"] == pytest.approx(50.0)
    assert "Dining" in anomaly["message"]


def test_single_month_history_is_skipped(make_snapshot, reference_date, settings):
    snapshot = make_snapshot([("2024-05-10", 50, "Bistro", "Dining"), ("2024-06-05", 500, "Bistro", "Dining")])

    assert detect_category_anomalies(snapshot, reference_date, settings=settings) == []


def test_severity_tiers(settings):
    assert anomaly_severity(3.5, settings) == "critical"
    assert anomaly_severity(2.5, settings) == "high"
    assert anomaly_severity(1.8, settings) == "elevated"


def test_large_transaction_flagged(make_snapshot, reference_date, settings):
    rows = [(f"2024-0{month}-02", 50.0, "Market", "Groceries") for month in range(1, 7)]
    rows.append(("2024-06-04", 50.0, "Market", "Groceries"))
    rows.append(("2024-06-08", 400.0, "Warehouse Club", "Groceries"))
    snapshot = make_snapshot(rows)

    anomalies = detect_transaction_anomalies(snapshot, reference_date, settings=settings)

    assert len(anomalies) == 1
    anomaly = anomalies[0]
    assert anomaly["merchant"] == "Warehouse Club"
    assert anomaly["date"] == date(2024, 6, 8)
    assert anomaly["category_avg"] == pytest.approx(93.75)
    assert anomaly["times_avg"] == pytest.approx(4.27, abs=0.01)


def test_transaction_anomalies_capped_and_sorted(make_snapshot, reference_date, settings):
    start = date(2024, 1, 1)
    rows = [((start + timedelta(days=day)).isoformat(), 10.0, "Gadgets", "Electronics") for day in range(40)]
    rows += [(f"2024-06-{day + 1:02d}", 100.0 + day, "Gadgets", "Electronics") for day in range(12)]
    snapshot = make_snapshot(rows)

    anomalies = detect_transaction_anomalies(snapshot, reference_date, settings=settings)

    assert len(anomalies) == 10
    ratios = [row["times_avg"] for row in anomalies]
    assert ratios == sorted(ratios, reverse=True)
    assert anomalies[0]["amount"] == pytest.approx(111.0)


def test_empty_snapshot_has_no_anomalies(empty_snapshot, reference_date, settings):
    assert detect_anomalies(empty_snapshot, reference_date, settings=settings) == {
        "category_anomalies": [],
        "transaction_anomalies": [],
    }
