"""Tests for the habit detectors."""

from __future__ import annotations

from datetime import date

import pytest

from analytics.habits import (
    detect_category_creep,
    detect_habits,
    detect_impulse_spending,
    detect_merchant_concentration,
    detect_subscription_bloat,
    detect_weekend_splurge,
)


def test_impulse_spending_high_share_of_small_purchases(make_snapshot, reference_date, settings):
    small = [(f"2024-06-{day:02d}", 5.0, "Kiosk") for day in range(1, 7)]
    large = [(f"2024-05-{day:02d}", 60.0, "Market") for day in range(1, 5)]

    impulse = detect_impulse_spending(make_snapshot(small + large), reference_date, settings=settings)

    assert impulse["small_transaction_pct"] == pytest.approx(60.0)
    assert impulse["label"] == "high"
    assert impulse["score"] == pytest.approx(0.8)
    assert impulse["small_transaction_count"] == 6
    assert impulse["avg_small_amount"] == pytest.approx(5.0)
    assert impulse["monthly_small_total"] == pytest.approx(10.0)


def test_impulse_spending_ignores_history_outside_window(make_snapshot, reference_date, settings):
    rows = [("2023-12-01", 5.0, "Kiosk")] * 5 + [("2024-06-01", 80.0, "Market")]

    impulse = detect_impulse_spending(make_snapshot(rows), reference_date, settings=settings)

    assert impulse["label"] == "minimal"
    assert impulse["score"] == pytest.approx(0.1)


def test_category_creep_detects_increase(make_snapshot, reference_date, settings):
    totals = {
        "2023-12": 100.0,
        "2024-01": 100.0,
        "2024-02": 100.0,
        "2024-03": 150.0,
        "2024-04": 150.0,
        "2024-05": 150.0,
    }
    rows = [(f"{month}-03", total, "Bistro", "Dining") for month, total in totals.items()]
    rows += [(f"{month}-04", 50.0, "Market", "Groceries") for month in totals]
    rows += [("2024-04-05", 30.0, "Cinema", "Entertainment"), ("2024-05-05", 90.0, "Cinema", "Entertainment")]
    rows.append(("2024-06-03", 10.0, "Bistro", "Dining"))

    creeps = detect_category_creep(make_snapshot(rows), reference_date, settings=settings)

    assert [row["category"] for row in creeps] == ["Dining"]
    creep = creeps[0]
    assert creep["trend"] == "increasing"
    assert creep["change_pct"] == pytest.approx(50.0)
    assert creep["monthly_totals"] == [100.0, 100.0, 100.0, 150.0, 150.0, 150.0]


def test_category_creep_window_excludes_older_months(make_snapshot, reference_date, settings):
    rows = [(f"2023-{month:02d}-03", 500.0, "Bistro", "Dining") for month in range(6, 12)]
    rows += [("2023-12-03", 100.0, "Bistro", "Dining")]
    rows += [(f"2024-0{month}-03", 100.0, "Bistro", "Dining") for month in range(1, 6)]

    assert detect_category_creep(make_snapshot(rows), reference_date, settings=settings) == []


def test_category_creep_ignores_partial_reference_month(make_snapshot, reference_date, settings):
    rows = [("2023-12-03", 100.0, "Bistro", "Dining")]
    rows += [(f"2024-0{month}-03", 100.0, "Bistro", "Dining") for month in range(1, 6)]
    rows.append(("2024-06-03", 50.0, "Bistro", "Dining"))

    assert detect_category_creep(make_snapshot(rows), reference_date, settings=settings) == []


def test_weekend_splurge_ratio(make_snapshot, reference_date, settings):
    rows = [
        ("2024-06-01", 100.0, "Bar"),  # Saturday
        ("2024-06-08", 100.0, "Bar"),  # Saturday
        ("2024-06-03", 20.0, "Cafe"),  # Monday
        ("2024-06-04", 20.0, "Cafe"),  # Tuesday
    ]

    splurge = detect_weekend_splurge(make_snapshot(rows), reference_date, settings=settings)

    assert splurge["weekend_avg_daily"] == pytest.approx(100.0)
    assert splurge["weekday_avg_daily"] == pytest.approx(20.0)
    assert splurge["ratio"] == pytest.approx(5.0)
    assert splurge["label"] == "high"


def test_weekend_splurge_defaults_without_weekday_spend(make_snapshot, reference_date, settings):
    splurge = detect_weekend_splurge(make_snapshot([("2024-06-01", 100.0, "Bar")]), reference_date, settings=settings)

    assert splurge["ratio"] == pytest.approx(1.0)
    assert splurge["label"] == "balanced"


def test_subscription_bloat_from_recurring_report(settings):
    recurring = {
        "recurring": [
            {"merchant": "Netflix", "avg_amount": 15.99, "status": "active", "active_months": 6},
            {"merchant": "Spotify", "avg_amount": 9.99, "status": "active", "active_months": 4},
            {"merchant": "Old Gym", "avg_amount": 40.0, "status": "inactive", "active_months": 5},
            {"merchant": "Trial", "avg_amount": 4.0, "status": "inactive", "active_months": 2},
        ],
        "total_monthly_recurring": 25.98,
        "total_annual_recurring": 311.76,
    }

    bloat = detect_subscription_bloat(recurring, settings=settings)

    assert bloat["count"] == 2
    assert bloat["total_monthly"] == pytest.approx(25.98)
    assert bloat["total_annual"] == pytest.approx(311.76)
    assert bloat["potentially_forgotten"] == ["Old Gym"]


def test_single_merchant_concentration(make_snapshot, reference_date, settings):
    rows = [("2024-06-01", 40.0, "Market"), ("2024-06-09", 60.0, "Market")]

    concentration = detect_merchant_concentration(make_snapshot(rows), reference_date, settings=settings)

    assert concentration["hhi"] == pytest.approx(1.0)
    assert concentration["top_merchant"] == "Market"
    assert concentration["top_merchant_pct"] == pytest.approx(100.0)
    assert concentration["top_3_pct"] == pytest.approx(100.0)
    assert concentration["label"] == "high"


def test_spread_spend_is_diversified(make_snapshot, reference_date, settings):
    rows = [("2024-06-01", 25.0, f"Shop {index}") for index in range(20)]

    concentration = detect_merchant_concentration(make_snapshot(rows), reference_date, settings=settings)

    assert concentration["hhi"] == pytest.approx(0.05)
    assert concentration["top_3_pct"] == pytest.approx(15.0)
    assert concentration["label"] == "diversified"


def test_empty_snapshot_habits_are_neutral(empty_snapshot, reference_date, settings):
    habits = detect_habits(empty_snapshot, reference_date, settings=settings)

    assert habits["impulse_spending"]["score"] == 0.0
    assert habits["impulse_spending"]["small_transaction_pct"] == 0.0
    assert habits["category_creep"] == []
    assert habits["weekend_splurge"]["ratio"] == pytest.approx(1.0)
    assert habits["subscription_bloat"]["count"] == 0
    assert habits["subscription_bloat"]["total_monthly"] == 0.0
    assert habits["merchant_concentration"]["hhi"] == 0.0
    assert habits["merchant_concentration"]["label"] == "diversified"


def test_habits_reuse_supplied_recurring(make_snapshot, settings):
    recurring = {"recurring": [], "total_monthly_recurring": 0.0, "total_annual_recurring": 0.0}
    snapshot = make_snapshot([("2024-06-01", 12.0, "Kiosk")])

    habits = detect_habits(snapshot, date(2024, 6, 15), recurring=recurring, settings=settings)

    assert habits["subscription_bloat"]["count"] == 0
