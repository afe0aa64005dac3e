"""Tests for insight scoring and ranking."""

from __future__ import annotations

import pytest

from analytics.forecasting import build_forecast
from analytics.habits import detect_habits
from analytics.insights import (
    InsightCandidate,
    build_insight_candidates,
    generate_insights,
    rank_insights,
    score_anomaly,
    score_forgotten_subscriptions,
)
from config import get_settings


def _candidate(priority: float, title: str = "Insight") -> InsightCandidate:
    return InsightCandidate(
        type="habit",
        severity="low",
        icon="info",
        title=title,
        message=f"{title} message",
        priority=priority,
    )


def test_rank_returns_top_eight_descending():
    priorities = [12.0, 87.0, 33.0, 45.0, 91.0, 5.0, 60.0, 71.0, 28.0, 54.0]

    ranked = rank_insights([_candidate(p) for p in priorities], limit=8)

    assert [row["priority"] for row in ranked] == sorted(priorities, reverse=True)[:8]
    assert len(ranked) == 8


def test_rank_default_limit_comes_from_settings(monkeypatch):
    monkeypatch.setenv("SPENDSIGHT_INSIGHT_LIMIT", "3")
    get_settings.cache_clear()
    try:
        ranked = rank_insights([_candidate(float(priority)) for priority in range(10)])
    finally:
        get_settings.cache_clear()

    assert [row["priority"] for row in ranked] == [9.0, 8.0, 7.0]


def test_rank_ties_keep_candidate_order():
    candidates = [_candidate(50.0, "first"), _candidate(70.0, "top"), _candidate(50.0, "second")]

    ranked = rank_insights(candidates)

    assert [row["title"] for row in ranked] == ["top", "first", "second"]


def test_anomaly_score_scales_with_z_and_is_capped(settings):
    assert score_anomaly(2.0, settings) < score_anomaly(3.0, settings)
    assert score_anomaly(50.0, settings) == settings.anomaly_max_priority


def test_forgotten_subscription_score_grows_with_count(settings):
    assert score_forgotten_subscriptions(1, settings) < score_forgotten_subscriptions(3, settings)


def _anomaly_report(z_score: float = 3.06, severity: str = "critical"):
    return {
        "category_anomalies": [
            {
                "category": "Dining",
                "current_month": 150.0,
                "avg_monthly": 100.0,
                "stddev": 16.33,
                "z_score": z_score,
                "severity": severity,
                "pct_above_avg": 50.0,
                "message": "Dining spending is high",
            }
        ],
        "transaction_anomalies": [],
    }


def test_candidates_include_anomaly_and_positive(make_snapshot, reference_date, settings):
    snapshot = make_snapshot(
        [
            ("2024-04-02", 1000.0, "Landlord", "Housing"),
            ("2024-05-02", 1000.0, "Landlord", "Housing"),
            ("2024-06-02", 100.0, "Market", "Groceries"),
        ]
    )
    forecast = build_forecast(snapshot, reference_date, settings=settings)
    habits = detect_habits(snapshot, reference_date, settings=settings)

    candidates = build_insight_candidates(_anomaly_report(), forecast, habits, settings=settings)
    by_type = {candidate.type: candidate for candidate in candidates}

    assert by_type["anomaly"].severity == "high"
    assert by_type["anomaly"].category == "Dining"
    assert by_type["anomaly"].priority == pytest.approx(score_anomaly(3.06, settings))
    assert by_type["positive"].priority == settings.positive_priority
    assert by_type["positive"].severity == "low"


def test_forecast_overspend_candidate(make_snapshot, reference_date, settings):
    snapshot = make_snapshot(
        [
            ("2024-04-02", 100.0, "Market", "Groceries"),
            ("2024-05-02", 100.0, "Market", "Groceries"),
            ("2024-06-02", 300.0, "Market", "Groceries"),
        ]
    )
    forecast = build_forecast(snapshot, reference_date, settings=settings)
    habits = detect_habits(snapshot, reference_date, settings=settings)

    candidates = build_insight_candidates(
        {"category_anomalies": [], "transaction_anomalies": []}, forecast, habits, settings=settings
    )
    types = [candidate.type for candidate in candidates]

    assert "forecast" in types
    assert "trend" in types
    assert "positive" not in types


def test_generate_insights_end_to_end(make_snapshot, reference_date, settings):
    rows = [
        ("2024-03-10", 80.0, "Bistro", "Dining"),
        ("2024-04-10", 100.0, "Bistro", "Dining"),
        ("2024-05-10", 120.0, "Bistro", "Dining"),
        ("2024-06-05", 150.0, "Bistro", "Dining"),
    ]
    rows += [(f"2024-0{month}-05", 15.99, "Netflix", "Subscriptions") for month in range(1, 5)]

    insights = generate_insights(make_snapshot(rows), reference_date, settings=settings)

    assert 0 < len(insights) <= settings.insight_limit
    priorities = [row["priority"] for row in insights]
    assert priorities == sorted(priorities, reverse=True)
    assert any(row["type"] == "anomaly" and row["category"] == "Dining" for row in insights)
    assert any(row["type"] == "subscription" and "Netflix" in row["message"] for row in insights)
    for row in insights:
        assert row["severity"] in {"low", "medium", "high"}


def test_generate_insights_empty_snapshot(empty_snapshot, reference_date, settings):
    assert generate_insights(empty_snapshot, reference_date, settings=settings) == []
