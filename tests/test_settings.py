"""Tests for environment-driven engine settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from config import Settings


def test_defaults():
    settings = Settings()

    assert settings.ewma_alpha == pytest.approx(0.3)
    assert settings.insight_limit == 8
    assert settings.recurring_lookback_days is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SPENDSIGHT_EWMA_ALPHA", "0.5")
    monkeypatch.setenv("SPENDSIGHT_INSIGHT_LIMIT", "3")

    settings = Settings()

    assert settings.ewma_alpha == pytest.approx(0.5)
    assert settings.insight_limit == 3


def test_alpha_must_be_a_weight():
    with pytest.raises(ValidationError):
        Settings(ewma_alpha=0)


def test_frequency_band_must_be_ordered():
    with pytest.raises(ValidationError):
        Settings(recurring_min_frequency=2.0, recurring_max_frequency=1.5)
