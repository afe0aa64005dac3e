"""Centralised configuration handling for SpendSight.

Every heuristic threshold used by the analytics engine lives here so it can be
tuned through ``SPENDSIGHT_*`` environment variables or overridden per call in
tests, rather than being scattered through the detectors as literals.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_LOG_LEVEL = "INFO"


class Settings(BaseSettings):
    """Engine tuning knobs sourced from environment variables."""

    log_level: str = DEFAULT_LOG_LEVEL

    # Shared guards
    amount_epsilon: float = Field(default=0.01, ge=0)

    # Recurring detector
    recurring_lookback_days: int | None = Field(default=None, gt=0)
    recurring_min_active_months: int = Field(default=3, ge=1)
    recurring_max_stddev_ratio: float = Field(default=0.2, ge=0)
    recurring_min_frequency: float = Field(default=0.7, gt=0)
    recurring_max_frequency: float = Field(default=1.5, gt=0)
    recurring_biweekly_frequency: float = Field(default=1.3, gt=0)
    recurring_active_gap_days: int = Field(default=45, ge=0)
    recurring_forgotten_min_months: int = Field(default=3, ge=1)

    # Anomaly detector
    anomaly_min_months: int = Field(default=2, ge=2)
    anomaly_min_stddev: float = Field(default=0.01, ge=0)
    anomaly_z_threshold: float = 1.5
    anomaly_z_high: float = 2.0
    anomaly_z_critical: float = 3.0
    transaction_anomaly_multiplier: float = Field(default=2.0, gt=0)
    transaction_anomaly_limit: int = Field(default=10, ge=0)

    # Forecaster
    ewma_alpha: float = Field(default=0.3, gt=0, le=1)
    category_trend_band: float = Field(default=0.1, ge=0)
    trajectory_below: float = 0.9
    trajectory_near: float = 1.1
    trajectory_above: float = 1.3

    # Habit detectors
    habit_window_days: int = Field(default=90, gt=0)
    habit_window_months: int = Field(default=3, gt=0)
    impulse_amount_threshold: float = Field(default=15.0, gt=0)
    impulse_high_pct: float = 50.0
    impulse_moderate_pct: float = 35.0
    impulse_low_pct: float = 20.0
    impulse_high_score: float = 0.8
    impulse_moderate_score: float = 0.5
    impulse_low_score: float = 0.3
    impulse_minimal_score: float = 0.1
    creep_window_months: int = Field(default=6, ge=2)
    creep_min_months: int = Field(default=4, ge=2)
    creep_min_baseline: float = Field(default=1.0, ge=0)
    creep_threshold_pct: float = Field(default=15.0, ge=0)
    weekend_high_ratio: float = 2.0
    weekend_moderate_ratio: float = 1.5
    weekend_slight_ratio: float = 1.2
    concentration_high_hhi: float = 0.25
    concentration_moderate_hhi: float = 0.15
    concentration_mild_hhi: float = 0.10

    # Insight ranker
    insight_limit: int = Field(default=8, ge=0)
    trend_threshold_pct: float = 20.0
    forecast_threshold_pct: float = 15.0
    forecast_high_pct: float = 30.0
    positive_ratio: float = 0.9
    subscription_count_threshold: int = Field(default=5, ge=1)
    anomaly_base_priority: float = 60.0
    anomaly_z_weight: float = 10.0
    anomaly_max_priority: float = 100.0
    trend_base_priority: float = 40.0
    trend_pct_weight: float = 0.3
    forecast_base_priority: float = 45.0
    forecast_pct_weight: float = 0.4
    pct_scaling_cap: float = 100.0
    forgotten_base_priority: float = 55.0
    forgotten_item_weight: float = 5.0
    forgotten_max_items: int = 5
    impulse_base_priority: float = 30.0
    impulse_score_weight: float = 20.0
    creep_base_priority: float = 30.0
    creep_pct_weight: float = 0.2
    weekend_base_priority: float = 25.0
    weekend_ratio_weight: float = 5.0
    weekend_ratio_cap: float = 4.0
    subscription_base_priority: float = 20.0
    subscription_count_weight: float = 1.0
    concentration_base_priority: float = 20.0
    concentration_hhi_weight: float = 30.0
    positive_priority: float = 10.0

    model_config = SettingsConfigDict(env_prefix="SPENDSIGHT_", extra="ignore")

    @model_validator(mode="after")
    def _check_bands(self) -> "Settings":
        if self.recurring_min_frequency > self.recurring_max_frequency:
            raise ValueError("recurring_min_frequency must not exceed recurring_max_frequency")
        if not self.anomaly_z_threshold <= self.anomaly_z_high <= self.anomaly_z_critical:
            raise ValueError("anomaly z thresholds must be ascending")
        if not self.trajectory_below <= self.trajectory_near <= self.trajectory_above:
            raise ValueError("trajectory ratios must be ascending")
        return self


@lru_cache
def get_settings() -> Settings:
    """Load and cache engine settings."""

    return Settings()
