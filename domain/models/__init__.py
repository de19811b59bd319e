"""
Domain models for the Progression Analytics API.

This package contains pure domain models that are independent of
infrastructure concerns (database, API, external services).

These models represent the core business concepts:
- Samples: one session measurement per modality (flexibility, balance,
  power, stability)
- SeriesKey: identity of a stored (modality, exercise, user) series
- Trend / Prediction: output of the trend engine
- Milestone / Record / Achievement: output of the achievement engine

Usage:
    >>> from domain.models import FlexibilitySample, SeriesKey, Modality

    >>> sample = FlexibilitySample(
    ...     exercise_id="hamstring-stretch",
    ...     user_id="user_1",
    ...     rom_percentage=55,
    ... )
    >>> key = SeriesKey(modality=Modality.FLEXIBILITY, exercise_id="hamstring-stretch", user_id="user_1")
    >>> key.storage_key
    'flexibility:hamstring-stretch:user_1'
"""

from domain.models.sample import (
    Modality,
    FlexibilityType,
    BalanceType,
    PowerType,
    ProgressionSample,
    FlexibilitySample,
    BalanceSample,
    PowerSample,
    PowerTechnique,
    StabilitySample,
    MuscleActivation,
    FormQuality,
    Sample,
    sample_type_for,
    utc_now,
)
from domain.models.series import (
    SeriesKey,
    SCHEMA_VERSION,
    DEFAULT_RETENTION_DAYS,
    within_retention,
    insert_chronologically,
)
from domain.models.trend import DataPoint, Trend, TrendDirection, Prediction
from domain.models.achievement import (
    AchievementKind,
    Milestone,
    Record,
    Achievement,
    AchievementState,
    Celebration,
)

__all__ = [
    # Enums
    "Modality",
    "FlexibilityType",
    "BalanceType",
    "PowerType",
    "TrendDirection",
    "AchievementKind",
    # Samples
    "ProgressionSample",
    "FlexibilitySample",
    "BalanceSample",
    "PowerSample",
    "PowerTechnique",
    "StabilitySample",
    "MuscleActivation",
    "FormQuality",
    "Sample",
    "sample_type_for",
    "utc_now",
    # Series
    "SeriesKey",
    "SCHEMA_VERSION",
    "DEFAULT_RETENTION_DAYS",
    "within_retention",
    "insert_chronologically",
    # Trend
    "DataPoint",
    "Trend",
    "Prediction",
    # Achievements
    "Milestone",
    "Record",
    "Achievement",
    "AchievementState",
    "Celebration",
]
