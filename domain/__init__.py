"""
Domain layer for the Progression Analytics API.

This package contains pure domain models and converters that are independent
of infrastructure concerns (database, API, external services).
"""

from domain.models import (
    Modality,
    Sample,
    SeriesKey,
    Trend,
    Prediction,
    Milestone,
    Record,
    Achievement,
)

__all__ = [
    "Modality",
    "Sample",
    "SeriesKey",
    "Trend",
    "Prediction",
    "Milestone",
    "Record",
    "Achievement",
]
