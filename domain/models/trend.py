"""
Trend and prediction value objects produced by the trend engine.
"""

from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class DataPoint(BaseModel):
    """A single (timestamp, value) observation."""

    timestamp: datetime
    value: float

    model_config = {"frozen": True}


class Trend(BaseModel):
    """
    Direction and strength of recent change.

    rate is the signed least-squares slope per session; confidence is the
    fit's R-squared expressed on a 0-100 scale.
    """

    direction: TrendDirection = TrendDirection.STABLE
    rate: float = 0.0
    confidence: float = Field(default=0.0, ge=0, le=100)
    time_window_days: float = 30

    model_config = {"frozen": True}

    @property
    def has_signal(self) -> bool:
        return self.confidence > 0


class Prediction(BaseModel):
    """Point forecast for a target date."""

    target_date: datetime
    predicted_value: float
    confidence: float = Field(..., ge=0, le=100)
    requirements: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}
