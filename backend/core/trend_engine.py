"""
Trend Engine for progression series.

This module provides the modality-agnostic analytics over (timestamp, value)
series:
- Linear trend detection (direction, rate, confidence)
- Point forecasts for a target date
- Data point filtering by date and value range

Absence of a trend is a valid outcome: with too few points these functions
return a well-defined "no signal" result instead of raising.
"""
from datetime import datetime, timedelta
from typing import List, Optional, Sequence
import logging

from domain.models import DataPoint, Prediction, Trend, TrendDirection, utc_now

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_WINDOW_DAYS = 30

# |slope| below this is treated as noise, not a trend
STABLE_SLOPE_EPSILON = 0.1

MIN_PREDICTION_POINTS = 5
MIN_PREDICTION_CONFIDENCE = 50.0
DEFAULT_CONFIDENCE_CAP = 70.0

REQUIREMENTS_BY_DIRECTION = {
    TrendDirection.IMPROVING: (
        "Maintain current training consistency",
        "Continue proper form and technique",
    ),
    TrendDirection.DECLINING: (
        "Increase training frequency",
        "Focus on fundamental techniques",
        "Consider consulting with a trainer",
    ),
    TrendDirection.STABLE: (
        "Add progressive overload",
        "Introduce exercise variations",
    ),
}


# =============================================================================
# Trend Detection
# =============================================================================


def _no_signal(window_days: float) -> Trend:
    return Trend(
        direction=TrendDirection.STABLE,
        rate=0.0,
        confidence=0.0,
        time_window_days=window_days,
    )


def _fit_line(values: Sequence[float]) -> tuple:
    """
    Ordinary least squares over (index, value).

    Returns:
        (slope, intercept, r_squared_percent)
    """
    n = len(values)
    xs = range(n)
    sum_x = sum(xs)
    sum_y = sum(values)
    sum_xy = sum(x * y for x, y in zip(xs, values))
    sum_x2 = sum(x * x for x in xs)

    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)
    intercept = (sum_y - slope * sum_x) / n

    mean_y = sum_y / n
    total_ss = sum((y - mean_y) ** 2 for y in values)
    residual_ss = sum((y - (slope * x + intercept)) ** 2 for x, y in zip(xs, values))

    if total_ss == 0:
        # Flat series: the line explains it exactly
        r_squared = 1.0
    else:
        r_squared = 1 - residual_ss / total_ss

    return slope, intercept, max(0.0, min(100.0, r_squared * 100))


def calculate_trend(
    points: Sequence[DataPoint],
    window_days: float = DEFAULT_WINDOW_DAYS,
    *,
    now: Optional[datetime] = None,
) -> Trend:
    """
    Detect the direction of recent change in a series.

    Only points newer than now - window_days are considered. The x axis is
    the chronological position of each point, not its raw timestamp, so
    irregular session spacing does not distort the slope.

    Args:
        points: Series in chronological order
        window_days: Look-back window in days
        now: Reference time (defaults to current UTC time)

    Returns:
        Trend; stable with zero rate and confidence when fewer than two
        points fall inside the window
    """
    cutoff = (now or utc_now()) - timedelta(days=window_days)
    recent = [p.value for p in points if p.timestamp > cutoff]

    if len(recent) < 2:
        return _no_signal(window_days)

    slope, _, confidence = _fit_line(recent)

    if abs(slope) < STABLE_SLOPE_EPSILON:
        direction = TrendDirection.STABLE
    elif slope > 0:
        direction = TrendDirection.IMPROVING
    else:
        direction = TrendDirection.DECLINING

    return Trend(
        direction=direction,
        rate=slope,
        confidence=confidence,
        time_window_days=window_days,
    )


# =============================================================================
# Prediction
# =============================================================================


def generate_prediction(
    points: Sequence[DataPoint],
    target_date: datetime,
    confidence_cap: float = DEFAULT_CONFIDENCE_CAP,
    *,
    window_days: float = DEFAULT_WINDOW_DAYS,
    now: Optional[datetime] = None,
) -> Optional[Prediction]:
    """
    Extrapolate the current trend to a target date.

    Formula: predicted = last value + rate * whole days from the last sample
    to target_date.

    Args:
        points: Series in chronological order
        target_date: Date to forecast
        confidence_cap: Upper bound on the reported confidence
        window_days: Trend look-back window
        now: Reference time (defaults to current UTC time)

    Returns:
        Prediction, or None with fewer than 5 points or when the trend
        confidence is below 50
    """
    if len(points) < MIN_PREDICTION_POINTS:
        return None

    trend = calculate_trend(points, window_days, now=now)
    if trend.confidence < MIN_PREDICTION_CONFIDENCE:
        logger.debug(f"Skipping prediction: trend confidence {trend.confidence:.1f} below threshold")
        return None

    latest = points[-1]
    days = (target_date - latest.timestamp) // timedelta(days=1)
    predicted_value = latest.value + trend.rate * days

    return Prediction(
        target_date=target_date,
        predicted_value=predicted_value,
        confidence=min(confidence_cap, trend.confidence),
        requirements=list(REQUIREMENTS_BY_DIRECTION[trend.direction]),
    )


# =============================================================================
# Filtering
# =============================================================================


def filter_data_points(
    points: Sequence[DataPoint],
    *,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
) -> List[DataPoint]:
    """
    Filter points by an inclusive date range and value range.

    Any bound left as None is not applied.
    """
    result = []
    for point in points:
        if start is not None and point.timestamp < start:
            continue
        if end is not None and point.timestamp > end:
            continue
        if min_value is not None and point.value < min_value:
            continue
        if max_value is not None and point.value > max_value:
            continue
        result.append(point)
    return result
