"""
Series identity and retention helpers.

A series is the chronologically ordered list of samples for one
(modality, exercise, user) triple. Stores own series by SeriesKey.
"""

from datetime import datetime, timedelta
from typing import List, Optional, Sequence
from urllib.parse import quote

from pydantic import BaseModel, Field

from domain.models.sample import Modality, Sample, utc_now


SCHEMA_VERSION = "1.0"
DEFAULT_RETENTION_DAYS = 365


class SeriesKey(BaseModel):
    """Identifies one stored series."""

    modality: Modality
    exercise_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)

    model_config = {"frozen": True}

    @property
    def storage_key(self) -> str:
        """
        Stable string form used as the persistence key.

        Each part is percent-encoded, so a ":" inside an id cannot make two
        different keys collide.
        """
        parts = (self.modality.value, self.exercise_id, self.user_id)
        return ":".join(quote(part, safe="") for part in parts)

    def __str__(self) -> str:
        return self.storage_key


def retention_cutoff(retention_days: float, now: Optional[datetime] = None) -> datetime:
    """Oldest instant (exclusive) still inside the retention window."""
    return (now or utc_now()) - timedelta(days=retention_days)


def within_retention(
    samples: Sequence[Sample],
    retention_days: Optional[float],
    *,
    now: Optional[datetime] = None,
) -> List[Sample]:
    """
    Keep samples newer than the retention cutoff, preserving order.

    Args:
        samples: Series in stored order
        retention_days: Window in days; None keeps everything
        now: Reference time (defaults to current UTC time)

    Returns:
        New list with samples whose timestamp is after the cutoff
    """
    if retention_days is None:
        return list(samples)
    cutoff = retention_cutoff(retention_days, now)
    return [s for s in samples if s.timestamp > cutoff]


def insert_chronologically(samples: Sequence[Sample], sample: Sample) -> List[Sample]:
    """
    Return a new series with sample placed after every sample at or before
    its timestamp. Appending in time order is the common case.
    """
    result = list(samples)
    index = len(result)
    while index > 0 and result[index - 1].timestamp > sample.timestamp:
        index -= 1
    result.insert(index, sample)
    return result
