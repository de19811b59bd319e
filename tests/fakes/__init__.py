"""
Fake Implementations for Testing.

This package provides in-memory fake implementations of store interfaces
for fast, isolated testing. No database or external dependencies required.

Features:
- Fakes implement the same Protocol interfaces as real implementations
- Supports seeding with test data
- Supports reset() for test isolation
- Factory functions for common test scenarios

Usage:
    from tests.fakes import FakeProgressionStore, create_flexibility_series

    store = FakeProgressionStore()
    store.seed(key, create_flexibility_series(key, [30, 40, 50]))
"""
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from domain.models import (
    BalanceSample,
    FlexibilitySample,
    PowerSample,
    SeriesKey,
)
from tests.fakes.progression_store import FakeProgressionStore

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# Factory Functions
# =============================================================================


def daily_timestamps(count: int, *, end: datetime = FIXED_NOW) -> List[datetime]:
    """One timestamp per day, the last one at end."""
    return [end - timedelta(days=count - 1 - i) for i in range(count)]


def create_flexibility_series(
    key: SeriesKey,
    roms: Sequence[float],
    *,
    end: datetime = FIXED_NOW,
) -> List[FlexibilitySample]:
    """
    Create a daily flexibility series with the given ROM values.

    Args:
        key: Series key (exercise and user ids are taken from it)
        roms: ROM percentages, oldest first
        end: Timestamp of the last sample

    Returns:
        Samples in chronological order
    """
    return [
        FlexibilitySample(
            exercise_id=key.exercise_id,
            user_id=key.user_id,
            timestamp=ts,
            rom_percentage=rom,
        )
        for ts, rom in zip(daily_timestamps(len(roms), end=end), roms)
    ]


def create_balance_series(
    key: SeriesKey,
    sessions: Sequence[tuple],
    *,
    end: datetime = FIXED_NOW,
) -> List[BalanceSample]:
    """Daily balance series from (stability_time, wobble_index) pairs."""
    return [
        BalanceSample(
            exercise_id=key.exercise_id,
            user_id=key.user_id,
            timestamp=ts,
            stability_time=time,
            wobble_index=wobble,
        )
        for ts, (time, wobble) in zip(daily_timestamps(len(sessions), end=end), sessions)
    ]


def create_power_series(
    key: SeriesKey,
    outputs: Sequence[float],
    *,
    end: datetime = FIXED_NOW,
    exercise_id: Optional[str] = None,
) -> List[PowerSample]:
    """Daily power series with the given outputs (watts)."""
    return [
        PowerSample(
            exercise_id=exercise_id or key.exercise_id,
            user_id=key.user_id,
            timestamp=ts,
            power_output=watts,
        )
        for ts, watts in zip(daily_timestamps(len(outputs), end=end), outputs)
    ]


__all__ = [
    "FakeProgressionStore",
    "FIXED_NOW",
    "daily_timestamps",
    "create_flexibility_series",
    "create_balance_series",
    "create_power_series",
]
