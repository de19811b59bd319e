"""
Progression Service for modality progression tracking.

This module provides the facade the API and other callers use:
- Ingest of a raw session measurement into a stored series
- Scores, trend and prediction for a series
- Milestone and record achievements with celebration descriptions
- Read-only series, data point and summary queries
- Retention pruning and power peak records

Control flow of one ingest:
    load (retention-filtered) -> build/clamp sample -> save (full replace)
    -> calculators -> trend + prediction -> achievements -> celebrations
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
import logging
import threading

from pydantic import ValidationError

from application.exceptions import SampleValidationError, StorageError
from application.ports.progression_store import ProgressionStore
from backend.core.calculators import PowerCalculator, get_calculator
from backend.core.milestones import evaluate_achievements, next_milestone, replay_state
from backend.core.notifications import describe_achievement, should_celebrate
from backend.core.sample_ingest import build_sample
from backend.core.trend_engine import calculate_trend, filter_data_points, generate_prediction
from backend.settings import Settings, get_settings
from domain.models import (
    Achievement,
    AchievementState,
    Celebration,
    DataPoint,
    Milestone,
    Modality,
    Prediction,
    Record,
    Sample,
    SeriesKey,
    Trend,
    insert_chronologically,
    utc_now,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Response DTOs
# =============================================================================


@dataclass
class IngestResult:
    """Everything a caller needs after recording a sample."""
    sample: Sample
    series: List[Sample]
    scores: Dict[str, Any]
    trend: Trend
    prediction: Optional[Prediction]
    new_achievements: List[Achievement] = field(default_factory=list)
    celebrations: List[Celebration] = field(default_factory=list)
    next_milestone: Optional[Milestone] = None
    celebrate: bool = False


@dataclass
class SeriesSummary:
    """Analytics for a stored series, without ingesting."""
    key: SeriesKey
    sample_count: int
    scores: Dict[str, Any]
    trend: Trend
    prediction: Optional[Prediction]
    next_milestone: Optional[Milestone]
    milestones: List[Milestone] = field(default_factory=list)


# =============================================================================
# Progression Service
# =============================================================================


class ProgressionService:
    """
    Service for modality progression tracking and analytics.

    Holds the per-series achievement state in process. State for a series
    seen for the first time is rebuilt from its stored samples, so a
    restarted process never re-announces milestones already reached.
    """

    def __init__(
        self,
        store: ProgressionStore,
        *,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the progression service.

        Args:
            store: Persistence for sample series
            settings: Retention, trend and prediction configuration
            clock: Source of "now" (defaults to current UTC time)
        """
        self._store = store
        self._settings = settings or get_settings()
        self._clock = clock or utc_now
        # Keyed by storage_key; one entry per series this process has touched
        self._states: Dict[str, AchievementState] = {}
        self._last_celebrated: Dict[str, datetime] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _key(user_id: str, exercise_id: str, modality: Modality) -> SeriesKey:
        try:
            return SeriesKey(modality=modality, exercise_id=exercise_id, user_id=user_id)
        except ValidationError as e:
            raise SampleValidationError(
                f"Invalid series key ({modality}, {exercise_id!r}, {user_id!r})"
            ) from e

    def _lock_for(self, key: SeriesKey) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(key.storage_key, threading.Lock())

    def _state_for(self, key: SeriesKey, series: Sequence[Sample]) -> AchievementState:
        state = self._states.get(key.storage_key)
        if state is None:
            state = replay_state(key.modality, series)
            logger.debug(f"Seeded achievement state for {key}: {state.achieved_names}")
        return state

    def _analyze(
        self,
        key: SeriesKey,
        series: Sequence[Sample],
        now: datetime,
    ) -> tuple:
        """Scores, trend and prediction for a series."""
        calculator = get_calculator(key.modality)
        points = calculator.data_points(series)
        window_days = self._settings.trend_window_days

        trend = calculate_trend(points, window_days, now=now)
        prediction = generate_prediction(
            points,
            now + timedelta(days=self._settings.prediction_horizon_days),
            self._settings.prediction_confidence_cap,
            window_days=window_days,
            now=now,
        )
        return calculator.summarize(series), trend, prediction

    # -------------------------------------------------------------------------
    # Ingest
    # -------------------------------------------------------------------------

    def record_sample(
        self,
        user_id: str,
        exercise_id: str,
        modality: Modality,
        measurement: Mapping[str, Any],
        *,
        timestamp: Optional[datetime] = None,
    ) -> IngestResult:
        """
        Record one session measurement.

        The series is loaded within the retention window, the new sample is
        inserted chronologically and the full series saved back, so expired
        samples are dropped on every write.

        Args:
            user_id: User ID
            exercise_id: Exercise ID
            modality: Exercise modality
            measurement: Raw modality fields (clamped, not rejected)
            timestamp: Session time (defaults to now)

        Returns:
            IngestResult with the updated series, analytics and any new
            achievements (milestones before records). celebrate is False
            when this series already celebrated within the last hour.

        Raises:
            SampleValidationError: If the measurement cannot be clamped
            StorageError: If the series cannot be loaded or saved
        """
        key = self._key(user_id, exercise_id, Modality(modality))
        now = self._clock()

        with self._lock_for(key):
            # Load errors propagate; save() replaces the whole series
            series = self._store.load(key, retention_days=self._settings.progression_retention_days)
            state = self._state_for(key, series)

            sample = build_sample(
                key,
                measurement,
                series,
                timestamp=timestamp or now,
                settings=self._settings,
            )
            updated = insert_chronologically(series, sample)
            self._store.save(key, updated)

            update = evaluate_achievements(state, updated, sample)
            self._states[key.storage_key] = update.state

            celebrate = False
            if update.achievements:
                celebrate = should_celebrate(self._last_celebrated.get(key.storage_key), now)
                if celebrate:
                    self._last_celebrated[key.storage_key] = now

        scores, trend, prediction = self._analyze(key, updated, now)
        logger.info(
            f"Recorded {key.modality.value} sample for {key} "
            f"(score={scores.get('score')}, trend={trend.direction.value})"
        )

        return IngestResult(
            sample=sample,
            series=updated,
            scores=scores,
            trend=trend,
            prediction=prediction,
            new_achievements=update.achievements,
            celebrations=[describe_achievement(a) for a in update.achievements],
            next_milestone=next_milestone(update.state),
            celebrate=celebrate,
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_series(
        self,
        user_id: str,
        exercise_id: str,
        modality: Modality,
        retention_days: Optional[float] = None,
    ) -> List[Sample]:
        """
        Get the stored series for an exercise.

        Storage failures degrade to an empty series.

        Args:
            user_id: User ID
            exercise_id: Exercise ID
            modality: Exercise modality
            retention_days: Window in days (defaults to the configured
                retention)

        Returns:
            Samples in chronological order
        """
        key = self._key(user_id, exercise_id, Modality(modality))
        if retention_days is None:
            retention_days = self._settings.progression_retention_days
        try:
            return self._store.load(key, retention_days=retention_days)
        except StorageError as e:
            logger.warning(f"Falling back to empty series: {e}")
            return []

    def get_data_points(
        self,
        user_id: str,
        exercise_id: str,
        modality: Modality,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
    ) -> List[DataPoint]:
        """
        Get the series projected onto its modality's trend metric.

        Args:
            user_id: User ID
            exercise_id: Exercise ID
            modality: Exercise modality
            start: Earliest timestamp to include
            end: Latest timestamp to include
            min_value: Smallest value to include
            max_value: Largest value to include

        Returns:
            DataPoints in chronological order; any bound left as None is not
            applied
        """
        modality = Modality(modality)
        series = self.get_series(user_id, exercise_id, modality)
        points = get_calculator(modality).data_points(series)
        return filter_data_points(
            points,
            start=start,
            end=end,
            min_value=min_value,
            max_value=max_value,
        )

    def get_summary(
        self,
        user_id: str,
        exercise_id: str,
        modality: Modality,
    ) -> SeriesSummary:
        """
        Get scores, trend, prediction and milestones for a stored series.

        Args:
            user_id: User ID
            exercise_id: Exercise ID
            modality: Exercise modality

        Returns:
            SeriesSummary (empty-series analytics when there is no data)
        """
        key = self._key(user_id, exercise_id, Modality(modality))
        series = self.get_series(user_id, exercise_id, key.modality)
        state = self._state_for(key, series)
        scores, trend, prediction = self._analyze(key, series, self._clock())

        return SeriesSummary(
            key=key,
            sample_count=len(series),
            scores=scores,
            trend=trend,
            prediction=prediction,
            next_milestone=next_milestone(state),
            milestones=list(state.milestones),
        )

    def get_peak_records(
        self,
        user_id: str,
        exercise_ids: Sequence[str],
    ) -> List[Record]:
        """
        Get peak power records across exercises.

        Args:
            user_id: User ID
            exercise_ids: Power exercise IDs to include

        Returns:
            One record per exercise with data, sorted by power descending
        """
        samples: List[Sample] = []
        for exercise_id in dict.fromkeys(exercise_ids):
            samples.extend(self.get_series(user_id, exercise_id, Modality.POWER))
        return PowerCalculator().peak_records(samples)

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def prune_series(
        self,
        user_id: str,
        exercise_id: str,
        modality: Modality,
        older_than_days: Optional[float] = None,
    ) -> List[Sample]:
        """
        Drop samples older than the cutoff from a stored series.

        Achievement state is kept: milestones already reached stay reached.

        Args:
            user_id: User ID
            exercise_id: Exercise ID
            modality: Exercise modality
            older_than_days: Cutoff in days (defaults to the configured
                retention)

        Returns:
            The remaining samples

        Raises:
            StorageError: If the series cannot be rewritten
        """
        key = self._key(user_id, exercise_id, Modality(modality))
        if older_than_days is None:
            older_than_days = self._settings.progression_retention_days
        with self._lock_for(key):
            return self._store.prune(key, older_than_days)

    def delete_series(
        self,
        user_id: str,
        exercise_id: str,
        modality: Modality,
    ) -> bool:
        """
        Delete a stored series and forget its achievement state.

        The series lock is kept so callers already waiting on it and new
        callers share one lock. Locks are bounded by distinct series keys.
        """
        key = self._key(user_id, exercise_id, Modality(modality))
        with self._lock_for(key):
            self._states.pop(key.storage_key, None)
            self._last_celebrated.pop(key.storage_key, None)
            deleted = self._store.delete(key)
        if deleted:
            logger.info(f"Deleted progression series {key}")
        return deleted
