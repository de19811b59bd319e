"""
Progression Store Implementations.

This module implements the ProgressionStore protocol using Supabase, plus a
process-local in-memory variant used when no database is configured.

Both implementations persist the same payload layout (see
domain.converters.series_codec), one record per series key.

Table schema (progression_series):
- series_key: TEXT primary key ("modality:exercise_id:user_id")
- user_id, exercise_id, modality: TEXT (for filtering)
- payload: JSONB {"samples": [...], "saved_at": ..., "schema_version": "1.0"}
- updated_at: TIMESTAMPTZ
"""
import copy
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from supabase import Client

from application.exceptions import StorageError
from domain.converters.series_codec import decode_series, encode_series
from domain.models import Sample, SeriesKey, utc_now, within_retention

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "progression_series"


class SupabaseProgressionStore:
    """
    Supabase implementation of ProgressionStore.

    Each series is a single row; save() upserts the full payload so writes
    are full replacements, never merges.
    """

    def __init__(
        self,
        client: Client,
        *,
        table: str = DEFAULT_TABLE,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize with Supabase client.

        Args:
            client: Supabase client instance (injected)
            table: Table holding one row per series
            clock: Source of "now" for retention and saved_at
        """
        self._client = client
        self._table = table
        self._clock = clock

    def save(self, key: SeriesKey, samples: Sequence[Sample]) -> None:
        """Upsert the full series payload for a key."""
        now = self._clock()
        try:
            payload = encode_series(samples, saved_at=now)
            self._client.table(self._table).upsert({
                "series_key": key.storage_key,
                "user_id": key.user_id,
                "exercise_id": key.exercise_id,
                "modality": key.modality.value,
                "payload": payload,
                "updated_at": now.isoformat(),
            }, on_conflict="series_key").execute()
        except Exception as e:
            logger.error(f"Failed to save progression series {key}: {e}")
            raise StorageError("Failed to save progression series", key) from e

        logger.debug(f"Saved {len(samples)} samples for {key}")

    def load(
        self,
        key: SeriesKey,
        retention_days: Optional[float] = None,
    ) -> List[Sample]:
        """Load a series, filtered to the retention window."""
        try:
            result = self._client.table(self._table) \
                .select("payload") \
                .eq("series_key", key.storage_key) \
                .limit(1) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to load progression series {key}: {e}")
            raise StorageError("Failed to load progression series", key) from e

        if not result.data:
            return []

        try:
            samples = decode_series(key.modality, result.data[0].get("payload"))
        except ValueError as e:
            logger.error(f"Corrupt progression payload for {key}: {e}")
            raise StorageError("Failed to decode progression series", key) from e

        return within_retention(samples, retention_days, now=self._clock())

    def prune(self, key: SeriesKey, retention_days: float) -> List[Sample]:
        """Rewrite the series without samples older than the cutoff."""
        samples = self.load(key)
        kept = within_retention(samples, retention_days, now=self._clock())
        self.save(key, kept)
        if len(kept) != len(samples):
            logger.info(f"Pruned {len(samples) - len(kept)} samples from {key}")
        return kept

    def delete(self, key: SeriesKey) -> bool:
        """Delete the row for a key."""
        try:
            result = self._client.table(self._table) \
                .delete() \
                .eq("series_key", key.storage_key) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to delete progression series {key}: {e}")
            raise StorageError("Failed to delete progression series", key) from e
        return bool(result.data)


class InMemoryProgressionStore:
    """
    In-memory implementation of ProgressionStore.

    Payloads are encoded and decoded exactly as for Supabase, so stored
    samples never alias caller objects. Used when Supabase is not configured.
    """

    def __init__(self, *, clock: Callable[[], datetime] = utc_now):
        self._clock = clock
        # Map: storage_key -> encoded payload
        self._payloads: Dict[str, Dict[str, Any]] = {}

    def save(self, key: SeriesKey, samples: Sequence[Sample]) -> None:
        try:
            self._payloads[key.storage_key] = encode_series(samples, saved_at=self._clock())
        except (TypeError, ValueError) as e:
            raise StorageError("Failed to encode progression series", key) from e

    def load(
        self,
        key: SeriesKey,
        retention_days: Optional[float] = None,
    ) -> List[Sample]:
        payload = self._payloads.get(key.storage_key)
        if payload is None:
            return []
        try:
            samples = decode_series(key.modality, copy.deepcopy(payload))
        except ValueError as e:
            raise StorageError("Failed to decode progression series", key) from e
        return within_retention(samples, retention_days, now=self._clock())

    def prune(self, key: SeriesKey, retention_days: float) -> List[Sample]:
        kept = within_retention(self.load(key), retention_days, now=self._clock())
        self.save(key, kept)
        return kept

    def delete(self, key: SeriesKey) -> bool:
        return self._payloads.pop(key.storage_key, None) is not None
