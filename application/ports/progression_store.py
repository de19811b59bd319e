"""
Progression Store Interface (Port).

This module defines the abstract interface for persisting per-(modality,
exercise, user) sample series with a retention policy. Used by the
ProgressionService for ingest and queries.
"""
from typing import List, Optional, Protocol, Sequence

from domain.models import Sample, SeriesKey


class ProgressionStore(Protocol):
    """
    Abstract interface for sample series persistence.

    Writes are full replacements: the caller assembles the complete ordered
    series before calling save(). Implementations must not reorder samples.
    """

    def save(self, key: SeriesKey, samples: Sequence[Sample]) -> None:
        """
        Persist the full ordered series for a key.

        Args:
            key: Series identity
            samples: Complete series in chronological order

        Raises:
            StorageError: If encoding or the backing store fails
        """
        ...

    def load(
        self,
        key: SeriesKey,
        retention_days: Optional[float] = None,
    ) -> List[Sample]:
        """
        Load the series for a key, restricted to the retention window.

        Args:
            key: Series identity
            retention_days: Only samples newer than now - retention_days are
                returned; None returns the full series

        Returns:
            Samples in original chronological order; empty list for an
            absent key

        Raises:
            StorageError: If the backing store fails or the payload
                cannot be decoded
        """
        ...

    def prune(self, key: SeriesKey, retention_days: float) -> List[Sample]:
        """
        Drop samples older than the retention cutoff and persist the result.

        Args:
            key: Series identity
            retention_days: Retention window in days

        Returns:
            The reduced series that was saved

        Raises:
            StorageError: If loading or saving fails
        """
        ...

    def delete(self, key: SeriesKey) -> bool:
        """
        Remove a persisted series.

        Args:
            key: Series identity

        Returns:
            True if a series was removed, False if none existed
        """
        ...
