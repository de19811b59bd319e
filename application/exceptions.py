"""
Application-layer exceptions.

These exceptions are used across the core, application and infrastructure
layers. Every error carries the series key it concerns so log lines and API
responses can name the offending (modality, exercise, user).
"""
from typing import Optional

from domain.models.series import SeriesKey


class ProgressionError(Exception):
    """Base class for progression analytics errors."""

    def __init__(self, message: str, key: Optional[SeriesKey] = None):
        self.key = key
        self.message = message
        if key is not None:
            message = f"{message} [{key.storage_key}]"
        super().__init__(message)


class StorageError(ProgressionError):
    """Error reading or writing a persisted series.

    Raised when the backing store fails or a payload cannot be encoded or
    decoded. The original exception is chained as __cause__. Callers may
    treat this as recoverable and continue with an empty series.
    """

    pass


class SampleValidationError(ProgressionError):
    """Measurement that cannot be safely clamped into the domain.

    For example a non-positive bodyweight (explosive index divides by it)
    or a negative duration. Fatal to the single ingest call; stored state
    is left untouched.
    """

    pass
