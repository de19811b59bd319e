"""
Converters: persisted series payload <-> domain samples.

Persisted layout, one record per (modality, exercise, user):

    {
        "samples": [ {...sample fields...}, ... ],
        "saved_at": "2024-01-15T10:00:00+00:00",
        "schema_version": "1.0"
    }

Decoding is tolerant: unknown sample fields are ignored and a different
schema_version is accepted, so readers keep working across schema changes.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from domain.models.sample import Modality, Sample, sample_type_for, utc_now
from domain.models.series import SCHEMA_VERSION

logger = logging.getLogger(__name__)


def encode_series(
    samples: Sequence[Sample],
    saved_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Encode a series into its JSON-safe persisted payload.

    Args:
        samples: Series in chronological order
        saved_at: Write timestamp (defaults to now)

    Returns:
        Payload dict ready for JSON/JSONB storage
    """
    return {
        "samples": [s.model_dump(mode="json") for s in samples],
        "saved_at": (saved_at or utc_now()).isoformat(),
        "schema_version": SCHEMA_VERSION,
    }


def decode_series(
    modality: Modality,
    payload: Union[str, bytes, Dict[str, Any], None],
) -> List[Sample]:
    """
    Decode a persisted payload into samples of the given modality.

    Args:
        modality: Modality of the series (selects the sample model)
        payload: Payload dict, or its JSON text

    Returns:
        Samples in stored order; empty list for an empty payload

    Raises:
        ValueError: If the payload is not valid JSON, has no sample list,
            or a sample fails validation
    """
    if payload is None:
        return []

    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise ValueError(f"Series payload is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise ValueError(f"Series payload must be an object, got {type(payload).__name__}")

    version = payload.get("schema_version")
    if version != SCHEMA_VERSION:
        logger.debug(f"Decoding series payload with schema_version={version!r}")

    raw_samples = payload.get("samples", [])
    if not isinstance(raw_samples, list):
        raise ValueError("Series payload 'samples' must be a list")

    model = sample_type_for(modality)
    try:
        return [model.model_validate(raw) for raw in raw_samples]
    except ValidationError as e:
        raise ValueError(f"Invalid {modality.value} sample in payload: {e}") from e
