"""
Sample Ingest: raw measurement -> clamped, derived sample.

This module turns a caller-supplied measurement dict into an immutable
sample for a series:
- Percentage fields are clamped to [0, 100], not rejected
- difficulty_level is clamped to [1, 10] and stability_index to [1, 100]
- Negative durations/power/speed/distance and non-numeric values are rejected
- Derived fields (assessment score, explosive index, ...) are filled in

Usage:
    from backend.core.sample_ingest import build_sample

    sample = build_sample(
        key,
        {"rom_percentage": 112, "flexibility_type": "static"},
        series,
        timestamp=now,
        settings=settings,
    )
    sample.rom_percentage  # 100.0
"""
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Sequence
import logging
import math

from pydantic import ValidationError

from application.exceptions import SampleValidationError
from backend.core.calculators import (
    BalanceCalculator,
    FlexibilityCalculator,
    PowerCalculator,
    StabilityCalculator,
)
from backend.settings import Settings, get_settings
from domain.models import Modality, Sample, SeriesKey, sample_type_for

logger = logging.getLogger(__name__)


# Top-level percentage fields per modality
PERCENTAGE_FIELDS = {
    Modality.FLEXIBILITY: ("rom_percentage", "assessment_score"),
    Modality.BALANCE: ("wobble_index",),
    Modality.POWER: ("consistency_score",),
    Modality.STABILITY: (),
}

# Nested objects whose every field is a percentage
NESTED_PERCENTAGE_FIELDS = {
    Modality.POWER: {
        "technique": ("form_score", "accuracy", "follow_through", "synchronization"),
    },
    Modality.STABILITY: {
        "muscle_activation": (
            "rectus_abdominis",
            "obliques",
            "transverse_abdominis",
            "erector_spinae",
            "glutes",
            "hip_flexors",
        ),
        "form_quality": ("overall_score", "spinal_alignment", "breathing", "control", "stability"),
    },
}

# Fields that must be >= 0
NON_NEGATIVE_FIELDS = {
    Modality.FLEXIBILITY: ("hold_time", "repetitions"),
    Modality.BALANCE: ("stability_time",),
    Modality.POWER: ("power_output", "speed", "distance"),
    Modality.STABILITY: ("endurance_time",),
}

INTEGER_FIELDS = ("repetitions",)

# Inputs consumed by derivation but not stored on the sample
BODYWEIGHT_FIELD = "bodyweight"
EQUIPMENT_WEIGHT_FIELD = "equipment_weight"


def _number(key: SeriesKey, field: str, value: Any) -> float:
    """Coerce a raw value to a finite float."""
    if isinstance(value, bool):
        raise SampleValidationError(f"Field '{field}' must be numeric, got {value!r}", key)
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise SampleValidationError(f"Field '{field}' must be numeric, got {value!r}", key) from e
    if not math.isfinite(number):
        raise SampleValidationError(f"Field '{field}' must be finite, got {value!r}", key)
    return number


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _clamp_percentages(
    key: SeriesKey,
    raw: Mapping[str, Any],
    fields: Sequence[str],
) -> Dict[str, Any]:
    data = dict(raw)
    for field in fields:
        if data.get(field) is None:
            continue
        original = _number(key, field, data[field])
        data[field] = _clamp(original, 0.0, 100.0)
        if data[field] != original:
            logger.debug(f"Clamped {field}={original} to {data[field]} for {key}")
    return data


def normalize_measurement(key: SeriesKey, measurement: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Clamp and validate the raw fields of a measurement.

    Args:
        key: Series the measurement belongs to (used in error messages)
        measurement: Raw field values

    Returns:
        New dict with clamped numeric values

    Raises:
        SampleValidationError: On negative or non-numeric values
    """
    modality = key.modality
    data = _clamp_percentages(key, measurement, PERCENTAGE_FIELDS[modality])

    for field in NON_NEGATIVE_FIELDS[modality]:
        if data.get(field) is None:
            continue
        value = _number(key, field, data[field])
        if value < 0:
            raise SampleValidationError(f"Field '{field}' must not be negative, got {value}", key)
        data[field] = int(value) if field in INTEGER_FIELDS else value

    for name, fields in NESTED_PERCENTAGE_FIELDS.get(modality, {}).items():
        nested = data.get(name)
        if nested is None:
            continue
        if not isinstance(nested, Mapping):
            raise SampleValidationError(f"Field '{name}' must be an object", key)
        data[name] = _clamp_percentages(key, nested, fields)

    if data.get("difficulty_level") is not None:
        level = _number(key, "difficulty_level", data["difficulty_level"])
        data["difficulty_level"] = int(_clamp(round(level), 1, 10))

    if data.get("stability_index") is not None:
        index = _number(key, "stability_index", data["stability_index"])
        data["stability_index"] = int(_clamp(round(index), 1, 100))

    return data


def _body_weights(
    key: SeriesKey,
    data: Mapping[str, Any],
    settings: Settings,
) -> tuple:
    bodyweight = data.get(BODYWEIGHT_FIELD)
    equipment_weight = data.get(EQUIPMENT_WEIGHT_FIELD)
    bodyweight = settings.default_bodyweight_kg if bodyweight is None else _number(key, BODYWEIGHT_FIELD, bodyweight)
    equipment_weight = (
        settings.default_equipment_weight_kg
        if equipment_weight is None
        else _number(key, EQUIPMENT_WEIGHT_FIELD, equipment_weight)
    )
    if bodyweight <= 0:
        raise SampleValidationError(f"Bodyweight must be positive, got {bodyweight}", key)
    if equipment_weight <= 0:
        raise SampleValidationError(f"Equipment weight must be positive, got {equipment_weight}", key)
    return bodyweight, equipment_weight


def _derive(
    key: SeriesKey,
    data: Mapping[str, Any],
    sample: Sample,
    series: Sequence[Sample],
    settings: Settings,
) -> Dict[str, Any]:
    """Derived field updates for a freshly built sample."""
    updated = list(series) + [sample]
    modality = key.modality

    if modality == Modality.FLEXIBILITY:
        if data.get("assessment_score") is None:
            return {"assessment_score": FlexibilityCalculator().score(updated)}

    elif modality == Modality.BALANCE:
        if data.get("difficulty_level") is None:
            return {"difficulty_level": BalanceCalculator().recommend_difficulty(updated)}

    elif modality == Modality.POWER:
        calculator = PowerCalculator()
        bodyweight, equipment_weight = _body_weights(key, data, settings)
        changes: Dict[str, Any] = {
            "explosive_index": calculator.explosive_index(sample.power_output, bodyweight, equipment_weight, key),
        }
        if data.get("consistency_score") is None:
            changes["consistency_score"] = calculator.consistency_score(updated)
        return changes

    elif modality == Modality.STABILITY:
        if data.get("stability_index") is None:
            return {"stability_index": StabilityCalculator().stability_index([sample])}

    return {}


def build_sample(
    key: SeriesKey,
    measurement: Mapping[str, Any],
    series: Sequence[Sample],
    *,
    timestamp: datetime,
    settings: Optional[Settings] = None,
) -> Sample:
    """
    Build the next sample of a series from a raw measurement.

    Args:
        key: Series the sample is appended to
        measurement: Raw modality fields; power measurements may also carry
            bodyweight and equipment_weight (kg)
        series: Current series (used for series-dependent derived fields)
        timestamp: Session time
        settings: Source of body/equipment weight defaults

    Returns:
        Immutable sample with clamped and derived fields

    Raises:
        SampleValidationError: If the measurement cannot be clamped into the
            domain or a body/equipment weight is not positive
    """
    settings = settings or get_settings()
    if not isinstance(measurement, Mapping):
        raise SampleValidationError("Measurement must be an object", key)

    data = normalize_measurement(key, measurement)
    model = sample_type_for(key.modality)

    fields = {
        k: v for k, v in data.items()
        if k not in (BODYWEIGHT_FIELD, EQUIPMENT_WEIGHT_FIELD, "id", "modality")
    }
    fields.update(
        exercise_id=key.exercise_id,
        user_id=key.user_id,
        timestamp=timestamp,
    )

    try:
        sample = model(**fields)
    except ValidationError as e:
        raise SampleValidationError(f"Invalid {key.modality.value} measurement: {e}", key) from e

    changes = _derive(key, data, sample, series, settings)
    if changes:
        logger.debug(f"Derived {sorted(changes)} for {key}")
        sample = sample.model_copy(update=changes)
    return sample
