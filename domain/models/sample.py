"""
Session sample value objects for the four progression modalities.

A sample is one recorded session measurement. Samples are immutable once
built; derived fields are set at ingest time by constructing a new value
with model_copy(update=...).

Unknown fields are ignored on input so payloads written by newer or older
schema versions still load.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator


Percentage = Annotated[float, Field(ge=0, le=100)]


class Modality(str, Enum):
    """Exercise categories tracked by the progression engine."""

    FLEXIBILITY = "flexibility"
    BALANCE = "balance"
    POWER = "power"
    STABILITY = "stability"


class FlexibilityType(str, Enum):
    STATIC = "static"
    DYNAMIC = "dynamic"
    PROPRIOCEPTIVE = "proprioceptive"


class BalanceType(str, Enum):
    STATIC = "static"
    DYNAMIC = "dynamic"


class PowerType(str, Enum):
    ROTATIONAL = "rotational"
    EXPLOSIVE = "explosive"
    PLYOMETRIC = "plyometric"


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class ProgressionSample(BaseModel):
    """
    Fields shared by every modality sample.

    Timestamps are normalized to timezone-aware UTC; naive datetimes are
    assumed to already be UTC.
    """

    id: str = Field(default_factory=lambda: str(uuid4()), description="Unique sample id")
    exercise_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    timestamp: datetime = Field(default_factory=utc_now)
    session_id: Optional[str] = None

    model_config = {
        "frozen": True,
        "extra": "ignore",
        "use_enum_values": False,
    }

    @field_validator("timestamp")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Attach UTC to naive datetimes and convert aware ones to UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class FlexibilitySample(ProgressionSample):
    """Range-of-motion measurement for a stretch."""

    modality: Modality = Field(default=Modality.FLEXIBILITY, frozen=True)
    rom_percentage: Percentage
    flexibility_type: FlexibilityType = FlexibilityType.STATIC
    hold_time: Optional[float] = Field(default=None, ge=0, description="Seconds held (static stretches)")
    repetitions: Optional[int] = Field(default=None, ge=0, description="Reps (dynamic stretches)")
    assessment_score: Percentage = 0.0


class BalanceSample(ProgressionSample):
    """Balance hold measurement."""

    modality: Modality = Field(default=Modality.BALANCE, frozen=True)
    difficulty_level: int = Field(default=1, ge=1, le=10)
    balance_type: BalanceType = BalanceType.STATIC
    stability_time: float = Field(..., ge=0, description="Seconds balance was maintained")
    wobble_index: Percentage


class PowerTechnique(BaseModel):
    """Technique sub-scores for a throw, each 0-100."""

    form_score: Percentage = 0.0
    accuracy: Percentage = 0.0
    follow_through: Percentage = 0.0
    synchronization: Percentage = 0.0

    model_config = {"frozen": True, "extra": "ignore"}

    @property
    def overall(self) -> float:
        return (self.form_score + self.accuracy + self.follow_through + self.synchronization) / 4


class PowerSample(ProgressionSample):
    """Medicine ball throw measurement."""

    modality: Modality = Field(default=Modality.POWER, frozen=True)
    power_output: float = Field(..., ge=0, description="Watts")
    speed: float = Field(default=0.0, ge=0)
    distance: float = Field(default=0.0, ge=0, description="Meters")
    consistency_score: Percentage = 0.0
    explosive_index: int = Field(default=0, ge=0, description="Power per kg moved, x100")
    power_type: PowerType = PowerType.EXPLOSIVE
    technique: PowerTechnique = Field(default_factory=PowerTechnique)


class MuscleActivation(BaseModel):
    """Per-muscle core activation, each 0-100."""

    rectus_abdominis: Percentage = 0.0
    obliques: Percentage = 0.0
    transverse_abdominis: Percentage = 0.0
    erector_spinae: Percentage = 0.0
    glutes: Percentage = 0.0
    hip_flexors: Percentage = 0.0

    model_config = {"frozen": True, "extra": "ignore"}

    @property
    def overall_engagement(self) -> float:
        """Mean activation across the six tracked muscles."""
        values = (
            self.rectus_abdominis,
            self.obliques,
            self.transverse_abdominis,
            self.erector_spinae,
            self.glutes,
            self.hip_flexors,
        )
        return sum(values) / len(values)


class FormQuality(BaseModel):
    """
    Form quality sub-scores for a stability hold.

    overall_score defaults to the mean of the four sub-scores when the
    caller does not supply one.
    """

    overall_score: Percentage = 0.0
    spinal_alignment: Percentage = 0.0
    breathing: Percentage = 0.0
    control: Percentage = 0.0
    stability: Percentage = 0.0

    model_config = {"frozen": True, "extra": "ignore"}

    @model_validator(mode="before")
    @classmethod
    def default_overall_score(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("overall_score") is None:
            parts = [
                data.get(name, 0.0) or 0.0
                for name in ("spinal_alignment", "breathing", "control", "stability")
            ]
            data = {**data, "overall_score": sum(parts) / 4}
        return data


class StabilitySample(ProgressionSample):
    """Stability ball core hold measurement."""

    modality: Modality = Field(default=Modality.STABILITY, frozen=True)
    stability_index: int = Field(default=1, ge=1, le=100)
    endurance_time: float = Field(..., ge=0, description="Seconds the position was held")
    muscle_activation: MuscleActivation = Field(default_factory=MuscleActivation)
    form_quality: FormQuality = Field(default_factory=FormQuality)


Sample = Union[FlexibilitySample, BalanceSample, PowerSample, StabilitySample]

SAMPLE_TYPES: Dict[Modality, type] = {
    Modality.FLEXIBILITY: FlexibilitySample,
    Modality.BALANCE: BalanceSample,
    Modality.POWER: PowerSample,
    Modality.STABILITY: StabilitySample,
}


def sample_type_for(modality: Modality) -> type:
    """Return the sample model class for a modality."""
    return SAMPLE_TYPES[Modality(modality)]
