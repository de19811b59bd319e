"""
Unit tests for sample ingest (clamping, validation and derived fields).
"""
import pytest

from application.exceptions import SampleValidationError
from backend.core.sample_ingest import build_sample, normalize_measurement
from backend.settings import Settings
from domain.models import (
    BalanceSample,
    FlexibilitySample,
    Modality,
    PowerSample,
    SeriesKey,
    StabilitySample,
)
from tests.fakes import FIXED_NOW, create_flexibility_series, create_power_series

pytestmark = pytest.mark.unit


@pytest.fixture
def settings():
    return Settings(_env_file=None, environment="test")


def key_for(modality, exercise_id="test-exercise"):
    return SeriesKey(modality=modality, exercise_id=exercise_id, user_id="user-1")


class TestClamping:
    """Percentages are clamped, not rejected."""

    def test_rom_above_100_is_clamped(self, settings):
        sample = build_sample(key_for(Modality.FLEXIBILITY), {"rom_percentage": 112}, [],
                              timestamp=FIXED_NOW, settings=settings)
        assert isinstance(sample, FlexibilitySample)
        assert sample.rom_percentage == 100

    def test_negative_wobble_is_clamped(self, settings):
        sample = build_sample(key_for(Modality.BALANCE), {"stability_time": 20, "wobble_index": -5}, [],
                              timestamp=FIXED_NOW, settings=settings)
        assert sample.wobble_index == 0

    def test_nested_technique_scores_are_clamped(self, settings):
        sample = build_sample(
            key_for(Modality.POWER),
            {"power_output": 200, "technique": {"form_score": 130, "accuracy": 50}},
            [],
            timestamp=FIXED_NOW,
            settings=settings,
        )
        assert sample.technique.form_score == 100
        assert sample.technique.accuracy == 50

    def test_difficulty_level_is_clamped(self, settings):
        sample = build_sample(
            key_for(Modality.BALANCE),
            {"stability_time": 20, "wobble_index": 30, "difficulty_level": 14},
            [],
            timestamp=FIXED_NOW,
            settings=settings,
        )
        assert sample.difficulty_level == 10

    def test_stability_index_is_clamped(self, settings):
        sample = build_sample(
            key_for(Modality.STABILITY),
            {"endurance_time": 30, "stability_index": 0},
            [],
            timestamp=FIXED_NOW,
            settings=settings,
        )
        assert sample.stability_index == 1

    def test_input_dict_is_not_mutated(self):
        measurement = {"rom_percentage": 150}
        normalize_measurement(key_for(Modality.FLEXIBILITY), measurement)
        assert measurement == {"rom_percentage": 150}


class TestValidation:
    """Unclampable input raises SampleValidationError with the series key."""

    def test_negative_duration_is_rejected(self, settings):
        with pytest.raises(SampleValidationError, match="balance:test-exercise:user-1"):
            build_sample(key_for(Modality.BALANCE), {"stability_time": -1, "wobble_index": 10}, [],
                         timestamp=FIXED_NOW, settings=settings)

    def test_negative_power_is_rejected(self, settings):
        with pytest.raises(SampleValidationError):
            build_sample(key_for(Modality.POWER), {"power_output": -10}, [],
                         timestamp=FIXED_NOW, settings=settings)

    def test_non_numeric_value_is_rejected(self, settings):
        with pytest.raises(SampleValidationError, match="rom_percentage"):
            build_sample(key_for(Modality.FLEXIBILITY), {"rom_percentage": "lots"}, [],
                         timestamp=FIXED_NOW, settings=settings)

    def test_boolean_value_is_rejected(self, settings):
        with pytest.raises(SampleValidationError):
            build_sample(key_for(Modality.FLEXIBILITY), {"rom_percentage": True}, [],
                         timestamp=FIXED_NOW, settings=settings)

    def test_missing_required_field_is_rejected(self, settings):
        with pytest.raises(SampleValidationError):
            build_sample(key_for(Modality.STABILITY), {}, [], timestamp=FIXED_NOW, settings=settings)

    def test_unknown_enum_value_is_rejected(self, settings):
        with pytest.raises(SampleValidationError):
            build_sample(key_for(Modality.FLEXIBILITY), {"rom_percentage": 50, "flexibility_type": "yoga"}, [],
                         timestamp=FIXED_NOW, settings=settings)

    @pytest.mark.parametrize("field", ["bodyweight", "equipment_weight"])
    def test_non_positive_weights_are_rejected(self, settings, field):
        with pytest.raises(SampleValidationError):
            build_sample(key_for(Modality.POWER), {"power_output": 200, field: 0}, [],
                         timestamp=FIXED_NOW, settings=settings)


class TestDerivedFields:
    """Derived fields are filled in at ingest."""

    def test_flexibility_assessment_score_uses_series(self, settings):
        key = key_for(Modality.FLEXIBILITY)
        series = create_flexibility_series(key, [30, 40, 50, 60])
        sample = build_sample(key, {"rom_percentage": 70}, series, timestamp=FIXED_NOW, settings=settings)
        assert sample.assessment_score == pytest.approx(57.2)

    def test_balance_difficulty_recommended_when_absent(self, settings):
        sample = build_sample(key_for(Modality.BALANCE), {"stability_time": 70, "wobble_index": 10}, [],
                              timestamp=FIXED_NOW, settings=settings)
        assert isinstance(sample, BalanceSample)
        assert sample.difficulty_level == 9

    def test_power_explosive_index_uses_default_weights(self, settings):
        sample = build_sample(key_for(Modality.POWER), {"power_output": 219.9}, [],
                              timestamp=FIXED_NOW, settings=settings)
        assert isinstance(sample, PowerSample)
        assert sample.explosive_index == 301

    def test_power_explosive_index_uses_supplied_weights(self, settings):
        sample = build_sample(
            key_for(Modality.POWER),
            {"power_output": 160, "bodyweight": 76, "equipment_weight": 4},
            [],
            timestamp=FIXED_NOW,
            settings=settings,
        )
        assert sample.explosive_index == 200

    def test_power_consistency_uses_series(self, settings):
        key = key_for(Modality.POWER)
        series = create_power_series(key, [200, 200])
        sample = build_sample(key, {"power_output": 200}, series, timestamp=FIXED_NOW, settings=settings)
        assert sample.consistency_score == pytest.approx(100.0)

    def test_stability_index_derived_when_absent(self, settings):
        sample = build_sample(
            key_for(Modality.STABILITY),
            {
                "endurance_time": 60,
                "muscle_activation": {m: 60 for m in (
                    "rectus_abdominis", "obliques", "transverse_abdominis",
                    "erector_spinae", "glutes", "hip_flexors",
                )},
                "form_quality": {"spinal_alignment": 90, "breathing": 90, "control": 90, "stability": 90},
            },
            [],
            timestamp=FIXED_NOW,
            settings=settings,
        )
        assert isinstance(sample, StabilitySample)
        assert sample.stability_index == 83

    def test_key_fields_override_measurement(self, settings):
        sample = build_sample(
            key_for(Modality.FLEXIBILITY),
            {"rom_percentage": 50, "user_id": "someone-else", "exercise_id": "other"},
            [],
            timestamp=FIXED_NOW,
            settings=settings,
        )
        assert sample.user_id == "user-1"
        assert sample.exercise_id == "test-exercise"
        assert sample.timestamp == FIXED_NOW
