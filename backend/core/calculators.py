"""
Modality Calculators for progression scoring.

This module provides the per-modality scoring logic:
- Shared consistency primitive (inverse coefficient of variation)
- Flexibility: assessment score, per-type scores, modification suggestions
- Balance: difficulty recommendation, composite score, safety guidance
- Power: consistency, explosive index, peak records, power zones
- Stability: composite stability index, form feedback

The numeric constants below are empirical values; milestone and record
outcomes for stored series depend on them.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
import logging
import math

from application.exceptions import SampleValidationError
from backend.core.trend_engine import calculate_trend
from domain.models import (
    BalanceSample,
    DataPoint,
    FlexibilitySample,
    FlexibilityType,
    Modality,
    PowerSample,
    Record,
    SeriesKey,
    StabilitySample,
    TrendDirection,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

FLEXIBILITY_WINDOW = 10
FLEXIBILITY_SUGGESTION_WINDOW = 5
FLEXIBILITY_CONSISTENCY_BONUS = 0.1

BALANCE_WINDOW = 10
BALANCE_FULL_HOLD_SECONDS = 60.0
# (average stability time strictly above, difficulty increment)
BALANCE_HOLD_STEPS = ((30.0, 2), (60.0, 2))
# (average wobble index strictly below, difficulty increment)
BALANCE_WOBBLE_STEPS = ((30.0, 2), (15.0, 2))
BALANCE_MAX_DIFFICULTY = 10
BALANCE_INSTABILITY_WOBBLE = 60.0

POWER_WINDOW = 10
POWER_MIN_CONSISTENCY_SAMPLES = 3
POWER_ZONES = (
    ("Beginner", 0.0, 200.0),
    ("Intermediate", 200.0, 400.0),
    ("Advanced", 400.0, 600.0),
    ("Elite", 600.0, 1000.0),
)

STABILITY_WINDOW = 5
# Seconds of held position that map to a full endurance score
STABILITY_FULL_ENDURANCE_SECONDS = 60.0


# =============================================================================
# Shared Primitives
# =============================================================================


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 rounding up."""
    return int(math.floor(value + 0.5))


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def calculate_consistency(values: Sequence[float]) -> float:
    """
    Consistency score as the inverse of the coefficient of variation.

    Formula: consistency = max(0, 100 - stddev / mean * 100), using the
    population standard deviation.

    Args:
        values: Observations (e.g. ROM percentages, power outputs)

    Returns:
        Score in [0, 100]; 0 for fewer than two values or a zero mean
    """
    if len(values) < 2:
        return 0.0

    mean = _mean(values)
    if mean == 0:
        return 0.0

    variance = sum((v - mean) ** 2 for v in values) / len(values)
    cv = math.sqrt(variance) / mean * 100
    return max(0.0, min(100.0, 100 - cv))


# =============================================================================
# Base Calculator
# =============================================================================


class ModalityCalculator:
    """
    Common calculator interface.

    Subclasses define the modality, the composite score and the metric fed
    to the trend engine.
    """

    modality: Modality
    trend_metric: str
    record_metric: Optional[str] = None

    def score(self, series: Sequence[Any]) -> float:
        raise NotImplementedError

    def consistency(self, values: Sequence[float]) -> float:
        return calculate_consistency(values)

    def data_points(self, series: Sequence[Any]) -> List[DataPoint]:
        """Series projected onto the modality's trend metric."""
        return [
            DataPoint(timestamp=s.timestamp, value=float(getattr(s, self.trend_metric)))
            for s in series
        ]

    def summarize(self, series: Sequence[Any]) -> Dict[str, Any]:
        """Scores reported with every ingest and summary."""
        return {"score": self.score(series)}


# =============================================================================
# Flexibility
# =============================================================================


class FlexibilityCalculator(ModalityCalculator):
    modality = Modality.FLEXIBILITY
    trend_metric = "rom_percentage"

    def score(self, series: Sequence[FlexibilitySample]) -> float:
        """
        Assessment score from the last 10 sessions.

        Formula: min(100, mean ROM + consistency(ROM) * 0.1)
        """
        recent = list(series)[-FLEXIBILITY_WINDOW:]
        if not recent:
            return 0.0
        roms = [s.rom_percentage for s in recent]
        bonus = self.consistency(roms) * FLEXIBILITY_CONSISTENCY_BONUS
        return round(min(100.0, _mean(roms) + bonus), 1)

    def type_scores(self, series: Sequence[FlexibilitySample]) -> Dict[str, float]:
        """Mean ROM of the last 10 sessions, per flexibility type."""
        recent = list(series)[-FLEXIBILITY_WINDOW:]
        scores = {}
        for flex_type in FlexibilityType:
            roms = [s.rom_percentage for s in recent if s.flexibility_type == flex_type]
            scores[flex_type.value] = round(_mean(roms), 1)
        return scores

    def modification_suggestions(self, series: Sequence[FlexibilitySample]) -> List[str]:
        """Stretching guidance from the last 5 sessions and their trend."""
        recent = list(series)[-FLEXIBILITY_SUGGESTION_WINDOW:]
        if not recent:
            return []

        avg_rom = _mean([s.rom_percentage for s in recent])
        trend = calculate_trend(self.data_points(recent), now=recent[-1].timestamp)

        suggestions: List[str] = []
        if avg_rom < 60:
            suggestions.append("Focus on gentle, sustained stretches")
            suggestions.append("Consider warm-up exercises before stretching")
        if trend.direction == TrendDirection.DECLINING:
            suggestions.append("Reduce stretch intensity temporarily")
            suggestions.append("Ensure proper hydration and nutrition")
        if trend.direction == TrendDirection.STABLE and avg_rom > 80:
            suggestions.append("Try advanced stretching variations")
            suggestions.append("Incorporate proprioceptive neuromuscular facilitation")
        return suggestions

    def summarize(self, series: Sequence[FlexibilitySample]) -> Dict[str, Any]:
        recent = list(series)[-FLEXIBILITY_WINDOW:]
        return {
            "score": self.score(series),
            "consistency": round(self.consistency([s.rom_percentage for s in recent]), 1),
            "type_scores": self.type_scores(series),
            "recommendations": self.modification_suggestions(series),
        }


# =============================================================================
# Balance
# =============================================================================


class BalanceCalculator(ModalityCalculator):
    modality = Modality.BALANCE
    trend_metric = "stability_time"

    def recommend_difficulty(self, series: Sequence[BalanceSample]) -> int:
        """
        Recommended difficulty level (1-10) from the last 10 sessions.

        Starts at 1 and steps up for longer average holds and lower
        average wobble, capped at 10.
        """
        recent = list(series)[-BALANCE_WINDOW:]
        if not recent:
            return 1

        avg_time = _mean([s.stability_time for s in recent])
        avg_wobble = _mean([s.wobble_index for s in recent])

        difficulty = 1
        for threshold, step in BALANCE_HOLD_STEPS:
            if avg_time > threshold:
                difficulty += step
        for threshold, step in BALANCE_WOBBLE_STEPS:
            if avg_wobble < threshold:
                difficulty += step
        return min(BALANCE_MAX_DIFFICULTY, difficulty)

    def hold_score(self, seconds: float) -> float:
        return min(100.0, seconds / BALANCE_FULL_HOLD_SECONDS * 100)

    def score(self, series: Sequence[BalanceSample]) -> float:
        """Composite of hold duration and steadiness over the last 10 sessions."""
        recent = list(series)[-BALANCE_WINDOW:]
        if not recent:
            return 0.0
        hold = self.hold_score(_mean([s.stability_time for s in recent]))
        steadiness = 100 - _mean([s.wobble_index for s in recent])
        return float(round_half_up((hold + steadiness) / 2))

    def safety_modifications(self, level: int) -> List[str]:
        if level <= 3:
            return [
                "Use support (wall, chair) for stability",
                "Keep eyes open and focus on a fixed point",
                "Wear supportive, flat footwear",
            ]
        if level <= 6:
            return [
                "Progress to unsupported balance",
                "Try eyes-closed variations (with safety spotter)",
                "Incorporate head movements",
            ]
        return [
            "Add dynamic movements and arm variations",
            "Practice on unstable surfaces when ready",
            "Include dual-task activities",
        ]

    def improvement_metrics(self, series: Sequence[BalanceSample]) -> Dict[str, Any]:
        """
        Compare the last 10 sessions against the 10 before them.

        Returns:
            Dict with stability_improvement (%), balance_confidence (0-100)
            and skill_level
        """
        samples = list(series)
        if len(samples) < 2:
            return {
                "stability_improvement": 0,
                "balance_confidence": 50,
                "skill_level": "novice",
            }

        recent = samples[-BALANCE_WINDOW:]
        older = samples[-2 * BALANCE_WINDOW:-BALANCE_WINDOW]

        avg_recent = _mean([s.stability_time for s in recent])
        avg_older = _mean([s.stability_time for s in older]) if older else avg_recent
        improvement = (avg_recent - avg_older) / avg_older * 100 if avg_older > 0 else 0.0

        avg_wobble = _mean([s.wobble_index for s in recent])
        if avg_recent > 60 and avg_wobble < 20:
            skill_level = "expert"
        elif avg_recent > 45 and avg_wobble < 30:
            skill_level = "advanced"
        elif avg_recent > 30 and avg_wobble < 40:
            skill_level = "intermediate"
        elif avg_recent > 15 and avg_wobble < 60:
            skill_level = "beginner"
        else:
            skill_level = "novice"

        return {
            "stability_improvement": round_half_up(improvement),
            "balance_confidence": round_half_up(self.hold_score(avg_recent)),
            "skill_level": skill_level,
        }

    def instability_zones(self, series: Sequence[BalanceSample]) -> List[int]:
        """Difficulty levels where the average wobble index exceeds 60."""
        by_level: Dict[int, List[float]] = defaultdict(list)
        for s in series:
            by_level[s.difficulty_level].append(s.wobble_index)
        return sorted(
            level for level, wobbles in by_level.items()
            if _mean(wobbles) > BALANCE_INSTABILITY_WOBBLE
        )

    def summarize(self, series: Sequence[BalanceSample]) -> Dict[str, Any]:
        level = self.recommend_difficulty(series)
        return {
            "score": self.score(series),
            "recommended_difficulty": level,
            "safety_modifications": self.safety_modifications(level),
            "instability_zones": self.instability_zones(series),
            **self.improvement_metrics(series),
        }


# =============================================================================
# Power
# =============================================================================


@dataclass
class ConsistencyWindow:
    """Consistency of one rolling window of throws."""
    window_index: int
    consistency_score: float
    improvement_rate: float


class PowerCalculator(ModalityCalculator):
    modality = Modality.POWER
    trend_metric = "power_output"
    record_metric = "power_output"

    def consistency_score(self, series: Sequence[PowerSample]) -> float:
        """Consistency of the last 10 power outputs; 0 below 3 sessions."""
        samples = list(series)
        if len(samples) < POWER_MIN_CONSISTENCY_SAMPLES:
            return 0.0
        return self.consistency([s.power_output for s in samples[-POWER_WINDOW:]])

    def explosive_index(
        self,
        power_output: float,
        bodyweight: float,
        equipment_weight: float,
        key: Optional[SeriesKey] = None,
    ) -> int:
        """
        Power output normalized by total moved weight.

        Formula: round(power / (bodyweight + equipment_weight) * 100)

        Args:
            key: Series the measurement belongs to, named in errors

        Raises:
            SampleValidationError: If bodyweight or equipment weight is not
                positive
        """
        if bodyweight <= 0:
            raise SampleValidationError(f"Bodyweight must be positive, got {bodyweight}", key)
        if equipment_weight <= 0:
            raise SampleValidationError(f"Equipment weight must be positive, got {equipment_weight}", key)
        return round_half_up(power_output / (bodyweight + equipment_weight) * 100)

    def technique_score(self, series: Sequence[PowerSample]) -> float:
        recent = list(series)[-POWER_WINDOW:]
        return _mean([s.technique.overall for s in recent])

    def score(self, series: Sequence[PowerSample]) -> float:
        """Composite of throw consistency and technique quality."""
        if not series:
            return 0.0
        return float(round_half_up(
            (self.consistency_score(series) + self.technique_score(series)) / 2
        ))

    def peak_records(self, series: Sequence[PowerSample]) -> List[Record]:
        """
        Best power output per exercise, sorted descending by power.

        Ties keep the earliest sample.
        """
        best: Dict[str, PowerSample] = {}
        for sample in series:
            current = best.get(sample.exercise_id)
            if current is None or sample.power_output > current.power_output or (
                sample.power_output == current.power_output
                and sample.timestamp < current.timestamp
            ):
                best[sample.exercise_id] = sample

        records = [
            Record(
                exercise_id=s.exercise_id,
                modality=self.modality,
                metric=self.record_metric,
                value=s.power_output,
                achieved_at=s.timestamp,
                sample_id=s.id,
            )
            for s in best.values()
        ]
        return sorted(records, key=lambda r: -r.value)

    def power_zone(self, power_output: float) -> str:
        for name, low, high in POWER_ZONES:
            if low <= power_output <= high:
                return name
        return POWER_ZONES[0][0] if power_output < 0 else POWER_ZONES[-1][0]

    def consistency_trend(self, series: Sequence[PowerSample]) -> List[ConsistencyWindow]:
        """Consistency over each rolling window of three throws."""
        samples = list(series)
        windows: List[ConsistencyWindow] = []
        for i in range(len(samples) - POWER_MIN_CONSISTENCY_SAMPLES + 1):
            window = samples[i:i + POWER_MIN_CONSISTENCY_SAMPLES]
            score = self.consistency_score(window)
            previous = windows[-1].consistency_score if windows else score
            windows.append(ConsistencyWindow(
                window_index=i,
                consistency_score=round(score, 1),
                improvement_rate=round(score - previous, 1),
            ))
        return windows

    def summarize(self, series: Sequence[PowerSample]) -> Dict[str, Any]:
        samples = list(series)
        latest = samples[-1] if samples else None
        return {
            "score": self.score(samples),
            "consistency": round(self.consistency_score(samples), 1),
            "technique": round(self.technique_score(samples), 1),
            "explosive_index": latest.explosive_index if latest else 0,
            "power_zone": self.power_zone(latest.power_output) if latest else None,
            "peak_power": max((s.power_output for s in samples), default=0.0),
        }


# =============================================================================
# Stability
# =============================================================================


class StabilityCalculator(ModalityCalculator):
    modality = Modality.STABILITY
    trend_metric = "stability_index"

    def endurance_score(self, seconds: float) -> float:
        """60 seconds of held position maps to 100."""
        return min(100.0, seconds / STABILITY_FULL_ENDURANCE_SECONDS * 100)

    def composite(self, endurance_time: float, engagement: float, form: float) -> int:
        """Index in [1, 100]; 1 is the floor even for an all-zero session."""
        index = round_half_up((self.endurance_score(endurance_time) + engagement + form) / 3)
        return max(1, min(100, index))

    def stability_index(self, series: Sequence[StabilitySample]) -> int:
        """
        Composite stability index from the last 5 sessions.

        Mean of the endurance score, core engagement and form quality.
        An empty series scores 1, the floor of the index.
        """
        recent = list(series)[-STABILITY_WINDOW:]
        if not recent:
            return 1
        return self.composite(
            _mean([s.endurance_time for s in recent]),
            _mean([s.muscle_activation.overall_engagement for s in recent]),
            _mean([s.form_quality.overall_score for s in recent]),
        )

    def score(self, series: Sequence[StabilitySample]) -> float:
        return float(self.stability_index(series))

    def form_feedback(
        self,
        series: Sequence[StabilitySample],
        *,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """Posture, breathing and control feedback for the latest session."""
        if not series:
            return []
        latest = series[-1]
        form = latest.form_quality
        at = now or latest.timestamp

        rules = (
            (form.spinal_alignment > 80, "positive", "posture",
             "Excellent spinal alignment maintained throughout exercise"),
            (form.breathing > 80, "positive", "breathing",
             "Great breathing control - steady and rhythmic"),
            (form.control < 60, "improvement", "control",
             "Focus on smoother, more controlled movements"),
            (form.stability < 60, "improvement", "stability",
             "Engage core muscles more to improve stability"),
            (form.spinal_alignment < 40, "critical", "posture",
             "Spinal alignment needs immediate attention - stop if experiencing pain"),
        )
        return [
            {"type": kind, "category": category, "message": message, "timestamp": at}
            for applies, kind, category, message in rules
            if applies
        ]

    def improvement_metrics(self, series: Sequence[StabilitySample]) -> Dict[str, float]:
        """Compare the last 5 sessions against the 5 before them."""
        samples = list(series)
        if len(samples) < 2:
            return {"stability_gain": 0, "endurance_improvement": 0.0}

        recent = samples[-STABILITY_WINDOW:]
        older = samples[-2 * STABILITY_WINDOW:-STABILITY_WINDOW]

        recent_index = _mean([s.stability_index for s in recent])
        older_index = _mean([s.stability_index for s in older]) if older else recent_index
        gain = (recent_index - older_index) / older_index * 100 if older_index > 0 else 0.0

        recent_endurance = _mean([s.endurance_time for s in recent])
        older_endurance = _mean([s.endurance_time for s in older]) if older else recent_endurance

        return {
            "stability_gain": round_half_up(gain),
            "endurance_improvement": round(recent_endurance - older_endurance, 1),
        }

    def summarize(self, series: Sequence[StabilitySample]) -> Dict[str, Any]:
        return {
            "score": self.score(series),
            "stability_index": self.stability_index(series),
            "form_feedback": self.form_feedback(series),
            **self.improvement_metrics(series),
        }


# =============================================================================
# Registry
# =============================================================================


_CALCULATORS: Dict[Modality, ModalityCalculator] = {
    Modality.FLEXIBILITY: FlexibilityCalculator(),
    Modality.BALANCE: BalanceCalculator(),
    Modality.POWER: PowerCalculator(),
    Modality.STABILITY: StabilityCalculator(),
}


def get_calculator(modality: Modality) -> ModalityCalculator:
    """Return the calculator for a modality."""
    return _CALCULATORS[Modality(modality)]
