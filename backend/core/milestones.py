"""
Milestone and Record Engine.

Pure functions over an explicit, immutable AchievementState:
- Static milestone catalogs per modality (ascending thresholds)
- Milestone transitions (not-achieved -> achieved, achieved is terminal)
- Record detection against the updated series
- State replay from a stored series

No function here keeps state between calls. Callers pass the current state
in and keep the returned state.

Usage:
    from backend.core.milestones import initial_state, evaluate_achievements

    state = initial_state(Modality.FLEXIBILITY)
    update = evaluate_achievements(state, series, sample)
    state = update.state
    for achievement in update.achievements:
        ...
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from backend.core.calculators import get_calculator
from domain.models import (
    Achievement,
    AchievementKind,
    AchievementState,
    Milestone,
    Modality,
    Record,
    Sample,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Catalogs
# =============================================================================

MILESTONE_CATALOGS: Dict[Modality, Tuple[Milestone, ...]] = {
    Modality.FLEXIBILITY: (
        Milestone(
            name="Basic Range",
            description="Achieve fundamental flexibility and basic range of motion",
            threshold=40,
            level="beginner",
        ),
        Milestone(
            name="Enhanced Flexibility",
            description="Develop improved range of motion and muscle elasticity",
            threshold=70,
            level="intermediate",
        ),
        Milestone(
            name="Peak Flexibility",
            description="Reach maximum flexibility potential and advanced range of motion",
            threshold=90,
            level="advanced",
        ),
    ),
    Modality.BALANCE: (
        Milestone(
            name="Foundation",
            description="Basic static balance with support",
            threshold=10,
            level="foundation",
        ),
        Milestone(
            name="Beginner",
            description="Unsupported static balance",
            threshold=30,
            level="beginner",
        ),
        Milestone(
            name="Developing",
            description="Improved stability and control",
            threshold=50,
            level="developing",
        ),
        Milestone(
            name="Intermediate",
            description="Advanced static balance techniques",
            threshold=70,
            level="intermediate",
        ),
        Milestone(
            name="Advanced",
            description="Expert balance and stability",
            threshold=90,
            level="advanced",
        ),
    ),
    Modality.POWER: (
        Milestone(
            name="Power Foundation",
            description="Consistent throws with sound technique",
            threshold=25,
        ),
        Milestone(
            name="Explosive Developer",
            description="Repeatable explosive output",
            threshold=50,
        ),
        Milestone(
            name="Advanced Power",
            description="High output with refined technique",
            threshold=75,
        ),
        Milestone(
            name="Elite Power",
            description="Elite consistency and technique",
            threshold=90,
        ),
    ),
    Modality.STABILITY: (
        Milestone(
            name="Foundation",
            description="Basic core engagement and stability awareness",
            threshold=25,
            level="foundation",
            benefits=("Improved posture awareness", "Basic core activation"),
        ),
        Milestone(
            name="Developing",
            description="Consistent core engagement during basic exercises",
            threshold=50,
            level="developing",
            benefits=("Enhanced stability", "Better exercise form"),
        ),
        Milestone(
            name="Proficient",
            description="Advanced core control and endurance",
            threshold=75,
            level="proficient",
            benefits=("Injury prevention", "Advanced exercise performance"),
        ),
        Milestone(
            name="Expert",
            description="Elite-level core stability and control",
            threshold=90,
            level="expert",
            benefits=("Peak athletic performance", "Maximum injury resistance"),
        ),
    ),
}


@dataclass
class AchievementUpdate:
    """Result of evaluating one ingest against the achievement state."""
    state: AchievementState
    achievements: List[Achievement] = field(default_factory=list)


# =============================================================================
# Milestones
# =============================================================================


def initial_state(modality: Modality) -> AchievementState:
    """State with every catalog milestone not yet achieved."""
    modality = Modality(modality)
    return AchievementState(modality=modality, milestones=MILESTONE_CATALOGS[modality])


def evaluate_milestones(
    state: AchievementState,
    score: float,
    achieved_at: datetime,
) -> Tuple[AchievementState, List[Milestone]]:
    """
    Apply a fresh composite score to the milestone state.

    Every not-achieved milestone with threshold <= score transitions to
    achieved. Achieved milestones are left as they are, even if the score
    has since dropped.

    Args:
        state: Current achievement state
        score: Composite score recomputed from the full series
        achieved_at: Timestamp recorded on newly achieved milestones

    Returns:
        (new state, newly achieved milestones in threshold order)
    """
    crossed: List[Milestone] = []
    milestones = []
    for milestone in state.milestones:
        if not milestone.achieved and score >= milestone.threshold:
            milestone = milestone.mark_achieved(achieved_at)
            crossed.append(milestone)
        milestones.append(milestone)

    if not crossed:
        return state, []
    return state.model_copy(update={"milestones": tuple(milestones)}), crossed


def next_milestone(state: AchievementState) -> Optional[Milestone]:
    """Lowest-threshold milestone not yet achieved, or the highest one."""
    for milestone in state.milestones:
        if not milestone.achieved:
            return milestone
    return state.milestones[-1] if state.milestones else None


# =============================================================================
# Records
# =============================================================================


def detect_new_record(
    series: Sequence[Sample],
    sample: Sample,
    modality: Modality,
) -> Optional[Record]:
    """
    Check whether a sample is the record holder of its exercise group.

    Evaluated against the updated series: the sample fires a record only if
    it is the group's record after being added. Ties keep the earlier
    sample, so matching an existing best does not fire.

    Args:
        series: Updated series, including sample
        sample: The sample just ingested
        modality: Series modality

    Returns:
        The new Record, or None
    """
    calculator = get_calculator(modality)
    if calculator.record_metric is None:
        return None

    group = [s for s in series if s.exercise_id == sample.exercise_id]
    if not any(s.id == sample.id for s in group):
        group.append(sample)

    for record in calculator.peak_records(group):
        if record.sample_id == sample.id:
            return record
    return None


# =============================================================================
# Evaluation
# =============================================================================


def replay_state(modality: Modality, series: Sequence[Sample]) -> AchievementState:
    """
    Rebuild achievement state by evaluating every chronological prefix.

    Used to seed state for a series loaded from storage, so milestones that
    were reached before a restart are not announced again.
    """
    calculator = get_calculator(modality)
    state = initial_state(modality)
    samples = list(series)
    for i in range(1, len(samples) + 1):
        score = calculator.score(samples[:i])
        state, _ = evaluate_milestones(state, score, samples[i - 1].timestamp)
    return state


def evaluate_achievements(
    state: AchievementState,
    series: Sequence[Sample],
    sample: Sample,
) -> AchievementUpdate:
    """
    Evaluate milestones and records after a sample is added.

    Args:
        state: Achievement state before the ingest
        series: Updated series, including sample
        sample: The sample just ingested

    Returns:
        AchievementUpdate with the new state and the achievements feed,
        milestones before records
    """
    modality = state.modality
    score = get_calculator(modality).score(series)
    new_state, crossed = evaluate_milestones(state, score, sample.timestamp)

    achievements = [
        Achievement(
            kind=AchievementKind.MILESTONE,
            modality=modality,
            name=m.name,
            threshold_or_value=m.threshold,
            achieved_at=sample.timestamp,
            description=m.description,
            exercise_id=sample.exercise_id,
        )
        for m in crossed
    ]

    record = detect_new_record(series, sample, modality)
    if record is not None:
        achievements.append(Achievement(
            kind=AchievementKind.RECORD,
            modality=modality,
            name=f"Peak {record.metric.replace('_', ' ')}",
            threshold_or_value=record.value,
            achieved_at=record.achieved_at,
            exercise_id=record.exercise_id,
        ))

    for achievement in achievements:
        logger.info(
            f"{modality.value} {achievement.kind.value} achieved: "
            f"{achievement.name} ({achievement.threshold_or_value}) for {sample.user_id}"
        )

    return AchievementUpdate(state=new_state, achievements=achievements)
