"""
Milestone, record and achievement value objects.

Milestone achievement is monotonic: once achieved it never reverts. State
is carried explicitly in AchievementState and replaced, never mutated.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, Field

from domain.models.sample import Modality


class AchievementKind(str, Enum):
    MILESTONE = "milestone"
    RECORD = "record"


class Milestone(BaseModel):
    """A fixed composite-score threshold with a one-time transition."""

    name: str
    description: str
    threshold: float = Field(..., ge=0, le=100)
    achieved: bool = False
    achieved_at: Optional[datetime] = None
    level: Optional[str] = None
    benefits: Tuple[str, ...] = ()

    model_config = {"frozen": True}

    def mark_achieved(self, at: datetime) -> "Milestone":
        """Return an achieved copy; already-achieved milestones are returned unchanged."""
        if self.achieved:
            return self
        return self.model_copy(update={"achieved": True, "achieved_at": at})


class Record(BaseModel):
    """Per-exercise maximum of a modality's peak metric."""

    exercise_id: str
    modality: Modality
    metric: str
    value: float
    achieved_at: datetime
    sample_id: str
    conditions: str = "Training session"
    equipment: str = "Medicine ball"

    model_config = {"frozen": True}


class Achievement(BaseModel):
    """An item in the new-achievements feed."""

    kind: AchievementKind
    modality: Modality
    name: str
    threshold_or_value: float
    achieved_at: datetime
    description: Optional[str] = None
    exercise_id: Optional[str] = None

    model_config = {"frozen": True}


class AchievementState(BaseModel):
    """Milestone flags for one series, ordered ascending by threshold."""

    modality: Modality
    milestones: Tuple[Milestone, ...]

    model_config = {"frozen": True}

    @property
    def achieved_names(self) -> Tuple[str, ...]:
        return tuple(m.name for m in self.milestones if m.achieved)


class Celebration(BaseModel):
    """Presentation-ready description of an achievement."""

    kind: AchievementKind
    title: str
    description: str
    achievement_text: str
    style: str
    icon: str = "award"
    unlocked: bool = True

    model_config = {"frozen": True}
