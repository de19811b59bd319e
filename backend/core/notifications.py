"""
Notification Dispatcher: achievement -> celebration description.

Stateless formatting only. Presentation layers render the returned
Celebration; nothing here performs I/O.
"""
from datetime import datetime, timedelta
from typing import Optional

from domain.models import Achievement, AchievementKind, Celebration, Modality

CELEBRATION_COOLDOWN = timedelta(hours=1)

CELEBRATION_STYLES = {
    AchievementKind.MILESTONE: "celebrate-milestone",
    AchievementKind.RECORD: "celebrate-record",
}
DEFAULT_CELEBRATION_STYLE = "celebrate-default"

# (kind, modality) -> (title, description template)
TEMPLATES = {
    (AchievementKind.MILESTONE, Modality.FLEXIBILITY): (
        "Flexibility Milestone Achieved!",
        "You've reached {name}",
    ),
    (AchievementKind.MILESTONE, Modality.BALANCE): (
        "Balance Level Achieved!",
        "You've reached {name} level",
    ),
    (AchievementKind.MILESTONE, Modality.POWER): (
        "Power Milestone Achieved!",
        "You've reached {name}",
    ),
    (AchievementKind.MILESTONE, Modality.STABILITY): (
        "Stability Milestone Achieved!",
        "You've reached {name} level",
    ),
    (AchievementKind.RECORD, Modality.POWER): (
        "New Power Record!",
        "You've achieved a new power output record",
    ),
}

RECORD_ICON = "zap"
MILESTONE_ICON = "award"


def celebration_style(kind: AchievementKind) -> str:
    """Style identifier for an achievement kind."""
    return CELEBRATION_STYLES.get(kind, DEFAULT_CELEBRATION_STYLE)


def _achievement_text(achievement: Achievement) -> str:
    if achievement.kind == AchievementKind.RECORD:
        if achievement.modality == Modality.POWER:
            return f"{achievement.threshold_or_value:.1f} watts power generated"
        return f"{achievement.threshold_or_value:.1f} new best"

    if achievement.modality == Modality.FLEXIBILITY:
        return f"Achieved {achievement.threshold_or_value:g}% ROM"
    if achievement.description:
        return f"{achievement.name}: {achievement.description}"
    return f"{achievement.name}: score {achievement.threshold_or_value:g}"


def describe_achievement(achievement: Achievement) -> Celebration:
    """
    Build the celebration for an achievement.

    Args:
        achievement: Item from the new-achievements feed

    Returns:
        Celebration with title, description, achievement text, style and icon
    """
    modality_label = achievement.modality.value.capitalize()
    title, description = TEMPLATES.get(
        (achievement.kind, achievement.modality),
        (f"{modality_label} Achievement Unlocked!", "You've reached {name}"),
    )
    return Celebration(
        kind=achievement.kind,
        title=title,
        description=description.format(name=achievement.name),
        achievement_text=_achievement_text(achievement),
        style=celebration_style(achievement.kind),
        icon=RECORD_ICON if achievement.kind == AchievementKind.RECORD else MILESTONE_ICON,
    )


def should_celebrate(last_celebrated_at: Optional[datetime], now: datetime) -> bool:
    """True when never celebrated, or last celebrated more than an hour ago."""
    if last_celebrated_at is None:
        return True
    return now - last_celebrated_at > CELEBRATION_COOLDOWN
