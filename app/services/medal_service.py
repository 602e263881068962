from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

from app.models.gamification import ConditionOperator, ConditionType, MedalDefinition
from app.schemas.gamification import MedalResponse, MedalStatusResponse


@dataclass(frozen=True)
class MedalStats:
    """Snapshot of the derived stats medal conditions are evaluated against.

    ``ranking_position`` is 0 for an unranked student (no XP yet).
    """

    tests_completed: int = 0
    workshops_completed: int = 0
    perfect_scores: int = 0
    current_streak: int = 0
    ranking_position: int = 0
    total_xp: int = 0
    level: int = 1


CONDITION_STAT_FIELDS: dict[ConditionType, str] = {
    ConditionType.tests_completed: "tests_completed",
    ConditionType.workshops_completed: "workshops_completed",
    ConditionType.perfect_scores: "perfect_scores",
    ConditionType.streak_days: "current_streak",
    ConditionType.ranking_position: "ranking_position",
    ConditionType.total_xp: "total_xp",
    ConditionType.level_reached: "level",
}

if set(CONDITION_STAT_FIELDS) != set(ConditionType):
    raise RuntimeError("CONDITION_STAT_FIELDS must map every ConditionType")

# Shown as progress for a ranking medal when the student is unranked
UNRANKED_PROGRESS = 999


def stat_value(stats: MedalStats, condition_type: ConditionType) -> int:
    return getattr(stats, CONDITION_STAT_FIELDS[ConditionType(condition_type)])


def condition_met(value: int, operator: ConditionOperator, target: int) -> bool:
    if operator is ConditionOperator.gte:
        return value >= target
    if operator is ConditionOperator.lte:
        # Zero never satisfies "at most", otherwise inactive users qualify
        return 0 < value <= target
    if operator is ConditionOperator.eq:
        return value == target
    raise ValueError(f"Unsupported condition operator: {operator}")


def medals_to_award(
    catalog: Sequence[MedalDefinition],
    stats: MedalStats,
    already_earned_ids: Collection[str],
) -> list[MedalDefinition]:
    """Return active, not yet earned medals whose condition now holds.

    Medals are independent of one another and returned in catalog order.
    """
    to_award: list[MedalDefinition] = []
    for medal in sorted(catalog, key=lambda m: m.sort_order):
        if not medal.is_active or medal.medal_id in already_earned_ids:
            continue
        value = stat_value(stats, medal.condition_type)
        operator = ConditionOperator(medal.condition_operator or ConditionOperator.gte)
        if condition_met(value, operator, medal.condition_value):
            to_award.append(medal)
    return to_award


def get_medals_status(
    catalog: Sequence[MedalDefinition],
    stats: MedalStats,
    earned: Mapping[str, datetime],
) -> list[MedalStatusResponse]:
    """All active medals with earned flag and progress towards the target."""
    statuses = []
    for medal in sorted(catalog, key=lambda m: m.sort_order):
        if not medal.is_active:
            continue
        progress = stat_value(stats, medal.condition_type)
        if medal.condition_type == ConditionType.ranking_position and progress == 0:
            progress = UNRANKED_PROGRESS
        statuses.append(
            MedalStatusResponse(
                **MedalResponse.model_validate(medal).model_dump(),
                earned=medal.medal_id in earned,
                earned_at=earned.get(medal.medal_id),
                progress=progress,
                target=medal.condition_value,
            )
        )
    return statuses
