from datetime import datetime, timezone

import pytest

from app.models.gamification import (
    ConditionOperator,
    ConditionType,
    IconType,
    MedalDefinition,
)
from app.services.medal_service import (
    UNRANKED_PROGRESS,
    MedalStats,
    condition_met,
    get_medals_status,
    medals_to_award,
)


def make_medal(
    medal_id: str,
    condition_type: ConditionType,
    condition_value: int,
    operator: ConditionOperator = ConditionOperator.gte,
    is_active: bool = True,
    sort_order: int = 0,
) -> MedalDefinition:
    return MedalDefinition(
        medal_id=medal_id,
        name=medal_id,
        description="",
        icon="*",
        icon_type=IconType.emoji,
        xp_reward=10,
        condition_type=condition_type,
        condition_value=condition_value,
        condition_operator=operator,
        is_active=is_active,
        sort_order=sort_order,
    )


@pytest.mark.parametrize(("value", "expected"), [(3, True), (1, True), (0, False), (4, False)])
def test_lte_ignores_zero(value, expected):
    assert condition_met(value, ConditionOperator.lte, 3) is expected


def test_gte_and_eq():
    assert condition_met(5, ConditionOperator.gte, 5)
    assert not condition_met(4, ConditionOperator.gte, 5)
    assert condition_met(1, ConditionOperator.eq, 1)
    assert not condition_met(2, ConditionOperator.eq, 1)


def test_first_place_only_at_position_one():
    catalog = [make_medal("first_place", ConditionType.ranking_position, 1, ConditionOperator.eq)]

    assert medals_to_award(catalog, MedalStats(ranking_position=1), set()) == catalog
    assert medals_to_award(catalog, MedalStats(ranking_position=2), set()) == []
    assert medals_to_award(catalog, MedalStats(ranking_position=0), set()) == []


def test_skips_inactive_and_already_earned():
    catalog = [
        make_medal("first_test", ConditionType.tests_completed, 1, sort_order=0),
        make_medal("hidden", ConditionType.tests_completed, 1, is_active=False, sort_order=1),
        make_medal("tests_2", ConditionType.tests_completed, 2, sort_order=2),
    ]
    stats = MedalStats(tests_completed=2)

    awarded = medals_to_award(catalog, stats, {"first_test"})

    assert [m.medal_id for m in awarded] == ["tests_2"]


def test_returns_medals_in_catalog_order():
    catalog = [
        make_medal("xp", ConditionType.total_xp, 100, sort_order=2),
        make_medal("level", ConditionType.level_reached, 2, sort_order=1),
        make_medal("streak", ConditionType.streak_days, 3, sort_order=0),
    ]
    stats = MedalStats(total_xp=150, level=2, current_streak=3)

    awarded = medals_to_award(catalog, stats, set())

    assert [m.medal_id for m in awarded] == ["streak", "level", "xp"]


def test_status_reports_progress_and_earned():
    earned_at = datetime(2026, 1, 5, tzinfo=timezone.utc)
    catalog = [
        make_medal("perfect_1", ConditionType.perfect_scores, 1, sort_order=0),
        make_medal("top_3", ConditionType.ranking_position, 3, ConditionOperator.lte, sort_order=1),
        make_medal("gone", ConditionType.total_xp, 1, is_active=False, sort_order=2),
    ]
    stats = MedalStats(perfect_scores=2, ranking_position=0)

    statuses = get_medals_status(catalog, stats, {"perfect_1": earned_at})

    assert [s.medal_id for s in statuses] == ["perfect_1", "top_3"]
    assert statuses[0].earned and statuses[0].earned_at == earned_at
    assert statuses[0].progress == 2
    assert not statuses[1].earned
    assert statuses[1].progress == UNRANKED_PROGRESS
    assert statuses[1].target == 3
