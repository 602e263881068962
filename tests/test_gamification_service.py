import pytest
from fastapi import HTTPException

from app.core.gamification_config import DEFAULT_AVATAR_OPTIONS, DEFAULT_MEDALS
from app.models.gamification import ConditionOperator, ConditionType
from app.schemas.gamification import (
    AvatarOptionUpsertRequest,
    LevelConfigUpdate,
    MedalUpsertRequest,
    XpRulesUpdate,
)
from app.services import gamification_service
from tests.conftest import SCHOOL_ID


def medal_request(medal_id: str, **overrides) -> MedalUpsertRequest:
    data = {
        "medal_id": medal_id,
        "name": medal_id.title(),
        "icon": "🎖️",
        "xp_reward": 40,
        "condition_type": ConditionType.total_xp,
        "condition_value": 1000,
    }
    data.update(overrides)
    return MedalUpsertRequest(**data)


async def test_config_created_with_defaults(db):
    config = await gamification_service.get_config(db, SCHOOL_ID)

    assert config.school_id == SCHOOL_ID
    assert gamification_service.get_xp_rules(config).test_perfect_bonus == 20
    assert gamification_service.get_level_config(config).max_level == 50
    assert [m.medal_id for m in config.medals] == [m["medal_id"] for m in DEFAULT_MEDALS]
    assert len(config.avatar_options) == len(DEFAULT_AVATAR_OPTIONS)

    again = await gamification_service.get_config(db, SCHOOL_ID)
    assert again.id == config.id


async def test_schools_are_isolated(db):
    first = await gamification_service.get_config(db, "school-a")
    await gamification_service.update_xp_rules(db, "school-a", XpRulesUpdate(test_base_xp=7), "m")

    second = await gamification_service.get_config(db, "school-b")

    assert first.id != second.id
    assert gamification_service.get_xp_rules(second).test_base_xp == 0


async def test_update_xp_rules_merges_fields(db):
    rules = await gamification_service.update_xp_rules(
        db, SCHOOL_ID, XpRulesUpdate(test_base_xp=10, test_perfect_bonus=25), "manager-1",
    )

    assert rules.test_base_xp == 10
    assert rules.test_perfect_bonus == 25
    assert rules.workshop_completion_xp == 50

    config = await gamification_service.get_config(db, SCHOOL_ID)
    assert config.last_modified_by == "manager-1"
    assert gamification_service.get_xp_rules(config) == rules


async def test_update_level_config(db):
    levels = await gamification_service.update_level_config(
        db, SCHOOL_ID, LevelConfigUpdate(max_level=10), "manager-1",
    )

    assert levels.max_level == 10
    assert levels.base_xp_per_level == 100


async def test_upsert_medal_appends_then_replaces(db):
    created = await gamification_service.upsert_medal(db, SCHOOL_ID, medal_request("xp_1000"), "m")

    assert created.sort_order == len(DEFAULT_MEDALS)

    updated = await gamification_service.upsert_medal(
        db, SCHOOL_ID,
        medal_request("xp_1000", name="Thousand", condition_operator=ConditionOperator.gte),
        "m",
    )

    config = await gamification_service.get_config(db, SCHOOL_ID)
    assert updated.id == created.id
    assert updated.name == "Thousand"
    assert updated.sort_order == len(DEFAULT_MEDALS)
    assert sum(1 for m in config.medals if m.medal_id == "xp_1000") == 1


async def test_delete_medal(db):
    await gamification_service.delete_medal(db, SCHOOL_ID, "first_test", "m")

    config = await gamification_service.get_config(db, SCHOOL_ID)
    assert "first_test" not in {m.medal_id for m in config.medals}

    with pytest.raises(HTTPException) as exc_info:
        await gamification_service.delete_medal(db, SCHOOL_ID, "first_test", "m")
    assert exc_info.value.status_code == 404


async def test_reorder_medals_by_position(db):
    ordered = await gamification_service.reorder_medals(
        db, SCHOOL_ID, ["first_place", "first_test"], "m",
    )

    ids = [m.medal_id for m in ordered]
    assert ids[:3] == ["first_place", "first_test", "tests_10"]
    assert [m.sort_order for m in ordered] == list(range(len(DEFAULT_MEDALS)))

    config = await gamification_service.get_config(db, SCHOOL_ID)
    assert [m.medal_id for m in gamification_service.list_medals(config)] == ids


async def test_reorder_unknown_medal_is_not_found(db):
    with pytest.raises(HTTPException) as exc_info:
        await gamification_service.reorder_medals(db, SCHOOL_ID, ["nope"], "m")

    assert exc_info.value.status_code == 404


async def test_reset_to_defaults(db):
    await gamification_service.update_xp_rules(db, SCHOOL_ID, XpRulesUpdate(test_base_xp=99), "m")
    await gamification_service.delete_medal(db, SCHOOL_ID, "top_3", "m")
    await gamification_service.upsert_medal(db, SCHOOL_ID, medal_request("custom"), "m")

    config = await gamification_service.reset_to_defaults(db, SCHOOL_ID, "admin-1")

    assert gamification_service.get_xp_rules(config).test_base_xp == 0
    assert [m.medal_id for m in config.medals] == [m["medal_id"] for m in DEFAULT_MEDALS]
    assert config.last_modified_by == "admin-1"


async def test_avatar_option_admin(db):
    option = await gamification_service.upsert_avatar_option(
        db,
        SCHOOL_ID,
        AvatarOptionUpsertRequest(
            option_id="acc_eyepatch", category="accessories", value="eyepatch",
            display_name="Eyepatch", required_xp=750, required_level=6,
        ),
        "m",
    )
    assert option.sort_order == len(DEFAULT_AVATAR_OPTIONS)

    await gamification_service.delete_avatar_option(db, SCHOOL_ID, "acc_eyepatch", "m")
    with pytest.raises(HTTPException) as exc_info:
        await gamification_service.delete_avatar_option(db, SCHOOL_ID, "acc_eyepatch", "m")
    assert exc_info.value.status_code == 404
