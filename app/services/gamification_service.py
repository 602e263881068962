import logging

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.gamification_config import (
    DEFAULT_AVATAR_OPTIONS,
    DEFAULT_LEVEL_CONFIG,
    DEFAULT_MEDALS,
    DEFAULT_XP_RULES,
)
from app.models.gamification import (
    AvatarOption,
    ConditionOperator,
    GamificationConfig,
    IconType,
    MedalDefinition,
)
from app.schemas.gamification import (
    AvatarOptionResponse,
    AvatarOptionUpsertRequest,
    GamificationConfigResponse,
    LevelConfig,
    LevelConfigUpdate,
    MedalResponse,
    MedalUpsertRequest,
    XpRules,
    XpRulesUpdate,
)

logger = logging.getLogger(__name__)


def _default_medals() -> list[MedalDefinition]:
    medals = []
    for idx, data in enumerate(DEFAULT_MEDALS):
        medals.append(
            MedalDefinition(
                **{
                    "icon_type": IconType.emoji,
                    "condition_operator": ConditionOperator.gte,
                    **data,
                },
                is_active=True,
                sort_order=idx,
            )
        )
    return medals


def _default_avatar_options() -> list[AvatarOption]:
    return [
        AvatarOption(**data, is_active=True, sort_order=idx)
        for idx, data in enumerate(DEFAULT_AVATAR_OPTIONS)
    ]


def get_xp_rules(config: GamificationConfig) -> XpRules:
    return XpRules.model_validate(config.xp_rules)


def get_level_config(config: GamificationConfig) -> LevelConfig:
    return LevelConfig.model_validate(config.level_config)


async def get_config(db: AsyncSession, school_id: str) -> GamificationConfig:
    """Get the school's gamification config, creating the defaults if absent."""
    result = await db.execute(
        select(GamificationConfig).where(GamificationConfig.school_id == school_id)
    )
    config = result.scalar_one_or_none()
    if config is not None:
        return config

    config = GamificationConfig(
        school_id=school_id,
        xp_rules=DEFAULT_XP_RULES.model_dump(),
        level_config=DEFAULT_LEVEL_CONFIG.model_dump(),
        medals=_default_medals(),
        avatar_options=_default_avatar_options(),
        is_active=True,
    )
    try:
        async with db.begin_nested():
            db.add(config)
    except IntegrityError:
        # Created concurrently by another request
        result = await db.execute(
            select(GamificationConfig).where(GamificationConfig.school_id == school_id)
        )
        return result.scalar_one()

    logger.info("Created default gamification config for school=%s", school_id)
    return config


def build_config_response(config: GamificationConfig) -> GamificationConfigResponse:
    return GamificationConfigResponse(
        school_id=config.school_id,
        xp_rules=get_xp_rules(config),
        level_config=get_level_config(config),
        medals=[MedalResponse.model_validate(m) for m in config.medals],
        avatar_options=[AvatarOptionResponse.model_validate(a) for a in config.avatar_options],
        is_active=config.is_active,
        last_modified_by=config.last_modified_by,
    )


async def update_xp_rules(
    db: AsyncSession, school_id: str, update: XpRulesUpdate, modified_by: str,
) -> XpRules:
    """Field-merge the provided XP rules into the school's current rules."""
    config = await get_config(db, school_id)
    merged = XpRules.model_validate(
        {**config.xp_rules, **update.model_dump(exclude_unset=True, exclude_none=True)}
    )
    config.xp_rules = merged.model_dump()
    config.last_modified_by = modified_by
    await db.flush()
    logger.info("XP rules updated for school=%s by user=%s", school_id, modified_by)
    return merged


async def update_level_config(
    db: AsyncSession, school_id: str, update: LevelConfigUpdate, modified_by: str,
) -> LevelConfig:
    config = await get_config(db, school_id)
    merged = LevelConfig.model_validate(
        {**config.level_config, **update.model_dump(exclude_unset=True, exclude_none=True)}
    )
    config.level_config = merged.model_dump()
    config.last_modified_by = modified_by
    await db.flush()
    logger.info("Level config updated for school=%s by user=%s", school_id, modified_by)
    return merged


async def reset_to_defaults(
    db: AsyncSession, school_id: str, modified_by: str,
) -> GamificationConfig:
    config = await get_config(db, school_id)
    config.xp_rules = DEFAULT_XP_RULES.model_dump()
    config.level_config = DEFAULT_LEVEL_CONFIG.model_dump()

    # Old rows must be deleted before re-inserting the same unique keys
    config.medals.clear()
    config.avatar_options.clear()
    await db.flush()

    config.medals.extend(_default_medals())
    config.avatar_options.extend(_default_avatar_options())
    config.last_modified_by = modified_by
    await db.flush()
    logger.info("Gamification config reset to defaults for school=%s", school_id)
    return config


# --- Medal catalog ---

def _find_medal(config: GamificationConfig, medal_id: str) -> MedalDefinition | None:
    for medal in config.medals:
        if medal.medal_id == medal_id:
            return medal
    return None


def list_medals(config: GamificationConfig) -> list[MedalDefinition]:
    return sorted(config.medals, key=lambda m: m.sort_order)


async def upsert_medal(
    db: AsyncSession, school_id: str, data: MedalUpsertRequest, modified_by: str,
) -> MedalDefinition:
    """Create a medal, or replace the definition with the same ``medal_id``.

    New medals go to the end of the catalog unless ``sort_order`` is given.
    """
    config = await get_config(db, school_id)
    fields = data.model_dump(exclude={"sort_order"})
    medal = _find_medal(config, data.medal_id)

    if medal is None:
        sort_order = data.sort_order
        if sort_order is None:
            sort_order = max((m.sort_order for m in config.medals), default=-1) + 1
        medal = MedalDefinition(**fields, sort_order=sort_order)
        config.medals.append(medal)
        logger.info("Medal %s created for school=%s", data.medal_id, school_id)
    else:
        for key, value in fields.items():
            setattr(medal, key, value)
        if data.sort_order is not None:
            medal.sort_order = data.sort_order

    config.last_modified_by = modified_by
    await db.flush()
    return medal


async def delete_medal(
    db: AsyncSession, school_id: str, medal_id: str, modified_by: str,
) -> None:
    config = await get_config(db, school_id)
    medal = _find_medal(config, medal_id)
    if medal is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Medal not found",
        )
    config.medals.remove(medal)
    config.last_modified_by = modified_by
    await db.flush()
    logger.info("Medal %s deleted for school=%s", medal_id, school_id)


async def reorder_medals(
    db: AsyncSession, school_id: str, medal_ids: list[str], modified_by: str,
) -> list[MedalDefinition]:
    """Assign ``sort_order`` by position in ``medal_ids``.

    Medals not listed keep their relative order after the listed ones.
    """
    config = await get_config(db, school_id)
    by_id = {m.medal_id: m for m in config.medals}

    missing = [medal_id for medal_id in medal_ids if medal_id not in by_id]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Medal not found: {', '.join(missing)}",
        )

    listed = set(medal_ids)
    rest = [m for m in list_medals(config) if m.medal_id not in listed]
    ordered = [by_id[medal_id] for medal_id in medal_ids] + rest
    for idx, medal in enumerate(ordered):
        medal.sort_order = idx

    config.last_modified_by = modified_by
    await db.flush()
    return ordered


# --- Legacy avatar catalog ---

async def upsert_avatar_option(
    db: AsyncSession, school_id: str, data: AvatarOptionUpsertRequest, modified_by: str,
) -> AvatarOption:
    config = await get_config(db, school_id)
    fields = data.model_dump(exclude={"sort_order"})
    option = next((a for a in config.avatar_options if a.option_id == data.option_id), None)

    if option is None:
        sort_order = data.sort_order
        if sort_order is None:
            sort_order = max((a.sort_order for a in config.avatar_options), default=-1) + 1
        option = AvatarOption(**fields, sort_order=sort_order)
        config.avatar_options.append(option)
    else:
        for key, value in fields.items():
            setattr(option, key, value)
        if data.sort_order is not None:
            option.sort_order = data.sort_order

    config.last_modified_by = modified_by
    await db.flush()
    return option


async def delete_avatar_option(
    db: AsyncSession, school_id: str, option_id: str, modified_by: str,
) -> None:
    config = await get_config(db, school_id)
    option = next((a for a in config.avatar_options if a.option_id == option_id), None)
    if option is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Avatar option not found",
        )
    config.avatar_options.remove(option)
    config.last_modified_by = modified_by
    await db.flush()
