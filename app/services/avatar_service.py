import logging
from collections.abc import Iterable
from dataclasses import dataclass

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.gamification import AvatarOption, AvatarStyle, StyleOptionConfig
from app.schemas.gamification import (
    AvatarOptionResponse,
    AvatarStyleResponse,
    StyleCategoryOptions,
    StyleOptionConfigUpsertRequest,
    StyleOptionsResponse,
    StyleOptionUnlock,
    StyleUnlockResponse,
    UnlockedAvatarOptionsResponse,
)
from app.services.gamification_service import get_config

logger = logging.getLogger(__name__)

# A style is modeled as a pseudo-option of this category whose value is the style id
STYLE_CATEGORY = "style"


@dataclass(frozen=True)
class EffectiveUnlock:
    required_xp: int
    required_level: int
    is_active: bool
    source: str

    def is_unlocked(self, total_xp: int, level: int) -> bool:
        return (
            self.is_active
            and total_xp >= self.required_xp
            and level >= self.required_level
        )


FREE_UNLOCK = EffectiveUnlock(required_xp=0, required_level=0, is_active=True, source="default")


def resolve_unlock(
    legacy: AvatarOption | None, normalized: StyleOptionConfig | None,
) -> EffectiveUnlock:
    """Unlock requirement for one option key.

    A normalized entry wins over the legacy catalog; with neither, the option
    is free for everyone. Fields are never merged across the two sources.
    """
    if normalized is not None:
        return EffectiveUnlock(
            required_xp=normalized.required_xp,
            required_level=normalized.required_level,
            is_active=normalized.is_active,
            source="normalized",
        )
    if legacy is not None:
        return EffectiveUnlock(
            required_xp=legacy.required_xp,
            required_level=legacy.required_level,
            is_active=legacy.is_active,
            source="legacy",
        )
    return FREE_UNLOCK


def get_unlocked_avatar_options(
    options: Iterable[AvatarOption], total_xp: int, level: int,
) -> UnlockedAvatarOptionsResponse:
    """Partition active legacy options into unlocked/locked, grouped by category."""
    unlocked: dict[str, list[AvatarOptionResponse]] = {}
    locked: dict[str, list[AvatarOptionResponse]] = {}

    for option in options:
        if not option.is_active:
            continue
        is_unlocked = total_xp >= option.required_xp and level >= option.required_level
        target = unlocked if is_unlocked else locked
        target.setdefault(option.category, []).append(
            AvatarOptionResponse.model_validate(option)
        )

    return UnlockedAvatarOptionsResponse(unlocked=unlocked, locked=locked)


# --- Styles ---

async def list_styles(db: AsyncSession) -> list[AvatarStyle]:
    result = await db.execute(
        select(AvatarStyle)
        .where(AvatarStyle.is_active.is_(True))
        .order_by(AvatarStyle.sort_order)
    )
    return list(result.scalars().all())


async def list_styles_for_user(
    db: AsyncSession, school_id: str, total_xp: int, level: int,
) -> list[StyleUnlockResponse]:
    """Active styles annotated with whether a student at ``total_xp``/``level`` may use them."""
    styles = await list_styles(db)
    config = await get_config(db, school_id)

    legacy = {o.value: o for o in config.avatar_options if o.category == STYLE_CATEGORY}
    result = await db.execute(
        select(StyleOptionConfig).where(
            StyleOptionConfig.school_id == school_id,
            StyleOptionConfig.category == STYLE_CATEGORY,
            StyleOptionConfig.option_value == StyleOptionConfig.style_id,
        )
    )
    normalized = {c.style_id: c for c in result.scalars().all()}

    response = []
    for style in styles:
        unlock = resolve_unlock(legacy.get(style.style_id), normalized.get(style.style_id))
        response.append(
            StyleUnlockResponse(
                **AvatarStyleResponse.model_validate(style).model_dump(),
                required_xp=unlock.required_xp,
                required_level=unlock.required_level,
                is_unlocked=unlock.is_unlocked(total_xp, level),
                source=unlock.source,
            )
        )
    return response


async def get_style(db: AsyncSession, style_id: str) -> AvatarStyle:
    result = await db.execute(
        select(AvatarStyle).where(
            AvatarStyle.style_id == style_id,
            AvatarStyle.is_active.is_(True),
        )
    )
    style = result.scalar_one_or_none()
    if style is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Avatar style not found",
        )
    return style


async def list_style_option_configs(
    db: AsyncSession, school_id: str, style_id: str,
) -> list[StyleOptionConfig]:
    result = await db.execute(
        select(StyleOptionConfig)
        .where(
            StyleOptionConfig.school_id == school_id,
            StyleOptionConfig.style_id == style_id,
        )
        .order_by(StyleOptionConfig.category, StyleOptionConfig.sort_order)
    )
    return list(result.scalars().all())


async def get_style_options_for_user(
    db: AsyncSession,
    school_id: str,
    style_id: str,
    total_xp: int,
    level: int,
) -> StyleOptionsResponse:
    """Resolve the style itself and each option of its catalog for one student.

    Every key is resolved independently: normalized config, then the
    school's legacy list, then free.
    """
    style = await get_style(db, style_id)
    config = await get_config(db, school_id)

    legacy = {(o.category, o.value): o for o in config.avatar_options}
    normalized = {
        (c.category, c.option_value): c
        for c in await list_style_option_configs(db, school_id, style_id)
    }

    style_unlock = resolve_unlock(
        legacy.get((STYLE_CATEGORY, style_id)),
        normalized.get((STYLE_CATEGORY, style_id)),
    )

    categories = []
    for category in style.categories:
        options = []
        for option in category.get("options", []):
            key = (category["name"], option["value"])
            unlock = resolve_unlock(legacy.get(key), normalized.get(key))
            entry = normalized.get(key)
            options.append(
                StyleOptionUnlock(
                    value=option["value"],
                    display_name=entry.display_name if entry else option.get("display_name", option["value"]),
                    required_xp=unlock.required_xp,
                    required_level=unlock.required_level,
                    is_unlocked=unlock.is_unlocked(total_xp, level),
                    source=unlock.source,
                )
            )
        categories.append(
            StyleCategoryOptions(
                name=category["name"],
                display_name=category.get("display_name", category["name"]),
                type=category.get("type", "array"),
                is_color=category.get("is_color", False),
                options=options,
            )
        )

    return StyleOptionsResponse(
        style_id=style.style_id,
        display_name=style.display_name,
        api_url=style.api_url,
        required_xp=style_unlock.required_xp,
        required_level=style_unlock.required_level,
        is_unlocked=style_unlock.is_unlocked(total_xp, level),
        source=style_unlock.source,
        categories=categories,
    )


async def _save_style_option_config(
    db: AsyncSession,
    school_id: str,
    style_id: str,
    data: StyleOptionConfigUpsertRequest,
    modified_by: str,
) -> StyleOptionConfig:
    result = await db.execute(
        select(StyleOptionConfig).where(
            StyleOptionConfig.school_id == school_id,
            StyleOptionConfig.style_id == style_id,
            StyleOptionConfig.category == data.category,
            StyleOptionConfig.option_value == data.option_value,
        )
    )
    entry = result.scalar_one_or_none()
    if entry is None:
        entry = StyleOptionConfig(
            school_id=school_id,
            style_id=style_id,
            **data.model_dump(),
        )
        db.add(entry)
    else:
        for key, value in data.model_dump().items():
            setattr(entry, key, value)

    entry.last_modified_by = modified_by
    return entry


async def upsert_style_option_config(
    db: AsyncSession,
    school_id: str,
    style_id: str,
    data: StyleOptionConfigUpsertRequest,
    modified_by: str,
) -> StyleOptionConfig:
    """Create or replace the normalized unlock entry for one option of a style."""
    await get_style(db, style_id)
    entry = await _save_style_option_config(db, school_id, style_id, data, modified_by)
    await db.flush()
    logger.info(
        "Style option config %s/%s/%s saved for school=%s",
        style_id, data.category, data.option_value, school_id,
    )
    return entry


async def bulk_upsert_style_option_configs(
    db: AsyncSession,
    school_id: str,
    style_id: str,
    entries: list[StyleOptionConfigUpsertRequest],
    modified_by: str,
) -> list[StyleOptionConfig]:
    await get_style(db, style_id)
    saved = [
        await _save_style_option_config(db, school_id, style_id, data, modified_by)
        for data in entries
    ]
    await db.flush()
    logger.info(
        "Saved %d style option configs for style=%s school=%s",
        len(saved), style_id, school_id,
    )
    return saved


async def delete_style_option_config(
    db: AsyncSession,
    school_id: str,
    style_id: str,
    category: str,
    option_value: str,
) -> None:
    result = await db.execute(
        select(StyleOptionConfig).where(
            StyleOptionConfig.school_id == school_id,
            StyleOptionConfig.style_id == style_id,
            StyleOptionConfig.category == category,
            StyleOptionConfig.option_value == option_value,
        )
    )
    entry = result.scalar_one_or_none()
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Style option config not found",
        )
    await db.delete(entry)
    await db.flush()
