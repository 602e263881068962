from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_admin_user, get_current_user, get_db, get_manager_user
from app.schemas.gamification import (
    AvatarOptionResponse,
    AvatarOptionUpsertRequest,
    AvatarStyleResponse,
    GamificationConfigResponse,
    LevelConfig,
    LevelConfigUpdate,
    LevelInfoResponse,
    MedalResponse,
    MedalUpsertRequest,
    ReorderMedalsRequest,
    SchoolStatsResponse,
    StyleOptionConfigBulkRequest,
    StyleOptionConfigResponse,
    StyleOptionConfigUpsertRequest,
    StyleOptionsResponse,
    StyleUnlockResponse,
    UnlockedAvatarOptionsResponse,
    XpRules,
    XpRulesUpdate,
)
from app.schemas.user import AuthUser
from app.services import avatar_service, gamification_service, progress_service
from app.services.leveling import calculate_level

router = APIRouter(prefix="/gamification", tags=["gamification"])


async def _resolve_standing(
    db: AsyncSession,
    user: AuthUser,
    total_xp: int | None,
    level: int | None,
) -> tuple[int, int]:
    """XP and level to evaluate unlocks against: explicit values or the caller's progress."""
    config = await gamification_service.get_config(db, user.school_id)
    if total_xp is None:
        progress = await progress_service.get_or_create_progress(
            db, user.school_id, user.user_id, user.username,
        )
        total_xp = progress.total_xp
    if level is None:
        level = calculate_level(total_xp, gamification_service.get_level_config(config)).level
    return total_xp, level


# --- Config ---

@router.get("/config", response_model=GamificationConfigResponse)
async def get_config(
    db: AsyncSession = Depends(get_db),
    manager: AuthUser = Depends(get_manager_user),
) -> GamificationConfigResponse:
    config = await gamification_service.get_config(db, manager.school_id)
    return gamification_service.build_config_response(config)


@router.put("/config/xp-rules", response_model=XpRules)
async def update_xp_rules(
    body: XpRulesUpdate,
    db: AsyncSession = Depends(get_db),
    manager: AuthUser = Depends(get_manager_user),
) -> XpRules:
    return await gamification_service.update_xp_rules(
        db, manager.school_id, body, manager.user_id,
    )


@router.put("/config/level", response_model=LevelConfig)
async def update_level_config(
    body: LevelConfigUpdate,
    db: AsyncSession = Depends(get_db),
    manager: AuthUser = Depends(get_manager_user),
) -> LevelConfig:
    return await gamification_service.update_level_config(
        db, manager.school_id, body, manager.user_id,
    )


@router.post("/config/reset", response_model=GamificationConfigResponse)
async def reset_config(
    db: AsyncSession = Depends(get_db),
    admin: AuthUser = Depends(get_admin_user),
) -> GamificationConfigResponse:
    config = await gamification_service.reset_to_defaults(db, admin.school_id, admin.user_id)
    return gamification_service.build_config_response(config)


@router.get("/level", response_model=LevelInfoResponse)
async def get_level(
    total_xp: int = Query(..., ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> LevelInfoResponse:
    config = await gamification_service.get_config(db, current_user.school_id)
    info = calculate_level(total_xp, gamification_service.get_level_config(config))
    return LevelInfoResponse(**vars(info))


@router.get("/stats", response_model=SchoolStatsResponse)
async def get_school_stats(
    db: AsyncSession = Depends(get_db),
    manager: AuthUser = Depends(get_manager_user),
) -> SchoolStatsResponse:
    return await progress_service.get_school_stats(db, manager.school_id)


# --- Medals ---

@router.get("/medals", response_model=list[MedalResponse])
async def list_medals(
    db: AsyncSession = Depends(get_db),
    manager: AuthUser = Depends(get_manager_user),
):
    config = await gamification_service.get_config(db, manager.school_id)
    return gamification_service.list_medals(config)


@router.post("/medals", response_model=MedalResponse)
async def upsert_medal(
    body: MedalUpsertRequest,
    db: AsyncSession = Depends(get_db),
    manager: AuthUser = Depends(get_manager_user),
):
    return await gamification_service.upsert_medal(
        db, manager.school_id, body, manager.user_id,
    )


@router.put("/medals/order", response_model=list[MedalResponse])
async def reorder_medals(
    body: ReorderMedalsRequest,
    db: AsyncSession = Depends(get_db),
    manager: AuthUser = Depends(get_manager_user),
):
    return await gamification_service.reorder_medals(
        db, manager.school_id, body.medal_ids, manager.user_id,
    )


@router.delete("/medals/{medal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_medal(
    medal_id: str,
    db: AsyncSession = Depends(get_db),
    manager: AuthUser = Depends(get_manager_user),
) -> None:
    await gamification_service.delete_medal(db, manager.school_id, medal_id, manager.user_id)


# --- Legacy avatar catalog ---

@router.get("/avatar-options", response_model=UnlockedAvatarOptionsResponse)
async def get_avatar_options(
    total_xp: int | None = Query(None, ge=0),
    level: int | None = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> UnlockedAvatarOptionsResponse:
    total_xp, level = await _resolve_standing(db, current_user, total_xp, level)
    config = await gamification_service.get_config(db, current_user.school_id)
    return avatar_service.get_unlocked_avatar_options(config.avatar_options, total_xp, level)


@router.get("/avatar-options/all", response_model=list[AvatarOptionResponse])
async def list_avatar_options(
    db: AsyncSession = Depends(get_db),
    manager: AuthUser = Depends(get_manager_user),
):
    config = await gamification_service.get_config(db, manager.school_id)
    return config.avatar_options


@router.post("/avatar-options", response_model=AvatarOptionResponse)
async def upsert_avatar_option(
    body: AvatarOptionUpsertRequest,
    db: AsyncSession = Depends(get_db),
    manager: AuthUser = Depends(get_manager_user),
):
    return await gamification_service.upsert_avatar_option(
        db, manager.school_id, body, manager.user_id,
    )


@router.delete("/avatar-options/{option_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_avatar_option(
    option_id: str,
    db: AsyncSession = Depends(get_db),
    manager: AuthUser = Depends(get_manager_user),
) -> None:
    await gamification_service.delete_avatar_option(
        db, manager.school_id, option_id, manager.user_id,
    )


# --- Avatar styles ---

@router.get("/styles", response_model=list[AvatarStyleResponse])
async def list_styles(
    db: AsyncSession = Depends(get_db),
    _user: AuthUser = Depends(get_current_user),
):
    return await avatar_service.list_styles(db)


@router.get("/styles/unlocks", response_model=list[StyleUnlockResponse])
async def list_style_unlocks(
    total_xp: int | None = Query(None, ge=0),
    level: int | None = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> list[StyleUnlockResponse]:
    total_xp, level = await _resolve_standing(db, current_user, total_xp, level)
    return await avatar_service.list_styles_for_user(
        db, current_user.school_id, total_xp, level,
    )


@router.get("/styles/{style_id}/options", response_model=StyleOptionsResponse)
async def get_style_options(
    style_id: str,
    total_xp: int | None = Query(None, ge=0),
    level: int | None = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> StyleOptionsResponse:
    total_xp, level = await _resolve_standing(db, current_user, total_xp, level)
    return await avatar_service.get_style_options_for_user(
        db, current_user.school_id, style_id, total_xp, level,
    )


@router.get("/styles/{style_id}/config", response_model=list[StyleOptionConfigResponse])
async def list_style_config(
    style_id: str,
    db: AsyncSession = Depends(get_db),
    manager: AuthUser = Depends(get_manager_user),
):
    await avatar_service.get_style(db, style_id)
    return await avatar_service.list_style_option_configs(db, manager.school_id, style_id)


@router.put("/styles/{style_id}/config", response_model=StyleOptionConfigResponse)
async def upsert_style_config(
    style_id: str,
    body: StyleOptionConfigUpsertRequest,
    db: AsyncSession = Depends(get_db),
    manager: AuthUser = Depends(get_manager_user),
):
    return await avatar_service.upsert_style_option_config(
        db, manager.school_id, style_id, body, manager.user_id,
    )


@router.post("/styles/{style_id}/config/bulk", response_model=list[StyleOptionConfigResponse])
async def bulk_upsert_style_config(
    style_id: str,
    body: StyleOptionConfigBulkRequest,
    db: AsyncSession = Depends(get_db),
    manager: AuthUser = Depends(get_manager_user),
):
    return await avatar_service.bulk_upsert_style_option_configs(
        db, manager.school_id, style_id, body.entries, manager.user_id,
    )


@router.delete(
    "/styles/{style_id}/config/{category}/{option_value}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_style_config(
    style_id: str,
    category: str,
    option_value: str,
    db: AsyncSession = Depends(get_db),
    manager: AuthUser = Depends(get_manager_user),
) -> None:
    await avatar_service.delete_style_option_config(
        db, manager.school_id, style_id, category, option_value,
    )
