from fastapi import APIRouter, Depends, Query
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import (
    get_current_user,
    get_db,
    get_grader_user,
    get_manager_user,
    get_redis,
    get_workshop_catalog,
)
from app.config import settings
from app.schemas.gamification import MedalStatusResponse
from app.schemas.progress import (
    AvatarUpdateRequest,
    GradedSubmissionRequest,
    ProgressResponse,
    RankingResponse,
    TestCompletionResult,
)
from app.schemas.user import AuthUser
from app.services import progress_service
from app.services.workshop_catalog import WorkshopCatalog

router = APIRouter(prefix="/progress", tags=["progress"])


@router.get("/me", response_model=ProgressResponse)
async def get_my_progress(
    db: AsyncSession = Depends(get_db),
    catalog: WorkshopCatalog = Depends(get_workshop_catalog),
    current_user: AuthUser = Depends(get_current_user),
) -> ProgressResponse:
    return await progress_service.get_my_progress(
        db, catalog, current_user.school_id, current_user.user_id, current_user.username,
    )


@router.get("/ranking", response_model=RankingResponse)
async def get_ranking(
    limit: int = Query(settings.RANKING_DEFAULT_LIMIT, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    redis: Redis = Depends(get_redis),
    current_user: AuthUser = Depends(get_current_user),
) -> RankingResponse:
    return await progress_service.get_ranking_for_user(
        db, redis, current_user.school_id, current_user.user_id, limit,
    )


@router.get("/medals", response_model=list[MedalStatusResponse])
async def get_my_medals(
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
):
    return await progress_service.get_my_medals(
        db, current_user.school_id, current_user.user_id, current_user.username,
    )


@router.put("/avatar", response_model=dict[str, str])
async def update_avatar(
    body: AvatarUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
):
    return await progress_service.update_avatar(
        db, current_user.school_id, current_user.user_id, current_user.username, body.avatar,
    )


@router.post("/test-completions", response_model=TestCompletionResult)
async def record_test_completion(
    body: GradedSubmissionRequest,
    db: AsyncSession = Depends(get_db),
    catalog: WorkshopCatalog = Depends(get_workshop_catalog),
    grader: AuthUser = Depends(get_grader_user),
) -> TestCompletionResult:
    return await progress_service.record_test_completion(
        db, catalog, grader.school_id, body.user_id, body.username, body,
    )


@router.post("/ranking/medals/refresh", response_model=dict[str, list[str]])
async def refresh_ranking_medals(
    db: AsyncSession = Depends(get_db),
    manager: AuthUser = Depends(get_manager_user),
):
    return await progress_service.update_ranking_medals(db, manager.school_id)
