import json
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import TypeVar

from fastapi import HTTPException, status
from redis.asyncio import Redis
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from app.config import settings
from app.core.gamification_config import AVATAR_UNSET_VALUES, DEFAULT_AVATAR
from app.models.gamification import ConditionType
from app.models.progress import (
    EarnedMedal,
    StudentProgress,
    TestCompletion,
    WorkshopCompletion,
)
from app.schemas.gamification import (
    LevelConfig,
    LevelInfoResponse,
    MedalResponse,
    MedalStatusResponse,
    SchoolStatsResponse,
)
from app.schemas.progress import (
    EarnedMedalResponse,
    ProgressResponse,
    RankingEntry,
    RankingResponse,
    TestCompletionRequest,
    TestCompletionResponse,
    TestCompletionResult,
    WorkshopCompletionResponse,
)
from app.services.avatar_service import get_unlocked_avatar_options
from app.services.gamification_service import get_config, get_level_config, get_xp_rules
from app.services.leveling import calculate_level, calculate_test_xp
from app.services.medal_service import MedalStats, get_medals_status, medals_to_award
from app.services.workshop_catalog import WorkshopCatalog

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _progress_query(user_id: str):
    return (
        select(StudentProgress)
        .where(StudentProgress.user_id == user_id)
        .options(
            selectinload(StudentProgress.test_completions),
            selectinload(StudentProgress.workshop_completions),
            selectinload(StudentProgress.medals),
        )
        .execution_options(populate_existing=True)
    )


async def get_or_create_progress(
    db: AsyncSession, school_id: str, user_id: str, username: str,
) -> StudentProgress:
    """Load a student's progress with its collections, creating it on first access."""
    result = await db.execute(_progress_query(user_id))
    progress = result.scalar_one_or_none()
    if progress is not None:
        return progress

    progress = StudentProgress(
        user_id=user_id,
        school_id=school_id,
        username=username or user_id,
        total_xp=0,
        tests_completed_count=0,
        workshops_completed_count=0,
        perfect_scores_count=0,
        current_streak=0,
        longest_streak=0,
        avatar=dict(DEFAULT_AVATAR),
        test_completions={},
        workshop_completions={},
        medals={},
    )
    try:
        async with db.begin_nested():
            db.add(progress)
    except IntegrityError:
        # Created concurrently by another request
        result = await db.execute(_progress_query(user_id))
        return result.scalar_one()

    logger.info("Created progress for user=%s school=%s", user_id, school_id)
    return progress


async def _with_write_retry(
    db: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    user_id: str,
) -> T:
    """Run a read-modify-write of one student's progress under optimistic locking.

    Each attempt runs in its own SAVEPOINT and re-reads the row, so a retried
    attempt re-derives its deltas from the persisted state.
    """
    for attempt in range(1, settings.PROGRESS_WRITE_MAX_RETRIES + 1):
        try:
            async with db.begin_nested():
                return await operation()
        except (StaleDataError, IntegrityError) as exc:
            logger.warning(
                "Progress write conflict for user=%s (attempt %d/%d): %s",
                user_id, attempt, settings.PROGRESS_WRITE_MAX_RETRIES, exc.__class__.__name__,
            )

    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="Progress was modified concurrently. Please retry.",
    )


def update_streak(progress: StudentProgress, now: datetime) -> None:
    """Advance the daily streak; days are UTC calendar days."""
    today = _as_utc(now).date()

    if progress.last_activity_at is None:
        progress.current_streak = 1
    else:
        days = (today - _as_utc(progress.last_activity_at).date()).days
        if days == 1:
            progress.current_streak += 1
        elif days > 1:
            progress.current_streak = 1
        elif progress.current_streak == 0:
            progress.current_streak = 1

    if progress.current_streak > progress.longest_streak:
        progress.longest_streak = progress.current_streak
    progress.last_activity_at = now


async def count_students_ahead(db: AsyncSession, school_id: str, total_xp: int) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(StudentProgress)
        .where(
            StudentProgress.school_id == school_id,
            StudentProgress.total_xp > total_xp,
        )
    )
    return result.scalar_one()


async def get_ranking_position(db: AsyncSession, progress: StudentProgress) -> int:
    """1-based position by total XP, or 0 while the student has no XP."""
    if progress.total_xp <= 0:
        return 0
    return await count_students_ahead(db, progress.school_id, progress.total_xp) + 1


async def build_medal_stats(
    db: AsyncSession,
    progress: StudentProgress,
    level_config: LevelConfig,
    ranking_position: int | None = None,
) -> MedalStats:
    if ranking_position is None:
        ranking_position = await get_ranking_position(db, progress)
    return MedalStats(
        tests_completed=progress.tests_completed_count,
        workshops_completed=progress.workshops_completed_count,
        perfect_scores=progress.perfect_scores_count,
        current_streak=progress.current_streak,
        ranking_position=ranking_position,
        total_xp=progress.total_xp,
        level=calculate_level(progress.total_xp, level_config).level,
    )


def _award_medals(progress: StudentProgress, medals, now: datetime) -> int:
    xp = 0
    for medal in medals:
        progress.medals[medal.medal_id] = EarnedMedal(
            medal_id=medal.medal_id,
            earned_at=now,
            xp_awarded=medal.xp_reward,
        )
        progress.total_xp += medal.xp_reward
        xp += medal.xp_reward
        logger.info(
            "Medal %s awarded to user=%s (+%d XP)",
            medal.medal_id, progress.user_id, medal.xp_reward,
        )
    return xp


async def _apply_test_completion(
    db: AsyncSession,
    catalog: WorkshopCatalog,
    school_id: str,
    user_id: str,
    username: str,
    data: TestCompletionRequest,
) -> TestCompletionResult:
    config = await get_config(db, school_id)
    xp_rules = get_xp_rules(config)
    level_config = get_level_config(config)
    progress = await get_or_create_progress(db, school_id, user_id, username)
    now = _utcnow()

    award = calculate_test_xp(xp_rules, data.score, data.max_score)
    completion = progress.test_completions.get(data.test_id)
    test_xp = 0
    is_new_best = False

    if completion is None:
        completion = TestCompletion(
            test_id=data.test_id,
            workshop_id=data.workshop_id,
            best_score=data.score,
            max_score=data.max_score,
            xp_earned=award.xp,
            first_completed_at=now,
            last_attempt_at=now,
            attempt_count=1,
        )
        progress.test_completions[data.test_id] = completion
        progress.tests_completed_count += 1
        test_xp = award.xp
        is_new_best = True
        if award.is_perfect:
            progress.perfect_scores_count += 1
    else:
        completion.attempt_count += 1
        completion.last_attempt_at = now
        if data.score > completion.best_score:
            # Only the improvement over XP already granted for this test counts
            test_xp = max(award.xp - completion.xp_earned, 0)
            completion.best_score = data.score
            completion.max_score = data.max_score
            completion.xp_earned = max(award.xp, completion.xp_earned)
            is_new_best = True
            if award.is_perfect:
                progress.perfect_scores_count += 1
    progress.total_xp += test_xp
    xp_awarded = test_xp

    workshop_completed = False
    required = await catalog.list_approved_test_ids(data.workshop_id, school_id)
    if (
        required
        and required.issubset(progress.test_completions)
        and data.workshop_id not in progress.workshop_completions
    ):
        progress.workshop_completions[data.workshop_id] = WorkshopCompletion(
            workshop_id=data.workshop_id,
            completed_at=now,
            total_score=await catalog.total_submitted_score(data.workshop_id, school_id, user_id),
            max_possible_score=await catalog.max_possible_score(data.workshop_id, school_id),
        )
        progress.workshops_completed_count += 1
        progress.total_xp += xp_rules.workshop_completion_xp
        xp_awarded += xp_rules.workshop_completion_xp
        workshop_completed = True
        logger.info("Workshop %s completed by user=%s", data.workshop_id, user_id)

    # Ranking medals are only handed out by update_ranking_medals
    submission_medals = [
        m for m in config.medals if m.condition_type != ConditionType.ranking_position
    ]
    stats = await build_medal_stats(db, progress, level_config, ranking_position=0)
    new_medals = medals_to_award(submission_medals, stats, progress.medals.keys())
    xp_awarded += _award_medals(progress, new_medals, now)

    update_streak(progress, now)
    await db.flush()

    return TestCompletionResult(
        test_id=data.test_id,
        xp_awarded=xp_awarded,
        test_xp_awarded=test_xp,
        is_perfect=award.is_perfect,
        is_new_best=is_new_best,
        best_score=completion.best_score,
        attempt_count=completion.attempt_count,
        workshop_completed=workshop_completed,
        new_medals=[MedalResponse.model_validate(m) for m in new_medals],
        total_xp=progress.total_xp,
        level=LevelInfoResponse(**vars(calculate_level(progress.total_xp, level_config))),
        current_streak=progress.current_streak,
    )


async def record_test_completion(
    db: AsyncSession,
    catalog: WorkshopCatalog,
    school_id: str,
    user_id: str,
    username: str,
    data: TestCompletionRequest,
) -> TestCompletionResult:
    """Apply a graded test submission to the student's progress.

    Only the best score per test counts: a retake that improves the score
    grants the XP difference, anything else grants nothing. Safe to retry.
    """
    return await _with_write_retry(
        db,
        lambda: _apply_test_completion(db, catalog, school_id, user_id, username, data),
        user_id,
    )


async def get_my_progress(
    db: AsyncSession,
    catalog: WorkshopCatalog,
    school_id: str,
    user_id: str,
    username: str,
) -> ProgressResponse:
    config = await get_config(db, school_id)
    level_config = get_level_config(config)
    progress = await get_or_create_progress(db, school_id, user_id, username)
    level = calculate_level(progress.total_xp, level_config)

    ranking_position = await count_students_ahead(db, school_id, progress.total_xp) + 1
    total_students = (
        await db.execute(
            select(func.count())
            .select_from(StudentProgress)
            .where(StudentProgress.school_id == school_id)
        )
    ).scalar_one()
    available_workshops = await catalog.count_approved_workshops(school_id)
    completion_percentage = 0
    if available_workshops > 0:
        completion_percentage = min(
            round(100 * progress.workshops_completed_count / available_workshops), 100
        )

    return ProgressResponse(
        user_id=progress.user_id,
        school_id=progress.school_id,
        username=progress.username,
        total_xp=progress.total_xp,
        level=level.level,
        xp_progress=level.xp_progress,
        xp_needed=level.xp_needed,
        xp_percentage=level.xp_percentage,
        tests_completed_count=progress.tests_completed_count,
        workshops_completed_count=progress.workshops_completed_count,
        perfect_scores_count=progress.perfect_scores_count,
        current_streak=progress.current_streak,
        longest_streak=progress.longest_streak,
        last_activity_at=progress.last_activity_at,
        avatar=progress.avatar,
        tests_completed=[
            TestCompletionResponse.model_validate(tc)
            for tc in progress.test_completions.values()
        ],
        workshops_completed=[
            WorkshopCompletionResponse.model_validate(wc)
            for wc in progress.workshop_completions.values()
        ],
        medals=[EarnedMedalResponse.model_validate(m) for m in progress.medals.values()],
        ranking_position=ranking_position,
        total_students=total_students,
        available_workshops=available_workshops,
        completion_percentage=completion_percentage,
        avatar_options=get_unlocked_avatar_options(
            config.avatar_options, progress.total_xp, level.level,
        ),
    )


async def get_my_medals(
    db: AsyncSession, school_id: str, user_id: str, username: str,
) -> list[MedalStatusResponse]:
    """The school's active medals with the student's earned state and progress."""
    config = await get_config(db, school_id)
    progress = await get_or_create_progress(db, school_id, user_id, username)
    stats = await build_medal_stats(db, progress, get_level_config(config))
    earned = {m.medal_id: m.earned_at for m in progress.medals.values()}
    return get_medals_status(config.medals, stats, earned)


# --- Ranking ---

async def get_ranking(db: AsyncSession, school_id: str, limit: int) -> list[RankingEntry]:
    config = await get_config(db, school_id)
    level_config = get_level_config(config)

    medal_counts = (
        select(EarnedMedal.progress_id, func.count().label("medal_count"))
        .group_by(EarnedMedal.progress_id)
        .subquery()
    )
    result = await db.execute(
        select(StudentProgress, func.coalesce(medal_counts.c.medal_count, 0))
        .outerjoin(medal_counts, medal_counts.c.progress_id == StudentProgress.id)
        .where(StudentProgress.school_id == school_id)
        .order_by(StudentProgress.total_xp.desc(), StudentProgress.user_id)
        .limit(limit)
    )

    return [
        RankingEntry(
            position=idx,
            user_id=progress.user_id,
            username=progress.username,
            total_xp=progress.total_xp,
            level=calculate_level(progress.total_xp, level_config).level,
            workshops_completed=progress.workshops_completed_count,
            tests_completed=progress.tests_completed_count,
            medal_count=medal_count,
            avatar=progress.avatar,
        )
        for idx, (progress, medal_count) in enumerate(result.all(), start=1)
    ]


def _ranking_cache_key(school_id: str, limit: int) -> str:
    return f"ranking:{school_id}:{limit}"


async def get_cached_ranking(
    db: AsyncSession, redis: Redis, school_id: str, limit: int,
) -> list[RankingEntry]:
    """School ranking, served from redis for a short TTL."""
    cache_key = _ranking_cache_key(school_id, limit)
    cached = await redis.get(cache_key)
    if cached is not None:
        logger.info("Cache hit for key=%s", cache_key)
        return [RankingEntry(**e) for e in json.loads(cached)]

    entries = await get_ranking(db, school_id, limit)
    await redis.set(
        cache_key,
        json.dumps([e.model_dump() for e in entries]),
        ex=settings.RANKING_CACHE_TTL_SECONDS,
    )
    return entries


async def get_ranking_for_user(
    db: AsyncSession, redis: Redis, school_id: str, user_id: str, limit: int,
) -> RankingResponse:
    entries = await get_cached_ranking(db, redis, school_id, limit)

    my_position = None
    for entry in entries:
        if entry.user_id == user_id:
            entry.is_me = True
            my_position = entry.position

    if my_position is None:
        result = await db.execute(
            select(StudentProgress.total_xp).where(StudentProgress.user_id == user_id)
        )
        my_xp = result.scalar_one_or_none()
        if my_xp is not None:
            my_position = await count_students_ahead(db, school_id, my_xp) + 1

    return RankingResponse(entries=entries, my_position=my_position)


async def update_ranking_medals(db: AsyncSession, school_id: str) -> dict[str, list[str]]:
    """Award ranking medals to the current top students of a school.

    Only students with XP are ranked. Returns the medal ids awarded per user.
    """
    config = await get_config(db, school_id)
    level_config = get_level_config(config)
    ranking_medals = [
        m for m in config.medals
        if m.is_active and m.condition_type == ConditionType.ranking_position
    ]
    if not ranking_medals:
        return {}
    top_k = max(m.condition_value for m in ranking_medals)

    result = await db.execute(
        select(StudentProgress.user_id)
        .where(StudentProgress.school_id == school_id, StudentProgress.total_xp > 0)
        .order_by(StudentProgress.total_xp.desc(), StudentProgress.user_id)
        .limit(top_k)
    )
    top_user_ids = list(result.scalars().all())

    awarded: dict[str, list[str]] = {}
    for position, top_user_id in enumerate(top_user_ids, start=1):

        async def _apply(top_user_id: str = top_user_id, position: int = position) -> list[str]:
            progress = (await db.execute(_progress_query(top_user_id))).scalar_one()
            stats = await build_medal_stats(db, progress, level_config, ranking_position=position)
            new_medals = medals_to_award(ranking_medals, stats, progress.medals.keys())
            _award_medals(progress, new_medals, _utcnow())
            await db.flush()
            return [m.medal_id for m in new_medals]

        medal_ids = await _with_write_retry(db, _apply, top_user_id)
        if medal_ids:
            awarded[top_user_id] = medal_ids

    logger.info("Ranking medals refreshed for school=%s: %d students awarded", school_id, len(awarded))
    return awarded


async def update_avatar(
    db: AsyncSession,
    school_id: str,
    user_id: str,
    username: str,
    avatar: dict[str, str | None],
) -> dict[str, str]:
    """Replace the student's avatar.

    Keys with an empty, null or ``"none"`` value are dropped so fields of a
    previous style do not linger. ``style`` is always present.
    """

    async def _apply() -> dict[str, str]:
        progress = await get_or_create_progress(db, school_id, user_id, username)
        new_avatar = {
            key: value
            for key, value in avatar.items()
            if value is not None and value not in AVATAR_UNSET_VALUES
        }
        if "style" not in new_avatar:
            new_avatar["style"] = progress.avatar.get("style") or settings.DEFAULT_AVATAR_STYLE
        progress.avatar = new_avatar
        await db.flush()
        return new_avatar

    return await _with_write_retry(db, _apply, user_id)


async def get_school_stats(db: AsyncSession, school_id: str) -> SchoolStatsResponse:
    result = await db.execute(
        select(
            func.count(StudentProgress.id),
            func.count(StudentProgress.last_activity_at),
            func.coalesce(func.sum(StudentProgress.total_xp), 0),
            func.coalesce(func.sum(StudentProgress.tests_completed_count), 0),
            func.coalesce(func.sum(StudentProgress.workshops_completed_count), 0),
        ).where(StudentProgress.school_id == school_id)
    )
    total_students, active_students, total_xp, tests, workshops = result.one()

    medal_result = await db.execute(
        select(EarnedMedal.medal_id, func.count())
        .join(StudentProgress, StudentProgress.id == EarnedMedal.progress_id)
        .where(StudentProgress.school_id == school_id)
        .group_by(EarnedMedal.medal_id)
    )

    return SchoolStatsResponse(
        total_students=total_students,
        active_students=active_students,
        total_xp=total_xp,
        average_xp=round(total_xp / total_students, 2) if total_students else 0.0,
        tests_completed=tests,
        workshops_completed=workshops,
        medals_awarded={medal_id: count for medal_id, count in medal_result.all()},
    )
