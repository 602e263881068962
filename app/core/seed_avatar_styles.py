import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.gamification_config import DEFAULT_AVATAR_STYLES, DICEBEAR_API_URL
from app.models.gamification import AvatarStyle

logger = logging.getLogger(__name__)


async def seed_avatar_styles(db: AsyncSession) -> None:
    """Insert the built-in avatar styles if they don't exist (idempotent)."""
    result = await db.execute(select(AvatarStyle.style_id))
    existing_ids = set(result.scalars().all())

    added = 0
    for idx, data in enumerate(DEFAULT_AVATAR_STYLES):
        if data["style_id"] in existing_ids:
            continue
        db.add(
            AvatarStyle(
                **data,
                api_url=DICEBEAR_API_URL.format(style_id=data["style_id"]),
                is_active=True,
                sort_order=idx,
            )
        )
        added += 1

    if added > 0:
        await db.commit()
        logger.info("Seeded %d new avatar styles", added)
    else:
        logger.info("All avatar styles already seeded")
