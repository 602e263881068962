from typing import Protocol

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.workshop import ContentStatus, Workshop, WorkshopTest, WorkshopTestAttempt


class WorkshopCatalog(Protocol):
    """Queries the progression engine needs from the workshop/test lifecycle."""

    async def list_approved_test_ids(self, workshop_id: str, school_id: str) -> set[str]: ...

    async def max_possible_score(self, workshop_id: str, school_id: str) -> float: ...

    async def total_submitted_score(
        self, workshop_id: str, school_id: str, user_id: str,
    ) -> float: ...

    async def count_approved_workshops(self, school_id: str) -> int: ...


class SqlWorkshopCatalog:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_approved_test_ids(self, workshop_id: str, school_id: str) -> set[str]:
        result = await self.db.execute(
            select(WorkshopTest.id).where(
                WorkshopTest.workshop_id == workshop_id,
                WorkshopTest.school_id == school_id,
                WorkshopTest.status == ContentStatus.approved,
            )
        )
        return set(result.scalars().all())

    async def max_possible_score(self, workshop_id: str, school_id: str) -> float:
        result = await self.db.execute(
            select(func.coalesce(func.sum(WorkshopTest.max_score), 0)).where(
                WorkshopTest.workshop_id == workshop_id,
                WorkshopTest.school_id == school_id,
                WorkshopTest.status == ContentStatus.approved,
            )
        )
        return float(result.scalar_one())

    async def total_submitted_score(
        self, workshop_id: str, school_id: str, user_id: str,
    ) -> float:
        """Sum over tests of the student's best submitted attempt."""
        best_per_test = (
            select(func.max(WorkshopTestAttempt.total_score).label("best"))
            .where(
                WorkshopTestAttempt.workshop_id == workshop_id,
                WorkshopTestAttempt.school_id == school_id,
                WorkshopTestAttempt.student_user_id == user_id,
                WorkshopTestAttempt.is_submitted.is_(True),
            )
            .group_by(WorkshopTestAttempt.test_id)
            .subquery()
        )
        result = await self.db.execute(
            select(func.coalesce(func.sum(best_per_test.c.best), 0))
        )
        return float(result.scalar_one())

    async def count_approved_workshops(self, school_id: str) -> int:
        result = await self.db.execute(
            select(func.count(distinct(Workshop.id))).where(
                Workshop.school_id == school_id,
                Workshop.status == ContentStatus.approved,
            )
        )
        return result.scalar_one()
