"""
Competition Repository
Competitions and their problems.
"""
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from contest_judge.infrastructure.persistence.models import Competition, CompetitionProblem


class CompetitionRepository:
    """Read access to competitions and problems, plus the participant counter"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_competition(self, competition_id: int) -> Optional[Competition]:
        """Competition by id, soft-deleted ones excluded"""
        result = await self.db.execute(
            select(Competition).where(
                Competition.id == competition_id,
                Competition.deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def get_problem(self, competition_id: int, problem_id: int) -> Optional[CompetitionProblem]:
        """Problem by id, only when it belongs to the competition"""
        result = await self.db.execute(
            select(CompetitionProblem).where(
                CompetitionProblem.id == problem_id,
                CompetitionProblem.competition_id == competition_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_problem_by_id(self, problem_id: int) -> Optional[CompetitionProblem]:
        return await self.db.get(CompetitionProblem, problem_id)

    async def increment_participants(self, competition_id: int) -> None:
        """current_participants += 1, computed in SQL"""
        await self.db.execute(
            update(Competition)
            .where(Competition.id == competition_id)
            .values(current_participants=Competition.current_participants + 1)
            .execution_options(synchronize_session=False)
        )
