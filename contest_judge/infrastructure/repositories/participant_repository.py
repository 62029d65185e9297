"""
Participant Repository
Competition participants and their aggregate counters.

Aggregates (score, total_problems_solved, total_problems_attempted) are only
ever changed with SQL increments, never read-modify-write.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from contest_judge.infrastructure.persistence.models import (
    CompetitionParticipant,
    ParticipantStatusEnum,
)
from contest_judge.infrastructure.repositories.base import insert_ignore


class ParticipantRepository:
    """Participant data access"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, participant_id: int) -> Optional[CompetitionParticipant]:
        return await self.db.get(CompetitionParticipant, participant_id, populate_existing=True)

    async def get_by_user(self, competition_id: int, user_id: int) -> Optional[CompetitionParticipant]:
        result = await self.db.execute(
            select(CompetitionParticipant).where(
                CompetitionParticipant.competition_id == competition_id,
                CompetitionParticipant.user_id == user_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def insert_if_absent(
        self,
        competition_id: int,
        user_id: int,
        status: ParticipantStatusEnum,
        registration_time: datetime,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> bool:
        """
        Create the participant row unless (competition_id, user_id) exists

        Returns:
            True when this call inserted the row
        """
        stmt = insert_ignore(
            self.db,
            CompetitionParticipant.__table__,
            index_elements=["competition_id", "user_id"],
            competition_id=competition_id,
            user_id=user_id,
            status=status,
            registration_time=registration_time,
            start_time=start_time,
            end_time=end_time,
            score=0,
            total_problems_solved=0,
            total_problems_attempted=0,
            created_at=registration_time,
            updated_at=registration_time,
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def activate(
        self,
        participant: CompetitionParticipant,
        start_time: datetime,
        end_time: datetime,
    ) -> CompetitionParticipant:
        """Set status active with a fresh window"""
        participant.status = ParticipantStatusEnum.ACTIVE
        participant.start_time = start_time
        participant.end_time = end_time
        await self.db.flush()
        return participant

    async def extend_window(self, participant: CompetitionParticipant, end_time: datetime) -> CompetitionParticipant:
        participant.end_time = end_time
        await self.db.flush()
        return participant

    async def increment_attempted(self, participant_id: int) -> None:
        await self.db.execute(
            update(CompetitionParticipant)
            .where(CompetitionParticipant.id == participant_id)
            .values(
                total_problems_attempted=CompetitionParticipant.total_problems_attempted + 1
            )
            .execution_options(synchronize_session=False)
        )

    async def credit_solve(self, participant_id: int, score: int) -> None:
        """score += score, total_problems_solved += 1"""
        await self.db.execute(
            update(CompetitionParticipant)
            .where(CompetitionParticipant.id == participant_id)
            .values(
                score=CompetitionParticipant.score + score,
                total_problems_solved=CompetitionParticipant.total_problems_solved + 1,
            )
            .execution_options(synchronize_session=False)
        )

    async def list_ranked(self, competition_id: int) -> List[CompetitionParticipant]:
        """Participants by score desc, solved desc, earliest end_time first"""
        result = await self.db.execute(
            select(CompetitionParticipant)
            .where(CompetitionParticipant.competition_id == competition_id)
            .order_by(
                CompetitionParticipant.score.desc(),
                CompetitionParticipant.total_problems_solved.desc(),
                CompetitionParticipant.end_time.is_(None),
                CompetitionParticipant.end_time.asc(),
                CompetitionParticipant.id.asc(),
            )
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
