"""
Submission Repository
Submissions and per (participant, problem) progress rows.

[State changes]
- pending -> running: mark_running(), only from pending
- running -> pending: reset_stale_running(), startup recovery only
- pending/running -> terminal: finalize(), only from an in-flight status,
  so the terminal state is written exactly once
- progress row: created by the first judged submission of the pair,
  solved_submission_id claimed once by claim_first_solve()
"""
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from contest_judge.infrastructure.persistence.models import (
    IN_FLIGHT_STATUSES,
    CompetitionParticipant,
    CompetitionSubmission,
    ParticipantProblemProgress,
    SubmissionStatusEnum,
)
from contest_judge.infrastructure.repositories.base import insert_ignore


class SubmissionRepository:
    """Submission data access"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        problem_id: int,
        participant_id: int,
        source_code: str,
        language: str,
        submitted_at: datetime,
    ) -> CompetitionSubmission:
        """Insert a pending submission"""
        submission = CompetitionSubmission(
            problem_id=problem_id,
            participant_id=participant_id,
            source_code=source_code,
            language=language,
            status=SubmissionStatusEnum.PENDING,
            score=0,
            execution_time_ms=0,
            memory_used_kb=0,
            submitted_at=submitted_at,
        )
        self.db.add(submission)
        await self.db.flush()
        return submission

    async def get(self, submission_id: int) -> Optional[CompetitionSubmission]:
        return await self.db.get(CompetitionSubmission, submission_id, populate_existing=True)

    async def get_with_participant(
        self, submission_id: int
    ) -> Optional[Tuple[CompetitionSubmission, CompetitionParticipant]]:
        result = await self.db.execute(
            select(CompetitionSubmission, CompetitionParticipant)
            .join(
                CompetitionParticipant,
                CompetitionParticipant.id == CompetitionSubmission.participant_id,
            )
            .where(CompetitionSubmission.id == submission_id)
            .execution_options(populate_existing=True)
        )
        row = result.first()
        return (row[0], row[1]) if row else None

    async def mark_running(self, submission_id: int, started_at: datetime) -> bool:
        """pending -> running. Returns False when it was not pending."""
        result = await self.db.execute(
            update(CompetitionSubmission)
            .where(
                CompetitionSubmission.id == submission_id,
                CompetitionSubmission.status == SubmissionStatusEnum.PENDING,
            )
            .values(status=SubmissionStatusEnum.RUNNING, started_at=started_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def list_pending_ids(self) -> List[int]:
        """Pending submissions, oldest first"""
        result = await self.db.execute(
            select(CompetitionSubmission.id)
            .where(CompetitionSubmission.status == SubmissionStatusEnum.PENDING)
            .order_by(CompetitionSubmission.submitted_at, CompetitionSubmission.id)
        )
        return list(result.scalars().all())

    async def reset_stale_running(self, started_before: datetime) -> List[int]:
        """
        running -> pending for submissions whose judging started before the cutoff

        Returns:
            ids of the submissions that were reset
        """
        result = await self.db.execute(
            select(CompetitionSubmission.id).where(
                CompetitionSubmission.status == SubmissionStatusEnum.RUNNING,
                or_(
                    CompetitionSubmission.started_at.is_(None),
                    CompetitionSubmission.started_at < started_before,
                ),
            )
        )
        reset = []
        for submission_id in result.scalars().all():
            changed = await self.db.execute(
                update(CompetitionSubmission)
                .where(
                    CompetitionSubmission.id == submission_id,
                    CompetitionSubmission.status == SubmissionStatusEnum.RUNNING,
                )
                .values(status=SubmissionStatusEnum.PENDING, started_at=None)
                .execution_options(synchronize_session=False)
            )
            if changed.rowcount == 1:
                reset.append(submission_id)
        return reset

    async def finalize(
        self,
        submission_id: int,
        status: SubmissionStatusEnum,
        score: int,
        execution_time_ms: int,
        memory_used_kb: int,
        error_message: Optional[str],
        judge_backend: Optional[str],
        judged_at: datetime,
    ) -> bool:
        """
        Write the terminal state

        Returns:
            True when the submission was still in flight and is now terminal
        """
        result = await self.db.execute(
            update(CompetitionSubmission)
            .where(
                CompetitionSubmission.id == submission_id,
                CompetitionSubmission.status.in_(IN_FLIGHT_STATUSES),
            )
            .values(
                status=status,
                score=score,
                execution_time_ms=execution_time_ms,
                memory_used_kb=memory_used_kb,
                error_message=error_message,
                judge_backend=judge_backend,
                judged_at=judged_at,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def list_for_participant(self, participant_id: int) -> List[CompetitionSubmission]:
        result = await self.db.execute(
            select(CompetitionSubmission)
            .where(CompetitionSubmission.participant_id == participant_id)
            .order_by(CompetitionSubmission.submitted_at.desc(), CompetitionSubmission.id.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def problem_stats(self, competition_id: int):
        """
        Judged submission stats per (participant, problem)

        Returns:
            rows of (participant_id, problem_id, attempts, best_score)
        """
        result = await self.db.execute(
            select(
                CompetitionSubmission.participant_id,
                CompetitionSubmission.problem_id,
                func.count(CompetitionSubmission.id),
                func.max(CompetitionSubmission.score),
            )
            .join(
                CompetitionParticipant,
                CompetitionParticipant.id == CompetitionSubmission.participant_id,
            )
            .where(
                CompetitionParticipant.competition_id == competition_id,
                CompetitionSubmission.status.not_in(IN_FLIGHT_STATUSES),
            )
            .group_by(CompetitionSubmission.participant_id, CompetitionSubmission.problem_id)
        )
        return result.all()

    # ===== progress =====

    async def insert_progress_if_absent(
        self, participant_id: int, problem_id: int, attempted_at: datetime
    ) -> bool:
        """
        Create the progress row for the pair

        Returns:
            True for the first judged submission of the pair
        """
        stmt = insert_ignore(
            self.db,
            ParticipantProblemProgress.__table__,
            index_elements=["participant_id", "problem_id"],
            participant_id=participant_id,
            problem_id=problem_id,
            first_attempted_at=attempted_at,
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def claim_first_solve(
        self, participant_id: int, problem_id: int, submission_id: int, solved_at: datetime
    ) -> bool:
        """
        Record the pair's first accepted submission

        Returns:
            True when this submission is the first accepted one
        """
        result = await self.db.execute(
            update(ParticipantProblemProgress)
            .where(
                ParticipantProblemProgress.participant_id == participant_id,
                ParticipantProblemProgress.problem_id == problem_id,
                ParticipantProblemProgress.solved_submission_id.is_(None),
            )
            .values(solved_submission_id=submission_id, solved_at=solved_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def list_progress(self, competition_id: int) -> List[ParticipantProblemProgress]:
        result = await self.db.execute(
            select(ParticipantProblemProgress)
            .join(
                CompetitionParticipant,
                CompetitionParticipant.id == ParticipantProblemProgress.participant_id,
            )
            .where(CompetitionParticipant.competition_id == competition_id)
        )
        return list(result.scalars().all())
