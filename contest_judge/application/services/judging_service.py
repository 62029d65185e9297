"""
Judging service
Accepts submissions and judges them out of band.

[Flow]
1. submit(): validate, ensure the participation window, insert a pending
   submission, commit, enqueue a JudgeTask, return at once
2. JudgeWorkerPool dequeues the task and calls process()
3. process(): pending -> running, load test cases, backend.execute(),
   backend.reducer.reduce(), ledger.record()

process() never raises except to pass on a cancellation. Whatever goes wrong,
cancellation included, ends in ledger.record_failure() so no submission stays
running. recover_unfinished() re-queues what a crashed process left behind.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from contest_judge.application.services.participation_service import ParticipationService
from contest_judge.application.services.submission_ledger import SubmissionLedger
from contest_judge.core.clock import utcnow
from contest_judge.core.exceptions import (
    CompetitionNotFoundError,
    ForbiddenError,
    InvalidSubmissionError,
    ProblemNotFoundError,
    SubmissionNotFoundError,
)
from contest_judge.domain.judging.backends.base import JudgeBackend
from contest_judge.domain.judging.case_store import load_limits, load_test_cases
from contest_judge.domain.judging.models import Verdict
from contest_judge.domain.queue.adapters.base import JudgeTask, QueueAdapter
from contest_judge.infrastructure.persistence.models import (
    Competition,
    CompetitionParticipant,
    CompetitionSubmission,
    SubmissionStatusEnum,
)
from contest_judge.infrastructure.repositories.competition_repository import CompetitionRepository
from contest_judge.infrastructure.repositories.participant_repository import ParticipantRepository
from contest_judge.infrastructure.repositories.submission_repository import SubmissionRepository

logger = logging.getLogger(__name__)

INTERRUPTED_MESSAGE = "Judging was interrupted by a server shutdown. Please resubmit."


def _judge_task(submission_id: int) -> JudgeTask:
    return JudgeTask(task_id=f"submission-{submission_id}-{uuid.uuid4().hex[:8]}", submission_id=submission_id)


@dataclass
class SubmissionReceipt:
    submission_id: int
    status: str
    language: str
    submitted_at: datetime
    task_id: Optional[str] = None


@dataclass
class ProblemStanding:
    problem_id: int
    attempts: int = 0
    best_score: int = 0
    solved: bool = False
    solved_submission_id: Optional[int] = None


@dataclass
class ScoreboardEntry:
    rank: int
    participant_id: int
    user_id: int
    score: int
    total_problems_solved: int
    total_problems_attempted: int
    end_time: Optional[datetime]
    problems: Dict[int, ProblemStanding] = field(default_factory=dict)


class JudgingService:
    """Judging orchestrator"""

    def __init__(
        self,
        backend: JudgeBackend,
        queue: QueueAdapter,
        session_factory: async_sessionmaker[AsyncSession],
        ledger: Optional[SubmissionLedger] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            backend: judge backend chosen at startup
            queue: queue shared with the worker pool
            session_factory: sessions for out-of-band processing
            ledger: submission ledger (default: one over session_factory)
            clock: returns the current naive UTC time
        """
        self.backend = backend
        self.queue = queue
        self.session_factory = session_factory
        self.ledger = ledger or SubmissionLedger(session_factory, clock=clock)
        self.clock = clock

    async def submit(
        self,
        db: AsyncSession,
        competition_id: int,
        problem_id: int,
        user_id: int,
        source_code: str,
        language: str,
    ) -> SubmissionReceipt:
        """
        Accept a submission for judging

        Every check runs before the submission row is written.

        Args:
            db: request session
            competition_id: competition id
            problem_id: problem id (must belong to the competition)
            user_id: caller
            source_code: submitted code
            language: language name or alias

        Returns:
            SubmissionReceipt with status "pending"

        Raises:
            InvalidSubmissionError: empty source code or language
            UnsupportedLanguageError: the active backend cannot run the language
            CompetitionNotFoundError, ProblemNotFoundError
        """
        if not source_code or not source_code.strip() or not language or not language.strip():
            raise InvalidSubmissionError("Source code and language are required")

        normalized_language = self.backend.validate_language(language)

        competition = await CompetitionRepository(db).get_competition(competition_id)
        if competition is None:
            raise CompetitionNotFoundError("Competition not found")

        problem = await CompetitionRepository(db).get_problem(competition_id, problem_id)
        if problem is None:
            raise ProblemNotFoundError("Problem not found in this competition")

        window = await ParticipationService(db, clock=self.clock).ensure_active(competition, user_id)

        submission = await SubmissionRepository(db).create(
            problem_id=problem.id,
            participant_id=window.participant.id,
            source_code=source_code,
            language=normalized_language,
            submitted_at=self.clock(),
        )
        await db.commit()

        logger.info(
            f"[Submit] Submission {submission.id} created - competition: {competition_id}, "
            f"problem: {problem_id}, user: {user_id}, language: {normalized_language}"
        )

        receipt = SubmissionReceipt(
            submission_id=submission.id,
            status=SubmissionStatusEnum.PENDING.value,
            language=normalized_language,
            submitted_at=submission.submitted_at,
        )

        task = _judge_task(submission.id)
        try:
            receipt.task_id = await self.queue.enqueue(task)
        except Exception as e:
            logger.error(f"[Submit] Failed to queue submission {submission.id}: {str(e)}", exc_info=True)
            await self.ledger.record_failure(submission.id, f"Failed to queue submission for judging: {e}")
            receipt.status = SubmissionStatusEnum.RUNTIME_ERROR.value

        return receipt

    async def process(self, submission_id: int) -> Optional[Verdict]:
        """
        Judge one submission

        Returns:
            the recorded Verdict, or None when the submission was not
            judged (not pending, or judging failed and was recorded as
            runtime_error)
        """
        try:
            if not await self.ledger.mark_running(submission_id):
                logger.info(f"[Judge] Submission {submission_id} is not pending, skipping")
                return None

            async with self.session_factory() as db:
                submission = await SubmissionRepository(db).get(submission_id)
                problem = await CompetitionRepository(db).get_problem_by_id(submission.problem_id)
                if problem is None:
                    raise ProblemNotFoundError(f"Problem {submission.problem_id} no longer exists")
                source_code = submission.source_code
                language = submission.language

            test_cases = load_test_cases(problem)
            limits = load_limits(problem)

            logger.info(
                f"[Judge] Judging submission {submission_id} with {self.backend.name} - "
                f"{len(test_cases)} test cases, limits: {limits.time_limit}s/{limits.memory_limit}MB"
            )

            report = await self.backend.execute(source_code, language, test_cases, limits)
            verdict = self.backend.reducer.reduce(problem, report)
            await self.ledger.record(submission_id, verdict)

            logger.info(
                f"[Judge] Submission {submission_id} judged - status: {verdict.status.value}, "
                f"score: {verdict.score}, passed: {report.passed_count}/{report.total_count}"
            )
            return verdict
        except asyncio.CancelledError:
            # Shutdown interrupted judging; finish the row before letting the cancel through
            logger.warning(f"[Judge] Judging of submission {submission_id} interrupted by shutdown")
            try:
                await asyncio.shield(
                    self.ledger.record_failure(submission_id, INTERRUPTED_MESSAGE)
                )
            except Exception as record_error:
                logger.error(
                    f"[Judge] Could not record interruption of submission {submission_id}: {str(record_error)}",
                    exc_info=True,
                )
            raise
        except Exception as e:
            logger.error(f"[Judge] Error processing submission {submission_id}: {str(e)}", exc_info=True)
            try:
                await self.ledger.record_failure(submission_id, f"Error evaluating submission: {e}")
            except Exception as record_error:
                logger.error(
                    f"[Judge] Could not record failure for submission {submission_id}: {str(record_error)}",
                    exc_info=True,
                )
            return None

    async def recover_unfinished(self, stale_after_seconds: int) -> int:
        """
        Re-queue submissions left unfinished by a previous process

        - running rows whose judging started more than stale_after_seconds
          ago go back to pending
        - every pending row is enqueued again

        A submission queued twice is judged once: the second task finds it
        no longer pending and is skipped.

        Returns:
            number of submissions enqueued
        """
        started_before = self.clock() - timedelta(seconds=stale_after_seconds)
        async with self.session_factory() as db:
            submissions = SubmissionRepository(db)
            reset = await submissions.reset_stale_running(started_before)
            pending = await submissions.list_pending_ids()
            await db.commit()

        if reset:
            logger.warning(f"[Judge] Re-queued {len(reset)} stale running submissions: {reset}")

        for submission_id in pending:
            await self.queue.enqueue(_judge_task(submission_id))

        if pending:
            logger.info(f"[Judge] Enqueued {len(pending)} unfinished submissions")
        return len(pending)

    async def get_submission(
        self, db: AsyncSession, submission_id: int, user_id: int
    ) -> CompetitionSubmission:
        """
        Submission owned by the caller

        Raises:
            SubmissionNotFoundError: unknown id
            ForbiddenError: submission of another user
        """
        found = await SubmissionRepository(db).get_with_participant(submission_id)
        if found is None:
            raise SubmissionNotFoundError("Submission not found")

        submission, participant = found
        if participant.user_id != user_id:
            raise ForbiddenError("You can only view your own submissions")
        return submission

    async def get_scoreboard(self, db: AsyncSession, competition_id: int) -> List[ScoreboardEntry]:
        """
        Ranked participants with per-problem standings

        Raises:
            CompetitionNotFoundError
        """
        competition = await self._get_competition(db, competition_id)
        participants = await ParticipantRepository(db).list_ranked(competition.id)

        submissions = SubmissionRepository(db)
        standings: Dict[int, Dict[int, ProblemStanding]] = {}
        for participant_id, problem_id, attempts, best_score in await submissions.problem_stats(competition.id):
            standings.setdefault(participant_id, {})[problem_id] = ProblemStanding(
                problem_id=problem_id,
                attempts=attempts,
                best_score=best_score or 0,
            )
        for progress in await submissions.list_progress(competition.id):
            if progress.solved_submission_id is None:
                continue
            standing = standings.setdefault(progress.participant_id, {}).setdefault(
                progress.problem_id, ProblemStanding(problem_id=progress.problem_id)
            )
            standing.solved = True
            standing.solved_submission_id = progress.solved_submission_id

        return [
            self._scoreboard_entry(rank, participant, standings.get(participant.id, {}))
            for rank, participant in enumerate(participants, start=1)
        ]

    async def list_participant_submissions(
        self, db: AsyncSession, competition_id: int, user_id: int
    ) -> List[CompetitionSubmission]:
        """Caller's submissions in the competition, newest first"""
        competition = await self._get_competition(db, competition_id)
        participant = await ParticipantRepository(db).get_by_user(competition.id, user_id)
        if participant is None:
            return []
        return await SubmissionRepository(db).list_for_participant(participant.id)

    async def _get_competition(self, db: AsyncSession, competition_id: int) -> Competition:
        competition = await CompetitionRepository(db).get_competition(competition_id)
        if competition is None:
            raise CompetitionNotFoundError("Competition not found")
        return competition

    @staticmethod
    def _scoreboard_entry(
        rank: int, participant: CompetitionParticipant, problems: Dict[int, ProblemStanding]
    ) -> ScoreboardEntry:
        return ScoreboardEntry(
            rank=rank,
            participant_id=participant.id,
            user_id=participant.user_id,
            score=participant.score,
            total_problems_solved=participant.total_problems_solved,
            total_problems_attempted=participant.total_problems_attempted,
            end_time=participant.end_time,
            problems=problems,
        )
