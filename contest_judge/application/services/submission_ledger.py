"""
Submission ledger
Writes terminal submission states and credits participants.

[record() in one transaction]
1. submission -> terminal, only if still pending/running
   (already terminal: nothing else happens)
2. progress row insert-or-ignore; inserted -> total_problems_attempted += 1
3. accepted -> claim progress.solved_submission_id if still NULL;
   claimed -> score += verdict.score, total_problems_solved += 1

Every counter change is a SQL increment guarded by a conditional write, so
two accepted submissions for the same problem can never both be credited.
An asyncio.Lock per (participant, problem) also serializes crediting inside
one process.
"""
import asyncio
import logging
import weakref
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from contest_judge.core.clock import utcnow
from contest_judge.core.exceptions import SubmissionNotFoundError
from contest_judge.domain.judging.models import Verdict
from contest_judge.infrastructure.persistence.models import SubmissionStatusEnum
from contest_judge.infrastructure.repositories.participant_repository import ParticipantRepository
from contest_judge.infrastructure.repositories.submission_repository import SubmissionRepository

logger = logging.getLogger(__name__)


@dataclass
class LedgerOutcome:
    recorded: bool = False  # this call wrote the terminal state
    first_attempt: bool = False  # first judged submission of the pair
    credited: bool = False  # first accepted submission of the pair


def failure_verdict(message: str) -> Verdict:
    """runtime_error verdict for submissions that could not be judged"""
    return Verdict(status=SubmissionStatusEnum.RUNTIME_ERROR, score=0, error_message=message)


class SubmissionLedger:
    """Submission ledger"""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            session_factory: opens one session per ledger operation
            clock: returns the current naive UTC time
        """
        self.session_factory = session_factory
        self.clock = clock
        self._locks: "weakref.WeakValueDictionary[Tuple[int, int], asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, participant_id: int, problem_id: int) -> asyncio.Lock:
        key = (participant_id, problem_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def mark_running(self, submission_id: int) -> bool:
        """
        pending -> running

        Returns:
            False when the submission was not pending (already taken or terminal)
        """
        async with self.session_factory() as db:
            changed = await SubmissionRepository(db).mark_running(submission_id, started_at=self.clock())
            await db.commit()
        return changed

    async def record(self, submission_id: int, verdict: Verdict) -> LedgerOutcome:
        """
        Write the verdict and update participant aggregates

        Args:
            submission_id: submission to finalize
            verdict: reduced verdict

        Returns:
            LedgerOutcome

        Raises:
            SubmissionNotFoundError: unknown submission id
        """
        async with self.session_factory() as db:
            submissions = SubmissionRepository(db)
            submission = await submissions.get(submission_id)
            if submission is None:
                raise SubmissionNotFoundError(f"Submission {submission_id} not found")

            participant_id = submission.participant_id
            problem_id = submission.problem_id
            outcome = LedgerOutcome()

            async with self._lock_for(participant_id, problem_id):
                try:
                    now = self.clock()
                    outcome.recorded = await submissions.finalize(
                        submission_id,
                        status=verdict.status,
                        score=max(verdict.score, 0),
                        execution_time_ms=verdict.max_execution_time_ms,
                        memory_used_kb=verdict.max_memory_kb,
                        error_message=verdict.error_message,
                        judge_backend=verdict.judge_backend,
                        judged_at=now,
                    )
                    if not outcome.recorded:
                        await db.rollback()
                        logger.info(
                            f"[Ledger] Submission {submission_id} already terminal, verdict ignored"
                        )
                        return outcome

                    participants = ParticipantRepository(db)

                    outcome.first_attempt = await submissions.insert_progress_if_absent(
                        participant_id, problem_id, attempted_at=now
                    )
                    if outcome.first_attempt:
                        await participants.increment_attempted(participant_id)

                    if verdict.accepted:
                        outcome.credited = await submissions.claim_first_solve(
                            participant_id, problem_id, submission_id, solved_at=now
                        )
                        if outcome.credited:
                            await participants.credit_solve(participant_id, max(verdict.score, 0))

                    await db.commit()
                except Exception:
                    await db.rollback()
                    raise

        logger.info(
            f"[Ledger] Submission {submission_id} recorded - status: {verdict.status.value}, "
            f"score: {verdict.score}, first_attempt: {outcome.first_attempt}, credited: {outcome.credited}"
        )
        return outcome

    async def record_failure(self, submission_id: int, message: str) -> LedgerOutcome:
        """Finalize as runtime_error with a diagnostic message"""
        logger.warning(f"[Ledger] Submission {submission_id} failed: {message}")
        return await self.record(submission_id, failure_verdict(message))
