"""
Judging orchestrator tests
submit() -> queue -> process() -> ledger, with MockTransport judges.
"""
import json
from typing import List

import httpx
import pytest
from sqlalchemy import func, select

from contest_judge.application.services.judging_service import JudgingService
from contest_judge.core.exceptions import (
    CompetitionNotFoundError,
    InvalidSubmissionError,
    ProblemNotFoundError,
    UnsupportedLanguageError,
)
from contest_judge.domain.judging.backends import Judge0Backend, LocalExecutionBackend
from contest_judge.domain.judging.backends.base import JudgeBackend
from contest_judge.domain.judging.models import ExecutionReport, ResourceLimits, TestCase
from contest_judge.domain.judging.reducer import PerCaseVerdictReducer
from contest_judge.domain.queue.adapters.memory import MemoryQueueAdapter
from contest_judge.infrastructure.execution.client import ExecutionServiceClient
from contest_judge.infrastructure.judge0.client import Judge0Client
from contest_judge.infrastructure.persistence.models import CompetitionSubmission, SubmissionStatusEnum
from contest_judge.infrastructure.repositories import ParticipantRepository, SubmissionRepository


def _cases(n):
    return [{"input": str(i), "output": str(i)} for i in range(n)]


def _judge0_backend(responses_by_stdin):
    def handler(request: httpx.Request) -> httpx.Response:
        stdin = json.loads(request.content)["stdin"]
        return httpx.Response(200, json=responses_by_stdin[stdin])

    return Judge0Backend(Judge0Client(api_url="http://judge0.test", transport=httpx.MockTransport(handler)))


def _status(status_id, description, time="0.05", memory=1024):
    return {"status": {"id": status_id, "description": description}, "time": time, "memory": memory}


class ExplodingBackend(JudgeBackend):
    """Backend whose execute() raises"""

    name = "exploding"

    def __init__(self):
        self.reducer = PerCaseVerdictReducer()

    def validate_language(self, language: str) -> str:
        return language

    async def execute(self, source_code: str, language: str, test_cases: List[TestCase], limits: ResourceLimits) -> ExecutionReport:
        raise RuntimeError("sandbox exploded")


async def _submit_and_process(service, db, competition_id, problem_id, user_id=1, code="print(input())", language="python"):
    receipt = await service.submit(db, competition_id, problem_id, user_id, code, language)
    task = await service.queue.dequeue()
    assert task is not None
    assert task.submission_id == receipt.submission_id
    verdict = await service.process(task.submission_id)
    return receipt, verdict


async def _load(session_factory, submission_id) -> CompetitionSubmission:
    async with session_factory() as session:
        return await SubmissionRepository(session).get(submission_id)


@pytest.mark.asyncio
async def test_submit_returns_pending_and_enqueues(db, session_factory, make_competition, clock):
    competition_id, (problem_id,) = await make_competition(problems=[{"test_cases_visible": _cases(1)}])
    queue = MemoryQueueAdapter()
    service = JudgingService(_judge0_backend({}), queue, session_factory, clock=clock)

    receipt = await service.submit(db, competition_id, problem_id, 1, "print(1)", "Py")

    assert receipt.status == "pending"
    assert receipt.language == "python"
    assert receipt.submitted_at == clock.now
    assert await queue.get_status(receipt.task_id) == "pending"
    assert await queue.size() == 1

    submission = await _load(session_factory, receipt.submission_id)
    assert submission.status == SubmissionStatusEnum.PENDING
    assert submission.language == "python"


@pytest.mark.asyncio
async def test_judge0_time_limit_scenario(db, session_factory, make_competition, clock):
    """100 points, 4 cases: 3 accepted and 1 time limit exceeded"""
    competition_id, (problem_id,) = await make_competition(
        problems=[{"points": 100, "time_limit": 1, "test_cases_visible": _cases(2), "test_cases_hidden": _cases(4)[2:]}]
    )
    backend = _judge0_backend({
        "0": _status(3, "Accepted", time="0.10"),
        "1": _status(3, "Accepted", time="0.20"),
        "2": _status(5, "Time Limit Exceeded", time="1.05"),
        "3": _status(3, "Accepted", time="0.30"),
    })
    service = JudgingService(backend, MemoryQueueAdapter(), session_factory, clock=clock)

    receipt, verdict = await _submit_and_process(service, db, competition_id, problem_id)
    await backend.close()

    assert verdict.status == SubmissionStatusEnum.TIME_LIMIT_EXCEEDED
    assert verdict.score == 75

    submission = await _load(session_factory, receipt.submission_id)
    assert submission.status == SubmissionStatusEnum.TIME_LIMIT_EXCEEDED
    assert submission.score == 75
    assert submission.execution_time_ms == 1050
    assert submission.error_message == "Your solution took too long to execute. Time limit: 1.0s."
    assert submission.judge_backend == "judge0"

    async with session_factory() as session:
        participant = await ParticipantRepository(session).get_by_user(competition_id, 1)
    assert participant.total_problems_attempted == 1
    assert participant.total_problems_solved == 0
    assert participant.score == 0


@pytest.mark.asyncio
async def test_accepted_then_resubmitted(db, session_factory, make_competition, clock):
    competition_id, (problem_id,) = await make_competition(problems=[{"points": 100, "test_cases_visible": _cases(4)}])
    backend = _judge0_backend({str(i): _status(3, "Accepted") for i in range(4)})
    service = JudgingService(backend, MemoryQueueAdapter(), session_factory, clock=clock)

    _, first = await _submit_and_process(service, db, competition_id, problem_id)
    _, second = await _submit_and_process(service, db, competition_id, problem_id)
    await backend.close()

    assert first.score == 100
    assert second.score == 100

    async with session_factory() as session:
        participant = await ParticipantRepository(session).get_by_user(competition_id, 1)
    assert participant.score == 100
    assert participant.total_problems_solved == 1
    assert participant.total_problems_attempted == 1


@pytest.mark.asyncio
async def test_local_partial_scenario(db, session_factory, make_competition, clock):
    """50 points, 5 cases, 2 pass: floor(2 / 5 * 50) = 20"""
    competition_id, (problem_id,) = await make_competition(problems=[{"points": 50, "test_cases_visible": _cases(5)}])

    def handler(request: httpx.Request) -> httpx.Response:
        results = [{"passed": True, "executionTime": 5}, {"passed": True, "executionTime": 6}]
        results += [
            {
                "passed": False,
                "executionTime": 4,
                "diffInfo": {
                    "type": "content_mismatch",
                    "message": "Mismatch at line 1",
                    "expectedContext": str(i),
                    "actualContext": "?",
                },
            }
            for i in range(2, 5)
        ]
        return httpx.Response(200, json={"success": True, "data": {"passedCount": 2, "totalCount": 5, "results": results}})

    backend = LocalExecutionBackend(
        ExecutionServiceClient(base_url="http://execution.test", transport=httpx.MockTransport(handler))
    )
    service = JudgingService(backend, MemoryQueueAdapter(), session_factory, clock=clock)

    receipt, verdict = await _submit_and_process(service, db, competition_id, problem_id, language="python3")
    await backend.close()

    submission = await _load(session_factory, receipt.submission_id)
    assert submission.status == SubmissionStatusEnum.WRONG_ANSWER
    assert submission.score == 20
    assert submission.judge_backend == "local"
    assert 'Expected: "2"' in submission.error_message
    assert 'Actual: "?"' in submission.error_message


@pytest.mark.asyncio
async def test_compilation_error(db, session_factory, make_competition, clock):
    competition_id, (problem_id,) = await make_competition(problems=[{"test_cases_visible": _cases(3)}])
    compile_error = {
        "status": {"id": 6, "description": "Compilation Error"},
        "time": None,
        "memory": None,
        "compile_output": "main.cpp:1:1: error: 'x' does not name a type",
    }
    backend = _judge0_backend({str(i): compile_error for i in range(3)})
    service = JudgingService(backend, MemoryQueueAdapter(), session_factory, clock=clock)

    receipt, verdict = await _submit_and_process(service, db, competition_id, problem_id, code="x", language="cpp")
    await backend.close()

    submission = await _load(session_factory, receipt.submission_id)
    assert submission.status == SubmissionStatusEnum.COMPILATION_ERROR
    assert submission.score == 0
    assert "does not name a type" in submission.error_message


@pytest.mark.asyncio
async def test_problem_without_test_cases_runs_once(db, session_factory, make_competition, clock):
    competition_id, (problem_id,) = await make_competition(problems=[{"points": 10}])
    backend = _judge0_backend({"": _status(3, "Accepted")})
    service = JudgingService(backend, MemoryQueueAdapter(), session_factory, clock=clock)

    _, verdict = await _submit_and_process(service, db, competition_id, problem_id)
    await backend.close()

    assert verdict.status == SubmissionStatusEnum.ACCEPTED
    assert verdict.score == 10


@pytest.mark.asyncio
async def test_backend_exception_ends_as_runtime_error(db, session_factory, make_competition, clock):
    competition_id, (problem_id,) = await make_competition(problems=[{"test_cases_visible": _cases(2)}])
    service = JudgingService(ExplodingBackend(), MemoryQueueAdapter(), session_factory, clock=clock)

    receipt, verdict = await _submit_and_process(service, db, competition_id, problem_id)

    assert verdict is None
    submission = await _load(session_factory, receipt.submission_id)
    assert submission.status == SubmissionStatusEnum.RUNTIME_ERROR
    assert submission.error_message == "Error evaluating submission: sandbox exploded"
    assert submission.judged_at is not None


@pytest.mark.asyncio
async def test_process_skips_non_pending(db, session_factory, make_competition, clock):
    competition_id, (problem_id,) = await make_competition(problems=[{"test_cases_visible": _cases(1)}])
    backend = _judge0_backend({"0": _status(3, "Accepted")})
    service = JudgingService(backend, MemoryQueueAdapter(), session_factory, clock=clock)

    receipt, _ = await _submit_and_process(service, db, competition_id, problem_id)
    again = await service.process(receipt.submission_id)
    await backend.close()

    assert again is None
    submission = await _load(session_factory, receipt.submission_id)
    assert submission.status == SubmissionStatusEnum.ACCEPTED


@pytest.mark.asyncio
async def test_client_errors_write_nothing(db, session_factory, make_competition, clock):
    competition_id, (problem_id,) = await make_competition()
    other_competition_id, (other_problem_id,) = await make_competition()
    queue = MemoryQueueAdapter()
    service = JudgingService(_judge0_backend({}), queue, session_factory, clock=clock)

    with pytest.raises(InvalidSubmissionError):
        await service.submit(db, competition_id, problem_id, 1, "   ", "python")
    with pytest.raises(UnsupportedLanguageError):
        await service.submit(db, competition_id, problem_id, 1, "code", "cobol")
    with pytest.raises(CompetitionNotFoundError):
        await service.submit(db, 9999, problem_id, 1, "code", "python")
    with pytest.raises(ProblemNotFoundError):
        await service.submit(db, competition_id, other_problem_id, 1, "code", "python")

    count = (await db.execute(select(func.count(CompetitionSubmission.id)))).scalar_one()
    assert count == 0
    assert await queue.size() == 0


@pytest.mark.asyncio
async def test_enqueue_failure_is_recorded(db, session_factory, make_competition, clock):
    competition_id, (problem_id,) = await make_competition()

    class BrokenQueue(MemoryQueueAdapter):
        async def enqueue(self, task):
            raise ConnectionError("redis down")

    service = JudgingService(_judge0_backend({}), BrokenQueue(), session_factory, clock=clock)

    receipt = await service.submit(db, competition_id, problem_id, 1, "print(1)", "python")

    assert receipt.status == "runtime_error"
    submission = await _load(session_factory, receipt.submission_id)
    assert submission.status == SubmissionStatusEnum.RUNTIME_ERROR
    assert "redis down" in submission.error_message


@pytest.mark.asyncio
async def test_scoreboard_and_submission_lists(db, session_factory, make_competition, clock):
    competition_id, (easy_id, hard_id) = await make_competition(
        problems=[
            {"points": 100, "test_cases_visible": _cases(1)},
            {"points": 200, "test_cases_visible": _cases(1)},
        ]
    )
    backend = _judge0_backend({"0": _status(3, "Accepted")})
    service = JudgingService(backend, MemoryQueueAdapter(), session_factory, clock=clock)

    await _submit_and_process(service, db, competition_id, easy_id, user_id=1)
    await _submit_and_process(service, db, competition_id, hard_id, user_id=2)
    clock.advance(minutes=1)
    await _submit_and_process(service, db, competition_id, easy_id, user_id=2)
    await backend.close()

    async with session_factory() as session:
        entries = await service.get_scoreboard(session, competition_id)
        user_two = await service.list_participant_submissions(session, competition_id, 2)
        nobody = await service.list_participant_submissions(session, competition_id, 3)

    assert [e.user_id for e in entries] == [2, 1]
    assert entries[0].rank == 1
    assert entries[0].score == 300
    assert entries[0].total_problems_solved == 2
    assert entries[0].problems[hard_id].solved is True
    assert entries[0].problems[hard_id].attempts == 1
    assert entries[1].problems[easy_id].best_score == 100

    assert len(user_two) == 2
    assert user_two[0].problem_id == easy_id
    assert nobody == []

    with pytest.raises(CompetitionNotFoundError):
        async with session_factory() as session:
            await service.get_scoreboard(session, 9999)


@pytest.mark.asyncio
async def test_soft_deleted_competition_rejected(db, session_factory, make_competition, clock):
    competition_id, (problem_id,) = await make_competition(deleted_at=clock.now)
    queue = MemoryQueueAdapter()
    service = JudgingService(_judge0_backend({}), queue, session_factory, clock=clock)

    with pytest.raises(CompetitionNotFoundError):
        await service.submit(db, competition_id, problem_id, 1, "print(1)", "python")

    count = (await db.execute(select(func.count(CompetitionSubmission.id)))).scalar_one()
    assert count == 0
    assert await queue.size() == 0
    async with session_factory() as session:
        assert await ParticipantRepository(session).get_by_user(competition_id, 1) is None
