"""
Queue system tests
"""
import asyncio

import httpx
import pytest

from contest_judge.application.services.judging_service import JudgingService
from contest_judge.application.workers.judge_worker import JudgeWorkerPool
from contest_judge.core.config import settings
from contest_judge.domain.judging.backends import Judge0Backend
from contest_judge.domain.queue.adapters.base import JudgeResult, JudgeTask
from contest_judge.domain.queue.adapters.memory import MemoryQueueAdapter
from contest_judge.domain.queue.factory import create_queue_adapter
from contest_judge.infrastructure.judge0.client import Judge0Client
from contest_judge.infrastructure.persistence.models import SubmissionStatusEnum
from contest_judge.infrastructure.repositories import SubmissionRepository


@pytest.mark.asyncio
async def test_memory_queue_adapter():
    """In-memory queue adapter"""
    original_value = settings.USE_REDIS_QUEUE
    settings.USE_REDIS_QUEUE = False

    try:
        queue = create_queue_adapter()
        assert isinstance(queue, MemoryQueueAdapter)

        task_id = await queue.enqueue(JudgeTask(task_id="test_task_1", submission_id=11))
        await queue.enqueue(JudgeTask(task_id="test_task_2", submission_id=12))
        assert task_id == "test_task_1"
        assert await queue.get_status(task_id) == "pending"
        assert await queue.size() == 2

        # FIFO
        dequeued_task = await queue.dequeue()
        assert dequeued_task.task_id == "test_task_1"
        assert dequeued_task.submission_id == 11
        assert await queue.get_status(task_id) == "processing"

        await queue.save_result(
            task_id,
            JudgeResult(task_id=task_id, status="success", submission_status="accepted", score=100),
        )

        retrieved_result = await queue.get_result(task_id)
        assert retrieved_result.submission_status == "accepted"
        assert retrieved_result.score == 100
        assert await queue.get_status(task_id) == "completed"

        await queue.save_result("test_task_2", JudgeResult(task_id="test_task_2", status="error", error="boom"))
        assert await queue.get_status("test_task_2") == "failed"
        assert await queue.get_status("missing") == "unknown"

    finally:
        settings.USE_REDIS_QUEUE = original_value


@pytest.mark.asyncio
async def test_empty_memory_queue_returns_none():
    assert await MemoryQueueAdapter().dequeue() is None


@pytest.mark.asyncio
async def test_memory_queue_keeps_only_recent_results():
    queue = MemoryQueueAdapter(max_finished=2)
    for i in range(3):
        task_id = await queue.enqueue(JudgeTask(task_id=f"t-{i}", submission_id=i))
        await queue.dequeue()
        await queue.save_result(task_id, JudgeResult(task_id=task_id, status="success"))

    assert await queue.get_result("t-0") is None
    assert await queue.get_status("t-0") == "unknown"
    assert await queue.get_status("t-1") == "completed"
    assert await queue.get_status("t-2") == "completed"
    assert len(queue._finished) == 2
    assert queue._in_flight == {}


@pytest.mark.asyncio
async def test_redis_queue_adapter():
    """Redis queue adapter (needs a reachable Redis)"""
    from contest_judge.infrastructure.cache.redis_client import RedisClient

    redis_client = RedisClient()
    try:
        await redis_client.connect()
    except Exception as e:
        pytest.skip(f"Redis not reachable: {e}")

    original_value = settings.USE_REDIS_QUEUE
    settings.USE_REDIS_QUEUE = True

    try:
        queue = create_queue_adapter(redis_client)
        await redis_client.delete(queue.queue_key)

        task_id = await queue.enqueue(JudgeTask(task_id="test_redis_task_1", submission_id=21))
        assert task_id == "test_redis_task_1"
        assert await queue.get_status(task_id) == "pending"
        assert await queue.size() == 1

        dequeued_task = await queue.dequeue()
        assert dequeued_task is not None
        assert dequeued_task.submission_id == 21
        assert await queue.get_status(task_id) == "processing"

        await queue.save_result(
            task_id,
            JudgeResult(task_id=task_id, status="success", submission_status="wrong_answer", score=40),
        )

        retrieved_result = await queue.get_result(task_id)
        assert retrieved_result is not None
        assert retrieved_result.submission_status == "wrong_answer"
        assert retrieved_result.score == 40
        assert await queue.get_status(task_id) == "completed"

    finally:
        settings.USE_REDIS_QUEUE = original_value
        await redis_client.close()


@pytest.mark.asyncio
async def test_worker_pool_judges_queued_submissions(db, session_factory, make_competition, clock):
    competition_id, (problem_id,) = await make_competition(
        problems=[{"points": 100, "test_cases_visible": [{"input": "1", "output": "1"}]}]
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": {"id": 3, "description": "Accepted"}, "time": "0.01", "memory": 512})

    backend = Judge0Backend(Judge0Client(api_url="http://judge0.test", transport=httpx.MockTransport(handler)))
    queue = MemoryQueueAdapter()
    service = JudgingService(backend, queue, session_factory, clock=clock)
    pool = JudgeWorkerPool(queue, service, concurrency=2, poll_interval=0.01)

    receipts = [
        await service.submit(db, competition_id, problem_id, user_id, "print(input())", "python")
        for user_id in (1, 2, 3)
    ]

    await pool.start()
    try:
        for _ in range(500):
            statuses = [await queue.get_status(r.task_id) for r in receipts]
            if all(s == "completed" for s in statuses):
                break
            await asyncio.sleep(0.01)
    finally:
        await pool.stop()
        await backend.close()

    assert statuses == ["completed"] * 3
    result = await queue.get_result(receipts[0].task_id)
    assert result.submission_status == "accepted"
    assert result.score == 100

    async with session_factory() as session:
        for receipt in receipts:
            submission = await SubmissionRepository(session).get(receipt.submission_id)
            assert submission.status == SubmissionStatusEnum.ACCEPTED


@pytest.mark.asyncio
async def test_worker_marks_unjudged_task_failed():
    queue = MemoryQueueAdapter()

    class NothingToJudge:
        async def process(self, submission_id):
            return None

    pool = JudgeWorkerPool(queue, NothingToJudge(), concurrency=1, poll_interval=0.01)
    task = JudgeTask(task_id="t-1", submission_id=1)
    await queue.enqueue(task)
    await queue.dequeue()

    result = await pool.handle(task)

    assert result.status == "error"
    assert await queue.get_status("t-1") == "failed"
