"""
Judge worker pool
Takes submissions off the queue and judges them.

Runs inside the API process (started from the FastAPI lifespan) or on its
own with a shared Redis queue:

    python -m contest_judge.application.workers.judge_worker
"""
import asyncio
import logging
from typing import List, Optional

from contest_judge.application.services.judging_service import JudgingService
from contest_judge.core.config import settings
from contest_judge.domain.queue import JudgeResult, QueueAdapter


logger = logging.getLogger(__name__)


class JudgeWorkerPool:
    """Fixed number of consumer loops sharing one queue"""

    def __init__(
        self,
        queue: QueueAdapter,
        judging_service: JudgingService,
        concurrency: Optional[int] = None,
        poll_interval: Optional[float] = None,
        shutdown_timeout: Optional[float] = None,
    ):
        """
        Args:
            queue: queue the submissions are enqueued on
            judging_service: service whose process() judges one submission
            concurrency: number of loops (default: JUDGE_WORKER_CONCURRENCY)
            poll_interval: sleep between polls of an empty queue (default: QUEUE_POLL_INTERVAL)
            shutdown_timeout: grace period for in-flight judging in stop()
                (default: JUDGE_WORKER_SHUTDOWN_TIMEOUT)
        """
        self.queue = queue
        self.judging_service = judging_service
        self.concurrency = max(concurrency or settings.JUDGE_WORKER_CONCURRENCY, 1)
        self.poll_interval = poll_interval if poll_interval is not None else settings.QUEUE_POLL_INTERVAL
        self.shutdown_timeout = (
            shutdown_timeout if shutdown_timeout is not None else settings.JUDGE_WORKER_SHUTDOWN_TIMEOUT
        )
        self.running = False
        self._tasks: List[asyncio.Task] = []

    async def start(self):
        """Start the loops in the background"""
        if self.running:
            return
        self.running = True
        self._tasks = [
            asyncio.create_task(self._worker_loop(i), name=f"judge-worker-{i}")
            for i in range(self.concurrency)
        ]
        logger.info(f"[JudgeWorker] Started {self.concurrency} workers")

    async def stop(self, timeout: Optional[float] = None):
        """
        Stop the loops

        Idle loops exit at their next poll. A loop still judging gets up to
        timeout seconds (default: JUDGE_WORKER_SHUTDOWN_TIMEOUT) to finish,
        then it is cancelled and process() records the submission as
        interrupted.
        """
        self.running = False
        if not self._tasks:
            return

        timeout = self.shutdown_timeout if timeout is None else timeout
        _, still_running = await asyncio.wait(self._tasks, timeout=timeout)
        if still_running:
            logger.warning(f"[JudgeWorker] Cancelling {len(still_running)} workers still judging")
        for task in still_running:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("[JudgeWorker] Workers stopped")

    async def run_forever(self):
        """Start and block until cancelled"""
        await self.start()
        try:
            await asyncio.gather(*self._tasks)
        finally:
            await self.stop()

    async def _worker_loop(self, worker_id: int):
        while self.running:
            task = None
            try:
                task = await self.queue.dequeue()

                if task is None:
                    await asyncio.sleep(self.poll_interval)
                    continue

                await self.handle(task, worker_id)

            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"[JudgeWorker-{worker_id}] Error handling task: {str(e)}", exc_info=True)

                if task:
                    try:
                        await self.queue.save_result(
                            task.task_id,
                            JudgeResult(task_id=task.task_id, status="error", error=str(e)),
                        )
                    except Exception as save_error:
                        logger.error(f"[JudgeWorker-{worker_id}] Failed to save result: {str(save_error)}")
                # Back off so a broken queue connection does not spin
                await asyncio.sleep(self.poll_interval)

    async def handle(self, task, worker_id: int = 0) -> JudgeResult:
        """Judge one task and store its result on the queue"""
        logger.info(
            f"[JudgeWorker-{worker_id}] Processing task {task.task_id} - submission: {task.submission_id}"
        )

        verdict = await self.judging_service.process(task.submission_id)

        if verdict is None:
            result = JudgeResult(
                task_id=task.task_id,
                status="error",
                error=f"Submission {task.submission_id} was not judged",
            )
        else:
            result = JudgeResult(
                task_id=task.task_id,
                status="success",
                submission_status=verdict.status.value,
                score=verdict.score,
                error=verdict.error_message,
                execution_time_ms=verdict.max_execution_time_ms,
            )

        await self.queue.save_result(task.task_id, result)

        logger.info(
            f"[JudgeWorker-{worker_id}] Task {task.task_id} done - "
            f"status: {result.status}, submission_status: {result.submission_status}"
        )
        return result


async def main():
    """Standalone worker process; needs USE_REDIS_QUEUE=true to share the API's queue"""
    from contest_judge.domain.judging.backends import create_judge_backend
    from contest_judge.domain.queue import create_queue_adapter
    from contest_judge.infrastructure.cache.redis_client import redis_client
    from contest_judge.infrastructure.persistence.session import AsyncSessionLocal, close_db

    if not settings.USE_REDIS_QUEUE:
        logger.warning("[JudgeWorker] USE_REDIS_QUEUE is off: this process only sees its own in-memory queue")
    else:
        await redis_client.connect()

    backend = await create_judge_backend(settings)
    queue = create_queue_adapter(redis_client)
    service = JudgingService(backend, queue, AsyncSessionLocal)
    pool = JudgeWorkerPool(queue, service)

    try:
        if settings.RECOVER_UNFINISHED_ON_STARTUP:
            await service.recover_unfinished(settings.JUDGE_STALE_RUNNING_SECONDS)
        await pool.run_forever()
    finally:
        await backend.close()
        if settings.USE_REDIS_QUEUE:
            await redis_client.close()
        await close_db()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("[JudgeWorker] Stopped by user")
