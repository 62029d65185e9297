"""
Redis queue adapter (production)
Lets several worker processes share one queue. Tasks are LPUSHed and
BRPOPed so the oldest task is judged first.
"""
import json
from dataclasses import asdict
from typing import Optional

from contest_judge.domain.queue.adapters.base import JudgeResult, JudgeTask, QueueAdapter, TaskState
from contest_judge.infrastructure.cache.redis_client import RedisClient


class RedisQueueAdapter(QueueAdapter):
    """Redis list backed queue"""

    def __init__(
        self,
        redis: RedisClient,
        name: str = "judge_queue",
        block_timeout: int = 1,
        ttl_seconds: int = 3600,
    ):
        """
        Args:
            redis: connected RedisClient
            name: key prefix, lets several deployments share one Redis
            block_timeout: seconds BRPOP waits on an empty queue
            ttl_seconds: how long task status and results are kept
        """
        self.redis = redis
        self.block_timeout = block_timeout
        self.ttl_seconds = ttl_seconds
        self.queue_key = f"{name}:pending"
        self.result_prefix = f"{name}:result:"
        self.status_prefix = f"{name}:status:"

    async def _set_state(self, task_id: str, state: str):
        await self.redis.set(f"{self.status_prefix}{task_id}", state, ttl_seconds=self.ttl_seconds)

    async def enqueue(self, task: JudgeTask) -> str:
        await self.redis.push(self.queue_key, json.dumps(asdict(task), ensure_ascii=False))
        await self._set_state(task.task_id, TaskState.PENDING)
        return task.task_id

    async def dequeue(self) -> Optional[JudgeTask]:
        raw = await self.redis.pop(self.queue_key, timeout=self.block_timeout)
        if raw is None:
            return None

        task = JudgeTask.from_dict(json.loads(raw))
        await self._set_state(task.task_id, TaskState.PROCESSING)
        return task

    async def get_result(self, task_id: str) -> Optional[JudgeResult]:
        data = await self.redis.get_json(f"{self.result_prefix}{task_id}")
        return JudgeResult.from_dict(data) if data else None

    async def get_status(self, task_id: str) -> str:
        state = await self.redis.get(f"{self.status_prefix}{task_id}")
        return state or TaskState.UNKNOWN

    async def save_result(self, task_id: str, result: JudgeResult) -> bool:
        await self.redis.set_json(
            f"{self.result_prefix}{task_id}",
            asdict(result),
            ttl_seconds=self.ttl_seconds,
        )
        await self._set_state(task_id, result.task_state)
        return True

    async def size(self) -> int:
        return await self.redis.length(self.queue_key)
