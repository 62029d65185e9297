"""
In-memory queue adapter (development/tests)
Only visible to workers in the same process, and lost on restart.
"""

import asyncio
from collections import OrderedDict, deque
from typing import Deque, Dict, Optional

from contest_judge.domain.queue.adapters.base import JudgeResult, JudgeTask, QueueAdapter, TaskState


class MemoryQueueAdapter(QueueAdapter):
    """
    FIFO of JudgeTasks guarded by one asyncio.Lock

    Only the newest max_finished results are kept; older finished tasks
    report TaskState.UNKNOWN, like expired keys in the Redis adapter.
    """

    def __init__(self, max_finished: int = 1000):
        self.max_finished = max_finished
        self._waiting: Deque[JudgeTask] = deque()
        self._in_flight: Dict[str, str] = {}
        self._finished: "OrderedDict[str, JudgeResult]" = OrderedDict()
        self._lock = asyncio.Lock()

    async def enqueue(self, task: JudgeTask) -> str:
        async with self._lock:
            self._waiting.append(task)
            self._in_flight[task.task_id] = TaskState.PENDING
        return task.task_id

    async def dequeue(self) -> Optional[JudgeTask]:
        async with self._lock:
            if not self._waiting:
                return None
            task = self._waiting.popleft()
            self._in_flight[task.task_id] = TaskState.PROCESSING
            return task

    async def get_result(self, task_id: str) -> Optional[JudgeResult]:
        return self._finished.get(task_id)

    async def get_status(self, task_id: str) -> str:
        result = self._finished.get(task_id)
        if result is not None:
            return result.task_state
        return self._in_flight.get(task_id, TaskState.UNKNOWN)

    async def save_result(self, task_id: str, result: JudgeResult) -> bool:
        async with self._lock:
            self._in_flight.pop(task_id, None)
            self._finished[task_id] = result
            self._finished.move_to_end(task_id)
            while len(self._finished) > self.max_finished:
                self._finished.popitem(last=False)
        return True

    async def size(self) -> int:
        return len(self._waiting)
