"""
Queue adapters
"""

from contest_judge.domain.queue.adapters.base import JudgeResult, JudgeTask, QueueAdapter, TaskState
from contest_judge.domain.queue.adapters.memory import MemoryQueueAdapter
from contest_judge.domain.queue.adapters.redis import RedisQueueAdapter

__all__ = [
    "JudgeTask",
    "JudgeResult",
    "QueueAdapter",
    "MemoryQueueAdapter",
    "RedisQueueAdapter",
    "TaskState",
]
