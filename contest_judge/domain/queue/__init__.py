"""
Judge queue
Submissions waiting for a judge worker.
"""
from contest_judge.domain.queue.factory import create_queue_adapter
from contest_judge.domain.queue.adapters.base import JudgeTask, JudgeResult, QueueAdapter, TaskState

__all__ = [
    "create_queue_adapter",
    "JudgeTask",
    "JudgeResult",
    "QueueAdapter",
    "TaskState",
]
