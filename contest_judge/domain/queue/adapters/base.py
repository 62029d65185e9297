"""
Queue adapter interface
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional


class TaskState:
    """Lifecycle of a queued task, as reported by get_status"""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    UNKNOWN = "unknown"


@dataclass
class JudgeTask:
    """A submission waiting to be judged"""

    task_id: str
    submission_id: int
    meta: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JudgeTask":
        return cls(
            task_id=data["task_id"],
            submission_id=int(data["submission_id"]),
            meta=data.get("meta"),
        )


@dataclass
class JudgeResult:
    """Outcome of processing one task"""

    task_id: str
    status: str  # "success", "error"
    submission_status: Optional[str] = None
    score: int = 0
    error: Optional[str] = None
    execution_time_ms: int = 0

    @property
    def task_state(self) -> str:
        return TaskState.COMPLETED if self.status == "success" else TaskState.FAILED

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JudgeResult":
        return cls(
            task_id=data["task_id"],
            status=data["status"],
            submission_status=data.get("submission_status"),
            score=data.get("score", 0),
            error=data.get("error"),
            execution_time_ms=data.get("execution_time_ms", 0),
        )


class QueueAdapter(ABC):
    """Queue adapter interface"""

    @abstractmethod
    async def enqueue(self, task: JudgeTask) -> str:
        """
        Add a task to the queue

        Args:
            task: task to judge

        Returns:
            task_id
        """

    @abstractmethod
    async def dequeue(self) -> Optional[JudgeTask]:
        """
        Take the oldest task

        Returns:
            JudgeTask, or None when the queue is empty
        """

    @abstractmethod
    async def get_result(self, task_id: str) -> Optional[JudgeResult]:
        ...

    @abstractmethod
    async def get_status(self, task_id: str) -> str:
        """Returns one of the TaskState values"""

    @abstractmethod
    async def save_result(self, task_id: str, result: JudgeResult) -> bool:
        """Store a result and move the task to result.task_state"""

    async def size(self) -> int:
        """Number of tasks still waiting"""
        return 0

    async def close(self):
        pass
