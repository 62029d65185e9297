"""
Judging value types
Test cases and limits going into a backend, per-case results and the
aggregate verdict coming out.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from contest_judge.infrastructure.persistence.models.enums import SubmissionStatusEnum


class ErrorCategory(str, Enum):
    """Normalized outcome of a single test case"""

    ACCEPTED = "accepted"
    WRONG_ANSWER = "wrong_answer"
    TIME_LIMIT_EXCEEDED = "time_limit_exceeded"
    COMPILATION_ERROR = "compilation_error"
    RUNTIME_ERROR = "runtime_error"
    MEMORY_LIMIT_EXCEEDED = "memory_limit_exceeded"
    UNKNOWN = "unknown"


@dataclass
class TestCase:
    """One input / expected-output pair"""

    input: str = ""
    output: str = ""
    is_hidden: bool = False

    __test__ = False  # keep pytest from collecting this class


@dataclass
class ResourceLimits:
    time_limit: float = 2.0  # seconds
    memory_limit: int = 128  # MB


@dataclass
class DiffInfo:
    """Where the actual output first departs from the expected output"""

    type: str  # content_mismatch | length_mismatch | runtime | compile
    message: str = ""
    expected_context: Optional[str] = None
    actual_context: Optional[str] = None
    position: Optional[int] = None


@dataclass
class CaseResult:
    """Result of running one test case"""

    passed: bool
    error_category: ErrorCategory
    execution_time_ms: int = 0
    memory_kb: int = 0
    stderr: Optional[str] = None
    message: Optional[str] = None
    diff: Optional[DiffInfo] = None
    status_description: Optional[str] = None


@dataclass
class ExecutionReport:
    """
    Everything a backend returns for one submission

    cases holds only the cases that actually ran; total_count is the number
    of test cases the problem defines.
    """

    backend: str
    total_count: int
    cases: List[CaseResult] = field(default_factory=list)
    passed_count: int = 0
    aborted: bool = False

    @property
    def executed_count(self) -> int:
        return len(self.cases)


@dataclass
class Verdict:
    status: SubmissionStatusEnum
    score: int = 0
    max_execution_time_ms: int = 0
    max_memory_kb: int = 0
    error_message: Optional[str] = None
    judge_backend: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.status == SubmissionStatusEnum.ACCEPTED
