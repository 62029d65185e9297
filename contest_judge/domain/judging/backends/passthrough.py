"""
Development backends
Used when neither Judge0 nor the local execution service is configured.
"""
import logging
from typing import List

from contest_judge.domain.judging.backends.base import JudgeBackend
from contest_judge.domain.judging.languages import normalize_language
from contest_judge.domain.judging.models import (
    CaseResult,
    ErrorCategory,
    ExecutionReport,
    ResourceLimits,
    TestCase,
)
from contest_judge.domain.judging.reducer import PassthroughVerdictReducer, PerCaseVerdictReducer

logger = logging.getLogger(__name__)

NO_BACKEND_MESSAGE = "no judge backend configured"


class PassthroughBackend(JudgeBackend):
    """
    Accepts every submission without running it

    Only selected when ALLOW_PASSTHROUGH_JUDGE is on. Verdicts carry
    judge_backend="passthrough" so they can be told apart from real ones.
    """

    name = "passthrough"

    def __init__(self):
        self.reducer = PassthroughVerdictReducer()

    def validate_language(self, language: str) -> str:
        return normalize_language(language)

    async def execute(
        self,
        source_code: str,
        language: str,
        test_cases: List[TestCase],
        limits: ResourceLimits,
    ) -> ExecutionReport:
        logger.warning(
            f"[Passthrough] Accepting submission without judging ({len(test_cases)} test cases skipped)"
        )
        return ExecutionReport(
            backend=self.name,
            total_count=len(test_cases),
            passed_count=len(test_cases),
        )


class UnavailableBackend(JudgeBackend):
    """Every submission ends as runtime_error"""

    name = "unavailable"

    def __init__(self):
        self.reducer = PerCaseVerdictReducer()

    def validate_language(self, language: str) -> str:
        return normalize_language(language)

    async def execute(
        self,
        source_code: str,
        language: str,
        test_cases: List[TestCase],
        limits: ResourceLimits,
    ) -> ExecutionReport:
        logger.error("[Judge] Submission cannot be judged: no judge backend configured")
        return ExecutionReport(
            backend=self.name,
            total_count=len(test_cases),
            cases=[
                CaseResult(
                    passed=False,
                    error_category=ErrorCategory.RUNTIME_ERROR,
                    message=NO_BACKEND_MESSAGE,
                )
                for _ in test_cases
            ],
        )
