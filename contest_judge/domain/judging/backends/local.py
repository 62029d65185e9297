"""
Local execution backend
All test cases in one call to the execution service.
"""
import logging
from typing import Any, Dict, List, Optional

from contest_judge.domain.judging.backends.base import JudgeBackend
from contest_judge.domain.judging.languages import get_local_language
from contest_judge.domain.judging.models import (
    CaseResult,
    DiffInfo,
    ErrorCategory,
    ExecutionReport,
    ResourceLimits,
    TestCase,
)
from contest_judge.domain.judging.reducer import BatchVerdictReducer
from contest_judge.infrastructure.execution.client import ExecutionServiceClient

logger = logging.getLogger(__name__)


def parse_diff_info(raw: Optional[Dict[str, Any]]) -> Optional[DiffInfo]:
    if not isinstance(raw, dict) or not raw.get("type"):
        return None
    return DiffInfo(
        type=str(raw["type"]),
        message=str(raw.get("message") or ""),
        expected_context=raw.get("expectedContext"),
        actual_context=raw.get("actualContext"),
        position=raw.get("position"),
    )


def to_case_result(raw: Dict[str, Any]) -> CaseResult:
    """Convert one execution service result entry"""
    passed = bool(raw.get("passed"))
    error = raw.get("error") or None
    diff = parse_diff_info(raw.get("diffInfo"))

    if passed:
        category = ErrorCategory.ACCEPTED
    elif (diff and diff.type == "compile") or (error and "compilation" in error.lower()):
        category = ErrorCategory.COMPILATION_ERROR
    elif error or (diff and diff.type == "runtime"):
        category = ErrorCategory.RUNTIME_ERROR
    else:
        category = ErrorCategory.WRONG_ANSWER

    try:
        execution_time_ms = int(raw.get("executionTime") or 0)
    except (TypeError, ValueError):
        execution_time_ms = 0

    return CaseResult(
        passed=passed,
        error_category=category,
        execution_time_ms=execution_time_ms,
        # The execution service does not measure memory
        memory_kb=0,
        stderr=error,
        message=diff.message if diff else None,
        diff=diff,
    )


class LocalExecutionBackend(JudgeBackend):
    """Fallback judge backed by the local execution service"""

    name = "local"

    def __init__(self, client: ExecutionServiceClient):
        self.client = client
        self.reducer = BatchVerdictReducer()

    def validate_language(self, language: str) -> str:
        return get_local_language(language)

    async def execute(
        self,
        source_code: str,
        language: str,
        test_cases: List[TestCase],
        limits: ResourceLimits,
    ) -> ExecutionReport:
        local_language = get_local_language(language)
        total_count = len(test_cases)

        try:
            data = await self.client.execute_tests(
                code=source_code,
                language=local_language,
                test_cases=[{"input": tc.input, "output": tc.output} for tc in test_cases],
            )
            results = data.get("results") or []
            cases = [to_case_result(r) for r in results if isinstance(r, dict)]
        except Exception as e:
            logger.error(f"[LocalExecution] Evaluation failed: {str(e)}", exc_info=True)
            return ExecutionReport(
                backend=self.name,
                total_count=total_count,
                cases=[
                    CaseResult(
                        passed=False,
                        error_category=ErrorCategory.RUNTIME_ERROR,
                        stderr=f"Error evaluating submission: {e}",
                    )
                ],
                passed_count=0,
                aborted=True,
            )

        passed_count = data.get("passedCount")
        if not isinstance(passed_count, int):
            passed_count = sum(1 for c in cases if c.passed)

        reported_total = data.get("totalCount")
        if isinstance(reported_total, int) and reported_total != total_count:
            logger.warning(
                f"[LocalExecution] totalCount mismatch - sent: {total_count}, reported: {reported_total}"
            )

        logger.info(f"[LocalExecution] {passed_count}/{total_count} test cases passed")

        return ExecutionReport(
            backend=self.name,
            total_count=total_count,
            cases=cases,
            passed_count=passed_count,
        )

    async def close(self):
        await self.client.close()
