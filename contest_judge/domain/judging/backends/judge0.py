"""
Judge0 backend
One synchronous Judge0 call per test case, in order.
"""
import logging
from typing import Any, Dict, List

from contest_judge.core.exceptions import JudgeInfrastructureError
from contest_judge.domain.judging.backends.base import JudgeBackend
from contest_judge.domain.judging.languages import get_judge0_language_id, normalize_language
from contest_judge.domain.judging.models import (
    CaseResult,
    ErrorCategory,
    ExecutionReport,
    ResourceLimits,
    TestCase,
)
from contest_judge.domain.judging.reducer import PerCaseVerdictReducer
from contest_judge.infrastructure.judge0.client import Judge0Client

logger = logging.getLogger(__name__)

# Judge0 status ids
# 3: Accepted, 4: Wrong Answer, 5: Time Limit Exceeded, 6: Compilation Error,
# 7-12: Runtime Error (SIGSEGV, SIGXFSZ, SIGFPE, SIGABRT, NZEC, Other),
# 13: Memory Limit Exceeded
STATUS_ACCEPTED = 3
STATUS_WRONG_ANSWER = 4
STATUS_TIME_LIMIT = 5
STATUS_COMPILATION_ERROR = 6
RUNTIME_ERROR_RANGE = range(7, 13)
STATUS_MEMORY_LIMIT = 13


def map_status(status_id) -> ErrorCategory:
    """Judge0 status id -> ErrorCategory"""
    if status_id == STATUS_ACCEPTED:
        return ErrorCategory.ACCEPTED
    if status_id == STATUS_WRONG_ANSWER:
        return ErrorCategory.WRONG_ANSWER
    if status_id == STATUS_TIME_LIMIT:
        return ErrorCategory.TIME_LIMIT_EXCEEDED
    if status_id == STATUS_COMPILATION_ERROR:
        return ErrorCategory.COMPILATION_ERROR
    if status_id in RUNTIME_ERROR_RANGE:
        return ErrorCategory.RUNTIME_ERROR
    if status_id == STATUS_MEMORY_LIMIT:
        return ErrorCategory.MEMORY_LIMIT_EXCEEDED
    return ErrorCategory.UNKNOWN


def _seconds_to_ms(value) -> int:
    try:
        return int(round(float(value or 0) * 1000))
    except (TypeError, ValueError):
        return 0


def _to_int(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def to_case_result(result: Dict[str, Any]) -> CaseResult:
    """Convert a Judge0 response into a CaseResult"""
    status = result.get("status") or {}
    category = map_status(status.get("id"))

    if category == ErrorCategory.COMPILATION_ERROR:
        message = result.get("compile_output") or "Compilation error"
    elif category == ErrorCategory.RUNTIME_ERROR:
        message = result.get("stderr") or "Runtime error"
    else:
        message = None

    return CaseResult(
        passed=category == ErrorCategory.ACCEPTED,
        error_category=category,
        execution_time_ms=_seconds_to_ms(result.get("time")),
        memory_kb=_to_int(result.get("memory")),
        stderr=result.get("stderr"),
        message=message,
        status_description=status.get("description"),
    )


class Judge0Backend(JudgeBackend):
    """Remote judge backend"""

    name = "judge0"

    def __init__(self, client: Judge0Client):
        self.client = client
        self.reducer = PerCaseVerdictReducer()

    def validate_language(self, language: str) -> str:
        get_judge0_language_id(language)
        return normalize_language(language)

    async def execute(
        self,
        source_code: str,
        language: str,
        test_cases: List[TestCase],
        limits: ResourceLimits,
    ) -> ExecutionReport:
        language_id = get_judge0_language_id(language)
        report = ExecutionReport(backend=self.name, total_count=len(test_cases))

        for i, test_case in enumerate(test_cases):
            logger.info(f"[Judge0] Running test case {i + 1}/{len(test_cases)}")

            try:
                result = await self.client.submit_and_wait(
                    code=source_code,
                    language_id=language_id,
                    stdin=test_case.input,
                    expected_output=test_case.output,
                    cpu_time_limit=limits.time_limit,
                    memory_limit=limits.memory_limit,
                )
                case = to_case_result(result)
            except Exception as e:
                # Judge0 down or answering garbage: stop, the rest would fail too
                logger.error(
                    f"[Judge0] Test case {i + 1} failed to run: {str(e)}",
                    exc_info=not isinstance(e, JudgeInfrastructureError),
                )
                report.cases.append(
                    CaseResult(
                        passed=False,
                        error_category=ErrorCategory.RUNTIME_ERROR,
                        stderr=str(e),
                        message=f"Error evaluating submission: {e}",
                    )
                )
                report.aborted = True
                break

            report.cases.append(case)
            if case.passed:
                report.passed_count += 1

            logger.info(
                f"[Judge0] Test case {i + 1} - status: {case.error_category.value}, "
                f"time: {case.execution_time_ms}ms, memory: {case.memory_kb}KB"
            )

            if case.error_category == ErrorCategory.COMPILATION_ERROR:
                # Every remaining case would fail to compile the same way
                report.aborted = True
                break

        return report

    async def close(self):
        await self.client.close()
