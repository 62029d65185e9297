"""
Verdict reducers
Fold an ExecutionReport into one Verdict (status, score, diagnostics).

[Strategies]
- PerCaseVerdictReducer: Judge0 reports. Each passed case earns
  floor(points / N); the first failing case fixes the status.
- BatchVerdictReducer: local execution service reports. All passed earns
  full points; otherwise floor(passed / total * points).
- PassthroughVerdictReducer: development pass-through, always accepted.

The two real strategies round differently on purpose: an all-passing Judge0
submission can score less than points when N does not divide points, while
the batch strategy always awards points exactly.
"""
import logging
import math
from abc import ABC, abstractmethod
from typing import Optional

from contest_judge.domain.judging.case_store import load_limits
from contest_judge.domain.judging.models import (
    CaseResult,
    DiffInfo,
    ErrorCategory,
    ExecutionReport,
    Verdict,
)
from contest_judge.infrastructure.persistence.models.enums import SubmissionStatusEnum

logger = logging.getLogger(__name__)

WRONG_ANSWER_MESSAGE = "Your output did not match the expected output"

CATEGORY_TO_STATUS = {
    ErrorCategory.ACCEPTED: SubmissionStatusEnum.ACCEPTED,
    ErrorCategory.WRONG_ANSWER: SubmissionStatusEnum.WRONG_ANSWER,
    ErrorCategory.TIME_LIMIT_EXCEEDED: SubmissionStatusEnum.TIME_LIMIT_EXCEEDED,
    ErrorCategory.COMPILATION_ERROR: SubmissionStatusEnum.COMPILATION_ERROR,
    ErrorCategory.RUNTIME_ERROR: SubmissionStatusEnum.RUNTIME_ERROR,
    ErrorCategory.MEMORY_LIMIT_EXCEEDED: SubmissionStatusEnum.MEMORY_LIMIT_EXCEEDED,
    ErrorCategory.UNKNOWN: SubmissionStatusEnum.RUNTIME_ERROR,
}


def _max_usage(report: ExecutionReport):
    """Componentwise max over the cases that ran"""
    max_time = max((c.execution_time_ms for c in report.cases), default=0)
    max_memory = max((c.memory_kb for c in report.cases), default=0)
    return max_time, max_memory


class VerdictReducer(ABC):
    """Reducer strategy interface"""

    @abstractmethod
    def reduce(self, problem, report: ExecutionReport) -> Verdict:
        """
        Args:
            problem: problem row (points, time_limit, memory_limit)
            report: backend execution report

        Returns:
            aggregate Verdict with score >= 0
        """
        pass


class PerCaseVerdictReducer(VerdictReducer):
    """Judge0: per-case floor division, first failure decides"""

    def reduce(self, problem, report: ExecutionReport) -> Verdict:
        limits = load_limits(problem)
        points = problem.points or 0
        total = max(report.total_count, 1)
        per_case = points // total

        score = 0
        status = SubmissionStatusEnum.ACCEPTED
        error_message: Optional[str] = None

        for case in report.cases:
            if case.passed:
                score += per_case
                continue

            if case.error_category == ErrorCategory.COMPILATION_ERROR:
                # Nothing after a compile failure counts
                status = SubmissionStatusEnum.COMPILATION_ERROR
                error_message = case.message or case.stderr or "Compilation error"
                score = 0
                break

            if status == SubmissionStatusEnum.ACCEPTED:
                status = CATEGORY_TO_STATUS[case.error_category]
                error_message = self._failure_message(case, limits)

        if status == SubmissionStatusEnum.ACCEPTED and report.executed_count < report.total_count:
            # Cases were skipped without a recorded failure
            status = SubmissionStatusEnum.RUNTIME_ERROR
            error_message = "Judging stopped before all test cases were run"

        max_time, max_memory = _max_usage(report)
        return Verdict(
            status=status,
            score=max(score, 0),
            max_execution_time_ms=max_time,
            max_memory_kb=max_memory,
            error_message=error_message,
            judge_backend=report.backend,
        )

    def _failure_message(self, case: CaseResult, limits) -> str:
        category = case.error_category
        if category == ErrorCategory.WRONG_ANSWER:
            return f"{WRONG_ANSWER_MESSAGE}."
        if category == ErrorCategory.TIME_LIMIT_EXCEEDED:
            return f"Your solution took too long to execute. Time limit: {limits.time_limit}s."
        if category == ErrorCategory.MEMORY_LIMIT_EXCEEDED:
            return f"Your solution used too much memory. Memory limit: {limits.memory_limit}MB."
        if category == ErrorCategory.RUNTIME_ERROR:
            return case.message or case.stderr or "Runtime error"
        return f"Unknown error. Status: {case.status_description or case.message or 'unknown'}"


class BatchVerdictReducer(VerdictReducer):
    """Local execution service: full credit or proportional partial credit"""

    def reduce(self, problem, report: ExecutionReport) -> Verdict:
        points = problem.points or 0
        total = report.total_count
        passed = min(report.passed_count, total)

        if total > 0 and passed == total:
            status = SubmissionStatusEnum.ACCEPTED
            score = points
            error_message = None
        else:
            score = math.floor((passed / total) * points) if total > 0 else 0
            status, error_message = self._classify_failure(report)

        max_time, max_memory = _max_usage(report)
        return Verdict(
            status=status,
            score=max(score, 0),
            max_execution_time_ms=max_time,
            max_memory_kb=max_memory,
            error_message=error_message,
            judge_backend=report.backend,
        )

    def _classify_failure(self, report: ExecutionReport):
        failed = next((c for c in report.cases if not c.passed), None)
        if failed is None:
            return SubmissionStatusEnum.WRONG_ANSWER, "Your solution failed some test cases"

        diff_type = failed.diff.type if failed.diff else None
        error_text = failed.stderr or (failed.message if diff_type in ("compile", "runtime") else None)

        if diff_type == "compile" or failed.error_category == ErrorCategory.COMPILATION_ERROR or (
            error_text and "compilation" in error_text.lower()
        ):
            return SubmissionStatusEnum.COMPILATION_ERROR, error_text or "Compilation error"

        if error_text:
            return SubmissionStatusEnum.RUNTIME_ERROR, error_text

        return SubmissionStatusEnum.WRONG_ANSWER, format_wrong_answer(failed.diff)


class PassthroughVerdictReducer(VerdictReducer):
    """Development only. Accepts without judging."""

    def reduce(self, problem, report: ExecutionReport) -> Verdict:
        logger.warning(
            f"[Reducer] Pass-through verdict for problem {problem.id}: accepted without judging"
        )
        return Verdict(
            status=SubmissionStatusEnum.ACCEPTED,
            score=max(problem.points or 0, 0),
            error_message="Not judged: pass-through judge (development only)",
            judge_backend=report.backend,
        )


def format_wrong_answer(diff: Optional[DiffInfo]) -> str:
    """Human-readable wrong answer message with diff context"""
    message = WRONG_ANSWER_MESSAGE
    if diff is None:
        return message
    if diff.message:
        message += f"\n{diff.message}"
    if diff.type == "content_mismatch":
        message += f'\nExpected: "{diff.expected_context or ""}"'
        message += f'\nActual: "{diff.actual_context or ""}"'
    return message
