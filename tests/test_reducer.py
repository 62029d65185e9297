"""
Verdict reducer tests
"""
from types import SimpleNamespace

from contest_judge.domain.judging.models import CaseResult, DiffInfo, ErrorCategory, ExecutionReport
from contest_judge.domain.judging.reducer import (
    BatchVerdictReducer,
    PassthroughVerdictReducer,
    PerCaseVerdictReducer,
    format_wrong_answer,
)
from contest_judge.infrastructure.persistence.models import SubmissionStatusEnum


def _problem(points=100, time_limit=2.0, memory_limit=128):
    return SimpleNamespace(id=1, points=points, time_limit=time_limit, memory_limit=memory_limit)


def _passed(time_ms=10, memory_kb=1000):
    return CaseResult(passed=True, error_category=ErrorCategory.ACCEPTED, execution_time_ms=time_ms, memory_kb=memory_kb)


def _failed(category, time_ms=10, memory_kb=1000, **kwargs):
    return CaseResult(passed=False, error_category=category, execution_time_ms=time_ms, memory_kb=memory_kb, **kwargs)


class TestPerCaseVerdictReducer:

    def test_all_passed_scores_per_case_floor(self):
        """100 points over 3 cases: 3 x 33"""
        report = ExecutionReport(backend="judge0", total_count=3, cases=[_passed(), _passed(), _passed()], passed_count=3)

        verdict = PerCaseVerdictReducer().reduce(_problem(points=100), report)

        assert verdict.status == SubmissionStatusEnum.ACCEPTED
        assert verdict.score == 99
        assert verdict.error_message is None
        assert verdict.judge_backend == "judge0"

    def test_time_limit_case_fixes_status(self):
        report = ExecutionReport(
            backend="judge0",
            total_count=4,
            cases=[
                _passed(time_ms=100),
                _failed(ErrorCategory.TIME_LIMIT_EXCEEDED, time_ms=2500),
                _passed(time_ms=200),
                _passed(time_ms=300),
            ],
            passed_count=3,
        )

        verdict = PerCaseVerdictReducer().reduce(_problem(points=100, time_limit=2.0), report)

        assert verdict.status == SubmissionStatusEnum.TIME_LIMIT_EXCEEDED
        assert verdict.score == 75
        assert verdict.max_execution_time_ms == 2500
        assert verdict.error_message == "Your solution took too long to execute. Time limit: 2.0s."

    def test_first_failure_wins(self):
        report = ExecutionReport(
            backend="judge0",
            total_count=3,
            cases=[
                _failed(ErrorCategory.WRONG_ANSWER),
                _failed(ErrorCategory.MEMORY_LIMIT_EXCEEDED),
                _passed(),
            ],
            passed_count=1,
        )

        verdict = PerCaseVerdictReducer().reduce(_problem(points=90), report)

        assert verdict.status == SubmissionStatusEnum.WRONG_ANSWER
        assert verdict.score == 30
        assert verdict.error_message == "Your output did not match the expected output."

    def test_compilation_error_zeroes_score(self):
        report = ExecutionReport(
            backend="judge0",
            total_count=5,
            cases=[
                _passed(time_ms=50, memory_kb=900),
                _failed(ErrorCategory.COMPILATION_ERROR, time_ms=0, memory_kb=0, message="main.cpp:1: error"),
            ],
            passed_count=1,
            aborted=True,
        )

        verdict = PerCaseVerdictReducer().reduce(_problem(), report)

        assert verdict.status == SubmissionStatusEnum.COMPILATION_ERROR
        assert verdict.score == 0
        assert verdict.error_message == "main.cpp:1: error"
        assert verdict.max_execution_time_ms == 50
        assert verdict.max_memory_kb == 900

    def test_memory_limit_message(self):
        report = ExecutionReport(
            backend="judge0",
            total_count=1,
            cases=[_failed(ErrorCategory.MEMORY_LIMIT_EXCEEDED)],
        )

        verdict = PerCaseVerdictReducer().reduce(_problem(memory_limit=256), report)

        assert verdict.status == SubmissionStatusEnum.MEMORY_LIMIT_EXCEEDED
        assert verdict.error_message == "Your solution used too much memory. Memory limit: 256MB."

    def test_unknown_status_is_runtime_error(self):
        report = ExecutionReport(
            backend="judge0",
            total_count=1,
            cases=[_failed(ErrorCategory.UNKNOWN, status_description="Internal Error")],
        )

        verdict = PerCaseVerdictReducer().reduce(_problem(), report)

        assert verdict.status == SubmissionStatusEnum.RUNTIME_ERROR
        assert verdict.error_message == "Unknown error. Status: Internal Error"

    def test_runtime_error_uses_stderr(self):
        report = ExecutionReport(
            backend="judge0",
            total_count=2,
            cases=[_passed(), _failed(ErrorCategory.RUNTIME_ERROR, stderr="ZeroDivisionError")],
            passed_count=1,
        )

        verdict = PerCaseVerdictReducer().reduce(_problem(points=100), report)

        assert verdict.status == SubmissionStatusEnum.RUNTIME_ERROR
        assert verdict.score == 50
        assert verdict.error_message == "ZeroDivisionError"

    def test_skipped_cases_are_not_accepted(self):
        report = ExecutionReport(backend="judge0", total_count=3, cases=[_passed()], passed_count=1, aborted=True)

        verdict = PerCaseVerdictReducer().reduce(_problem(), report)

        assert verdict.status == SubmissionStatusEnum.RUNTIME_ERROR
        assert verdict.score == 33


class TestBatchVerdictReducer:

    def test_all_passed_awards_full_points(self):
        report = ExecutionReport(backend="local", total_count=3, cases=[_passed(), _passed(), _passed()], passed_count=3)

        verdict = BatchVerdictReducer().reduce(_problem(points=100), report)

        assert verdict.status == SubmissionStatusEnum.ACCEPTED
        assert verdict.score == 100

    def test_none_passed_scores_zero(self):
        report = ExecutionReport(
            backend="local",
            total_count=2,
            cases=[_failed(ErrorCategory.WRONG_ANSWER), _failed(ErrorCategory.WRONG_ANSWER)],
            passed_count=0,
        )

        verdict = BatchVerdictReducer().reduce(_problem(points=100), report)

        assert verdict.status == SubmissionStatusEnum.WRONG_ANSWER
        assert verdict.score == 0

    def test_partial_score_is_monotonic(self):
        scores = []
        for passed in range(0, 8):
            cases = [_passed() for _ in range(passed)] + [_failed(ErrorCategory.WRONG_ANSWER) for _ in range(7 - passed)]
            report = ExecutionReport(backend="local", total_count=7, cases=cases, passed_count=passed)
            scores.append(BatchVerdictReducer().reduce(_problem(points=50), report).score)

        assert scores == sorted(scores)
        assert scores[0] == 0
        assert scores[-1] == 50
        assert scores[3] == 21  # floor(3 / 7 * 50)

    def test_content_mismatch_message(self):
        diff = DiffInfo(
            type="content_mismatch",
            message="Output differs at line 1",
            expected_context="42",
            actual_context="41",
        )
        report = ExecutionReport(
            backend="local",
            total_count=5,
            cases=[_passed(), _passed(), _failed(ErrorCategory.WRONG_ANSWER, diff=diff)]
            + [_failed(ErrorCategory.WRONG_ANSWER) for _ in range(2)],
            passed_count=2,
        )

        verdict = BatchVerdictReducer().reduce(_problem(points=50), report)

        assert verdict.status == SubmissionStatusEnum.WRONG_ANSWER
        assert verdict.score == 20
        assert verdict.error_message == (
            "Your output did not match the expected output\n"
            "Output differs at line 1\n"
            'Expected: "42"\n'
            'Actual: "41"'
        )

    def test_compile_diff_is_compilation_error(self):
        diff = DiffInfo(type="compile", message="SyntaxError: invalid syntax")
        report = ExecutionReport(
            backend="local",
            total_count=2,
            cases=[_failed(ErrorCategory.COMPILATION_ERROR, diff=diff, message=diff.message)] * 2,
            passed_count=0,
        )

        verdict = BatchVerdictReducer().reduce(_problem(), report)

        assert verdict.status == SubmissionStatusEnum.COMPILATION_ERROR
        assert verdict.score == 0
        assert verdict.error_message == "SyntaxError: invalid syntax"

    def test_error_text_is_runtime_error(self):
        report = ExecutionReport(
            backend="local",
            total_count=2,
            cases=[_passed(), _failed(ErrorCategory.RUNTIME_ERROR, stderr="Segmentation fault")],
            passed_count=1,
        )

        verdict = BatchVerdictReducer().reduce(_problem(points=100), report)

        assert verdict.status == SubmissionStatusEnum.RUNTIME_ERROR
        assert verdict.score == 50
        assert verdict.error_message == "Segmentation fault"

    def test_zero_cases(self):
        report = ExecutionReport(backend="local", total_count=0, cases=[], passed_count=0)

        verdict = BatchVerdictReducer().reduce(_problem(), report)

        assert verdict.status == SubmissionStatusEnum.WRONG_ANSWER
        assert verdict.score == 0


def test_passthrough_reducer_accepts_with_flag():
    report = ExecutionReport(backend="passthrough", total_count=3, passed_count=3)

    verdict = PassthroughVerdictReducer().reduce(_problem(points=70), report)

    assert verdict.status == SubmissionStatusEnum.ACCEPTED
    assert verdict.score == 70
    assert verdict.judge_backend == "passthrough"
    assert "pass-through" in verdict.error_message


def test_format_wrong_answer_without_diff():
    assert format_wrong_answer(None) == "Your output did not match the expected output"
