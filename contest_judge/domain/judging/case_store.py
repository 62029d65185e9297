"""
Test case loading
Builds the ordered test case list (visible first, then hidden) and the
resource limits for a problem row.
"""
import json
import logging
from typing import Any, List, Optional

from contest_judge.domain.judging.models import ResourceLimits, TestCase

logger = logging.getLogger(__name__)

DEFAULT_TIME_LIMIT = 2.0  # seconds
DEFAULT_MEMORY_LIMIT = 128  # MB


def _first_present(data: dict, *keys: str) -> str:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return str(value)
    return ""


def parse_test_cases(raw: Any, is_hidden: bool, problem_id: Optional[int] = None) -> List[TestCase]:
    """
    Parse one stored test case list

    Accepts a list of dicts or its JSON text. Keys may be input/output,
    Input/Output or input/expected. Unparseable data is logged and skipped.
    """
    if raw is None or raw == "":
        return []

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            logger.error(f"[TestCases] Invalid test case JSON - problem_id: {problem_id}, error: {e}")
            return []

    if not isinstance(raw, list):
        logger.error(f"[TestCases] Test cases are not a list - problem_id: {problem_id}")
        return []

    cases = []
    for item in raw:
        if not isinstance(item, dict):
            logger.warning(f"[TestCases] Skipping malformed test case - problem_id: {problem_id}")
            continue
        cases.append(
            TestCase(
                input=_first_present(item, "input", "Input", "stdin"),
                output=_first_present(item, "output", "Output", "expected", "expectedOutput"),
                is_hidden=is_hidden,
            )
        )
    return cases


def load_test_cases(problem) -> List[TestCase]:
    """
    All test cases of a problem

    A problem with no test cases gets a single empty case so the submission
    still runs once.
    """
    cases = parse_test_cases(problem.test_cases_visible, is_hidden=False, problem_id=problem.id)
    cases += parse_test_cases(problem.test_cases_hidden, is_hidden=True, problem_id=problem.id)

    if not cases:
        logger.warning(f"[TestCases] No test cases found for problem {problem.id}, using a default empty case")
        cases = [TestCase(input="", output="", is_hidden=False)]

    return cases


def load_limits(problem) -> ResourceLimits:
    return ResourceLimits(
        time_limit=problem.time_limit or DEFAULT_TIME_LIMIT,
        memory_limit=problem.memory_limit or DEFAULT_MEMORY_LIMIT,
    )
