"""
Judge backend interface
"""
from abc import ABC, abstractmethod
from typing import List

from contest_judge.domain.judging.models import ExecutionReport, ResourceLimits, TestCase
from contest_judge.domain.judging.reducer import VerdictReducer


class JudgeBackend(ABC):
    """
    Runs a submission against its test cases

    Each backend owns the reducer that understands its report, so the
    scoring rules travel with the backend that was selected.
    """

    name: str = "base"
    reducer: VerdictReducer

    @abstractmethod
    def validate_language(self, language: str) -> str:
        """
        Check that this backend can run the language

        Returns:
            normalized language name

        Raises:
            UnsupportedLanguageError
        """
        pass

    @abstractmethod
    async def execute(
        self,
        source_code: str,
        language: str,
        test_cases: List[TestCase],
        limits: ResourceLimits,
    ) -> ExecutionReport:
        """
        Run the submission

        Infrastructure failures never propagate: they come back as
        runtime_error cases in the report.
        """
        pass

    async def close(self):
        """Release HTTP clients"""
        pass
