"""
Exception hierarchy

ClientError subclasses are rejected synchronously by the API before any
submission row exists. JudgeInfrastructureError subclasses are raised by the
judge clients and converted into runtime_error verdicts by the backends.
"""
from typing import Optional


class ContestJudgeError(Exception):
    """Base error"""


class ClientError(ContestJudgeError):
    """Request that can never succeed as sent"""

    status_code: int = 400
    error_code: str = "BAD_REQUEST"

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code


class InvalidSubmissionError(ClientError):
    error_code = "INVALID_SUBMISSION"


class UnsupportedLanguageError(ClientError):
    error_code = "UNSUPPORTED_LANGUAGE"


class CompetitionNotFoundError(ClientError):
    status_code = 404
    error_code = "COMPETITION_NOT_FOUND"


class ProblemNotFoundError(ClientError):
    status_code = 404
    error_code = "PROBLEM_NOT_FOUND"


class SubmissionNotFoundError(ClientError):
    status_code = 404
    error_code = "SUBMISSION_NOT_FOUND"


class CompetitionClosedError(ClientError):
    error_code = "COMPETITION_CLOSED"


class CompetitionFullError(ClientError):
    error_code = "COMPETITION_FULL"


class ForbiddenError(ClientError):
    status_code = 403
    error_code = "FORBIDDEN"


class JudgeInfrastructureError(ContestJudgeError):
    """Judge service unreachable or answered with something unusable"""


class Judge0Error(JudgeInfrastructureError):
    pass


class ExecutionServiceError(JudgeInfrastructureError):
    pass
