"""
Competition API schemas
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from contest_judge.infrastructure.persistence.models import CompetitionSubmission


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class RegisterResponse(BaseModel):
    """Registration result"""
    success: bool = Field(True, description="Registration succeeded")
    message: str = Field(..., description="Result message")
    alreadyRegistered: bool = Field(False, description="User was already registered")


class StartCompetitionResponse(BaseModel):
    """Participation window"""
    startTime: str = Field(..., description="Window start (ISO 8601, UTC)")
    endTime: str = Field(..., description="Window end (ISO 8601, UTC)")
    duration: int = Field(..., description="Window length in minutes")


class SubmitCodeRequest(BaseModel):
    """Code submission"""
    sourceCode: str = Field(..., description="Source code")
    language: str = Field(..., description="Language name or alias (python, cpp, js, ...)")


class SubmitCodeResponse(BaseModel):
    """Accepted submission, judged in the background"""
    submissionId: int = Field(..., description="Submission ID")
    status: str = Field("pending", description="Submission status")
    language: str = Field(..., description="Normalized language")
    submittedAt: str = Field(..., description="Submission time (ISO 8601, UTC)")


class SubmissionDetail(BaseModel):
    """Submission with its verdict once judged"""
    id: int
    problemId: int
    language: str
    status: str
    score: int = 0
    executionTimeMs: int = 0
    memoryUsedKb: int = 0
    errorMessage: Optional[str] = None
    judgeBackend: Optional[str] = None
    submittedAt: Optional[str] = None
    judgedAt: Optional[str] = None
    sourceCode: Optional[str] = Field(None, description="Only returned once the submission is judged")

    @classmethod
    def from_model(cls, submission: CompetitionSubmission) -> "SubmissionDetail":
        judged = submission.status.is_terminal
        return cls(
            id=submission.id,
            problemId=submission.problem_id,
            language=submission.language,
            status=submission.status.value,
            score=submission.score,
            executionTimeMs=submission.execution_time_ms,
            memoryUsedKb=submission.memory_used_kb,
            errorMessage=submission.error_message if judged else None,
            judgeBackend=submission.judge_backend,
            submittedAt=_iso(submission.submitted_at),
            judgedAt=_iso(submission.judged_at),
            sourceCode=submission.source_code if judged else None,
        )


class ProblemStandingResponse(BaseModel):
    problemId: int
    attempts: int = 0
    bestScore: int = 0
    solved: bool = False
    solvedSubmissionId: Optional[int] = None


class ScoreboardEntryResponse(BaseModel):
    rank: int
    participantId: int
    userId: int
    score: int
    totalProblemsSolved: int
    totalProblemsAttempted: int
    endTime: Optional[str] = None
    problems: Dict[int, ProblemStandingResponse] = Field(default_factory=dict)


class ScoreboardResponse(BaseModel):
    competitionId: int
    entries: List[ScoreboardEntryResponse] = Field(default_factory=list)
