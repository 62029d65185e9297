"""
Competition API router
Registration, start, code submission, submission lookup and scoreboard.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from contest_judge.application.services.judging_service import JudgingService
from contest_judge.application.services.participation_service import ParticipationService
from contest_judge.core.exceptions import ClientError, CompetitionNotFoundError
from contest_judge.core.security import get_current_user_id, verify_api_key
from contest_judge.infrastructure.persistence.models import Competition
from contest_judge.infrastructure.persistence.session import get_db
from contest_judge.infrastructure.repositories.competition_repository import CompetitionRepository
from contest_judge.presentation.api.dependencies import get_judging_service
from contest_judge.presentation.schemas.common import ErrorResponse
from contest_judge.presentation.schemas.competition import (
    ProblemStandingResponse,
    RegisterResponse,
    ScoreboardEntryResponse,
    ScoreboardResponse,
    StartCompetitionResponse,
    SubmissionDetail,
    SubmitCodeRequest,
    SubmitCodeResponse,
)


router = APIRouter(
    prefix="/competitions",
    tags=["Competition"],
    dependencies=[Depends(verify_api_key)],
)
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    404: {"model": ErrorResponse, "description": "Not found"},
}


def _client_error(e: ClientError) -> HTTPException:
    return HTTPException(
        status_code=e.status_code,
        detail={
            "error": True,
            "error_code": e.error_code,
            "error_message": e.message,
        },
    )


def _internal_error(message: str, e: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": True,
            "error_code": "INTERNAL_ERROR",
            "error_message": f"{message}: {str(e)}",
        },
    )


async def _load_competition(db: AsyncSession, competition_id: int) -> Competition:
    competition = await CompetitionRepository(db).get_competition(competition_id)
    if competition is None:
        raise CompetitionNotFoundError("Competition not found")
    return competition


@router.post(
    "/{competition_id}/register",
    response_model=RegisterResponse,
    responses=ERROR_RESPONSES,
    summary="Register for a competition",
)
async def register(
    competition_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> RegisterResponse:
    """Register the caller. Registering twice is not an error."""
    try:
        competition = await _load_competition(db, competition_id)
        result = await ParticipationService(db).register(competition, user_id)
    except ClientError as e:
        logger.info(f"[Register] Rejected - competition: {competition_id}, user: {user_id}, reason: {e.message}")
        raise _client_error(e)
    except Exception as e:
        logger.error(f"[Register] Registration failed: {str(e)}", exc_info=True)
        raise _internal_error("Registration failed", e)

    if result.already_registered:
        return RegisterResponse(
            success=True,
            message="Already registered for this competition",
            alreadyRegistered=True,
        )
    return RegisterResponse(success=True, message="Successfully registered for competition")


@router.post(
    "/{competition_id}/start",
    response_model=StartCompetitionResponse,
    responses=ERROR_RESPONSES,
    summary="Start the caller's competition window",
    description="""
    Opens (or reopens) the caller's participation window.

    - Unregistered callers are registered on the fly
    - An expired window is extended to now + duration
    """,
)
async def start_competition(
    competition_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> StartCompetitionResponse:
    try:
        competition = await _load_competition(db, competition_id)
        window = await ParticipationService(db).start(competition, user_id)
    except ClientError as e:
        raise _client_error(e)
    except Exception as e:
        logger.error(f"[Start] Failed to start competition: {str(e)}", exc_info=True)
        raise _internal_error("Failed to start competition", e)

    return StartCompetitionResponse(
        startTime=window.start_time.isoformat(),
        endTime=window.end_time.isoformat(),
        duration=window.duration_minutes,
    )


@router.post(
    "/{competition_id}/problems/{problem_id}/submit",
    response_model=SubmitCodeResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses=ERROR_RESPONSES,
    summary="Submit code",
    description="""
    Stores the submission as pending and returns immediately.
    Poll GET /competitions/submissions/{submission_id} for the verdict.
    """,
)
async def submit_code(
    competition_id: int,
    problem_id: int,
    request: SubmitCodeRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    judging_service: JudgingService = Depends(get_judging_service),
) -> SubmitCodeResponse:
    try:
        receipt = await judging_service.submit(
            db,
            competition_id=competition_id,
            problem_id=problem_id,
            user_id=user_id,
            source_code=request.sourceCode,
            language=request.language,
        )
    except ClientError as e:
        logger.info(f"[Submit] Rejected - competition: {competition_id}, problem: {problem_id}, reason: {e.message}")
        raise _client_error(e)
    except Exception as e:
        logger.error(f"[Submit] Submission failed: {str(e)}", exc_info=True)
        raise _internal_error("Submission failed", e)

    return SubmitCodeResponse(
        submissionId=receipt.submission_id,
        status=receipt.status,
        language=receipt.language,
        submittedAt=receipt.submitted_at.isoformat(),
    )


@router.get(
    "/submissions/{submission_id}",
    response_model=SubmissionDetail,
    responses={**ERROR_RESPONSES, 403: {"model": ErrorResponse, "description": "Not your submission"}},
    summary="Get a submission",
)
async def get_submission(
    submission_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    judging_service: JudgingService = Depends(get_judging_service),
) -> SubmissionDetail:
    try:
        submission = await judging_service.get_submission(db, submission_id, user_id)
    except ClientError as e:
        raise _client_error(e)

    return SubmissionDetail.from_model(submission)


@router.get(
    "/{competition_id}/scoreboard",
    response_model=ScoreboardResponse,
    responses=ERROR_RESPONSES,
    summary="Competition scoreboard",
)
async def get_scoreboard(
    competition_id: int,
    db: AsyncSession = Depends(get_db),
    judging_service: JudgingService = Depends(get_judging_service),
) -> ScoreboardResponse:
    try:
        entries = await judging_service.get_scoreboard(db, competition_id)
    except ClientError as e:
        raise _client_error(e)

    return ScoreboardResponse(
        competitionId=competition_id,
        entries=[
            ScoreboardEntryResponse(
                rank=entry.rank,
                participantId=entry.participant_id,
                userId=entry.user_id,
                score=entry.score,
                totalProblemsSolved=entry.total_problems_solved,
                totalProblemsAttempted=entry.total_problems_attempted,
                endTime=entry.end_time.isoformat() if entry.end_time else None,
                problems={
                    problem_id: ProblemStandingResponse(
                        problemId=standing.problem_id,
                        attempts=standing.attempts,
                        bestScore=standing.best_score,
                        solved=standing.solved,
                        solvedSubmissionId=standing.solved_submission_id,
                    )
                    for problem_id, standing in entry.problems.items()
                },
            )
            for entry in entries
        ],
    )


@router.get(
    "/{competition_id}/my-submissions",
    response_model=List[SubmissionDetail],
    responses=ERROR_RESPONSES,
    summary="Caller's submissions",
)
async def list_my_submissions(
    competition_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    judging_service: JudgingService = Depends(get_judging_service),
) -> List[SubmissionDetail]:
    try:
        submissions = await judging_service.list_participant_submissions(db, competition_id, user_id)
    except ClientError as e:
        raise _client_error(e)

    return [SubmissionDetail.from_model(s) for s in submissions]
