from contest_judge.infrastructure.repositories.competition_repository import CompetitionRepository
from contest_judge.infrastructure.repositories.participant_repository import ParticipantRepository
from contest_judge.infrastructure.repositories.submission_repository import SubmissionRepository

__all__ = [
    "CompetitionRepository",
    "ParticipantRepository",
    "SubmissionRepository",
]
