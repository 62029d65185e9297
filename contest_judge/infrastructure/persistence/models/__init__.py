# ORM models

from contest_judge.infrastructure.persistence.models.enums import (
    IN_FLIGHT_STATUSES,
    CompetitionStatusEnum,
    ParticipantStatusEnum,
    SubmissionStatusEnum,
)
from contest_judge.infrastructure.persistence.models.competitions import (
    Competition,
    CompetitionProblem,
    CompetitionParticipant,
    CompetitionSubmission,
    ParticipantProblemProgress,
)

__all__ = [
    # Enums
    "IN_FLIGHT_STATUSES",
    "CompetitionStatusEnum",
    "ParticipantStatusEnum",
    "SubmissionStatusEnum",
    # Models
    "Competition",
    "CompetitionProblem",
    "CompetitionParticipant",
    "CompetitionSubmission",
    "ParticipantProblemProgress",
]
