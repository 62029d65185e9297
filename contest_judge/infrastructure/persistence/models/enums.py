"""
Status enums shared by the ORM models and the judging domain
"""
import enum


class CompetitionStatusEnum(str, enum.Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    ENDED = "ended"


class ParticipantStatusEnum(str, enum.Enum):
    REGISTERED = "registered"
    ACTIVE = "active"
    COMPLETED = "completed"


class SubmissionStatusEnum(str, enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    ACCEPTED = "accepted"
    WRONG_ANSWER = "wrong_answer"
    COMPILATION_ERROR = "compilation_error"
    RUNTIME_ERROR = "runtime_error"
    TIME_LIMIT_EXCEEDED = "time_limit_exceeded"
    MEMORY_LIMIT_EXCEEDED = "memory_limit_exceeded"

    @property
    def is_terminal(self) -> bool:
        return self not in (SubmissionStatusEnum.PENDING, SubmissionStatusEnum.RUNNING)


IN_FLIGHT_STATUSES = (SubmissionStatusEnum.PENDING, SubmissionStatusEnum.RUNNING)
