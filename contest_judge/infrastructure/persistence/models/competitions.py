"""
Competition tables
competitions, competition_problems, competition_participants,
competition_submissions, participant_problem_progress
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from contest_judge.core.clock import utcnow
from contest_judge.infrastructure.persistence.session import Base
from contest_judge.infrastructure.persistence.models.enums import (
    CompetitionStatusEnum,
    ParticipantStatusEnum,
    SubmissionStatusEnum,
)

# SQLite only autoincrements INTEGER primary keys
PK = BigInteger().with_variant(Integer(), "sqlite")


def _enum_column(enum_cls, name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
    )


class Competition(Base):
    """Competition table"""
    __tablename__ = "competitions"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    status: Mapped[CompetitionStatusEnum] = mapped_column(
        _enum_column(CompetitionStatusEnum, "competition_status_enum"),
        nullable=False,
        default=CompetitionStatusEnum.UPCOMING,
    )
    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # minutes
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    current_participants: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    problems: Mapped[List["CompetitionProblem"]] = relationship(
        "CompetitionProblem",
        back_populates="competition",
        order_by="CompetitionProblem.points",
    )


class CompetitionProblem(Base):
    """Competition problem table (test cases stored as JSON lists)"""
    __tablename__ = "competition_problems"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    competition_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("competitions.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    time_limit: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # seconds
    memory_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # MB
    test_cases_visible: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    test_cases_hidden: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    competition: Mapped["Competition"] = relationship(
        "Competition", back_populates="problems"
    )


class CompetitionParticipant(Base):
    """Competition participant table"""
    __tablename__ = "competition_participants"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    competition_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("competitions.id"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[ParticipantStatusEnum] = mapped_column(
        _enum_column(ParticipantStatusEnum, "participant_status_enum"),
        nullable=False,
        default=ParticipantStatusEnum.REGISTERED,
    )
    registration_time: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    start_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_problems_solved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_problems_attempted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("competition_id", "user_id", name="competition_participants_user_unique"),
    )


class CompetitionSubmission(Base):
    """Competition submission table"""
    __tablename__ = "competition_submissions"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    problem_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("competition_problems.id"), nullable=False
    )
    participant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("competition_participants.id"), nullable=False, index=True
    )
    source_code: Mapped[str] = mapped_column(Text, nullable=False)
    language: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[SubmissionStatusEnum] = mapped_column(
        _enum_column(SubmissionStatusEnum, "submission_status_enum"),
        nullable=False,
        default=SubmissionStatusEnum.PENDING,
    )
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    execution_time_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    memory_used_kb: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    judge_backend: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    # Set by mark_running; stale running rows are re-queued at startup
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    judged_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class ParticipantProblemProgress(Base):
    """
    Per (participant, problem) progress

    The row is created by the first judged submission of the pair and
    solved_submission_id is set once, by a conditional UPDATE, when the
    first accepted submission is recorded.
    """
    __tablename__ = "participant_problem_progress"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    participant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("competition_participants.id"), nullable=False
    )
    problem_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("competition_problems.id"), nullable=False
    )
    first_attempted_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    solved_submission_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("competition_submissions.id"), nullable=True
    )
    solved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("participant_id", "problem_id", name="participant_problem_progress_unique"),
    )
