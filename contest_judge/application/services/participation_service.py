"""
Participation service
Registration and the per-participant time window.

[Window rules]
- no participant row: auto-register as active, window = [now, now + duration]
- row exists but not active: activate with a fresh window
- window already over: end moves to now + duration (grace extension, the
  submission is not rejected)
- competition without a duration uses DEFAULT_COMPETITION_DURATION_MINUTES

Capacity is only advisory here; register() enforces it.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from contest_judge.core.clock import utcnow
from contest_judge.core.config import settings
from contest_judge.core.exceptions import CompetitionClosedError, CompetitionFullError
from contest_judge.infrastructure.persistence.models import (
    Competition,
    CompetitionParticipant,
    CompetitionStatusEnum,
    ParticipantStatusEnum,
)
from contest_judge.infrastructure.repositories.competition_repository import CompetitionRepository
from contest_judge.infrastructure.repositories.participant_repository import ParticipantRepository

logger = logging.getLogger(__name__)

REGISTRATION_OPEN_STATUSES = (CompetitionStatusEnum.UPCOMING, CompetitionStatusEnum.ONGOING)


@dataclass
class ParticipationWindow:
    participant: CompetitionParticipant
    start_time: datetime
    end_time: datetime
    duration_minutes: int


@dataclass
class RegistrationResult:
    participant: CompetitionParticipant
    already_registered: bool = False


class ParticipationService:
    """Participation window manager"""

    def __init__(
        self,
        db: AsyncSession,
        clock: Callable[[], datetime] = utcnow,
        default_duration_minutes: Optional[int] = None,
    ):
        """
        Args:
            db: SQLAlchemy async session; the caller commits
            clock: returns the current naive UTC time
            default_duration_minutes: used when a competition has no duration
        """
        self.db = db
        self.clock = clock
        self.default_duration_minutes = (
            default_duration_minutes or settings.DEFAULT_COMPETITION_DURATION_MINUTES
        )
        self.competitions = CompetitionRepository(db)
        self.participants = ParticipantRepository(db)

    def duration_of(self, competition: Competition) -> int:
        return competition.duration or self.default_duration_minutes

    async def ensure_active(self, competition: Competition, user_id: int) -> ParticipationWindow:
        """
        Make sure the user has an active participation with an open window

        Changes are flushed, not committed.

        Args:
            competition: competition row
            user_id: caller

        Returns:
            ParticipationWindow
        """
        now = self.clock()
        duration = self.duration_of(competition)
        window_end = now + timedelta(minutes=duration)

        participant = await self.participants.get_by_user(competition.id, user_id)

        if participant is None:
            if competition.current_participants >= competition.max_participants:
                logger.warning(
                    f"[Participation] Competition {competition.id} is over capacity "
                    f"({competition.current_participants}/{competition.max_participants}), "
                    f"auto-registering user {user_id} anyway"
                )

            inserted = await self.participants.insert_if_absent(
                competition_id=competition.id,
                user_id=user_id,
                status=ParticipantStatusEnum.ACTIVE,
                registration_time=now,
                start_time=now,
                end_time=window_end,
            )
            if inserted:
                await self.competitions.increment_participants(competition.id)
                logger.info(
                    f"[Participation] Auto-registered user {user_id} in competition {competition.id}"
                )

            # Lost the insert race: the other task's row is the participant
            participant = await self.participants.get_by_user(competition.id, user_id)
            if inserted:
                return ParticipationWindow(participant, participant.start_time, participant.end_time, duration)

        if participant.status != ParticipantStatusEnum.ACTIVE or participant.end_time is None:
            await self.participants.activate(participant, start_time=now, end_time=window_end)
            logger.info(
                f"[Participation] Activated participant {participant.id} - "
                f"window: {now.isoformat()} ~ {window_end.isoformat()}"
            )
        elif now > participant.end_time:
            logger.info(
                f"[Participation] Window of participant {participant.id} ended at "
                f"{participant.end_time.isoformat()}, extending to {window_end.isoformat()}"
            )
            await self.participants.extend_window(participant, end_time=window_end)

        return ParticipationWindow(participant, participant.start_time, participant.end_time, duration)

    async def register(self, competition: Competition, user_id: int) -> RegistrationResult:
        """
        Explicit registration

        Raises:
            CompetitionClosedError: competition already ended
            CompetitionFullError: capacity reached
        """
        existing = await self.participants.get_by_user(competition.id, user_id)
        if existing is not None:
            return RegistrationResult(participant=existing, already_registered=True)

        if competition.status not in REGISTRATION_OPEN_STATUSES:
            raise CompetitionClosedError("Registration is closed for this competition")

        if competition.current_participants >= competition.max_participants:
            raise CompetitionFullError("Competition has reached maximum participants")

        inserted = await self.participants.insert_if_absent(
            competition_id=competition.id,
            user_id=user_id,
            status=ParticipantStatusEnum.REGISTERED,
            registration_time=self.clock(),
        )
        if inserted:
            await self.competitions.increment_participants(competition.id)
        await self.db.commit()

        participant = await self.participants.get_by_user(competition.id, user_id)
        logger.info(f"[Participation] Registered user {user_id} in competition {competition.id}")
        return RegistrationResult(participant=participant, already_registered=not inserted)

    async def start(self, competition: Competition, user_id: int) -> ParticipationWindow:
        """Start (or resume) the user's competition and commit"""
        window = await self.ensure_active(competition, user_id)
        await self.db.commit()
        return window
