"""
Queue sessions and the queue-entry state machine.

An entry always starts `waiting`. Match creation moves it to `playing`
and match completion moves it back to `waiting` (see match_lifecycle);
operators may set any status directly through `update_entry`, including
`left` and the terminal `done` label. Removal is a hard delete.
"""
import logging
from dataclasses import dataclass
from datetime import date, time
from typing import Dict, List, Optional, Union

from sqlmodel import Session

from courtqueue.errors import NotFoundError, ValidationError
from courtqueue.models.queue_entry import (
    ENTRY_STATUSES,
    ENTRY_WAITING,
    MAX_LEVEL,
    MIN_LEVEL,
    QueueEntry,
)
from courtqueue.models.queue_session import (
    SESSION_STATUS_ORDER,
    SESSION_UPCOMING,
    QueueSession,
)
from courtqueue.repositories import (
    QueueEntryRepository,
    QueueMatchRepository,
    QueueSessionRepository,
)
from courtqueue.utils import clock

logger = logging.getLogger(__name__)

DEFAULT_USER_LEVEL = 3.0


@dataclass(frozen=True)
class RegisteredUser:
    """A participant with an account; name/level come from their profile."""

    user_id: int
    name: str = ""
    level: Optional[float] = None


@dataclass(frozen=True)
class Guest:
    """A walk-in participant without an account."""

    name: str
    level: float


Participant = Union[RegisteredUser, Guest]


def _validate_level(level: float) -> float:
    try:
        value = float(level)
    except (TypeError, ValueError):
        raise ValidationError("Level must be a number.")
    if not MIN_LEVEL <= value <= MAX_LEVEL:
        raise ValidationError(f"Level must be between {MIN_LEVEL} and {MAX_LEVEL}.")
    return value


# ============================================================================
# Sessions
# ============================================================================


def create_session(
    session: Session,
    owner_id: int,
    day: date,
    start_time: time,
    end_time: Optional[time] = None,
) -> QueueSession:
    if end_time is not None and end_time <= start_time:
        raise ValidationError("End time must be after start time.")

    queue_session = QueueSessionRepository(session).add(
        QueueSession(
            owner_id=owner_id,
            day_date=day,
            start_time=start_time,
            end_time=end_time,
            status=SESSION_UPCOMING,
        )
    )
    session.commit()
    session.refresh(queue_session)
    logger.info("Queue session %d created for owner %d on %s", queue_session.id, owner_id, day)
    return queue_session


def get_session(session: Session, session_id: int) -> QueueSession:
    queue_session = QueueSessionRepository(session).get(session_id)
    if not queue_session:
        raise NotFoundError("Queue session not found")
    return queue_session


def list_sessions(session: Session, owner_id: Optional[int] = None) -> List[QueueSession]:
    return QueueSessionRepository(session).list_sessions(owner_id)


def update_session(
    session: Session,
    session_id: int,
    status: Optional[str] = None,
    end_time: Optional[time] = None,
) -> QueueSession:
    """Move the session forward (upcoming -> active -> ended) and/or set its end time."""
    queue_session = get_session(session, session_id)

    if status is not None:
        if status not in SESSION_STATUS_ORDER:
            raise ValidationError(f"Invalid session status: {status}")
        current_rank = SESSION_STATUS_ORDER.index(queue_session.status)
        if SESSION_STATUS_ORDER.index(status) < current_rank:
            raise ValidationError(f"Cannot move session from {queue_session.status} back to {status}")
        queue_session.status = status

    if end_time is not None:
        if end_time <= queue_session.start_time:
            raise ValidationError("End time must be after start time.")
        queue_session.end_time = end_time

    session.add(queue_session)
    session.commit()
    session.refresh(queue_session)
    return queue_session


# ============================================================================
# Entries
# ============================================================================


def add_entry(
    session: Session,
    session_id: int,
    participant: Participant,
    phone: Optional[str] = None,
    notes: Optional[str] = None,
) -> QueueEntry:
    """Put a registered user or a guest at the back of the queue."""
    get_session(session, session_id)

    if isinstance(participant, RegisteredUser):
        level = participant.level if participant.level is not None else DEFAULT_USER_LEVEL
        entry = QueueEntry(
            session_id=session_id,
            user_id=participant.user_id,
            display_name=participant.name or "",
            level=_validate_level(level),
        )
    elif isinstance(participant, Guest):
        name = (participant.name or "").strip()
        if not name:
            raise ValidationError("Guest name is required.")
        entry = QueueEntry(
            session_id=session_id,
            guest_name=name,
            display_name=name,
            level=_validate_level(participant.level),
        )
    else:
        raise ValidationError("Provide either user_id or both guest_name and level.")

    entry.phone = phone
    entry.notes = notes
    entry.status = ENTRY_WAITING
    entry.games_played = 0
    entry.joined_at = clock.utcnow()

    QueueEntryRepository(session).add(entry)
    session.commit()
    session.refresh(entry)
    logger.info("Entry %d joined session %d (level %.1f)", entry.id, session_id, entry.level)
    return entry


def get_entry(session: Session, entry_id: int) -> QueueEntry:
    entry = QueueEntryRepository(session).get(entry_id)
    if not entry:
        raise NotFoundError("Queue entry not found")
    return entry


def list_entries(session: Session, session_id: int) -> List[QueueEntry]:
    get_session(session, session_id)
    return QueueEntryRepository(session).list_for_session(session_id)


def update_entry(session: Session, entry_id: int, patch: Dict) -> QueueEntry:
    """
    Operator edit of status/level/phone/notes. Keys absent from `patch` are
    left alone; unknown keys are rejected.
    """
    allowed = {"status", "level", "phone", "notes"}
    unknown = set(patch) - allowed
    if unknown:
        raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    entry = get_entry(session, entry_id)

    if "status" in patch:
        status = patch["status"]
        if status not in ENTRY_STATUSES:
            raise ValidationError(f"Invalid entry status: {status}")
        entry.status = status
    if "level" in patch:
        entry.level = _validate_level(patch["level"])
    if "phone" in patch:
        entry.phone = patch["phone"]
    if "notes" in patch:
        entry.notes = patch["notes"]

    session.add(entry)
    session.commit()
    session.refresh(entry)
    return entry


def remove_entry(session: Session, entry_id: int) -> None:
    """Hard-delete an entry whatever its status, with its match-player rows."""
    entry = get_entry(session, entry_id)
    session_id = entry.session_id
    for player in QueueMatchRepository(session).players_for_entry(entry_id):
        session.delete(player)
    QueueEntryRepository(session).delete(entry)
    session.commit()
    logger.info("Entry %d removed from session %d", entry_id, session_id)
