"""
Match Lifecycle Manager: assign 4 waiting entries to a free court and
complete the match afterwards.

Invariants held by this module:
- a court has at most one active match per queue session
  (re-checked in the transaction; the partial unique index
  uq_queuematch_active_session_court backs it up)
- an entry is in at most one active match (entries move waiting -> playing
  through a conditional UPDATE; anything other than 4 moved rows aborts)
- completion flips the match and resets all 4 entries in one commit,
  exactly once
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from courtqueue.errors import (
    CourtUnavailableError,
    EntriesNotWaitingError,
    InvalidTeamError,
    MatchNotActiveError,
    NotFoundError,
    ValidationError,
)
from courtqueue.models.court import Court
from courtqueue.models.queue_entry import ENTRY_WAITING
from courtqueue.models.queue_match import (
    ACTIVE_MATCH_INDEX,
    MATCH_ACTIVE,
    TEAM_A,
    TEAM_B,
    QueueMatch,
    QueueMatchPlayer,
)
from courtqueue.models.queue_session import QueueSession
from courtqueue.repositories import CourtRepository, QueueEntryRepository, QueueMatchRepository
from courtqueue.services.queue_service import get_session, list_entries
from courtqueue.utils import clock

logger = logging.getLogger(__name__)

TEAM_SIZE = 2


# ============================================================================
# Court availability within a session
# ============================================================================


def is_court_available(session: Session, queue_session: QueueSession, court_id: int) -> bool:
    """Court belongs to the session owner, is playable, and has no active match here."""
    court = CourtRepository(session).get(court_id)
    if court is None or court.owner_id != queue_session.owner_id or not court.is_open_for_play:
        return False
    return QueueMatchRepository(session).active_for_court(queue_session.id, court_id) is None


def available_courts(session: Session, session_id: int) -> List[Court]:
    queue_session = get_session(session, session_id)
    busy = set(QueueMatchRepository(session).busy_court_ids(session_id))
    courts = CourtRepository(session).list_for_owner(queue_session.owner_id, playable_only=True)
    return [c for c in courts if c.id not in busy]


@dataclass
class CourtStatus:
    court_id: int
    name: str
    status: str  # "available" | "in-use"
    match_id: Optional[int] = None
    team_a: List[str] = field(default_factory=list)
    team_b: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        match = None
        if self.match_id is not None:
            match = {
                "id": self.match_id,
                "players": self.team_a + self.team_b,
                "teamA": self.team_a,
                "teamB": self.team_b,
            }
        return {"id": self.court_id, "name": self.name, "status": self.status, "match": match}


def _team_names(session: Session, match_id: int) -> Dict[str, List[str]]:
    teams: Dict[str, List[str]] = {TEAM_A: [], TEAM_B: []}
    entries = QueueEntryRepository(session)
    for player in QueueMatchRepository(session).players(match_id):
        entry = entries.get(player.queue_entry_id)
        if entry is None:
            continue
        name = entry.display_name or entry.guest_name or ""
        if name:
            teams[player.team].append(name)
    return teams


def court_board(session: Session, session_id: int) -> List[CourtStatus]:
    """Every playable court of the session owner with its current occupancy."""
    queue_session = get_session(session, session_id)
    courts = CourtRepository(session).list_for_owner(queue_session.owner_id, playable_only=True)
    active = {m.court_id: m for m in QueueMatchRepository(session).active_for_session(session_id)}

    board = []
    for court in courts:
        match = active.get(court.id)
        if match is None:
            board.append(CourtStatus(court_id=court.id, name=court.name, status="available"))
            continue
        teams = _team_names(session, match.id)
        board.append(
            CourtStatus(
                court_id=court.id,
                name=court.name,
                status="in-use",
                match_id=match.id,
                team_a=teams[TEAM_A],
                team_b=teams[TEAM_B],
            )
        )
    return board


# ============================================================================
# Create
# ============================================================================


def _validate_teams(team_a: Sequence[int], team_b: Sequence[int]) -> None:
    if len(team_a) != TEAM_SIZE or len(team_b) != TEAM_SIZE:
        raise InvalidTeamError("Both Team A and Team B must have exactly 2 players.")
    if len(set(team_a) | set(team_b)) != TEAM_SIZE * 2:
        raise InvalidTeamError("All 4 players must be unique.")


def _court_taken(session: Session, exc: IntegrityError, session_id: int, court_id: int) -> bool:
    """
    Whether a failed insert collided with another active match on the court.

    Drivers that report the violated constraint (psycopg) are matched on
    ACTIVE_MATCH_INDEX; otherwise the court is re-read after the rollback.
    """
    diag = getattr(exc.orig, "diag", None)
    if getattr(diag, "constraint_name", None) == ACTIVE_MATCH_INDEX:
        return True
    return court_id in QueueMatchRepository(session).busy_court_ids(session_id)


def create_match(
    session: Session,
    session_id: int,
    court_id: int,
    team_a: Sequence[int],
    team_b: Sequence[int],
) -> QueueMatch:
    """
    Start a doubles match on a court with explicit teams.

    Raises:
        CourtUnavailableError: court not owned/playable, or already has an active match
        InvalidTeamError: teams are not 2 + 2 unique entry ids
        EntriesNotWaitingError: an entry is missing, in another session, or not waiting
    """
    queue_session = get_session(session, session_id)
    if not is_court_available(session, queue_session, court_id):
        raise CourtUnavailableError()

    team_a = list(team_a)
    team_b = list(team_b)
    _validate_teams(team_a, team_b)

    entry_ids = team_a + team_b
    found = QueueEntryRepository(session).in_session(session_id, entry_ids)
    if len(found) != len(entry_ids) or any(e.status != ENTRY_WAITING for e in found):
        raise EntriesNotWaitingError()

    matches = QueueMatchRepository(session)
    try:
        # Re-check inside the transaction that inserts the match
        if matches.active_for_court(session_id, court_id) is not None:
            raise CourtUnavailableError()

        moved = QueueEntryRepository(session).mark_playing(session_id, entry_ids)
        if moved != len(entry_ids):
            raise EntriesNotWaitingError()

        match = matches.add(
            QueueMatch(
                session_id=session_id,
                court_id=court_id,
                status=MATCH_ACTIVE,
                start_time=clock.utcnow(),
            )
        )
        session.flush()

        for entry_id in team_a:
            matches.add_player(QueueMatchPlayer(match_id=match.id, queue_entry_id=entry_id, team=TEAM_A))
        for entry_id in team_b:
            matches.add_player(QueueMatchPlayer(match_id=match.id, queue_entry_id=entry_id, team=TEAM_B))

        session.commit()
    except (CourtUnavailableError, EntriesNotWaitingError):
        session.rollback()
        logger.warning("Match creation lost a race: session %d court %d entries %s", session_id, court_id, entry_ids)
        raise
    except IntegrityError as exc:
        session.rollback()
        if _court_taken(session, exc, session_id, court_id):
            logger.warning("Court %d already taken in session %d", court_id, session_id)
            raise CourtUnavailableError()
        raise InvalidTeamError(f"Could not assign players: {exc.orig}")
    except Exception:
        session.rollback()
        raise

    session.refresh(match)
    logger.info(
        "Match %d started on court %d (session %d): A=%s B=%s",
        match.id,
        court_id,
        session_id,
        team_a,
        team_b,
    )
    return match


def create_match_from_entries(
    session: Session,
    session_id: int,
    court_id: int,
    entry_ids: Sequence[int],
) -> QueueMatch:
    """Flat list of 4 entry ids: first two play as Team A, last two as Team B."""
    entry_ids = list(entry_ids)
    if len(entry_ids) != TEAM_SIZE * 2 or len(set(entry_ids)) != TEAM_SIZE * 2:
        raise InvalidTeamError("Exactly 4 unique queue_entry_ids are required.")
    return create_match(session, session_id, court_id, entry_ids[:TEAM_SIZE], entry_ids[TEAM_SIZE:])


# ============================================================================
# Complete
# ============================================================================


def get_match(session: Session, match_id: int) -> QueueMatch:
    match = QueueMatchRepository(session).get(match_id)
    if not match:
        raise NotFoundError("Match not found")
    return match


def match_players(session: Session, match_id: int) -> List[QueueMatchPlayer]:
    return QueueMatchRepository(session).players(match_id)


def complete_match(session: Session, match_id: int, shuttlecocks_used: Optional[int] = None) -> QueueMatch:
    """
    Finish an active match: every player gets one more game and goes back
    to waiting. A second call raises MatchNotActiveError and changes nothing.
    """
    match = get_match(session, match_id)
    if match.status != MATCH_ACTIVE:
        raise MatchNotActiveError()
    if shuttlecocks_used is not None and shuttlecocks_used < 0:
        raise ValidationError("Shuttlecocks used cannot be negative.")

    matches = QueueMatchRepository(session)
    try:
        closed = matches.close(match_id, clock.utcnow(), shuttlecocks_used)
        if closed != 1:
            raise MatchNotActiveError()

        entry_ids = [p.queue_entry_id for p in matches.players(match_id)]
        if entry_ids:
            QueueEntryRepository(session).finish_game(entry_ids)

        session.commit()
    except MatchNotActiveError:
        session.rollback()
        logger.warning("Match %d was completed concurrently", match_id)
        raise
    except Exception:
        session.rollback()
        raise

    session.refresh(match)
    logger.info(
        "Match %d completed on court %d (shuttlecocks used: %s)",
        match_id,
        match.court_id,
        shuttlecocks_used,
    )
    return match


# ============================================================================
# Session detail
# ============================================================================


def session_detail(session: Session, session_id: int) -> Dict:
    """Session with entries (arrival order), active matches and completed count."""
    queue_session = get_session(session, session_id)
    matches = QueueMatchRepository(session)
    active = []
    for match in matches.active_for_session(session_id):
        active.append({"match": match, "players": matches.players(match.id)})
    return {
        "session": queue_session,
        "entries": list_entries(session, session_id),
        "active_matches": active,
        "completed_matches_count": matches.completed_count(session_id),
    }
