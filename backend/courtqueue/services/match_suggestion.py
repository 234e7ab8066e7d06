"""
Match Suggestion Engine: pick 4 waiting players for a balanced doubles game.

Candidates are ordered by fewest games played, then earliest arrival. A
group of four is balanced when all players share one skill bracket, or
when the best of the three possible 2v2 splits keeps the team averages
within BALANCE_TOLERANCE of each other.

Search is first-hit, not optimal:
  1. consecutive windows of 4 in candidate order
  2. every 4-combination in ascending index order (i < j < k < l)
The combination pass is O(N^4) in the number of waiting players, which is
fine for walk-in queue sizes.

Suggestions are advisory. Match creation re-checks every entry inside its
own transaction.
"""
import logging
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, Iterator, List, Optional, Protocol, Sequence, Tuple

from sqlmodel import Session

from courtqueue.errors import CourtUnavailableError
from courtqueue.models.queue_entry import QueueEntry
from courtqueue.models.queue_match import TEAM_A, TEAM_B
from courtqueue.repositories import QueueEntryRepository
from courtqueue.services.match_lifecycle import is_court_available
from courtqueue.services.queue_service import get_session

logger = logging.getLogger(__name__)

GROUP_SIZE = 4
BALANCE_TOLERANCE = 0.5

BRACKET_BEGINNER = "beginner"
BRACKET_INTERMEDIATE = "intermediate"
BRACKET_ADVANCED = "advanced"

# The three ways to split positions 0..3 into two pairs
PAIRINGS: Tuple[Tuple[Tuple[int, int], Tuple[int, int]], ...] = (
    ((0, 1), (2, 3)),
    ((0, 2), (1, 3)),
    ((0, 3), (1, 2)),
)


class Candidate(Protocol):
    id: Optional[int]
    level: float
    games_played: int


@dataclass(frozen=True)
class Pairing:
    team_a: Tuple[Candidate, Candidate]
    team_b: Tuple[Candidate, Candidate]
    diff: float

    @property
    def ordered(self) -> List[Candidate]:
        return [*self.team_a, *self.team_b]


@dataclass(frozen=True)
class SuggestedPlayer:
    entry_id: int
    level: float
    name: str
    team: str

    def to_dict(self) -> Dict:
        return {
            "queue_entry_id": self.entry_id,
            "level": self.level,
            "name": self.name,
            "team": self.team,
        }


def bracket_for(level: float) -> str:
    if level <= 2.5:
        return BRACKET_BEGINNER
    if level <= 4.5:
        return BRACKET_INTERMEDIATE
    return BRACKET_ADVANCED


def best_pairing(group: Sequence[Candidate]) -> Pairing:
    """Split with the smallest gap between team averages; earliest split wins ties."""
    if len(group) != GROUP_SIZE:
        raise ValueError(f"A doubles group needs exactly {GROUP_SIZE} players, got {len(group)}")

    levels = [float(p.level) for p in group]
    best: Optional[Pairing] = None
    for (a1, a2), (b1, b2) in PAIRINGS:
        avg_a = (levels[a1] + levels[a2]) / 2
        avg_b = (levels[b1] + levels[b2]) / 2
        diff = round(abs(avg_a - avg_b), 6)
        if best is None or diff < best.diff:
            best = Pairing(team_a=(group[a1], group[a2]), team_b=(group[b1], group[b2]), diff=diff)
    return best


def is_balanced(group: Sequence[Candidate]) -> bool:
    if len({bracket_for(float(p.level)) for p in group}) == 1:
        return True
    return best_pairing(group).diff <= BALANCE_TOLERANCE


def order_candidates(entries: Sequence[QueueEntry]) -> List[QueueEntry]:
    """Fairness order: fewest games first, then first come first served."""
    return sorted(entries, key=lambda e: (e.games_played or 0, e.joined_at))


def _consecutive_windows(candidates: Sequence[Candidate]) -> Iterator[Tuple[Candidate, ...]]:
    for i in range(len(candidates) - GROUP_SIZE + 1):
        yield tuple(candidates[i:i + GROUP_SIZE])


def find_balanced_group(candidates: Sequence[Candidate]) -> List[Candidate]:
    """
    First balanced group of 4 in search order, or [] when none exists.

    `candidates` must already be in fairness order.
    """
    if len(candidates) < GROUP_SIZE:
        return []

    for window in _consecutive_windows(candidates):
        if is_balanced(window):
            return list(window)

    for group in combinations(candidates, GROUP_SIZE):
        if is_balanced(group):
            return list(group)

    return []


def arrange_teams(group: Sequence[Candidate]) -> List[Candidate]:
    """Final order for a found group: best split's Team A first, then Team B."""
    return best_pairing(group).ordered


def _display_name(entry: QueueEntry) -> str:
    if entry.user_id is not None:
        return entry.display_name or ""
    return entry.guest_name or ""


def suggest_match(session: Session, session_id: int, court_id: int) -> List[SuggestedPlayer]:
    """
    Suggest 4 waiting players for a court in a queue session.

    Returns an empty list when fewer than 4 players are waiting or no
    balanced group exists. Raises CourtUnavailableError when the court
    cannot take a new match in this session.
    """
    queue_session = get_session(session, session_id)
    if not is_court_available(session, queue_session, court_id):
        raise CourtUnavailableError()

    waiting = order_candidates(QueueEntryRepository(session).waiting_by_priority(session_id))
    group = find_balanced_group(waiting)
    if not group:
        logger.debug("No balanced group among %d waiting entries in session %d", len(waiting), session_id)
        return []

    ordered = arrange_teams(group)
    logger.debug(
        "Suggested entries %s for court %d in session %d",
        [e.id for e in ordered],
        court_id,
        session_id,
    )
    return [
        SuggestedPlayer(
            entry_id=entry.id,
            level=float(entry.level),
            name=_display_name(entry),
            team=TEAM_A if index < 2 else TEAM_B,
        )
        for index, entry in enumerate(ordered)
    ]
