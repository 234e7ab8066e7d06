from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from courtqueue.errors import (
    CourtUnavailableError,
    EntriesNotWaitingError,
    InvalidTeamError,
    MatchNotActiveError,
    NotFoundError,
    ValidationError,
)
from courtqueue.models.queue_entry import ENTRY_LEFT, ENTRY_PLAYING, ENTRY_WAITING, QueueEntry
from courtqueue.models.queue_match import ACTIVE_MATCH_INDEX, MATCH_ACTIVE, MATCH_COMPLETED, QueueMatch
from courtqueue.repositories import QueueEntryRepository, QueueMatchRepository
from courtqueue.services import match_lifecycle, queue_service
from courtqueue.services.queue_service import Guest


def _ids(entries):
    return [e.id for e in entries]


def _statuses(session, entries):
    session.expire_all()
    return [queue_service.get_entry(session, e.id).status for e in entries]


def test_create_match_moves_entries_to_playing(session, queue_session, queue_courts, add_guests):
    entries = add_guests(3.0, 3.0, 3.0, 3.0)

    match = match_lifecycle.create_match(
        session, queue_session.id, queue_courts[0].id, _ids(entries[:2]), _ids(entries[2:])
    )

    assert match.status == MATCH_ACTIVE
    assert match.court_id == queue_courts[0].id
    players = match_lifecycle.match_players(session, match.id)
    assert [(p.queue_entry_id, p.team) for p in players] == [
        (entries[0].id, "A"),
        (entries[1].id, "A"),
        (entries[2].id, "B"),
        (entries[3].id, "B"),
    ]
    assert _statuses(session, entries) == [ENTRY_PLAYING] * 4


def test_second_match_on_busy_court(session, queue_session, queue_courts, add_guests):
    entries = add_guests(*([3.0] * 8))
    match_lifecycle.create_match_from_entries(session, queue_session.id, queue_courts[0].id, _ids(entries[:4]))

    with pytest.raises(CourtUnavailableError):
        match_lifecycle.create_match_from_entries(session, queue_session.id, queue_courts[0].id, _ids(entries[4:]))

    assert _statuses(session, entries[4:]) == [ENTRY_WAITING] * 4


def test_busy_court_is_reported_before_team_errors(session, queue_session, queue_courts, add_guests):
    entries = add_guests(*([3.0] * 8))
    match_lifecycle.create_match_from_entries(session, queue_session.id, queue_courts[0].id, _ids(entries[:4]))

    with pytest.raises(CourtUnavailableError):
        match_lifecycle.create_match(session, queue_session.id, queue_courts[0].id, [entries[4].id], [])


def test_concurrent_insert_is_stopped_by_unique_index(session, queue_session, queue_courts, add_guests, monkeypatch):
    entries = add_guests(*([3.0] * 8))
    match_lifecycle.create_match_from_entries(session, queue_session.id, queue_courts[0].id, _ids(entries[:4]))

    # Simulate a request whose checks ran before the first match committed
    monkeypatch.setattr(match_lifecycle, "is_court_available", lambda *args: True)
    monkeypatch.setattr(QueueMatchRepository, "active_for_court", lambda self, session_id, court_id: None)

    with pytest.raises(CourtUnavailableError):
        match_lifecycle.create_match_from_entries(session, queue_session.id, queue_courts[0].id, _ids(entries[4:]))

    active = session.exec(select(QueueMatch).where(QueueMatch.status == MATCH_ACTIVE)).all()
    assert len(active) == 1
    assert _statuses(session, entries[4:]) == [ENTRY_WAITING] * 4


def test_unique_index_violation_reported_by_constraint_name(session, queue_session, queue_courts):
    orig = SimpleNamespace(diag=SimpleNamespace(constraint_name=ACTIVE_MATCH_INDEX))
    exc = IntegrityError("INSERT INTO queuematch ...", {}, orig)

    assert match_lifecycle._court_taken(session, exc, queue_session.id, queue_courts[0].id) is True


def test_other_integrity_errors_are_not_a_busy_court(session, queue_session, queue_courts):
    orig = SimpleNamespace(diag=SimpleNamespace(constraint_name="uq_matchplayer_match_entry"))
    exc = IntegrityError("INSERT INTO queuematchplayer ...", {}, orig)

    assert match_lifecycle._court_taken(session, exc, queue_session.id, queue_courts[0].id) is False


def test_entry_taken_between_check_and_update(session, queue_session, queue_courts, add_guests, monkeypatch):
    entries = add_guests(3.0, 3.0, 3.0, 3.0)
    queue_service.update_entry(session, entries[3].id, {"status": ENTRY_LEFT})

    # The pre-check saw four waiting entries; the conditional update only moves three
    stale = [SimpleNamespace(id=e.id, status=ENTRY_WAITING) for e in entries]
    monkeypatch.setattr(QueueEntryRepository, "in_session", lambda self, session_id, entry_ids: stale)

    with pytest.raises(EntriesNotWaitingError):
        match_lifecycle.create_match_from_entries(session, queue_session.id, queue_courts[0].id, _ids(entries))

    assert _statuses(session, entries) == [ENTRY_WAITING, ENTRY_WAITING, ENTRY_WAITING, ENTRY_LEFT]
    assert session.exec(select(QueueMatch)).all() == []


@pytest.mark.parametrize(
    "team_a,team_b",
    [
        ([0], [1, 2]),
        ([0, 1, 2], [3]),
        ([0, 1], [1, 2]),
        ([0, 0], [2, 3]),
    ],
)
def test_invalid_teams(session, queue_session, queue_courts, add_guests, team_a, team_b):
    entries = add_guests(3.0, 3.0, 3.0, 3.0)

    with pytest.raises(InvalidTeamError):
        match_lifecycle.create_match(
            session,
            queue_session.id,
            queue_courts[0].id,
            [entries[i].id for i in team_a],
            [entries[i].id for i in team_b],
        )


def test_flat_entry_list_needs_four_unique_ids(session, queue_session, queue_courts, add_guests):
    entries = add_guests(3.0, 3.0, 3.0, 3.0)

    with pytest.raises(InvalidTeamError):
        match_lifecycle.create_match_from_entries(session, queue_session.id, queue_courts[0].id, _ids(entries[:3]))
    with pytest.raises(InvalidTeamError):
        match_lifecycle.create_match_from_entries(
            session, queue_session.id, queue_courts[0].id, [entries[0].id] * 4
        )


def test_entry_already_playing(session, queue_session, queue_courts, add_guests):
    entries = add_guests(*([3.0] * 7))
    match_lifecycle.create_match_from_entries(session, queue_session.id, queue_courts[0].id, _ids(entries[:4]))

    with pytest.raises(EntriesNotWaitingError):
        match_lifecycle.create_match_from_entries(
            session, queue_session.id, queue_courts[1].id, [entries[0].id] + _ids(entries[4:])
        )
    assert _statuses(session, entries[4:]) == [ENTRY_WAITING] * 3


def test_entry_from_another_session(session, queue_session, queue_courts, add_guests, today):
    entries = add_guests(3.0, 3.0, 3.0)
    other = queue_service.create_session(session, queue_session.owner_id, today, queue_session.start_time)
    outsider = queue_service.add_entry(session, other.id, Guest(name="Outsider", level=3.0))

    with pytest.raises(EntriesNotWaitingError):
        match_lifecycle.create_match_from_entries(
            session, queue_session.id, queue_courts[0].id, _ids(entries) + [outsider.id]
        )


def test_complete_match_counts_one_game(session, queue_session, queue_courts, add_guests):
    entries = add_guests(3.0, 3.0, 3.0, 3.0)
    match = match_lifecycle.create_match_from_entries(session, queue_session.id, queue_courts[0].id, _ids(entries))

    completed = match_lifecycle.complete_match(session, match.id, shuttlecocks_used=2)

    assert completed.status == MATCH_COMPLETED
    assert completed.end_time is not None
    assert completed.shuttlecocks_used == 2
    session.expire_all()
    for entry in entries:
        refreshed = queue_service.get_entry(session, entry.id)
        assert refreshed.status == ENTRY_WAITING
        assert refreshed.games_played == 1


def test_complete_twice_changes_nothing(session, queue_session, queue_courts, add_guests):
    entries = add_guests(3.0, 3.0, 3.0, 3.0)
    match = match_lifecycle.create_match_from_entries(session, queue_session.id, queue_courts[0].id, _ids(entries))
    match_lifecycle.complete_match(session, match.id)

    with pytest.raises(MatchNotActiveError):
        match_lifecycle.complete_match(session, match.id)

    session.expire_all()
    games = session.exec(select(QueueEntry.games_played).where(QueueEntry.session_id == queue_session.id)).all()
    assert games == [1, 1, 1, 1]


def test_complete_rejects_negative_shuttlecocks(session, queue_session, queue_courts, add_guests):
    entries = add_guests(3.0, 3.0, 3.0, 3.0)
    match = match_lifecycle.create_match_from_entries(session, queue_session.id, queue_courts[0].id, _ids(entries))

    with pytest.raises(ValidationError):
        match_lifecycle.complete_match(session, match.id, shuttlecocks_used=-1)
    assert match_lifecycle.get_match(session, match.id).status == MATCH_ACTIVE


def test_complete_unknown_match(session):
    with pytest.raises(NotFoundError):
        match_lifecycle.complete_match(session, 999)


def test_court_is_free_again_after_completion(session, queue_session, queue_courts, add_guests):
    entries = add_guests(3.0, 3.0, 3.0, 3.0)
    first = match_lifecycle.create_match_from_entries(session, queue_session.id, queue_courts[0].id, _ids(entries))
    match_lifecycle.complete_match(session, first.id)

    second = match_lifecycle.create_match_from_entries(session, queue_session.id, queue_courts[0].id, _ids(entries))

    assert second.id != first.id
    assert second.status == MATCH_ACTIVE


def test_available_courts_and_board(session, queue_session, queue_courts, add_guests):
    entries = add_guests(3.0, 3.0, 3.0, 3.0)
    match = match_lifecycle.create_match(
        session, queue_session.id, queue_courts[0].id, _ids(entries[:2]), _ids(entries[2:])
    )

    available = match_lifecycle.available_courts(session, queue_session.id)
    assert [c.id for c in available] == [queue_courts[1].id]

    board = [status.to_dict() for status in match_lifecycle.court_board(session, queue_session.id)]
    assert board == [
        {
            "id": queue_courts[0].id,
            "name": "Court 1",
            "status": "in-use",
            "match": {
                "id": match.id,
                "players": ["Guest 1", "Guest 2", "Guest 3", "Guest 4"],
                "teamA": ["Guest 1", "Guest 2"],
                "teamB": ["Guest 3", "Guest 4"],
            },
        },
        {"id": queue_courts[1].id, "name": "Court 2", "status": "available", "match": None},
    ]


def test_session_detail(session, queue_session, queue_courts, add_guests):
    entries = add_guests(*([3.0] * 8))
    first = match_lifecycle.create_match_from_entries(session, queue_session.id, queue_courts[0].id, _ids(entries[:4]))
    match_lifecycle.create_match_from_entries(session, queue_session.id, queue_courts[1].id, _ids(entries[4:]))
    match_lifecycle.complete_match(session, first.id)

    detail = match_lifecycle.session_detail(session, queue_session.id)

    assert detail["session"].id == queue_session.id
    assert len(detail["entries"]) == 8
    assert [item["match"].court_id for item in detail["active_matches"]] == [queue_courts[1].id]
    assert len(detail["active_matches"][0]["players"]) == 4
    assert detail["completed_matches_count"] == 1
