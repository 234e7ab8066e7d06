"""
Races between independent connections on a file-backed SQLite database.

Each worker thread opens its own Session, waits on a shared barrier and then
fires the same request, so the serialization has to come from the database
and not from a shared in-memory connection.
"""
import threading
from datetime import date, time, timedelta

import pytest
from sqlmodel import Session, SQLModel, create_engine, select

from courtqueue.database import import_models
from courtqueue.errors import CourtUnavailableError, SlotTakenError
from courtqueue.models.court_booking import BOOKING_CONFIRMED, CourtBooking
from courtqueue.models.queue_match import MATCH_ACTIVE, QueueMatch
from courtqueue.services import availability_service, booking_service, court_service, match_lifecycle, queue_service
from courtqueue.services.queue_service import Guest

OWNER_ID = 100
TODAY = date(2026, 3, 2)
WORKERS = 8


@pytest.fixture
def file_engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    import_models()
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


def _race(engine, count, work):
    """Run work(session, index) in `count` threads released together."""
    barrier = threading.Barrier(count)
    outcomes = [None] * count

    def worker(index):
        with Session(engine) as session:
            barrier.wait()
            try:
                outcomes[index] = work(session, index)
            except Exception as exc:
                outcomes[index] = exc

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    assert not any(thread.is_alive() for thread in threads)
    return outcomes


def test_only_one_of_many_identical_bookings_wins(file_engine):
    with Session(file_engine) as seed:
        court = court_service.create_court(seed, owner_id=OWNER_ID, name="Court 1")
        for dow in range(7):
            availability_service.create_availability(seed, court.id, dow, time(8), time(22))
        court_id = court.id
    day = TODAY + timedelta(days=1)

    outcomes = _race(
        file_engine,
        WORKERS,
        lambda session, index: booking_service.create_booking(
            session, court_id, day, time(10), time(11), user_id=300 + index, today=TODAY
        ),
    )

    won = [o for o in outcomes if isinstance(o, CourtBooking)]
    lost = [o for o in outcomes if isinstance(o, SlotTakenError)]
    assert len(won) == 1
    assert len(lost) == WORKERS - 1
    with Session(file_engine) as check:
        rows = check.exec(
            select(CourtBooking).where(CourtBooking.court_id == court_id, CourtBooking.status == BOOKING_CONFIRMED)
        ).all()
    assert len(rows) == 1


def test_overlapping_ranges_race_to_a_single_booking(file_engine):
    with Session(file_engine) as seed:
        court = court_service.create_court(seed, owner_id=OWNER_ID, name="Court 1")
        for dow in range(7):
            availability_service.create_availability(seed, court.id, dow, time(8), time(22))
        court_id = court.id
    day = TODAY + timedelta(days=1)
    # Every pair of these ranges overlaps
    ranges = [(time(10), time(11)), (time(9, 30), time(10, 45)), (time(10, 15), time(11, 30)), (time(9), time(12))]

    outcomes = _race(
        file_engine,
        len(ranges),
        lambda session, index: booking_service.create_booking(
            session, court_id, day, ranges[index][0], ranges[index][1], user_id=300 + index, today=TODAY
        ),
    )

    assert sum(isinstance(o, CourtBooking) for o in outcomes) == 1
    assert sum(isinstance(o, SlotTakenError) for o in outcomes) == len(ranges) - 1


def test_two_matches_on_one_court_race(file_engine):
    with Session(file_engine) as seed:
        queue_session = queue_service.create_session(seed, OWNER_ID, TODAY, time(18), time(22))
        court = court_service.create_court(seed, owner_id=OWNER_ID, name="Court 1")
        entry_ids = [
            queue_service.add_entry(seed, queue_session.id, Guest(name=f"Guest {n}", level=3.0)).id
            for n in range(1, 9)
        ]
        session_id, court_id = queue_session.id, court.id
    groups = [entry_ids[:4], entry_ids[4:]]

    outcomes = _race(
        file_engine,
        2,
        lambda session, index: match_lifecycle.create_match_from_entries(
            session, session_id, court_id, groups[index]
        ),
    )

    assert sum(isinstance(o, QueueMatch) for o in outcomes) == 1
    assert sum(isinstance(o, CourtUnavailableError) for o in outcomes) == 1
    with Session(file_engine) as check:
        active = check.exec(
            select(QueueMatch).where(QueueMatch.court_id == court_id, QueueMatch.status == MATCH_ACTIVE)
        ).all()
    assert len(active) == 1
