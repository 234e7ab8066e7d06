from datetime import time

import pytest

from courtqueue.errors import DuplicateDayError, MismatchError, NotFoundError, ValidationError
from courtqueue.services import availability_service, court_service

OWNER_ID = 100


def test_create_and_list(session, court):
    availability_service.create_availability(session, court.id, 3, time(9), time(17))
    availability_service.create_availability(session, court.id, 0, time(10), time(14))

    rows = availability_service.list_availability(session, court.id)

    assert [(r.day_of_week, r.open_time, r.close_time) for r in rows] == [
        (0, time(10), time(14)),
        (3, time(9), time(17)),
    ]


def test_one_window_per_day(session, court):
    availability_service.create_availability(session, court.id, 1, time(8), time(12))

    with pytest.raises(DuplicateDayError):
        availability_service.create_availability(session, court.id, 1, time(13), time(20))


def test_invalid_windows(session, court):
    with pytest.raises(ValidationError):
        availability_service.create_availability(session, court.id, 7, time(8), time(12))
    with pytest.raises(ValidationError):
        availability_service.create_availability(session, court.id, 1, time(12), time(8))


def test_unknown_court(session):
    with pytest.raises(NotFoundError):
        availability_service.create_availability(session, 999, 1, time(8), time(12))


def test_update_keeps_day_and_validates(session, court):
    row = availability_service.create_availability(session, court.id, 2, time(8), time(12))

    updated = availability_service.update_availability(session, row.id, court.id, open_time=time(7))
    assert (updated.day_of_week, updated.open_time, updated.close_time) == (2, time(7), time(12))

    with pytest.raises(ValidationError):
        availability_service.update_availability(session, row.id, court.id, close_time=time(6))


def test_row_must_belong_to_court(session, court):
    other = court_service.create_court(session, owner_id=OWNER_ID, name="Court 2")
    row = availability_service.create_availability(session, court.id, 2, time(8), time(12))

    with pytest.raises(MismatchError):
        availability_service.update_availability(session, row.id, other.id, open_time=time(9))
    with pytest.raises(MismatchError):
        availability_service.delete_availability(session, row.id, other.id)


def test_delete(session, court):
    row = availability_service.create_availability(session, court.id, 2, time(8), time(12))
    availability_service.delete_availability(session, row.id, court.id)

    assert availability_service.list_availability(session, court.id) == []
    with pytest.raises(NotFoundError):
        availability_service.delete_availability(session, row.id, court.id)
