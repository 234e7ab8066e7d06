"""
Weekly availability template per court: at most one open/close window per
day of week (0 = Sunday ... 6 = Saturday).
"""
import logging
from datetime import time
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from courtqueue.errors import DuplicateDayError, MismatchError, NotFoundError, ValidationError
from courtqueue.models.court import Court
from courtqueue.models.court_availability import CourtAvailability
from courtqueue.repositories import AvailabilityRepository, CourtRepository

logger = logging.getLogger(__name__)


def _require_court(session: Session, court_id: int) -> Court:
    court = CourtRepository(session).get(court_id)
    if not court:
        raise NotFoundError("Court not found")
    return court


def _validate_window(open_time: time, close_time: time) -> None:
    if close_time <= open_time:
        raise ValidationError("Close time must be after open time.")


def list_availability(session: Session, court_id: int) -> List[CourtAvailability]:
    _require_court(session, court_id)
    return AvailabilityRepository(session).list_for_court(court_id)


def create_availability(
    session: Session,
    court_id: int,
    day_of_week: int,
    open_time: time,
    close_time: time,
) -> CourtAvailability:
    """Add the window for one day; a second window for the same day is rejected."""
    _require_court(session, court_id)
    if not 0 <= day_of_week <= 6:
        raise ValidationError("Day of week must be between 0 (Sunday) and 6 (Saturday).")
    _validate_window(open_time, close_time)

    repo = AvailabilityRepository(session)
    if repo.for_day(court_id, day_of_week) is not None:
        raise DuplicateDayError()

    availability = repo.add(
        CourtAvailability(
            court_id=court_id,
            day_of_week=day_of_week,
            open_time=open_time,
            close_time=close_time,
        )
    )
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise DuplicateDayError()
    session.refresh(availability)

    logger.info(
        "Availability set for court %d day %d: %s-%s", court_id, day_of_week, open_time, close_time
    )
    return availability


def _owned_availability(session: Session, availability_id: int, court_id: int) -> CourtAvailability:
    availability = AvailabilityRepository(session).get(availability_id)
    if not availability:
        raise NotFoundError("Availability not found")
    if availability.court_id != court_id:
        raise MismatchError()
    return availability


def update_availability(
    session: Session,
    availability_id: int,
    court_id: int,
    open_time: Optional[time] = None,
    close_time: Optional[time] = None,
) -> CourtAvailability:
    """Change the open/close times of an existing window (day stays fixed)."""
    availability = _owned_availability(session, availability_id, court_id)

    new_open = open_time if open_time is not None else availability.open_time
    new_close = close_time if close_time is not None else availability.close_time
    _validate_window(new_open, new_close)

    availability.open_time = new_open
    availability.close_time = new_close
    session.add(availability)
    session.commit()
    session.refresh(availability)
    return availability


def delete_availability(session: Session, availability_id: int, court_id: int) -> None:
    availability = _owned_availability(session, availability_id, court_id)
    AvailabilityRepository(session).delete(availability)
    session.commit()
    logger.info("Availability %d removed from court %d", availability_id, court_id)
