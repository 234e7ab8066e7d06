"""
Minimal court registry used by the booking and queue engines.

Court metadata editing lives elsewhere; this module only creates courts,
lists an owner's courts and flips the active flag.
"""
import logging
from typing import List, Optional

from sqlmodel import Session

from courtqueue.errors import ForbiddenError, NotFoundError, ValidationError
from courtqueue.models.court import Court
from courtqueue.repositories import CourtRepository

logger = logging.getLogger(__name__)


def create_court(
    session: Session,
    owner_id: int,
    name: str,
    hourly_rate: Optional[float] = None,
    reservation_fee_percentage: float = 0,
    is_active: Optional[bool] = True,
) -> Court:
    if not name or not name.strip():
        raise ValidationError("Court name is required.")
    if hourly_rate is not None and hourly_rate < 0:
        raise ValidationError("Hourly rate cannot be negative.")
    if not 0 <= reservation_fee_percentage <= 100:
        raise ValidationError("Reservation fee percentage must be between 0 and 100.")

    court = CourtRepository(session).add(
        Court(
            owner_id=owner_id,
            name=name.strip(),
            hourly_rate=hourly_rate,
            reservation_fee_percentage=reservation_fee_percentage,
            is_active=is_active,
        )
    )
    session.commit()
    session.refresh(court)
    logger.info("Court %d created for owner %d", court.id, owner_id)
    return court


def get_owned_court(session: Session, court_id: int, owner_id: int) -> Court:
    court = CourtRepository(session).get(court_id)
    if not court:
        raise NotFoundError("Court not found")
    if court.owner_id != owner_id:
        raise ForbiddenError("You do not manage this court.")
    return court


def list_owner_courts(session: Session, owner_id: int) -> List[Court]:
    return CourtRepository(session).list_for_owner(owner_id)


def set_court_active(session: Session, court_id: int, owner_id: int, is_active: bool) -> Court:
    court = get_owned_court(session, court_id, owner_id)
    court.is_active = is_active
    session.add(court)
    session.commit()
    session.refresh(court)
    return court
