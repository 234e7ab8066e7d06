"""
Booking Conflict Guard: creates court bookings only inside the court's
weekly availability and never on top of another confirmed booking.

Overlap uses half-open intervals: [10:00, 11:00) and [11:00, 12:00) do not
collide, [10:00, 11:00) and [10:30, 11:30) do.

Concurrency: the overlap check and the insert run in one transaction that
first writes the court's BookingDayLock row for that date. A second request
for the same court/date blocks on that write until the first commits, then
sees its booking.
"""
import logging
from dataclasses import dataclass
from datetime import date, time, timedelta
from typing import List, Optional

from sqlmodel import Session

from courtqueue import settings
from courtqueue.errors import (
    ClosedError,
    ForbiddenError,
    NotFoundError,
    SlotTakenError,
    ValidationError,
)
from courtqueue.models.court import Court
from courtqueue.models.court_booking import (
    BOOKING_CANCELLED,
    BOOKING_CONFIRMED,
    PAYMENT_RESERVED,
    PAYMENT_STATUSES,
    CourtBooking,
)
from courtqueue.repositories import AvailabilityRepository, BookingRepository, CourtRepository
from courtqueue.utils import clock

logger = logging.getLogger(__name__)

_UNSET = object()


def _validate_booking_window(day: date, today: date) -> None:
    if day < today:
        raise ValidationError("Cannot book a date in the past.")
    last_day = today + timedelta(days=settings.ADVANCE_BOOKING_DAYS)
    if day > last_day:
        raise ValidationError(
            f"Bookings can only be made up to {settings.ADVANCE_BOOKING_DAYS} days in advance."
        )


def create_booking(
    session: Session,
    court_id: int,
    day: date,
    start_time: time,
    end_time: time,
    user_id: Optional[int] = None,
    payment_status: str = PAYMENT_RESERVED,
    today: Optional[date] = None,
) -> CourtBooking:
    """
    Book [start_time, end_time) on a court for one date.

    Raises:
        ValidationError: malformed range, bad payment status, date outside the booking window
        NotFoundError: unknown court
        ClosedError: court inactive, or no availability window covers the range
        SlotTakenError: overlaps a confirmed booking
    """
    if end_time <= start_time:
        raise ValidationError("End time must be after start time.")
    if payment_status not in PAYMENT_STATUSES:
        raise ValidationError(f"Invalid payment_status: {payment_status}")

    court = CourtRepository(session).get(court_id)
    if not court:
        raise NotFoundError("Court not found")
    if not court.is_open_for_play:
        raise ClosedError("Court is not accepting bookings.")

    _validate_booking_window(day, today or clock.today())

    dow = clock.day_of_week(day)
    if AvailabilityRepository(session).covering(court_id, dow, start_time, end_time) is None:
        raise ClosedError()

    bookings = BookingRepository(session)
    bookings.ensure_day_lock(court_id, day)

    try:
        bookings.lock_day(court_id, day)

        clash = bookings.first_overlapping(court_id, day, start_time, end_time)
        if clash is not None:
            raise SlotTakenError()

        booking = bookings.add(
            CourtBooking(
                court_id=court_id,
                user_id=user_id,
                day_date=day,
                start_time=start_time,
                end_time=end_time,
                status=BOOKING_CONFIRMED,
                payment_status=payment_status,
            )
        )
        session.commit()
    except SlotTakenError:
        session.rollback()
        logger.warning(
            "Booking rejected: court %d on %s %s-%s overlaps an existing booking",
            court_id,
            day,
            start_time,
            end_time,
        )
        raise
    except Exception:
        session.rollback()
        raise

    session.refresh(booking)
    logger.info(
        "Booking %d confirmed: court %d on %s %s-%s (user %s)",
        booking.id,
        court_id,
        day,
        start_time,
        end_time,
        user_id,
    )
    return booking


def get_booking(session: Session, booking_id: int) -> CourtBooking:
    booking = BookingRepository(session).get(booking_id)
    if not booking:
        raise NotFoundError("Booking not found")
    return booking


def cancel_booking(session: Session, booking_id: int, requester_id: int) -> CourtBooking:
    """
    Cancel a booking on behalf of the player who made it or the court owner.

    Cancelling twice leaves the booking cancelled; the returned status lets
    callers tell a fresh cancellation from a repeated one.
    """
    booking = get_booking(session, booking_id)
    court = CourtRepository(session).get(booking.court_id)
    owner_id = court.owner_id if court else None
    if requester_id != booking.user_id and requester_id != owner_id:
        raise ForbiddenError()

    if booking.status == BOOKING_CANCELLED:
        return booking

    booking.status = BOOKING_CANCELLED
    booking.cancelled_at = clock.utcnow()
    session.add(booking)
    session.commit()
    session.refresh(booking)
    logger.info("Booking %d cancelled by user %d", booking_id, requester_id)
    return booking


def update_booking_session(
    session: Session,
    booking_id: int,
    owner_id: int,
    shuttlecock_count=_UNSET,
    start_session: bool = False,
    payment_status: Optional[str] = None,
) -> CourtBooking:
    """Owner-side bookkeeping: shuttlecocks used, session start, payment."""
    booking = get_booking(session, booking_id)
    court = CourtRepository(session).get(booking.court_id)
    if not court or court.owner_id != owner_id:
        raise ForbiddenError("Unauthorized.")

    if shuttlecock_count is not _UNSET:
        if shuttlecock_count is not None and shuttlecock_count < 0:
            raise ValidationError("Shuttlecock count cannot be negative.")
        booking.shuttlecock_count = shuttlecock_count

    if start_session and booking.started_at is None:
        booking.started_at = clock.utcnow()

    if payment_status is not None:
        if payment_status not in PAYMENT_STATUSES:
            raise ValidationError(f"Invalid payment_status: {payment_status}")
        booking.payment_status = payment_status

    session.add(booking)
    session.commit()
    session.refresh(booking)
    return booking


def list_court_bookings(session: Session, court_id: int, day: Optional[date] = None) -> List[CourtBooking]:
    if not CourtRepository(session).get(court_id):
        raise NotFoundError("Court not found")
    return BookingRepository(session).list_for_court(court_id, day)


def list_user_bookings(
    session: Session,
    user_id: int,
    status: Optional[str] = None,
    upcoming: bool = False,
) -> List[CourtBooking]:
    if upcoming:
        return BookingRepository(session).list_for_user(user_id, status=BOOKING_CONFIRMED, from_day=clock.today())
    return BookingRepository(session).list_for_user(user_id, status=status)


def list_owner_bookings(
    session: Session,
    owner_id: int,
    status: Optional[str] = None,
    day: Optional[date] = None,
    upcoming: bool = False,
) -> List[CourtBooking]:
    """
    Bookings across every court the owner runs, newest date first.

    `upcoming` narrows to confirmed bookings from today on and overrides `status`.
    """
    court_ids = [court.id for court in CourtRepository(session).list_for_owner(owner_id)]
    bookings = BookingRepository(session)
    if upcoming:
        return bookings.list_for_courts(court_ids, status=BOOKING_CONFIRMED, day=day, from_day=clock.today())
    return bookings.list_for_courts(court_ids, status=status, day=day)


@dataclass(frozen=True)
class BookingCharges:
    hours: float
    court_fee: float
    reservation_fee: float
    shuttlecock_fee: float

    @property
    def total(self) -> float:
        return round(self.court_fee + self.shuttlecock_fee, 2)


def booking_charges(booking: CourtBooking, court: Court) -> BookingCharges:
    """Court time at the hourly rate, the upfront reservation share of it, and shuttlecocks."""
    hours = clock.duration_hours(booking.start_time, booking.end_time)
    court_fee = round(hours * (court.hourly_rate or 0), 2)
    reservation_fee = round(court_fee * (court.reservation_fee_percentage or 0) / 100, 2)
    shuttlecock_fee = float((booking.shuttlecock_count or 0) * settings.SHUTTLECOCK_PRICE)
    return BookingCharges(
        hours=hours,
        court_fee=court_fee,
        reservation_fee=reservation_fee,
        shuttlecock_fee=shuttlecock_fee,
    )
