"""
Hourly slot generation from a court's weekly availability window.

`generate_slots` is pure: given the window for one day and that day's
confirmed bookings it returns fixed-length slots covering [open, close).
A trailing remainder shorter than one slot is dropped, so every slot lies
inside the window and no two slots overlap.
"""
from dataclasses import dataclass
from datetime import date, time
from typing import Dict, List, Optional, Sequence

from sqlmodel import Session

from courtqueue import settings
from courtqueue.errors import NotFoundError
from courtqueue.models.court import Court
from courtqueue.models.court_availability import CourtAvailability
from courtqueue.models.court_booking import BOOKING_CONFIRMED, CourtBooking
from courtqueue.repositories import AvailabilityRepository, BookingRepository, CourtRepository
from courtqueue.utils.clock import add_minutes, day_of_week, format_hhmm, intervals_overlap, minutes_of


@dataclass(frozen=True)
class Slot:
    start: time
    end: time
    available: bool

    def to_dict(self) -> Dict:
        return {
            "start": format_hhmm(self.start),
            "end": format_hhmm(self.end),
            "available": self.available,
        }


def generate_slots(
    availability: Optional[CourtAvailability],
    bookings: Sequence[CourtBooking],
    slot_minutes: int = 60,
) -> List[Slot]:
    """
    Build the slot list for one day.

    Args:
        availability: The court's window for that day of week (None = closed)
        bookings: Bookings on that court and date; non-confirmed ones are ignored
        slot_minutes: Fixed slot length

    Returns:
        Slots ordered by start time; empty when there is no window.
    """
    if availability is None:
        return []

    taken = [(b.start_time, b.end_time) for b in bookings if b.status == BOOKING_CONFIRMED]
    close = availability.close_time
    slots: List[Slot] = []

    current = availability.open_time
    while current < close:
        if minutes_of(current) + slot_minutes > minutes_of(close):
            break
        slot_end = add_minutes(current, slot_minutes)
        available = not any(intervals_overlap(current, slot_end, start, end) for start, end in taken)
        slots.append(Slot(start=current, end=slot_end, available=available))
        current = slot_end

    return slots


def get_available_slots(session: Session, court_id: int, day: date) -> List[Slot]:
    """Slots for a court on a concrete date, marked against confirmed bookings."""
    court = CourtRepository(session).get(court_id)
    if not court:
        raise NotFoundError("Court not found")

    availability = AvailabilityRepository(session).for_day(court_id, day_of_week(day))
    if availability is None:
        return []

    bookings = BookingRepository(session).confirmed_for_day(court_id, day)
    return generate_slots(availability, bookings, settings.SLOT_MINUTES)


@dataclass(frozen=True)
class CourtSlots:
    court: Court
    slots: List[Slot]

    def to_dict(self) -> Dict:
        return {
            "id": self.court.id,
            "name": self.court.name,
            "hourly_rate": self.court.hourly_rate,
            "reservation_fee_percentage": self.court.reservation_fee_percentage,
            "slots": [slot.to_dict() for slot in self.slots],
        }


def list_courts_with_slots(session: Session, day: date) -> List[CourtSlots]:
    """Playable courts that have an availability window on `day`, with their slots."""
    result: List[CourtSlots] = []
    for court in CourtRepository(session).list_playable():
        slots = get_available_slots(session, court.id, day)
        if slots:
            result.append(CourtSlots(court=court, slots=slots))
    return result
