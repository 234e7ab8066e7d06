from courtqueue.models.court import Court
from courtqueue.models.court_availability import CourtAvailability
from courtqueue.models.court_booking import BookingDayLock, CourtBooking
from courtqueue.models.queue_entry import QueueEntry
from courtqueue.models.queue_match import QueueMatch, QueueMatchPlayer
from courtqueue.models.queue_session import QueueSession

__all__ = [
    "Court",
    "CourtAvailability",
    "CourtBooking",
    "BookingDayLock",
    "QueueSession",
    "QueueEntry",
    "QueueMatch",
    "QueueMatchPlayer",
]
