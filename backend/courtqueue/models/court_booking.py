from datetime import date, datetime, time
from typing import Optional

from sqlalchemy import Index
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel

from courtqueue.utils.clock import utcnow

BOOKING_CONFIRMED = "confirmed"
BOOKING_CANCELLED = "cancelled"

PAYMENT_RESERVED = "reserved"
PAYMENT_PAID = "paid"
PAYMENT_STATUSES = (PAYMENT_RESERVED, PAYMENT_PAID)


class CourtBooking(SQLModel, table=True):
    __tablename__ = "courtbooking"
    __table_args__ = (
        Index("ix_courtbooking_court_date_status", "court_id", "day_date", "status"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    court_id: int = Field(foreign_key="court.id")
    user_id: Optional[int] = Field(default=None, index=True)  # NULL for guest flows
    day_date: date
    start_time: time
    end_time: time
    status: str = Field(default=BOOKING_CONFIRMED)  # "confirmed" | "cancelled"
    payment_status: str = Field(default=PAYMENT_RESERVED)  # "reserved" | "paid"

    # On-site session bookkeeping (owner-updated)
    shuttlecock_count: Optional[int] = Field(default=None)
    started_at: Optional[datetime] = Field(default=None)

    cancelled_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)


class BookingDayLock(SQLModel, table=True):
    """
    One row per (court, date) that booking creation writes before checking
    for overlaps, so concurrent check+insert pairs for the same day run
    one after the other.
    """

    __tablename__ = "bookingdaylock"
    __table_args__ = (
        SAUniqueConstraint("court_id", "day_date", name="uq_bookingdaylock_court_date"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    court_id: int = Field(foreign_key="court.id")
    day_date: date
    version: int = Field(default=0)
