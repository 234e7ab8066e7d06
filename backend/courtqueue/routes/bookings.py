from datetime import date, datetime, time
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator, model_validator
from sqlmodel import Session

from courtqueue.auth import ROLE_OWNER, Caller, get_caller, require_role
from courtqueue.database import get_session
from courtqueue.errors import ForbiddenError
from courtqueue.models.court_booking import PAYMENT_RESERVED
from courtqueue.repositories import CourtRepository
from courtqueue.services import booking_service
from courtqueue.utils import clock

router = APIRouter()


class BookingCreate(BaseModel):
    date: date
    start_time: time
    end_time: time
    payment_status: str = PAYMENT_RESERVED

    @field_validator("date", mode="before")
    @classmethod
    def parse_day(cls, v):
        return clock.parse_date(v)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_times(cls, v):
        return clock.parse_hhmm(v)

    @model_validator(mode="after")
    def validate_times(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be greater than start_time")
        return self


class BookingSessionUpdate(BaseModel):
    shuttlecock_count: Optional[int] = None
    start_session: bool = False
    payment_status: Optional[str] = None


class BookingResponse(BaseModel):
    id: int
    court_id: int
    user_id: Optional[int]
    day_date: date
    start_time: time
    end_time: time
    status: str
    payment_status: str
    shuttlecock_count: Optional[int] = None
    started_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BookingChargesResponse(BaseModel):
    booking_id: int
    hours: float
    court_fee: float
    reservation_fee: float
    shuttlecock_fee: float
    total: float


@router.post("/courts/{court_id}/bookings", response_model=BookingResponse)
def create_booking(
    court_id: int,
    payload: BookingCreate,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    """Book a time range; 422 when the court is closed, 409 when the range is taken"""
    return booking_service.create_booking(
        session,
        court_id=court_id,
        day=payload.date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        user_id=caller.user_id,
        payment_status=payload.payment_status,
    )


@router.delete("/bookings/{booking_id}", response_model=BookingResponse)
def cancel_booking(
    booking_id: int,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    """Cancel as the booking's player or the court owner"""
    return booking_service.cancel_booking(session, booking_id, caller.user_id)


@router.get("/me/bookings", response_model=List[BookingResponse])
def my_bookings(
    status: Optional[str] = None,
    upcoming: bool = False,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    return booking_service.list_user_bookings(session, caller.user_id, status=status, upcoming=upcoming)


@router.get("/owner/bookings", response_model=List[BookingResponse])
def owner_bookings(
    status: Optional[str] = None,
    date: Optional[date] = None,
    upcoming: bool = False,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    """Bookings on every court the caller owns, newest first"""
    require_role(caller, ROLE_OWNER)
    return booking_service.list_owner_bookings(
        session, caller.user_id, status=status, day=date, upcoming=upcoming
    )


@router.patch("/bookings/{booking_id}/session", response_model=BookingResponse)
def update_booking_session(
    booking_id: int,
    payload: BookingSessionUpdate,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    """Owner-side: shuttlecocks used, start the on-court session, mark paid"""
    changes = payload.model_dump(exclude_unset=True)
    kwargs = {}
    if "shuttlecock_count" in changes:
        kwargs["shuttlecock_count"] = changes["shuttlecock_count"]
    return booking_service.update_booking_session(
        session,
        booking_id,
        caller.user_id,
        start_session=payload.start_session,
        payment_status=payload.payment_status,
        **kwargs,
    )


@router.get("/bookings/{booking_id}/charges", response_model=BookingChargesResponse)
def booking_charges(
    booking_id: int,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    booking = booking_service.get_booking(session, booking_id)
    court = CourtRepository(session).get(booking.court_id)
    if caller.user_id not in (booking.user_id, court.owner_id):
        raise ForbiddenError()
    charges = booking_service.booking_charges(booking, court)
    return BookingChargesResponse(
        booking_id=booking.id,
        hours=charges.hours,
        court_fee=charges.court_fee,
        reservation_fee=charges.reservation_fee,
        shuttlecock_fee=charges.shuttlecock_fee,
        total=charges.total,
    )
