"""Courts, their weekly availability, and bookable slots."""
from datetime import date, time
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator, model_validator
from sqlmodel import Session

from courtqueue.auth import ROLE_OWNER, Caller, get_caller, require_role
from courtqueue.database import get_session
from courtqueue.routes.bookings import BookingResponse
from courtqueue.services import availability_service, booking_service, court_service
from courtqueue.services.slot_generator import get_available_slots, list_courts_with_slots
from courtqueue.utils import clock

router = APIRouter()


class CourtCreate(BaseModel):
    name: str
    hourly_rate: Optional[float] = None
    reservation_fee_percentage: float = 0
    is_active: Optional[bool] = True


class CourtActiveUpdate(BaseModel):
    is_active: bool


class CourtResponse(BaseModel):
    id: int
    owner_id: int
    name: str
    is_active: Optional[bool]
    hourly_rate: Optional[float]
    reservation_fee_percentage: float

    class Config:
        from_attributes = True


class AvailabilityCreate(BaseModel):
    day_of_week: int
    open_time: time
    close_time: time

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, v):
        if not 0 <= v <= 6:
            raise ValueError("Day of week must be between 0 (Sunday) and 6 (Saturday).")
        return v

    @field_validator("open_time", "close_time", mode="before")
    @classmethod
    def parse_times(cls, v):
        return clock.parse_hhmm(v)

    @model_validator(mode="after")
    def validate_times(self):
        if self.close_time <= self.open_time:
            raise ValueError("Close time must be after open time.")
        return self


class AvailabilityUpdate(BaseModel):
    open_time: Optional[time] = None
    close_time: Optional[time] = None

    @field_validator("open_time", "close_time", mode="before")
    @classmethod
    def parse_times(cls, v):
        return None if v is None else clock.parse_hhmm(v)


class AvailabilityResponse(BaseModel):
    id: int
    court_id: int
    day_of_week: int
    open_time: time
    close_time: time

    class Config:
        from_attributes = True


class SlotResponse(BaseModel):
    start: str
    end: str
    available: bool


class CourtSlotsResponse(BaseModel):
    id: int
    name: str
    hourly_rate: Optional[float]
    reservation_fee_percentage: float
    slots: List[SlotResponse]


@router.post("/courts", response_model=CourtResponse)
def create_court(
    payload: CourtCreate,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    """Register a court for the calling owner"""
    require_role(caller, ROLE_OWNER)
    return court_service.create_court(
        session,
        owner_id=caller.user_id,
        name=payload.name,
        hourly_rate=payload.hourly_rate,
        reservation_fee_percentage=payload.reservation_fee_percentage,
        is_active=payload.is_active,
    )


@router.get("/courts", response_model=List[CourtResponse])
def list_my_courts(caller: Caller = Depends(get_caller), session: Session = Depends(get_session)):
    return court_service.list_owner_courts(session, caller.user_id)


@router.patch("/courts/{court_id}/active", response_model=CourtResponse)
def set_court_active(
    court_id: int,
    payload: CourtActiveUpdate,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    return court_service.set_court_active(session, court_id, caller.user_id, payload.is_active)


@router.get("/courts/{court_id}/availability", response_model=List[AvailabilityResponse])
def list_availability(
    court_id: int,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    court_service.get_owned_court(session, court_id, caller.user_id)
    return availability_service.list_availability(session, court_id)


@router.post("/courts/{court_id}/availability", response_model=AvailabilityResponse)
def create_availability(
    court_id: int,
    payload: AvailabilityCreate,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    court_service.get_owned_court(session, court_id, caller.user_id)
    return availability_service.create_availability(
        session, court_id, payload.day_of_week, payload.open_time, payload.close_time
    )


@router.patch("/courts/{court_id}/availability/{availability_id}", response_model=AvailabilityResponse)
def update_availability(
    court_id: int,
    availability_id: int,
    payload: AvailabilityUpdate,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    court_service.get_owned_court(session, court_id, caller.user_id)
    return availability_service.update_availability(
        session, availability_id, court_id, payload.open_time, payload.close_time
    )


@router.delete("/courts/{court_id}/availability/{availability_id}", status_code=204)
def delete_availability(
    court_id: int,
    availability_id: int,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    court_service.get_owned_court(session, court_id, caller.user_id)
    availability_service.delete_availability(session, availability_id, court_id)


@router.get("/courts/{court_id}/slots", response_model=List[SlotResponse])
def get_slots(court_id: int, date: date, session: Session = Depends(get_session)):
    """Hourly slots for a date; unavailable ones overlap a confirmed booking"""
    return [slot.to_dict() for slot in get_available_slots(session, court_id, date)]


@router.get("/courts/{court_id}/bookings", response_model=List[BookingResponse])
def list_court_bookings(court_id: int, date: Optional[date] = None, session: Session = Depends(get_session)):
    """Confirmed bookings of a court, optionally for one date"""
    return booking_service.list_court_bookings(session, court_id, date)


@router.get("/player/courts", response_model=List[CourtSlotsResponse])
def list_courts_for_players(date: date, session: Session = Depends(get_session)):
    """Courts open on a date, each with its slots; courts without a window are left out"""
    return [entry.to_dict() for entry in list_courts_with_slots(session, date)]
