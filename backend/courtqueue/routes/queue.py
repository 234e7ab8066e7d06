"""
Queue play: sessions, entries, match suggestions and the match lifecycle.
Every mutating endpoint requires the session owner, a queue master or a superadmin.
"""
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlmodel import Session

from courtqueue.auth import (
    ROLE_OWNER,
    ROLE_QUEUE_MASTER,
    Caller,
    get_caller,
    require_role,
    require_session_manager,
)
from courtqueue.database import get_session
from courtqueue.errors import InvalidTeamError, ValidationError
from courtqueue.models.queue_entry import MAX_LEVEL, MIN_LEVEL
from courtqueue.services import match_lifecycle, queue_service
from courtqueue.services.match_suggestion import suggest_match
from courtqueue.services.queue_service import Guest, RegisteredUser
from courtqueue.utils import clock

router = APIRouter(prefix="/queue")


class SessionCreate(BaseModel):
    date: date
    start_time: time
    end_time: Optional[time] = None
    owner_id: Optional[int] = None

    @field_validator("date", mode="before")
    @classmethod
    def parse_day(cls, v):
        return clock.parse_date(v)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_times(cls, v):
        return None if v is None else clock.parse_hhmm(v)

    @model_validator(mode="after")
    def validate_times(self):
        if self.end_time is not None and self.end_time <= self.start_time:
            raise ValueError("end_time must be greater than start_time")
        return self


class SessionUpdate(BaseModel):
    status: Optional[str] = None
    end_time: Optional[time] = None

    @field_validator("end_time", mode="before")
    @classmethod
    def parse_end(cls, v):
        return None if v is None else clock.parse_hhmm(v)


class SessionResponse(BaseModel):
    id: int
    owner_id: int
    day_date: date
    start_time: time
    end_time: Optional[time]
    status: str

    class Config:
        from_attributes = True


class EntryCreate(BaseModel):
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    guest_name: Optional[str] = None
    level: Optional[float] = Field(default=None, ge=MIN_LEVEL, le=MAX_LEVEL)
    phone: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = Field(default=None, max_length=500)


class EntryUpdate(BaseModel):
    status: Optional[str] = None
    level: Optional[float] = Field(default=None, ge=MIN_LEVEL, le=MAX_LEVEL)
    phone: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = Field(default=None, max_length=500)


class EntryResponse(BaseModel):
    id: int
    session_id: int
    user_id: Optional[int]
    guest_name: Optional[str]
    display_name: str
    level: float
    phone: Optional[str]
    notes: Optional[str]
    status: str
    games_played: int
    joined_at: datetime

    class Config:
        from_attributes = True


class SuggestRequest(BaseModel):
    court_id: int


class MatchCreate(BaseModel):
    court_id: int
    teamA: Optional[List[int]] = None
    teamB: Optional[List[int]] = None
    queue_entry_ids: Optional[List[int]] = None


class MatchComplete(BaseModel):
    shuttlecocks_used: Optional[int] = Field(default=None, ge=0)


class MatchPlayerResponse(BaseModel):
    queue_entry_id: int
    team: str

    class Config:
        from_attributes = True


class MatchResponse(BaseModel):
    id: int
    session_id: int
    court_id: int
    status: str
    start_time: datetime
    end_time: Optional[datetime] = None
    shuttlecocks_used: Optional[int] = None
    players: List[MatchPlayerResponse] = []


class CourtSummary(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


def _match_response(session: Session, match) -> MatchResponse:
    players = match_lifecycle.match_players(session, match.id)
    return MatchResponse(
        id=match.id,
        session_id=match.session_id,
        court_id=match.court_id,
        status=match.status,
        start_time=match.start_time,
        end_time=match.end_time,
        shuttlecocks_used=match.shuttlecocks_used,
        players=[MatchPlayerResponse.model_validate(p) for p in players],
    )


def _managed_session(session: Session, session_id: int, caller: Caller):
    queue_session = queue_service.get_session(session, session_id)
    require_session_manager(caller, queue_session)
    return queue_session


# ============================================================================
# Sessions
# ============================================================================


@router.post("/sessions", response_model=SessionResponse)
def create_session(
    payload: SessionCreate,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    """Owners run sessions on their own courts; queue masters name the owner"""
    require_role(caller, ROLE_OWNER, ROLE_QUEUE_MASTER)
    owner_id = caller.user_id if caller.role == ROLE_OWNER else payload.owner_id
    if owner_id is None:
        raise ValidationError("owner_id is required for queue_master")
    return queue_service.create_session(session, owner_id, payload.date, payload.start_time, payload.end_time)


@router.get("/sessions", response_model=List[SessionResponse])
def list_sessions(
    owner_id: Optional[int] = None,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    require_role(caller, ROLE_OWNER, ROLE_QUEUE_MASTER)
    if caller.role == ROLE_OWNER:
        owner_id = caller.user_id
    return queue_service.list_sessions(session, owner_id)


@router.get("/sessions/{session_id}")
def get_session_detail(
    session_id: int,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
) -> Dict[str, Any]:
    _managed_session(session, session_id, caller)
    detail = match_lifecycle.session_detail(session, session_id)
    return {
        "session": SessionResponse.model_validate(detail["session"]).model_dump(mode="json"),
        "entries": [EntryResponse.model_validate(e).model_dump(mode="json") for e in detail["entries"]],
        "active_matches": [
            _match_response(session, item["match"]).model_dump(mode="json") for item in detail["active_matches"]
        ],
        "completed_matches_count": detail["completed_matches_count"],
    }


@router.patch("/sessions/{session_id}", response_model=SessionResponse)
def update_session(
    session_id: int,
    payload: SessionUpdate,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    _managed_session(session, session_id, caller)
    return queue_service.update_session(session, session_id, status=payload.status, end_time=payload.end_time)


# ============================================================================
# Entries
# ============================================================================


@router.get("/sessions/{session_id}/entries", response_model=List[EntryResponse])
def list_entries(
    session_id: int,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    _managed_session(session, session_id, caller)
    return queue_service.list_entries(session, session_id)


@router.post("/sessions/{session_id}/entries", response_model=EntryResponse)
def add_entry(
    session_id: int,
    payload: EntryCreate,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    """Either user_id, or guest_name together with level"""
    _managed_session(session, session_id, caller)

    has_user = payload.user_id is not None
    has_guest = bool(payload.guest_name) and payload.level is not None
    if has_user == has_guest:
        raise ValidationError("Provide either user_id or both guest_name and level.")

    if has_user:
        participant = RegisteredUser(user_id=payload.user_id, name=payload.user_name or "", level=payload.level)
    else:
        participant = Guest(name=payload.guest_name, level=payload.level)
    return queue_service.add_entry(session, session_id, participant, phone=payload.phone, notes=payload.notes)


@router.patch("/entries/{entry_id}", response_model=EntryResponse)
def update_entry(
    entry_id: int,
    payload: EntryUpdate,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    entry = queue_service.get_entry(session, entry_id)
    _managed_session(session, entry.session_id, caller)
    return queue_service.update_entry(session, entry_id, payload.model_dump(exclude_unset=True))


@router.delete("/entries/{entry_id}", status_code=204)
def remove_entry(
    entry_id: int,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    entry = queue_service.get_entry(session, entry_id)
    _managed_session(session, entry.session_id, caller)
    queue_service.remove_entry(session, entry_id)
    return Response(status_code=204)


# ============================================================================
# Courts, suggestions and matches
# ============================================================================


@router.get("/sessions/{session_id}/courts/available", response_model=List[CourtSummary])
def available_courts(
    session_id: int,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    _managed_session(session, session_id, caller)
    return match_lifecycle.available_courts(session, session_id)


@router.get("/sessions/{session_id}/courts")
def court_board(
    session_id: int,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
) -> List[Dict[str, Any]]:
    """All courts with available / in-use status and the teams on them"""
    _managed_session(session, session_id, caller)
    return [status.to_dict() for status in match_lifecycle.court_board(session, session_id)]


@router.post("/sessions/{session_id}/suggest")
def suggest(
    session_id: int,
    payload: SuggestRequest,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
) -> Dict[str, Any]:
    """Suggest 4 waiting players for a court; empty list when no balanced group exists"""
    _managed_session(session, session_id, caller)
    suggested = suggest_match(session, session_id, payload.court_id)
    return {"suggested": [player.to_dict() for player in suggested]}


@router.post("/sessions/{session_id}/matches", response_model=MatchResponse)
def create_match(
    session_id: int,
    payload: MatchCreate,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    """Start a match from explicit teams (teamA/teamB) or a flat queue_entry_ids list"""
    _managed_session(session, session_id, caller)
    if payload.teamA is not None and payload.teamB is not None:
        match = match_lifecycle.create_match(session, session_id, payload.court_id, payload.teamA, payload.teamB)
    elif payload.queue_entry_ids is not None:
        match = match_lifecycle.create_match_from_entries(
            session, session_id, payload.court_id, payload.queue_entry_ids
        )
    else:
        raise InvalidTeamError("Either teamA/teamB or queue_entry_ids must be provided.")
    return _match_response(session, match)


@router.post("/matches/{match_id}/complete", response_model=MatchResponse)
def complete_match(
    match_id: int,
    payload: Optional[MatchComplete] = None,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    match = match_lifecycle.get_match(session, match_id)
    _managed_session(session, match.session_id, caller)
    shuttlecocks_used = payload.shuttlecocks_used if payload else None
    match = match_lifecycle.complete_match(session, match_id, shuttlecocks_used)
    return _match_response(session, match)
