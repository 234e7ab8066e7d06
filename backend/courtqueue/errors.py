"""
Typed engine errors.

Every failure the booking and queue services can report is one of these.
Routes translate them to HTTP responses in one place (see `main.py`);
`retryable` marks the concurrency losers so callers can prompt for another
slot or court instead of asking the user to fix their input.
"""


class EngineError(Exception):
    """Base class for booking/queue engine errors"""

    status_code = 422
    code = "engine_error"
    default_message = "Request could not be completed."
    retryable = False

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code, "retryable": self.retryable}


class ValidationError(EngineError, ValueError):
    code = "validation_error"
    default_message = "Invalid input."


class NotFoundError(EngineError):
    status_code = 404
    code = "not_found"
    default_message = "Not found."


class ForbiddenError(EngineError):
    status_code = 403
    code = "forbidden"
    default_message = "You are not allowed to perform this action."


class ClosedError(EngineError):
    code = "court_closed"
    default_message = "Court is closed during this time."


class SlotTakenError(EngineError):
    status_code = 409
    code = "slot_taken"
    default_message = "Time slot is already booked."
    retryable = True


class DuplicateDayError(EngineError):
    status_code = 409
    code = "duplicate_day"
    default_message = "Availability for this day already exists."


class MismatchError(EngineError):
    status_code = 403
    code = "availability_mismatch"
    default_message = "Availability does not belong to this court."


class CourtUnavailableError(EngineError):
    status_code = 409
    code = "court_unavailable"
    default_message = "Court is not available for this session."
    retryable = True


class InvalidTeamError(EngineError):
    code = "invalid_team"
    default_message = "Both Team A and Team B must have exactly 2 unique players."


class EntriesNotWaitingError(EngineError):
    status_code = 409
    code = "entries_not_waiting"
    default_message = "All 4 entries must be waiting and belong to this session."


class MatchNotActiveError(EngineError):
    status_code = 409
    code = "match_not_active"
    default_message = "Match is not active."
