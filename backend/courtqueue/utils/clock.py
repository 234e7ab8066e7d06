"""
Time helpers shared by slot generation and booking validation.

Times are naive wall-clock values of the venue; days of week follow the
0 = Sunday ... 6 = Saturday convention used by stored availability rows.
Stored timestamps are naive UTC, while "today" is the calendar date in
`settings.VENUE_TIMEZONE`.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

from courtqueue import settings
from courtqueue.errors import ValidationError

TimeLike = Union[str, time]


def utcnow() -> datetime:
    """Naive UTC timestamp used for every stored "now"."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today(now: Optional[datetime] = None) -> date:
    """Current date at the venue. `now` must be timezone-aware when given."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(ZoneInfo(settings.VENUE_TIMEZONE)).date()


def parse_hhmm(value: TimeLike) -> time:
    """
    Parse "HH:MM" (or "HH:MM:SS") into a time.

    time instances pass through unchanged.
    """
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"Invalid time value: {value!r}")
    raw = value.strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"Time must be in HH:MM format, got {value!r}")


def parse_date(value: Union[str, date]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"Date must be in YYYY-MM-DD format, got {value!r}")


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def day_of_week(day: date) -> int:
    """0 = Sunday, 1 = Monday, ..., 6 = Saturday"""
    return (day.weekday() + 1) % 7


def minutes_of(value: time) -> int:
    return value.hour * 60 + value.minute


def add_minutes(value: time, minutes: int) -> time:
    """Add minutes to a wall-clock time, clamped to the same day."""
    shifted = datetime.combine(date.min, value) + timedelta(minutes=minutes)
    if shifted.date() != date.min:
        return time.max
    return shifted.time()


def duration_hours(start: time, end: time) -> float:
    """Duration between two same-day times in hours (0 when end <= start)."""
    minutes = minutes_of(end) - minutes_of(start)
    return max(minutes, 0) / 60


def intervals_overlap(a_start: time, a_end: time, b_start: time, b_end: time) -> bool:
    """Half-open [start, end) overlap; touching intervals do not overlap."""
    return a_start < b_end and a_end > b_start
