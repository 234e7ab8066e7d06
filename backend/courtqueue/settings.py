"""
Runtime configuration, read once from the environment (and `.env`).

Values that the frontend needs to render booking screens are exposed
through `public_config()`.
"""
import os
from typing import Dict, List

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./courtqueue.db")
SQL_ECHO = _env_bool("SQL_ECHO")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Fixed length of a bookable slot generated from an availability window
SLOT_MINUTES = _env_int("SLOT_MINUTES", 60)

# Players can only book up to this many days from today
ADVANCE_BOOKING_DAYS = _env_int("ADVANCE_BOOKING_DAYS", 7)

# Price per shuttlecock charged on top of court time
SHUTTLECOCK_PRICE = _env_int("SHUTTLECOCK_PRICE", 120)

# IANA zone of the venue; booking dates and times are wall-clock values there
VENUE_TIMEZONE = os.getenv("VENUE_TIMEZONE", "UTC")


def cors_origins() -> List[str]:
    origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    extra = os.getenv("CORS_ORIGINS", "")
    if extra:
        origins.extend(o.strip() for o in extra.split(",") if o.strip())
    return origins


def public_config() -> Dict[str, int]:
    return {
        "shuttlecock_price": SHUTTLECOCK_PRICE,
        "advance_booking_days": ADVANCE_BOOKING_DAYS,
        "slot_minutes": SLOT_MINUTES,
    }
