from pathlib import Path
from typing import Generator

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from courtqueue.settings import DATABASE_URL, SQL_ECHO

_is_sqlite = DATABASE_URL.startswith("sqlite")
_connect_args = {"check_same_thread": False} if _is_sqlite else {}

if _is_sqlite and ":memory:" not in DATABASE_URL:
    db_path = DATABASE_URL.replace("sqlite:///", "", 1)
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

engine: Engine = create_engine(
    DATABASE_URL,
    echo=SQL_ECHO,
    connect_args=_connect_args,
)


def get_session() -> Generator[Session, None, None]:
    """Get database session"""
    with Session(engine) as session:
        yield session


def import_models() -> None:
    """Register every table with SQLModel metadata"""
    from courtqueue.models.court import Court  # noqa: F401
    from courtqueue.models.court_availability import CourtAvailability  # noqa: F401
    from courtqueue.models.court_booking import BookingDayLock, CourtBooking  # noqa: F401
    from courtqueue.models.queue_entry import QueueEntry  # noqa: F401
    from courtqueue.models.queue_match import QueueMatch, QueueMatchPlayer  # noqa: F401
    from courtqueue.models.queue_session import QueueSession  # noqa: F401


def init_db() -> None:
    """Initialize database - create all tables"""
    import_models()
    SQLModel.metadata.create_all(engine)
