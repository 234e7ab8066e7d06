from datetime import date, datetime, time
from typing import Optional

from sqlmodel import Field, SQLModel

from courtqueue.utils.clock import utcnow

SESSION_UPCOMING = "upcoming"
SESSION_ACTIVE = "active"
SESSION_ENDED = "ended"

# Operator-driven and monotonic
SESSION_STATUS_ORDER = (SESSION_UPCOMING, SESSION_ACTIVE, SESSION_ENDED)


class QueueSession(SQLModel, table=True):
    __tablename__ = "queuesession"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(index=True)
    day_date: date
    start_time: time
    end_time: Optional[time] = Field(default=None)
    status: str = Field(default=SESSION_UPCOMING)
    created_at: datetime = Field(default_factory=utcnow)
