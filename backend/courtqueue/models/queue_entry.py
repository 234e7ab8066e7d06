from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, Index
from sqlmodel import Field, SQLModel

from courtqueue.utils.clock import utcnow

ENTRY_WAITING = "waiting"
ENTRY_MATCHED = "matched"
ENTRY_PLAYING = "playing"
ENTRY_DONE = "done"
ENTRY_LEFT = "left"

ENTRY_STATUSES = (ENTRY_WAITING, ENTRY_MATCHED, ENTRY_PLAYING, ENTRY_DONE, ENTRY_LEFT)

MIN_LEVEL = 1.0
MAX_LEVEL = 7.0


class QueueEntry(SQLModel, table=True):
    __tablename__ = "queueentry"
    __table_args__ = (
        Index("ix_queueentry_session_status", "session_id", "status"),
        CheckConstraint("(user_id IS NULL) <> (guest_name IS NULL)", name="ck_queueentry_user_xor_guest"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: int = Field(foreign_key="queuesession.id")

    # Exactly one of user_id / guest_name is set
    user_id: Optional[int] = Field(default=None)
    guest_name: Optional[str] = Field(default=None)
    display_name: str = Field(default="")

    level: float
    phone: Optional[str] = Field(default=None)
    notes: Optional[str] = Field(default=None)
    status: str = Field(default=ENTRY_WAITING)
    games_played: int = Field(default=0)
    joined_at: datetime = Field(default_factory=utcnow)
