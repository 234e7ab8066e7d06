from datetime import datetime
from typing import List, Optional

from sqlalchemy import CheckConstraint, Index, text
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from courtqueue.utils.clock import utcnow

MATCH_ACTIVE = "active"
MATCH_COMPLETED = "completed"

TEAM_A = "A"
TEAM_B = "B"

ACTIVE_MATCH_INDEX = "uq_queuematch_active_session_court"


class QueueMatch(SQLModel, table=True):
    __tablename__ = "queuematch"
    __table_args__ = (
        # At most one active match per (session, court)
        Index(
            ACTIVE_MATCH_INDEX,
            "session_id",
            "court_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: int = Field(foreign_key="queuesession.id", index=True)
    court_id: int = Field(foreign_key="court.id")
    status: str = Field(default=MATCH_ACTIVE)  # "active" | "completed"
    start_time: datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime] = Field(default=None)
    shuttlecocks_used: Optional[int] = Field(default=None)

    players: List["QueueMatchPlayer"] = Relationship(
        back_populates="match", sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )


class QueueMatchPlayer(SQLModel, table=True):
    __tablename__ = "queuematchplayer"
    __table_args__ = (
        SAUniqueConstraint("match_id", "queue_entry_id", name="uq_matchplayer_match_entry"),
        CheckConstraint("team IN ('A', 'B')", name="ck_matchplayer_team"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="queuematch.id", index=True)
    queue_entry_id: int = Field(foreign_key="queueentry.id", index=True)
    team: str = Field(max_length=1)  # "A" | "B"

    match: "QueueMatch" = Relationship(back_populates="players")
