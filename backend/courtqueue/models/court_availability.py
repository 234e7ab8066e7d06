from datetime import time
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtqueue.models.court import Court


class CourtAvailability(SQLModel, table=True):
    __tablename__ = "courtavailability"
    __table_args__ = (
        SAUniqueConstraint("court_id", "day_of_week", name="uq_availability_court_day"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    court_id: int = Field(foreign_key="court.id", index=True)
    day_of_week: int  # 0=Sunday ... 6=Saturday
    open_time: time
    close_time: time

    court: "Court" = Relationship(back_populates="availabilities")
