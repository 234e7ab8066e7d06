from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

from courtqueue.utils.clock import utcnow

if TYPE_CHECKING:
    from courtqueue.models.court_availability import CourtAvailability


class Court(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(index=True)
    name: str
    # NULL means the venue never used the active flag; treated as active
    is_active: Optional[bool] = Field(default=True)
    hourly_rate: Optional[float] = Field(default=None)
    reservation_fee_percentage: float = Field(default=0)  # 0-100
    created_at: datetime = Field(default_factory=utcnow)

    availabilities: List["CourtAvailability"] = Relationship(
        back_populates="court", sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )

    @property
    def is_open_for_play(self) -> bool:
        return self.is_active is None or bool(self.is_active)
