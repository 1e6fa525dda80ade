from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

from schedule_guard.utils.instants import utc_now

if TYPE_CHECKING:
    from schedule_guard.models.season import Season

DEFAULT_PRACTICE_MINUTES = 90


class Practice(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="season.id", index=True)
    facility_id: Optional[int] = Field(default=None, foreign_key="facility.id")
    start_instant: datetime = Field(index=True)
    duration_minutes: int = Field(default=DEFAULT_PRACTICE_MINUTES)
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    # Relationships
    season: "Season" = Relationship(back_populates="practices")
