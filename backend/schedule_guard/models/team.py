from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

from schedule_guard.utils.instants import utc_now

if TYPE_CHECKING:
    from schedule_guard.models.organization import Organization
    from schedule_guard.models.season import Season


class Team(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    organization_id: int = Field(foreign_key="organization.id", index=True)
    name: str
    sport: str
    level: str = Field(default="VARSITY")  # VARSITY | JV | FRESHMAN
    created_at: datetime = Field(default_factory=utc_now)

    # Relationships
    organization: "Organization" = Relationship(back_populates="teams")
    seasons: List["Season"] = Relationship(back_populates="team")
