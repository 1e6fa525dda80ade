from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

from schedule_guard.utils.instants import utc_now

if TYPE_CHECKING:
    from schedule_guard.models.facility import Facility
    from schedule_guard.models.team import Team

DEFAULT_TIMEZONE = "America/New_York"


class Organization(SQLModel, table=True):
    """A school: the tenant root that owns teams, facilities and blockers."""

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    timezone: str = Field(default=DEFAULT_TIMEZONE)  # IANA name, used to read import rows
    created_at: datetime = Field(default_factory=utc_now)

    # Relationships
    teams: List["Team"] = Relationship(back_populates="organization")
    facilities: List["Facility"] = Relationship(back_populates="organization")
