from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

from schedule_guard.utils.instants import utc_now

if TYPE_CHECKING:
    from schedule_guard.models.organization import Organization


class Facility(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    organization_id: int = Field(foreign_key="organization.id", index=True)
    name: str
    facility_type: str = Field(default="GYM")  # GYM | FIELD | POOL | COURT | TRACK | OTHER
    capacity: Optional[int] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)

    # Relationships
    organization: "Organization" = Relationship(back_populates="facilities")
