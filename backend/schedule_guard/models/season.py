from datetime import date, datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

from schedule_guard.utils.instants import utc_now

if TYPE_CHECKING:
    from schedule_guard.models.game import Game
    from schedule_guard.models.practice import Practice
    from schedule_guard.models.team import Team


class Season(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(foreign_key="team.id", index=True)
    name: str
    year: int
    start_date: date
    end_date: date
    created_at: datetime = Field(default_factory=utc_now)

    # Relationships
    team: "Team" = Relationship(back_populates="seasons")
    games: List["Game"] = Relationship(back_populates="season")
    practices: List["Practice"] = Relationship(back_populates="season")
