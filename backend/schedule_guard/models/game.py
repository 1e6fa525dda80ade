from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String
from sqlmodel import Column, Field, Relationship, SQLModel

from schedule_guard.utils.instants import utc_now

if TYPE_CHECKING:
    from schedule_guard.models.season import Season

# Games carry no duration of their own; conflict checks assume this length
GAME_DURATION_MINUTES = 120


class HomeAway(str, Enum):
    HOME = "HOME"
    AWAY = "AWAY"
    NEUTRAL = "NEUTRAL"


class GameStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    POSTPONED = "POSTPONED"
    COMPLETED = "COMPLETED"


class Game(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="season.id", index=True)
    facility_id: Optional[int] = Field(default=None, foreign_key="facility.id")
    opponent: str
    start_instant: datetime = Field(index=True)
    home_away: HomeAway = Field(default=HomeAway.HOME, sa_column=Column(String, nullable=False))
    status: GameStatus = Field(default=GameStatus.SCHEDULED, sa_column=Column(String, nullable=False))
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    # Relationships
    season: "Season" = Relationship(back_populates="games")
