"""
Blocker Model - administratively declared unavailability windows.

A blocker's applicability decides which events it can conflict with:
ORG_WIDE (every event in the organization), TEAM (one team's events) or
FACILITY (events held at one facility).

BlockerFields is the one place the shape invariants live:
- end_instant > start_instant
- TEAM requires team_id, FACILITY requires facility_id
- the id that does not belong to the applicability is always cleared

Create and update paths both go through BlockerFields before touching the
table row, so a scope change can never leave a stale team_id/facility_id.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import field_validator, model_validator
from sqlalchemy import Index, String
from sqlmodel import Column, Field, SQLModel

from schedule_guard.utils.instants import to_utc_naive, utc_now


class BlockerKind(str, Enum):
    EXAM = "EXAM"
    MAINTENANCE = "MAINTENANCE"
    EVENT = "EVENT"
    TRAVEL = "TRAVEL"
    HOLIDAY = "HOLIDAY"
    WEATHER = "WEATHER"
    CUSTOM = "CUSTOM"


class BlockerApplicability(str, Enum):
    ORG_WIDE = "ORG_WIDE"
    TEAM = "TEAM"
    FACILITY = "FACILITY"


class BlockerFields(SQLModel):
    """Validated, scope-consistent blocker attributes (no identity, no tenant)."""

    kind: BlockerKind
    applicability: BlockerApplicability
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    team_id: Optional[int] = None
    facility_id: Optional[int] = None
    start_instant: datetime
    end_instant: datetime

    @field_validator("start_instant", "end_instant")
    @classmethod
    def normalize_instant(cls, v: datetime) -> datetime:
        return to_utc_naive(v)

    @model_validator(mode="after")
    def enforce_scope(self):
        if self.end_instant <= self.start_instant:
            raise ValueError("end_instant must be after start_instant")

        if self.applicability == BlockerApplicability.TEAM:
            if self.team_id is None:
                raise ValueError("team_id is required when applicability is TEAM")
            self.facility_id = None
        elif self.applicability == BlockerApplicability.FACILITY:
            if self.facility_id is None:
                raise ValueError("facility_id is required when applicability is FACILITY")
            self.team_id = None
        else:
            self.team_id = None
            self.facility_id = None
        return self

    @classmethod
    def merged(cls, blocker: "Blocker", changes: dict[str, Any]) -> "BlockerFields":
        """Re-validate a stored blocker with a partial update applied on top."""
        current = {name: getattr(blocker, name) for name in cls.model_fields}
        current.update(changes)
        return cls.model_validate(current)


class Blocker(SQLModel, table=True):
    __table_args__ = (Index("ix_blocker_window", "start_instant", "end_instant"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    organization_id: int = Field(foreign_key="organization.id", index=True)
    kind: BlockerKind = Field(sa_column=Column(String, nullable=False))
    applicability: BlockerApplicability = Field(sa_column=Column(String, nullable=False))
    team_id: Optional[int] = Field(default=None, foreign_key="team.id")
    facility_id: Optional[int] = Field(default=None, foreign_key="facility.id")
    name: str
    description: Optional[str] = None
    start_instant: datetime
    end_instant: datetime
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    def apply_fields(self, fields: BlockerFields) -> None:
        for name, value in fields.model_dump().items():
            setattr(self, name, value)
