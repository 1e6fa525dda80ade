"""
Conflict Override Model - append-only ledger of accepted conflicts.

One row per (event, blocker) pair that an actor chose to schedule anyway.
There is no uniqueness constraint on (event_type, event_id, blocker_id):
repeated acknowledgments accumulate.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Index, String
from sqlmodel import Column, Field, SQLModel

from schedule_guard.utils.instants import utc_now


class EventType(str, Enum):
    GAME = "GAME"
    PRACTICE = "PRACTICE"


class ConflictOverride(SQLModel, table=True):
    __tablename__ = "conflict_override"

    __table_args__ = (Index("ix_conflict_override_event", "event_type", "event_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    organization_id: int = Field(foreign_key="organization.id", index=True)
    event_type: EventType = Field(sa_column=Column(String, nullable=False))
    event_id: int
    blocker_id: int = Field(index=True)  # no FK: blockers are hard-deleted, the ledger keeps history
    actor_id: str
    reason: Optional[str] = None
    recorded_at: datetime = Field(default_factory=utc_now)
