"""
Interval & Scope Matcher

Decides whether a blocker applies to a scheduled event. Everything that
reports a conflict (per-event checks, season and organization rollups, the
blocker "affected events" view, import previews) goes through matches().

Time overlap uses half-open windows [start, end): a blocker ending exactly
when an event starts (or starting exactly when it ends) does not conflict.

windows_overlap() combines its comparisons with `&` rather than `and`, so the
same function evaluates plain datetimes to a bool and SQLAlchemy columns to
a SQL clause. Storage queries reuse it instead of restating the rule.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from schedule_guard.models.blocker import Blocker, BlockerApplicability
from schedule_guard.models.conflict_override import EventType
from schedule_guard.models.game import GAME_DURATION_MINUTES, Game
from schedule_guard.models.practice import Practice


@dataclass(frozen=True)
class ScheduledEvent:
    """
    A game or practice reduced to what conflict detection needs.

    event_id is None for prospective events (import rows not yet persisted).
    """

    event_type: EventType
    season_id: int
    start_instant: datetime
    duration_minutes: int
    facility_id: Optional[int] = None
    event_id: Optional[int] = None

    @property
    def end_instant(self) -> datetime:
        return self.start_instant + timedelta(minutes=self.duration_minutes)

    @classmethod
    def from_game(cls, game: Game) -> "ScheduledEvent":
        return cls(
            event_type=EventType.GAME,
            season_id=game.season_id,
            start_instant=game.start_instant,
            duration_minutes=GAME_DURATION_MINUTES,
            facility_id=game.facility_id,
            event_id=game.id,
        )

    @classmethod
    def from_practice(cls, practice: Practice) -> "ScheduledEvent":
        return cls(
            event_type=EventType.PRACTICE,
            season_id=practice.season_id,
            start_instant=practice.start_instant,
            duration_minutes=practice.duration_minutes,
            facility_id=practice.facility_id,
            event_id=practice.id,
        )


def windows_overlap(a_start: Any, a_end: Any, b_start: Any, b_end: Any) -> Any:
    """Half-open overlap of [a_start, a_end) and [b_start, b_end)."""
    return (a_start < b_end) & (a_end > b_start)


def scope_applies(
    blocker: Blocker,
    event_team_id: Optional[int],
    event_facility_id: Optional[int],
) -> bool:
    applicability = BlockerApplicability(blocker.applicability)
    if applicability == BlockerApplicability.ORG_WIDE:
        return True
    if applicability == BlockerApplicability.TEAM:
        return blocker.team_id is not None and blocker.team_id == event_team_id
    # FACILITY: an event without a facility never matches
    return event_facility_id is not None and event_facility_id == blocker.facility_id


def matches(blocker: Blocker, event: ScheduledEvent, event_team_id: int, event_org_id: int) -> bool:
    """True iff the blocker's window and scope both apply to the event."""
    if blocker.organization_id != event_org_id:
        return False
    if not windows_overlap(blocker.start_instant, blocker.end_instant, event.start_instant, event.end_instant):
        return False
    return scope_applies(blocker, event_team_id, event.facility_id)
