"""
Conflict Query Service

Read-only conflict detection built on conflict_matcher.matches():
- check_event / check_by_id: blockers hitting one event
- summarize_season: every game and practice of a season
- affected_by_blocker: the inverse view, events hitting one blocker
- summarize_organization: dashboard rollup of recently created blockers

Conflicts are derived on every call and never persisted. Storage queries only
narrow candidates (organization and time bounds); matches() makes the final
decision so every path shares the same boundary and scope rules.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel
from sqlalchemy import func
from sqlmodel import Session, select

from schedule_guard.errors import NotFoundError
from schedule_guard.models.blocker import Blocker, BlockerApplicability, BlockerKind
from schedule_guard.models.conflict_override import EventType
from schedule_guard.models.game import GAME_DURATION_MINUTES, Game
from schedule_guard.models.organization import Organization
from schedule_guard.models.practice import Practice
from schedule_guard.models.season import Season
from schedule_guard.models.team import Team
from schedule_guard.services.conflict_matcher import ScheduledEvent, matches, windows_overlap
from schedule_guard.utils.instants import utc_now

logger = logging.getLogger(__name__)

RECENT_BLOCKER_DAYS = 30
RECENT_BLOCKER_LIMIT = 10

KIND_LABELS: Dict[BlockerKind, str] = {
    BlockerKind.EXAM: "exam period",
    BlockerKind.MAINTENANCE: "facility maintenance",
    BlockerKind.EVENT: "school event",
    BlockerKind.TRAVEL: "travel blackout",
    BlockerKind.HOLIDAY: "school holiday",
    BlockerKind.WEATHER: "weather closure",
    BlockerKind.CUSTOM: "blocked period",
}

SCOPE_LABELS: Dict[BlockerApplicability, str] = {
    BlockerApplicability.ORG_WIDE: "School-wide",
    BlockerApplicability.FACILITY: "Facility",
    BlockerApplicability.TEAM: "Team",
}


# ============================================================================
# Result models
# ============================================================================


class Conflict(BaseModel):
    blocker_id: int
    blocker_name: str
    kind: BlockerKind
    applicability: BlockerApplicability
    reason: str
    start_instant: datetime
    end_instant: datetime


class ConflictCheckResult(BaseModel):
    has_conflicts: bool
    conflicts: List[Conflict]


class ConflictingEvent(BaseModel):
    event_type: EventType
    event_id: int
    start_instant: datetime
    opponent: Optional[str] = None
    conflicts: List[Conflict]


class SeasonConflictSummary(BaseModel):
    season_id: int
    games_with_conflicts: int
    practices_with_conflicts: int
    total_conflicts: int
    conflicting_events: List[ConflictingEvent]


class AffectedGame(BaseModel):
    id: int
    opponent: str
    start_instant: datetime


class AffectedPractice(BaseModel):
    id: int
    start_instant: datetime
    duration_minutes: int


class AffectedEvents(BaseModel):
    blocker_id: int
    games: List[AffectedGame]
    practices: List[AffectedPractice]
    total_count: int


class AffectedCounts(BaseModel):
    games: int
    practices: int
    total: int


class RecentBlockerImpact(BaseModel):
    blocker_id: int
    blocker_name: str
    kind: BlockerKind
    affected_events_count: int
    created_at: datetime


class OrganizationConflictSummary(BaseModel):
    organization_id: int
    total_conflicts: int
    by_kind: Dict[str, int]
    recently_created: List[RecentBlockerImpact]


@dataclass
class SeasonContext:
    season: Season
    team: Team
    organization: Organization


# ============================================================================
# Helpers
# ============================================================================


def build_conflict_reason(kind: str, applicability: str, name: str) -> str:
    """e.g. "School-wide exam period: Finals" """
    return f"{SCOPE_LABELS[BlockerApplicability(applicability)]} {KIND_LABELS[BlockerKind(kind)]}: {name}"


def to_conflict(blocker: Blocker) -> Conflict:
    return Conflict(
        blocker_id=blocker.id,
        blocker_name=blocker.name,
        kind=BlockerKind(blocker.kind),
        applicability=BlockerApplicability(blocker.applicability),
        reason=build_conflict_reason(blocker.kind, blocker.applicability, blocker.name),
        start_instant=blocker.start_instant,
        end_instant=blocker.end_instant,
    )


def load_season_context(session: Session, season_id: int) -> SeasonContext:
    """Resolve season -> team -> organization, or raise NotFoundError("Season")."""
    season = session.get(Season, season_id)
    if not season:
        raise NotFoundError("Season", season_id)

    team = session.get(Team, season.team_id)
    organization = session.get(Organization, team.organization_id) if team else None
    if not team or not organization:
        raise NotFoundError("Season", season_id)

    return SeasonContext(season=season, team=team, organization=organization)


def get_blocker_or_404(session: Session, blocker_id: int, organization_id: Optional[int] = None) -> Blocker:
    blocker = session.get(Blocker, blocker_id)
    if not blocker or (organization_id is not None and blocker.organization_id != organization_id):
        raise NotFoundError("Blocker", blocker_id)
    return blocker


def load_event(session: Session, event_type: EventType, event_id: int) -> ScheduledEvent:
    if event_type == EventType.GAME:
        game = session.get(Game, event_id)
        if not game:
            raise NotFoundError("Game", event_id)
        return ScheduledEvent.from_game(game)

    practice = session.get(Practice, event_id)
    if not practice:
        raise NotFoundError("Practice", event_id)
    return ScheduledEvent.from_practice(practice)


# ============================================================================
# Per-event checks
# ============================================================================


def check_event(session: Session, event: ScheduledEvent, context: Optional[SeasonContext] = None) -> ConflictCheckResult:
    """
    Find every blocker that applies to the event.

    The event may be prospective (not persisted); only its season, window and
    facility are used. Pass a preloaded context to skip the season lookup.
    """
    if context is None:
        context = load_season_context(session, event.season_id)
    org_id = context.organization.id

    candidates = session.exec(
        select(Blocker)
        .where(
            Blocker.organization_id == org_id,
            windows_overlap(Blocker.start_instant, Blocker.end_instant, event.start_instant, event.end_instant),
        )
        .order_by(Blocker.start_instant, Blocker.id)
    ).all()

    conflicts = [to_conflict(b) for b in candidates if matches(b, event, context.team.id, org_id)]

    logger.debug(
        "Conflict check season=%s start=%s duration=%s facility=%s -> %d conflict(s)",
        event.season_id,
        event.start_instant,
        event.duration_minutes,
        event.facility_id,
        len(conflicts),
    )

    return ConflictCheckResult(has_conflicts=bool(conflicts), conflicts=conflicts)


def check_by_id(session: Session, event_type: EventType, event_id: int) -> ConflictCheckResult:
    return check_event(session, load_event(session, event_type, event_id))


def summarize_season(session: Session, season_id: int) -> SeasonConflictSummary:
    """Run check_event over every game and practice in the season."""
    context = load_season_context(session, season_id)

    games = session.exec(select(Game).where(Game.season_id == season_id).order_by(Game.start_instant, Game.id)).all()
    practices = session.exec(
        select(Practice).where(Practice.season_id == season_id).order_by(Practice.start_instant, Practice.id)
    ).all()

    conflicting_events: List[ConflictingEvent] = []

    for game in games:
        result = check_event(session, ScheduledEvent.from_game(game), context)
        if result.has_conflicts:
            conflicting_events.append(
                ConflictingEvent(
                    event_type=EventType.GAME,
                    event_id=game.id,
                    start_instant=game.start_instant,
                    opponent=game.opponent,
                    conflicts=result.conflicts,
                )
            )

    for practice in practices:
        result = check_event(session, ScheduledEvent.from_practice(practice), context)
        if result.has_conflicts:
            conflicting_events.append(
                ConflictingEvent(
                    event_type=EventType.PRACTICE,
                    event_id=practice.id,
                    start_instant=practice.start_instant,
                    conflicts=result.conflicts,
                )
            )

    games_with_conflicts = sum(1 for e in conflicting_events if e.event_type == EventType.GAME)
    practices_with_conflicts = len(conflicting_events) - games_with_conflicts

    return SeasonConflictSummary(
        season_id=season_id,
        games_with_conflicts=games_with_conflicts,
        practices_with_conflicts=practices_with_conflicts,
        total_conflicts=games_with_conflicts + practices_with_conflicts,
        conflicting_events=conflicting_events,
    )


# ============================================================================
# Blocker-centric queries
# ============================================================================


def find_affected_events(session: Session, blocker: Blocker) -> Tuple[List[Game], List[Practice]]:
    """
    Existing games and practices the blocker applies to.

    Storage narrows to the blocker's organization and to events starting
    before the blocker ends and after blocker start minus the longest
    possible event (fixed game length, longest practice in the
    organization); matches() then applies the exact window and scope rule.
    """
    game_rows = session.exec(
        select(Game, Team.id)
        .join(Season, Game.season_id == Season.id)
        .join(Team, Season.team_id == Team.id)
        .where(
            Team.organization_id == blocker.organization_id,
            Game.start_instant < blocker.end_instant,
            Game.start_instant > blocker.start_instant - timedelta(minutes=GAME_DURATION_MINUTES),
        )
        .order_by(Game.start_instant, Game.id)
    ).all()

    longest_practice = session.exec(
        select(func.max(Practice.duration_minutes))
        .select_from(Practice)
        .join(Season, Practice.season_id == Season.id)
        .join(Team, Season.team_id == Team.id)
        .where(Team.organization_id == blocker.organization_id)
    ).one()

    practice_rows = session.exec(
        select(Practice, Team.id)
        .join(Season, Practice.season_id == Season.id)
        .join(Team, Season.team_id == Team.id)
        .where(
            Team.organization_id == blocker.organization_id,
            Practice.start_instant < blocker.end_instant,
            Practice.start_instant > blocker.start_instant - timedelta(minutes=longest_practice or 0),
        )
        .order_by(Practice.start_instant, Practice.id)
    ).all()

    org_id = blocker.organization_id
    games = [g for g, team_id in game_rows if matches(blocker, ScheduledEvent.from_game(g), team_id, org_id)]
    practices = [
        p for p, team_id in practice_rows if matches(blocker, ScheduledEvent.from_practice(p), team_id, org_id)
    ]
    return games, practices


def count_affected_by_blocker(session: Session, blocker: Blocker) -> AffectedCounts:
    games, practices = find_affected_events(session, blocker)
    return AffectedCounts(games=len(games), practices=len(practices), total=len(games) + len(practices))


def affected_by_blocker(session: Session, blocker_id: int, organization_id: Optional[int] = None) -> AffectedEvents:
    blocker = get_blocker_or_404(session, blocker_id, organization_id)
    games, practices = find_affected_events(session, blocker)

    return AffectedEvents(
        blocker_id=blocker.id,
        games=[AffectedGame(id=g.id, opponent=g.opponent, start_instant=g.start_instant) for g in games],
        practices=[
            AffectedPractice(id=p.id, start_instant=p.start_instant, duration_minutes=p.duration_minutes)
            for p in practices
        ],
        total_count=len(games) + len(practices),
    )


def summarize_organization(
    session: Session, organization_id: int, now: Optional[datetime] = None
) -> OrganizationConflictSummary:
    """
    Dashboard view: how many existing events did recently created blockers catch.

    Looks at the newest RECENT_BLOCKER_LIMIT blockers created within the last
    RECENT_BLOCKER_DAYS days; blockers that affect nothing are left out.
    """
    organization = session.get(Organization, organization_id)
    if not organization:
        raise NotFoundError("Organization", organization_id)

    now = now or utc_now()
    since = now - timedelta(days=RECENT_BLOCKER_DAYS)

    recent_blockers = session.exec(
        select(Blocker)
        .where(Blocker.organization_id == organization_id, Blocker.created_at >= since)
        .order_by(Blocker.created_at.desc(), Blocker.id.desc())
        .limit(RECENT_BLOCKER_LIMIT)
    ).all()

    by_kind: Dict[str, int] = {}
    recently_created: List[RecentBlockerImpact] = []
    total_conflicts = 0

    for blocker in recent_blockers:
        counts = count_affected_by_blocker(session, blocker)
        if counts.total == 0:
            continue

        kind = BlockerKind(blocker.kind)
        total_conflicts += counts.total
        by_kind[kind.value] = by_kind.get(kind.value, 0) + counts.total
        recently_created.append(
            RecentBlockerImpact(
                blocker_id=blocker.id,
                blocker_name=blocker.name,
                kind=kind,
                affected_events_count=counts.total,
                created_at=blocker.created_at,
            )
        )

    return OrganizationConflictSummary(
        organization_id=organization_id,
        total_conflicts=total_conflicts,
        by_kind=by_kind,
        recently_created=recently_created,
    )
