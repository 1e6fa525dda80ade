"""
Conflict API Routes
Read-only conflict queries plus the override ledger.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session

from schedule_guard.database import get_session
from schedule_guard.errors import SchedulingError, http_error
from schedule_guard.models.conflict_override import EventType
from schedule_guard.services import conflict_service, override_ledger
from schedule_guard.services.conflict_service import (
    AffectedEvents,
    ConflictCheckResult,
    OrganizationConflictSummary,
    SeasonConflictSummary,
)
from schedule_guard.services.override_ledger import OverrideCreate

router = APIRouter()


class OverrideRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    organization_id: int
    event_type: EventType
    event_id: int
    blocker_id: int
    actor_id: str
    reason: Optional[str] = None
    recorded_at: datetime


@router.get("/games/{game_id}/conflicts", response_model=ConflictCheckResult)
def get_game_conflicts(game_id: int, session: Session = Depends(get_session)):
    try:
        return conflict_service.check_by_id(session, EventType.GAME, game_id)
    except SchedulingError as e:
        raise http_error(e)


@router.get("/practices/{practice_id}/conflicts", response_model=ConflictCheckResult)
def get_practice_conflicts(practice_id: int, session: Session = Depends(get_session)):
    try:
        return conflict_service.check_by_id(session, EventType.PRACTICE, practice_id)
    except SchedulingError as e:
        raise http_error(e)


@router.get("/seasons/{season_id}/conflicts", response_model=SeasonConflictSummary)
def get_season_conflicts(season_id: int, session: Session = Depends(get_session)):
    try:
        return conflict_service.summarize_season(session, season_id)
    except SchedulingError as e:
        raise http_error(e)


@router.get("/blockers/{blocker_id}/affected-events", response_model=AffectedEvents)
def get_affected_events(blocker_id: int, session: Session = Depends(get_session)):
    try:
        return conflict_service.affected_by_blocker(session, blocker_id)
    except SchedulingError as e:
        raise http_error(e)


@router.get("/organizations/{organization_id}/conflict-summary", response_model=OrganizationConflictSummary)
def get_organization_conflict_summary(organization_id: int, session: Session = Depends(get_session)):
    """Dashboard: existing events caught by blockers created in the last 30 days"""
    try:
        return conflict_service.summarize_organization(session, organization_id)
    except SchedulingError as e:
        raise http_error(e)


@router.post("/conflicts/override", response_model=OverrideRead, status_code=201)
def create_override(
    body: OverrideCreate,
    x_actor_id: str = Header(),
    session: Session = Depends(get_session),
):
    """Record that the event is kept despite the blocker (organization taken from the event)"""
    try:
        organization_id = override_ledger.event_organization_id(session, body.event_type, body.event_id)
        override = override_ledger.create_override(session, organization_id, body, x_actor_id)
    except SchedulingError as e:
        raise http_error(e)
    return OverrideRead.model_validate(override)


@router.get("/games/{game_id}/overrides", response_model=List[OverrideRead])
def get_game_overrides(game_id: int, session: Session = Depends(get_session)):
    overrides = override_ledger.list_overrides_for_event(session, EventType.GAME, game_id)
    return [OverrideRead.model_validate(o) for o in overrides]


@router.get("/practices/{practice_id}/overrides", response_model=List[OverrideRead])
def get_practice_overrides(practice_id: int, session: Session = Depends(get_session)):
    overrides = override_ledger.list_overrides_for_event(session, EventType.PRACTICE, practice_id)
    return [OverrideRead.model_validate(o) for o in overrides]
