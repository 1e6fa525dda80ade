"""
Blocker API Routes
CRUD for an organization's blockers. Create and update report how many
already-scheduled events the blocker now covers.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from pydantic import BaseModel
from sqlmodel import Session

from schedule_guard.database import get_session
from schedule_guard.errors import SchedulingError, http_error
from schedule_guard.models.blocker import BlockerApplicability, BlockerFields, BlockerKind
from schedule_guard.services import blocker_service
from schedule_guard.services.blocker_service import BlockerPage, BlockerQuery, BlockerRead, BlockerUpdate
from schedule_guard.services.conflict_service import AffectedCounts

router = APIRouter()


class BlockerWithImpact(BaseModel):
    blocker: BlockerRead
    affected_events: AffectedCounts


@router.get("/organizations/{organization_id}/blockers", response_model=BlockerPage)
def list_blockers(
    organization_id: int,
    start_from: Optional[datetime] = Query(default=None, alias="from"),
    end_to: Optional[datetime] = Query(default=None, alias="to"),
    applicability: Optional[BlockerApplicability] = None,
    kind: Optional[BlockerKind] = None,
    team_id: Optional[int] = None,
    facility_id: Optional[int] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    session: Session = Depends(get_session),
):
    """List blockers overlapping an optional [from, to) range, ordered by start"""
    query = BlockerQuery(
        start_from=start_from,
        end_to=end_to,
        applicability=applicability,
        kind=kind,
        team_id=team_id,
        facility_id=facility_id,
        page=page,
        limit=limit,
    )
    return blocker_service.list_blockers(session, organization_id, query)


@router.post("/organizations/{organization_id}/blockers", response_model=BlockerWithImpact, status_code=201)
def create_blocker(
    organization_id: int,
    fields: BlockerFields,
    x_actor_id: Optional[str] = Header(default=None),
    session: Session = Depends(get_session),
):
    try:
        blocker, counts = blocker_service.create_blocker(session, organization_id, fields, x_actor_id)
    except SchedulingError as e:
        raise http_error(e)
    return BlockerWithImpact(blocker=BlockerRead.model_validate(blocker), affected_events=counts)


@router.get("/organizations/{organization_id}/blockers/{blocker_id}", response_model=BlockerRead)
def get_blocker(organization_id: int, blocker_id: int, session: Session = Depends(get_session)):
    try:
        return BlockerRead.model_validate(blocker_service.get_blocker(session, organization_id, blocker_id))
    except SchedulingError as e:
        raise http_error(e)


@router.put("/organizations/{organization_id}/blockers/{blocker_id}", response_model=BlockerWithImpact)
def update_blocker(
    organization_id: int,
    blocker_id: int,
    changes: BlockerUpdate,
    session: Session = Depends(get_session),
):
    """Partial update; switching applicability clears the team/facility that no longer applies"""
    try:
        blocker, counts = blocker_service.update_blocker(
            session, organization_id, blocker_id, changes.model_dump(exclude_unset=True)
        )
    except SchedulingError as e:
        raise http_error(e)
    return BlockerWithImpact(blocker=BlockerRead.model_validate(blocker), affected_events=counts)


@router.delete("/organizations/{organization_id}/blockers/{blocker_id}", status_code=204)
def delete_blocker(organization_id: int, blocker_id: int, session: Session = Depends(get_session)):
    try:
        blocker_service.delete_blocker(session, organization_id, blocker_id)
    except SchedulingError as e:
        raise http_error(e)
