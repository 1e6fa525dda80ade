"""
Blocker management.

Every create and update goes through BlockerFields so the window and scope
invariants hold for every stored row. Both return the blocker together with
the number of already-scheduled events it now covers.
"""

import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, or_
from sqlmodel import Session, select

from schedule_guard.errors import NotFoundError, ValidationError
from schedule_guard.models.blocker import Blocker, BlockerApplicability, BlockerFields, BlockerKind
from schedule_guard.models.facility import Facility
from schedule_guard.models.organization import Organization
from schedule_guard.models.team import Team
from schedule_guard.services.conflict_service import AffectedCounts, count_affected_by_blocker, get_blocker_or_404
from schedule_guard.utils.instants import to_utc_naive

logger = logging.getLogger(__name__)


class BlockerUpdate(BaseModel):
    """Partial update; only fields present in the payload are applied."""

    kind: Optional[BlockerKind] = None
    applicability: Optional[BlockerApplicability] = None
    name: Optional[str] = None
    description: Optional[str] = None
    team_id: Optional[int] = None
    facility_id: Optional[int] = None
    start_instant: Optional[datetime] = None
    end_instant: Optional[datetime] = None


class BlockerQuery(BaseModel):
    start_from: Optional[datetime] = None
    end_to: Optional[datetime] = None
    applicability: Optional[BlockerApplicability] = None
    kind: Optional[BlockerKind] = None
    team_id: Optional[int] = None
    facility_id: Optional[int] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=100)


class BlockerRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    organization_id: int
    kind: BlockerKind
    applicability: BlockerApplicability
    team_id: Optional[int] = None
    facility_id: Optional[int] = None
    name: str
    description: Optional[str] = None
    start_instant: datetime
    end_instant: datetime
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PageMeta(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class BlockerPage(BaseModel):
    data: List[BlockerRead]
    meta: PageMeta


def _validation_messages(exc: PydanticValidationError) -> List[Dict[str, Any]]:
    return [{"field": ".".join(str(p) for p in err["loc"]) or "blocker", "message": err["msg"]} for err in exc.errors()]


def _check_references(session: Session, organization_id: int, fields: BlockerFields) -> None:
    """Team / facility named by the blocker must belong to the same organization."""
    if fields.team_id is not None:
        team = session.get(Team, fields.team_id)
        if not team or team.organization_id != organization_id:
            raise NotFoundError("Team", fields.team_id)

    if fields.facility_id is not None:
        facility = session.get(Facility, fields.facility_id)
        if not facility or facility.organization_id != organization_id:
            raise NotFoundError("Facility", fields.facility_id)


def get_blocker(session: Session, organization_id: int, blocker_id: int) -> Blocker:
    return get_blocker_or_404(session, blocker_id, organization_id)


def create_blocker(
    session: Session, organization_id: int, fields: BlockerFields, actor_id: Optional[str] = None
) -> Tuple[Blocker, AffectedCounts]:
    if not session.get(Organization, organization_id):
        raise NotFoundError("Organization", organization_id)
    _check_references(session, organization_id, fields)

    blocker = Blocker(organization_id=organization_id, created_by=actor_id, **fields.model_dump())
    session.add(blocker)
    session.commit()
    session.refresh(blocker)

    counts = count_affected_by_blocker(session, blocker)
    logger.info(
        f"Blocker {blocker.id} '{blocker.name}' created ({blocker.applicability}), "
        f"{counts.total} existing event(s) affected"
    )
    return blocker, counts


def update_blocker(
    session: Session, organization_id: int, blocker_id: int, changes: Dict[str, Any]
) -> Tuple[Blocker, AffectedCounts]:
    blocker = get_blocker_or_404(session, blocker_id, organization_id)

    try:
        fields = BlockerFields.merged(blocker, changes)
    except PydanticValidationError as e:
        raise ValidationError("Invalid blocker update", errors=_validation_messages(e))

    _check_references(session, organization_id, fields)

    blocker.apply_fields(fields)
    session.add(blocker)
    session.commit()
    session.refresh(blocker)

    counts = count_affected_by_blocker(session, blocker)
    logger.info(f"Blocker {blocker.id} updated, {counts.total} existing event(s) affected")
    return blocker, counts


def delete_blocker(session: Session, organization_id: int, blocker_id: int) -> None:
    blocker = get_blocker_or_404(session, blocker_id, organization_id)
    session.delete(blocker)
    session.commit()
    logger.info(f"Blocker {blocker_id} deleted")


def list_blockers(session: Session, organization_id: int, query: BlockerQuery) -> BlockerPage:
    """
    Filtered, paginated blockers ordered by start.

    start_from / end_to select blockers whose window overlaps that range
    (half-open, like conflict checks). team_id / facility_id filters also
    include organization-wide blockers.
    """
    conditions = [Blocker.organization_id == organization_id]

    if query.applicability is not None:
        conditions.append(Blocker.applicability == query.applicability)
    if query.kind is not None:
        conditions.append(Blocker.kind == query.kind)
    if query.start_from is not None:
        conditions.append(Blocker.end_instant > to_utc_naive(query.start_from))
    if query.end_to is not None:
        conditions.append(Blocker.start_instant < to_utc_naive(query.end_to))

    scoped = []
    if query.team_id is not None:
        scoped.append(Blocker.team_id == query.team_id)
    if query.facility_id is not None:
        scoped.append(Blocker.facility_id == query.facility_id)
    if scoped:
        conditions.append(or_(Blocker.applicability == BlockerApplicability.ORG_WIDE, *scoped))

    total = session.exec(select(func.count(Blocker.id)).where(*conditions)).one()

    blockers = session.exec(
        select(Blocker)
        .where(*conditions)
        .order_by(Blocker.start_instant, Blocker.id)
        .offset((query.page - 1) * query.limit)
        .limit(query.limit)
    ).all()

    return BlockerPage(
        data=[BlockerRead.model_validate(b) for b in blockers],
        meta=PageMeta(
            page=query.page,
            limit=query.limit,
            total=total,
            total_pages=math.ceil(total / query.limit) if total else 0,
        ),
    )
