"""
Override Ledger

Append-only record that an actor scheduled an event despite a blocker.
Creating an entry does not re-check that the conflict still exists: callers
record intent right after seeing the conflict from conflict_service.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel, Field
from sqlmodel import Session, select

from schedule_guard.errors import NotFoundError
from schedule_guard.models.conflict_override import ConflictOverride, EventType
from schedule_guard.models.game import Game
from schedule_guard.models.practice import Practice
from schedule_guard.services.conflict_service import get_blocker_or_404, load_season_context

logger = logging.getLogger(__name__)


class OverrideCreate(BaseModel):
    event_type: EventType
    event_id: int
    blocker_id: int
    reason: Optional[str] = Field(default=None, max_length=500)


def event_organization_id(session: Session, event_type: EventType, event_id: int) -> int:
    """Organization owning a game or practice; NotFoundError if the event is missing."""
    model = Game if event_type == EventType.GAME else Practice
    resource = "Game" if event_type == EventType.GAME else "Practice"

    event = session.get(model, event_id)
    if not event:
        raise NotFoundError(resource, event_id)
    try:
        context = load_season_context(session, event.season_id)
    except NotFoundError:
        raise NotFoundError(resource, event_id)
    return context.organization.id


def create_override(
    session: Session,
    organization_id: int,
    data: OverrideCreate,
    actor_id: str,
    *,
    commit: bool = True,
) -> ConflictOverride:
    """
    Append one ledger entry.

    Both the blocker and the event must belong to organization_id; anything
    else is reported as NotFound so other tenants' ids are not disclosed.
    With commit=False the entry is only flushed (used inside import execute).
    """
    get_blocker_or_404(session, data.blocker_id, organization_id)

    resource = "Game" if data.event_type == EventType.GAME else "Practice"
    if event_organization_id(session, data.event_type, data.event_id) != organization_id:
        raise NotFoundError(resource, data.event_id)

    override = ConflictOverride(
        organization_id=organization_id,
        event_type=data.event_type,
        event_id=data.event_id,
        blocker_id=data.blocker_id,
        actor_id=actor_id,
        reason=data.reason,
    )
    session.add(override)
    if commit:
        session.commit()
        session.refresh(override)
    else:
        session.flush()

    logger.info(
        "Override recorded: %s %s despite blocker %s by %s",
        data.event_type.value,
        data.event_id,
        data.blocker_id,
        actor_id,
    )
    return override


def list_overrides_for_event(session: Session, event_type: EventType, event_id: int) -> List[ConflictOverride]:
    return list(
        session.exec(
            select(ConflictOverride)
            .where(ConflictOverride.event_type == event_type, ConflictOverride.event_id == event_id)
            .order_by(ConflictOverride.recorded_at, ConflictOverride.id)
        ).all()
    )
