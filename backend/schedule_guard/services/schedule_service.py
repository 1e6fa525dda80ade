"""
Game / practice writes with an immediate conflict check.

Creating or updating an event returns the stored entity together with the
blockers it now overlaps, so the caller can warn right away and offer to
record an override.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlmodel import Session

from schedule_guard.errors import NotFoundError, ValidationError
from schedule_guard.models.facility import Facility
from schedule_guard.models.game import Game, GameStatus, HomeAway
from schedule_guard.models.practice import DEFAULT_PRACTICE_MINUTES, Practice
from schedule_guard.services.conflict_matcher import ScheduledEvent
from schedule_guard.services.conflict_service import ConflictCheckResult, check_event, load_season_context
from schedule_guard.utils.instants import to_utc_naive

logger = logging.getLogger(__name__)


class GameCreate(BaseModel):
    opponent: str = Field(min_length=1)
    start_instant: datetime
    home_away: HomeAway = HomeAway.HOME
    status: GameStatus = GameStatus.SCHEDULED
    facility_id: Optional[int] = None
    notes: Optional[str] = None

    @field_validator("start_instant")
    @classmethod
    def normalize_instant(cls, v: datetime) -> datetime:
        return to_utc_naive(v)


class GameUpdate(BaseModel):
    opponent: Optional[str] = Field(default=None, min_length=1)
    start_instant: Optional[datetime] = None
    home_away: Optional[HomeAway] = None
    status: Optional[GameStatus] = None
    facility_id: Optional[int] = None
    notes: Optional[str] = None

    @field_validator("start_instant")
    @classmethod
    def normalize_instant(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc_naive(v)


class PracticeCreate(BaseModel):
    start_instant: datetime
    duration_minutes: int = Field(default=DEFAULT_PRACTICE_MINUTES, gt=0)
    facility_id: Optional[int] = None
    notes: Optional[str] = None

    @field_validator("start_instant")
    @classmethod
    def normalize_instant(cls, v: datetime) -> datetime:
        return to_utc_naive(v)


class PracticeUpdate(BaseModel):
    start_instant: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(default=None, gt=0)
    facility_id: Optional[int] = None
    notes: Optional[str] = None

    @field_validator("start_instant")
    @classmethod
    def normalize_instant(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc_naive(v)


class GameRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    season_id: int
    facility_id: Optional[int] = None
    opponent: str
    start_instant: datetime
    home_away: HomeAway
    status: GameStatus
    notes: Optional[str] = None


class PracticeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    season_id: int
    facility_id: Optional[int] = None
    start_instant: datetime
    duration_minutes: int
    notes: Optional[str] = None


def _check_facility(session: Session, organization_id: int, facility_id: Optional[int]) -> None:
    if facility_id is None:
        return
    facility = session.get(Facility, facility_id)
    if not facility or facility.organization_id != organization_id:
        raise NotFoundError("Facility", facility_id)


def _reject_nulls(changes: Dict[str, Any], required: Tuple[str, ...]) -> None:
    nulled = [name for name in required if name in changes and changes[name] is None]
    if nulled:
        raise ValidationError(
            "Required fields cannot be cleared",
            errors=[{"field": name, "message": f"{name} cannot be null"} for name in nulled],
        )


# ============================================================================
# Games
# ============================================================================


def get_game(session: Session, game_id: int) -> Game:
    game = session.get(Game, game_id)
    if not game:
        raise NotFoundError("Game", game_id)
    return game


def create_game(session: Session, season_id: int, data: GameCreate) -> Tuple[Game, ConflictCheckResult]:
    context = load_season_context(session, season_id)
    _check_facility(session, context.organization.id, data.facility_id)

    game = Game(season_id=season_id, **data.model_dump())
    session.add(game)
    session.commit()
    session.refresh(game)

    return game, check_event(session, ScheduledEvent.from_game(game), context)


def update_game(session: Session, game_id: int, changes: Dict[str, Any]) -> Tuple[Game, ConflictCheckResult]:
    game = get_game(session, game_id)
    context = load_season_context(session, game.season_id)
    _reject_nulls(changes, ("opponent", "start_instant", "home_away", "status"))
    if "facility_id" in changes:
        _check_facility(session, context.organization.id, changes["facility_id"])

    for field, value in changes.items():
        setattr(game, field, value)
    session.add(game)
    session.commit()
    session.refresh(game)

    return game, check_event(session, ScheduledEvent.from_game(game), context)


def delete_game(session: Session, game_id: int) -> None:
    game = get_game(session, game_id)
    session.delete(game)
    session.commit()
    logger.info(f"Game {game_id} deleted")


# ============================================================================
# Practices
# ============================================================================


def get_practice(session: Session, practice_id: int) -> Practice:
    practice = session.get(Practice, practice_id)
    if not practice:
        raise NotFoundError("Practice", practice_id)
    return practice


def create_practice(session: Session, season_id: int, data: PracticeCreate) -> Tuple[Practice, ConflictCheckResult]:
    context = load_season_context(session, season_id)
    _check_facility(session, context.organization.id, data.facility_id)

    practice = Practice(season_id=season_id, **data.model_dump())
    session.add(practice)
    session.commit()
    session.refresh(practice)

    return practice, check_event(session, ScheduledEvent.from_practice(practice), context)


def update_practice(
    session: Session, practice_id: int, changes: Dict[str, Any]
) -> Tuple[Practice, ConflictCheckResult]:
    practice = get_practice(session, practice_id)
    context = load_season_context(session, practice.season_id)
    _reject_nulls(changes, ("start_instant", "duration_minutes"))
    if "facility_id" in changes:
        _check_facility(session, context.organization.id, changes["facility_id"])

    for field, value in changes.items():
        setattr(practice, field, value)
    session.add(practice)
    session.commit()
    session.refresh(practice)

    return practice, check_event(session, ScheduledEvent.from_practice(practice), context)


def delete_practice(session: Session, practice_id: int) -> None:
    practice = get_practice(session, practice_id)
    session.delete(practice)
    session.commit()
    logger.info(f"Practice {practice_id} deleted")
