"""
Game / Practice API Routes
Writes return the entity together with its current conflicts.
"""

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from schedule_guard.database import get_session
from schedule_guard.errors import SchedulingError, http_error
from schedule_guard.services import schedule_service
from schedule_guard.services.conflict_service import Conflict, ConflictCheckResult
from schedule_guard.services.schedule_service import (
    GameCreate,
    GameRead,
    GameUpdate,
    PracticeCreate,
    PracticeRead,
    PracticeUpdate,
)

router = APIRouter()


class GameWithConflicts(BaseModel):
    game: GameRead
    has_conflicts: bool
    conflicts: List[Conflict]


class PracticeWithConflicts(BaseModel):
    practice: PracticeRead
    has_conflicts: bool
    conflicts: List[Conflict]


def _game_response(game, result: ConflictCheckResult) -> GameWithConflicts:
    return GameWithConflicts(
        game=GameRead.model_validate(game), has_conflicts=result.has_conflicts, conflicts=result.conflicts
    )


def _practice_response(practice, result: ConflictCheckResult) -> PracticeWithConflicts:
    return PracticeWithConflicts(
        practice=PracticeRead.model_validate(practice), has_conflicts=result.has_conflicts, conflicts=result.conflicts
    )


# ============================================================================
# Games
# ============================================================================


@router.post("/seasons/{season_id}/games", response_model=GameWithConflicts, status_code=201)
def create_game(season_id: int, data: GameCreate, session: Session = Depends(get_session)):
    try:
        game, result = schedule_service.create_game(session, season_id, data)
    except SchedulingError as e:
        raise http_error(e)
    return _game_response(game, result)


@router.get("/games/{game_id}", response_model=GameRead)
def get_game(game_id: int, session: Session = Depends(get_session)):
    try:
        return GameRead.model_validate(schedule_service.get_game(session, game_id))
    except SchedulingError as e:
        raise http_error(e)


@router.put("/games/{game_id}", response_model=GameWithConflicts)
def update_game(game_id: int, data: GameUpdate, session: Session = Depends(get_session)):
    try:
        game, result = schedule_service.update_game(session, game_id, data.model_dump(exclude_unset=True))
    except SchedulingError as e:
        raise http_error(e)
    return _game_response(game, result)


@router.delete("/games/{game_id}", status_code=204)
def delete_game(game_id: int, session: Session = Depends(get_session)):
    try:
        schedule_service.delete_game(session, game_id)
    except SchedulingError as e:
        raise http_error(e)


# ============================================================================
# Practices
# ============================================================================


@router.post("/seasons/{season_id}/practices", response_model=PracticeWithConflicts, status_code=201)
def create_practice(season_id: int, data: PracticeCreate, session: Session = Depends(get_session)):
    try:
        practice, result = schedule_service.create_practice(session, season_id, data)
    except SchedulingError as e:
        raise http_error(e)
    return _practice_response(practice, result)


@router.get("/practices/{practice_id}", response_model=PracticeRead)
def get_practice(practice_id: int, session: Session = Depends(get_session)):
    try:
        return PracticeRead.model_validate(schedule_service.get_practice(session, practice_id))
    except SchedulingError as e:
        raise http_error(e)


@router.put("/practices/{practice_id}", response_model=PracticeWithConflicts)
def update_practice(practice_id: int, data: PracticeUpdate, session: Session = Depends(get_session)):
    try:
        practice, result = schedule_service.update_practice(session, practice_id, data.model_dump(exclude_unset=True))
    except SchedulingError as e:
        raise http_error(e)
    return _practice_response(practice, result)


@router.delete("/practices/{practice_id}", status_code=204)
def delete_practice(practice_id: int, session: Session = Depends(get_session)):
    try:
        schedule_service.delete_practice(session, practice_id)
    except SchedulingError as e:
        raise http_error(e)
