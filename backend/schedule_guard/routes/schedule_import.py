"""
Schedule import from spreadsheet rows.

Two calls: preview (read-only, advisory) then execute with the same rows plus
override_conflicts / override_reason / facility_assignments. Execute is
all-or-nothing.
"""

from fastapi import APIRouter, Depends, Header
from sqlmodel import Session

from schedule_guard.database import get_session
from schedule_guard.errors import SchedulingError, http_error
from schedule_guard.services.import_pipeline import (
    ImportExecuteRequest,
    ImportExecuteResult,
    ImportPreviewRequest,
    ImportPreviewResult,
    execute_import,
    preview_import,
)

router = APIRouter(tags=["import"])


@router.post("/seasons/{season_id}/import/preview", response_model=ImportPreviewResult)
def preview_schedule_import(
    season_id: int,
    body: ImportPreviewRequest,
    session: Session = Depends(get_session),
):
    """Validate rows, match facilities and report conflicts without writing anything"""
    try:
        return preview_import(session, season_id, body)
    except SchedulingError as e:
        raise http_error(e)


@router.post("/seasons/{season_id}/import/execute", response_model=ImportExecuteResult, status_code=201)
def execute_schedule_import(
    season_id: int,
    body: ImportExecuteRequest,
    x_actor_id: str = Header(),
    session: Session = Depends(get_session),
):
    """
    Import every row in one transaction.

    400 with the row errors if any row is invalid, 409 with the conflicts if
    rows overlap blockers and override_conflicts is not set.
    """
    try:
        return execute_import(session, season_id, body, x_actor_id)
    except SchedulingError as e:
        raise http_error(e)
