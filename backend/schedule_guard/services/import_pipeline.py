"""
Import Reconciliation Pipeline

Two caller-visible phases with no state kept in between:

preview()  - read-only. Parses every row, resolves its facility text against
             the organization's registry, checks the prospective event for
             conflicts and reports per-row status plus batch totals.
execute()  - re-runs preview() on the resubmitted rows (client-held previews
             are never trusted), refuses on validation errors or on
             unacknowledged conflicts, then creates every event and override
             in one transaction. Any failure rolls the whole batch back.

Executing the same payload twice imports it twice: rows carry no
deduplication key.
"""

import logging
from datetime import datetime, timezone, tzinfo
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field
from sqlmodel import Session, select

from schedule_guard.errors import ConflictsPresentError, NotFoundError, ValidationError
from schedule_guard.models.conflict_override import EventType
from schedule_guard.models.facility import Facility
from schedule_guard.models.game import GAME_DURATION_MINUTES, Game, GameStatus, HomeAway
from schedule_guard.models.practice import DEFAULT_PRACTICE_MINUTES, Practice
from schedule_guard.services.conflict_matcher import ScheduledEvent
from schedule_guard.services.conflict_service import SeasonContext, check_event, load_season_context
from schedule_guard.services.facility_resolver import FacilityMatch, resolve_facility
from schedule_guard.services.override_ledger import OverrideCreate, create_override
from schedule_guard.utils.instants import to_utc_naive

logger = logging.getLogger(__name__)

DEFAULT_OVERRIDE_REASON = "Imported with conflicts acknowledged"

# Spreadsheet rows are 1-based and the first row is a header
HEADER_ROW_OFFSET = 2

DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y")
TIME_FORMATS = ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M%p", "%I:%M:%S %p")


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------


class ImportType(str, Enum):
    games = "games"
    practices = "practices"


class ImportRow(BaseModel):
    """One spreadsheet row as sent by the client's CSV parser."""

    row: Optional[int] = None
    date: str = ""
    time: str = ""
    opponent: Optional[str] = None  # games only
    home_away: HomeAway = HomeAway.HOME  # games only
    duration: Optional[int] = None  # practices only, minutes
    facility: Optional[str] = None
    notes: Optional[str] = None


class ImportPreviewRequest(BaseModel):
    type: ImportType
    rows: List[ImportRow]


class ImportExecuteRequest(ImportPreviewRequest):
    facility_assignments: Dict[int, int] = Field(default_factory=dict)  # row number -> facility id
    override_conflicts: bool = False
    override_reason: Optional[str] = Field(default=None, max_length=500)


class RowError(BaseModel):
    row: int
    field: str
    message: str


class ImportConflictBlocker(BaseModel):
    blocker_id: int
    blocker_name: str
    reason: str


class ImportConflict(BaseModel):
    row: int
    start_instant: datetime
    conflicts: List[ImportConflictBlocker]


class ParsedRow(BaseModel):
    start_instant: datetime
    opponent: Optional[str] = None
    home_away: Optional[HomeAway] = None
    duration: Optional[int] = None
    facility_id: Optional[int] = None
    facility_name: Optional[str] = None
    notes: Optional[str] = None


class PreviewRow(BaseModel):
    row: int
    status: str  # valid | error
    parsed: Optional[ParsedRow] = None
    facility_match: Optional[FacilityMatch] = None
    error: Optional[RowError] = None


class ImportPreviewResult(BaseModel):
    season_id: int
    type: ImportType
    valid: bool
    can_import: bool
    total_rows: int
    valid_rows: int
    invalid_rows: int
    rows_with_conflicts: int
    errors: List[RowError]
    conflicts: List[ImportConflict]
    preview: List[PreviewRow]


class ImportedGame(BaseModel):
    id: int
    opponent: str
    start_instant: datetime
    facility_id: Optional[int] = None


class ImportedPractice(BaseModel):
    id: int
    start_instant: datetime
    duration_minutes: int
    facility_id: Optional[int] = None


class ImportExecuteResult(BaseModel):
    imported: int
    conflicts_overridden: int
    games: List[ImportedGame] = []
    practices: List[ImportedPractice] = []


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """Organization timezone; unknown names fall back to UTC."""
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{name}', reading import rows as UTC")
        return timezone.utc


def _parse_with(value: str, formats: Sequence[str]) -> Optional[datetime]:
    for fmt in formats:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def parse_row_instant(date_text: str, time_text: str, tz: tzinfo) -> Optional[datetime]:
    """
    Combine a wall-clock date and time read in tz into a naive UTC instant.

    Returns None when either part is blank or matches none of the accepted formats.
    """
    date_text = (date_text or "").strip()
    time_text = (time_text or "").strip()
    if not date_text or not time_text:
        return None

    parsed_date = _parse_with(date_text, DATE_FORMATS)
    parsed_time = _parse_with(time_text.upper(), TIME_FORMATS)
    if parsed_date is None or parsed_time is None:
        return None

    local = datetime.combine(parsed_date.date(), parsed_time.time())
    return to_utc_naive(local.replace(tzinfo=tz))


# ---------------------------------------------------------------------------
# Preview
# ---------------------------------------------------------------------------


def _row_number(row: ImportRow, index: int) -> int:
    return row.row if row.row is not None else index + HEADER_ROW_OFFSET


def _load_facilities(session: Session, organization_id: int) -> List[Facility]:
    return list(
        session.exec(select(Facility).where(Facility.organization_id == organization_id).order_by(Facility.id)).all()
    )


def _build_preview(
    session: Session,
    season_id: int,
    request: ImportPreviewRequest,
    facility_assignments: Optional[Dict[int, int]] = None,
) -> Tuple[ImportPreviewResult, SeasonContext, List[Facility]]:
    """
    Parse, resolve and conflict-check every row.

    facility_assignments (row number -> facility id) replace the resolved
    facility before the conflict check, so conflicts reflect where the event
    will actually be held. An assigned id outside the registry is NotFound.
    """
    context = load_season_context(session, season_id)
    tz = resolve_timezone(context.organization.timezone)
    facilities = _load_facilities(session, context.organization.id)
    registry = {f.id: f for f in facilities}
    assignments = facility_assignments or {}
    is_games = request.type == ImportType.games

    errors: List[RowError] = []
    conflicts: List[ImportConflict] = []
    preview: List[PreviewRow] = []
    seen_rows: Set[int] = set()

    def reject(row_num: int, field: str, message: str) -> None:
        error = RowError(row=row_num, field=field, message=message)
        errors.append(error)
        preview.append(PreviewRow(row=row_num, status="error", error=error))

    for index, row in enumerate(request.rows):
        row_num = _row_number(row, index)

        # overrides and facility assignments are keyed by row number
        if row_num in seen_rows:
            reject(row_num, "row", f"Duplicate row number: {row_num}")
            continue
        seen_rows.add(row_num)

        start_instant = parse_row_instant(row.date, row.time, tz)
        if start_instant is None:
            reject(row_num, "date/time", f"Invalid date or time format: '{row.date}' '{row.time}'")
            continue

        if is_games and not (row.opponent and row.opponent.strip()):
            reject(row_num, "opponent", "Opponent is required")
            continue

        if not is_games and row.duration is not None and row.duration <= 0:
            reject(row_num, "duration", f"Duration must be a positive number of minutes: {row.duration}")
            continue

        facility_match = resolve_facility(row.facility, facilities)
        suggestion = facility_match.suggestion
        facility_id = suggestion.facility_id if suggestion else None
        facility_name = suggestion.name if suggestion else None
        if row_num in assignments:
            assigned = registry.get(assignments[row_num])
            if assigned is None:
                raise NotFoundError("Facility", assignments[row_num])
            facility_id, facility_name = assigned.id, assigned.name

        if is_games:
            event_type, duration = EventType.GAME, GAME_DURATION_MINUTES
            parsed = ParsedRow(
                start_instant=start_instant,
                opponent=row.opponent.strip(),
                home_away=row.home_away,
                facility_id=facility_id,
                facility_name=facility_name,
                notes=row.notes,
            )
        else:
            event_type, duration = EventType.PRACTICE, row.duration or DEFAULT_PRACTICE_MINUTES
            parsed = ParsedRow(
                start_instant=start_instant,
                duration=duration,
                facility_id=facility_id,
                facility_name=facility_name,
                notes=row.notes,
            )

        prospective = ScheduledEvent(
            event_type=event_type,
            season_id=season_id,
            start_instant=start_instant,
            duration_minutes=duration,
            facility_id=facility_id,
        )
        result = check_event(session, prospective, context)
        if result.has_conflicts:
            conflicts.append(
                ImportConflict(
                    row=row_num,
                    start_instant=start_instant,
                    conflicts=[
                        ImportConflictBlocker(blocker_id=c.blocker_id, blocker_name=c.blocker_name, reason=c.reason)
                        for c in result.conflicts
                    ],
                )
            )

        preview.append(PreviewRow(row=row_num, status="valid", parsed=parsed, facility_match=facility_match))

    valid_rows = sum(1 for p in preview if p.status == "valid")

    result = ImportPreviewResult(
        season_id=season_id,
        type=request.type,
        valid=not errors,
        can_import=not errors,  # all-or-nothing
        total_rows=len(request.rows),
        valid_rows=valid_rows,
        invalid_rows=len(preview) - valid_rows,
        rows_with_conflicts=len(conflicts),
        errors=errors,
        conflicts=conflicts,
        preview=preview,
    )
    return result, context, facilities


def preview_import(session: Session, season_id: int, request: ImportPreviewRequest) -> ImportPreviewResult:
    """Validate rows and report conflicts without writing anything."""
    result, _, _ = _build_preview(session, season_id, request)
    return result


# ---------------------------------------------------------------------------
# Execute
# ---------------------------------------------------------------------------


def execute_import(
    session: Session,
    season_id: int,
    request: ImportExecuteRequest,
    actor_id: str,
) -> ImportExecuteResult:
    """
    Commit every row of the batch, or nothing.

    Raises:
        NotFoundError: season missing, or an assigned facility outside the registry
        ValidationError: any row failed validation (carries every row error)
        ConflictsPresentError: conflicts exist and override_conflicts is not set
    """
    preview, context, _ = _build_preview(session, season_id, request, request.facility_assignments)

    if not preview.can_import:
        logger.warning(f"Import into season {season_id} rejected: {len(preview.errors)} row error(s)")
        raise ValidationError("Cannot import: validation errors exist", errors=preview.errors)

    if preview.rows_with_conflicts > 0 and not request.override_conflicts:
        logger.warning(f"Import into season {season_id} rejected: {preview.rows_with_conflicts} row(s) with conflicts")
        raise ConflictsPresentError(
            "Import has conflicts. Set override_conflicts=true to proceed.",
            conflicts=preview.conflicts,
        )

    organization_id = context.organization.id
    conflicts_by_row = {c.row: c for c in preview.conflicts}
    reason = request.override_reason or DEFAULT_OVERRIDE_REASON
    is_games = request.type == ImportType.games

    games: List[ImportedGame] = []
    practices: List[ImportedPractice] = []
    conflicts_overridden = 0

    try:
        for preview_row in preview.preview:
            parsed = preview_row.parsed
            facility_id = parsed.facility_id

            if is_games:
                event_type = EventType.GAME
                game = Game(
                    season_id=season_id,
                    opponent=parsed.opponent,
                    start_instant=parsed.start_instant,
                    home_away=parsed.home_away or HomeAway.HOME,
                    status=GameStatus.SCHEDULED,
                    facility_id=facility_id,
                    notes=parsed.notes,
                )
                session.add(game)
                session.flush()
                event_id = game.id
                games.append(
                    ImportedGame(
                        id=game.id, opponent=game.opponent, start_instant=game.start_instant, facility_id=facility_id
                    )
                )
            else:
                event_type = EventType.PRACTICE
                practice = Practice(
                    season_id=season_id,
                    start_instant=parsed.start_instant,
                    duration_minutes=parsed.duration or DEFAULT_PRACTICE_MINUTES,
                    facility_id=facility_id,
                    notes=parsed.notes,
                )
                session.add(practice)
                session.flush()
                event_id = practice.id
                practices.append(
                    ImportedPractice(
                        id=practice.id,
                        start_instant=practice.start_instant,
                        duration_minutes=practice.duration_minutes,
                        facility_id=facility_id,
                    )
                )

            row_conflicts = conflicts_by_row.get(preview_row.row)
            if row_conflicts and request.override_conflicts:
                for conflict in row_conflicts.conflicts:
                    create_override(
                        session,
                        organization_id,
                        OverrideCreate(
                            event_type=event_type,
                            event_id=event_id,
                            blocker_id=conflict.blocker_id,
                            reason=reason,
                        ),
                        actor_id,
                        commit=False,
                    )
                    conflicts_overridden += 1

        session.commit()
    except Exception:
        session.rollback()
        logger.warning(f"Import into season {season_id} rolled back")
        raise

    logger.info(
        f"Imported {len(games) + len(practices)} {request.type.value} into season {season_id} "
        f"({conflicts_overridden} override(s)) by {actor_id}"
    )

    return ImportExecuteResult(
        imported=len(games) + len(practices),
        conflicts_overridden=conflicts_overridden,
        games=games,
        practices=practices,
    )
