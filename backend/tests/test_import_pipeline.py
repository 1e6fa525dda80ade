"""Tests for the spreadsheet schedule import (preview + execute)."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest
from sqlmodel import Session, select

from schedule_guard.errors import ConflictsPresentError, NotFoundError, ValidationError
from schedule_guard.models import BlockerApplicability, BlockerKind, ConflictOverride, EventType, Game, Practice
from schedule_guard.services import import_pipeline
from schedule_guard.services.facility_resolver import FacilityMatchKind
from schedule_guard.services.import_pipeline import (
    DEFAULT_OVERRIDE_REASON,
    ImportExecuteRequest,
    ImportPreviewRequest,
    execute_import,
    parse_row_instant,
    preview_import,
    resolve_timezone,
)
from schedule_guard.services.override_ledger import create_override, list_overrides_for_event

FINALS_START = datetime(2026, 5, 15, 8, 0)
FINALS_END = datetime(2026, 5, 22, 17, 0)


def _games(session: Session, season_id: int):
    return session.exec(select(Game).where(Game.season_id == season_id).order_by(Game.id)).all()


def _practices(session: Session, season_id: int):
    return session.exec(select(Practice).where(Practice.season_id == season_id).order_by(Practice.id)).all()


# ---------------------------------------------------------------------------
# Parser tests (no database needed)
# ---------------------------------------------------------------------------


class TestParseRowInstant:
    """Wall-clock date + time in the organization timezone -> naive UTC."""

    def test_iso_date_24h_time(self):
        assert parse_row_instant("2026-05-18", "14:00", timezone.utc) == datetime(2026, 5, 18, 14, 0)

    def test_us_date_12h_time(self):
        assert parse_row_instant("5/18/2026", "2:00 PM", timezone.utc) == datetime(2026, 5, 18, 14, 0)

    def test_lowercase_meridiem_without_space(self):
        assert parse_row_instant("05/18/26", "2:30pm", timezone.utc) == datetime(2026, 5, 18, 14, 30)

    def test_converts_from_local_zone(self):
        """09:00 in Chicago during daylight time is 14:00 UTC"""
        assert parse_row_instant("2026-05-18", "09:00", ZoneInfo("America/Chicago")) == datetime(2026, 5, 18, 14, 0)

    def test_winter_offset(self):
        assert parse_row_instant("2026-01-10", "09:00", ZoneInfo("America/Chicago")) == datetime(2026, 1, 10, 15, 0)

    def test_invalid_inputs(self):
        assert parse_row_instant("not-a-date", "14:00", timezone.utc) is None
        assert parse_row_instant("2026-05-18", "25:00", timezone.utc) is None
        assert parse_row_instant("", "14:00", timezone.utc) is None
        assert parse_row_instant("2026-05-18", "", timezone.utc) is None
        assert parse_row_instant("2026-02-30", "14:00", timezone.utc) is None


class TestResolveTimezone:
    def test_known_zone(self):
        assert resolve_timezone("America/Chicago") == ZoneInfo("America/Chicago")

    def test_unknown_zone_falls_back_to_utc(self):
        assert resolve_timezone("Mars/Olympus_Mons") == timezone.utc

    def test_missing_zone(self):
        assert resolve_timezone(None) == timezone.utc


# ---------------------------------------------------------------------------
# Preview
# ---------------------------------------------------------------------------


class TestPreview:
    def test_mixed_batch(self, session, school, make_blocker):
        """Three game rows, one with a bad date: nothing importable, conflicts still reported"""
        make_blocker(school.organization.id, FINALS_START, FINALS_END)
        request = ImportPreviewRequest(
            type="games",
            rows=[
                {"date": "2026-05-18", "time": "14:00", "opponent": "Central", "facility": "Main Gm"},
                {"date": "not-a-date", "time": "14:00", "opponent": "West"},
                {"date": "2026-05-25", "time": "14:00", "opponent": "North", "facility": "Main Gym"},
            ],
        )

        result = preview_import(session, school.season.id, request)

        assert result.total_rows == 3
        assert result.valid_rows == 2
        assert result.invalid_rows == 1
        assert result.valid is False
        assert result.can_import is False
        assert result.rows_with_conflicts == 1

        assert len(result.errors) == 1
        assert result.errors[0].row == 3  # second data row, after the header
        assert result.errors[0].field == "date/time"

        assert result.conflicts[0].row == 2
        assert result.conflicts[0].conflicts[0].reason == "School-wide exam period: Finals"

        first = result.preview[0]
        assert first.status == "valid"
        assert first.facility_match.kind == FacilityMatchKind.FUZZY
        assert first.facility_match.suggestion.name == "Main Gym"
        assert first.parsed.facility_id == school.main_gym.id
        assert result.preview[2].facility_match.kind == FacilityMatchKind.EXACT

    def test_preview_writes_nothing(self, session, school):
        request = ImportPreviewRequest(type="games", rows=[{"date": "2026-05-18", "time": "14:00", "opponent": "Central"}])

        result = preview_import(session, school.season.id, request)

        assert result.can_import is True
        assert _games(session, school.season.id) == []

    def test_missing_opponent(self, session, school):
        request = ImportPreviewRequest(type="games", rows=[{"date": "2026-05-18", "time": "14:00", "opponent": "  "}])

        result = preview_import(session, school.season.id, request)

        assert result.errors[0].field == "opponent"
        assert result.errors[0].message == "Opponent is required"

    def test_practice_rows_need_no_opponent(self, session, school):
        request = ImportPreviewRequest(
            type="practices",
            rows=[{"date": "2026-05-04", "time": "15:30"}, {"date": "2026-05-05", "time": "15:30", "duration": 60}],
        )

        result = preview_import(session, school.season.id, request)

        assert result.valid is True
        assert result.preview[0].parsed.duration == 90
        assert result.preview[1].parsed.duration == 60

    def test_non_positive_duration_rejected(self, session, school):
        request = ImportPreviewRequest(type="practices", rows=[{"date": "2026-05-04", "time": "15:30", "duration": 0}])

        result = preview_import(session, school.season.id, request)

        assert result.errors[0].field == "duration"

    def test_explicit_row_numbers_kept(self, session, school):
        request = ImportPreviewRequest(type="games", rows=[{"row": 17, "date": "bad", "time": "14:00", "opponent": "X"}])

        result = preview_import(session, school.season.id, request)

        assert result.errors[0].row == 17

    def test_unmatched_facility_left_unassigned(self, session, school):
        request = ImportPreviewRequest(
            type="games", rows=[{"date": "2026-05-18", "time": "14:00", "opponent": "Central", "facility": "Stadium"}]
        )

        result = preview_import(session, school.season.id, request)

        assert result.preview[0].facility_match.kind == FacilityMatchKind.NONE
        assert result.preview[0].parsed.facility_id is None

    def test_rows_read_in_organization_timezone(self, session, school, make_blocker):
        """A 09:00 Chicago practice (14:00 UTC) hits a blocker starting 13:30 UTC"""
        school.organization.timezone = "America/Chicago"
        session.add(school.organization)
        session.commit()
        make_blocker(
            school.organization.id,
            datetime(2026, 5, 18, 13, 30),
            datetime(2026, 5, 18, 15, 0),
            name="Assembly",
        )
        request = ImportPreviewRequest(type="practices", rows=[{"date": "2026-05-18", "time": "09:00"}])

        result = preview_import(session, school.season.id, request)

        assert result.preview[0].parsed.start_instant == datetime(2026, 5, 18, 14, 0)
        assert result.rows_with_conflicts == 1

    def test_unknown_season(self, session, school):
        with pytest.raises(NotFoundError):
            preview_import(session, 9999, ImportPreviewRequest(type="games", rows=[]))


# ---------------------------------------------------------------------------
# Execute
# ---------------------------------------------------------------------------


class TestExecute:
    def test_validation_errors_block_everything(self, session, school):
        request = ImportExecuteRequest(
            type="games",
            rows=[
                {"date": "2026-05-18", "time": "14:00", "opponent": "Central"},
                {"date": "not-a-date", "time": "14:00", "opponent": "West"},
            ],
        )

        with pytest.raises(ValidationError) as exc_info:
            execute_import(session, school.season.id, request, actor_id="coach-7")

        assert exc_info.value.details["errors"][0]["row"] == 3
        assert _games(session, school.season.id) == []

    def test_conflicts_need_acknowledgement(self, session, school, make_blocker):
        make_blocker(school.organization.id, FINALS_START, FINALS_END)
        request = ImportExecuteRequest(
            type="games", rows=[{"date": "2026-05-18", "time": "14:00", "opponent": "Central"}]
        )

        with pytest.raises(ConflictsPresentError) as exc_info:
            execute_import(session, school.season.id, request, actor_id="coach-7")

        assert exc_info.value.status_code == 409
        assert len(exc_info.value.conflicts) == 1
        assert _games(session, school.season.id) == []

    def test_override_records_ledger_entries(self, session, school, make_blocker):
        finals = make_blocker(school.organization.id, FINALS_START, FINALS_END)
        request = ImportExecuteRequest(
            type="games",
            rows=[
                {"date": "2026-05-18", "time": "14:00", "opponent": "Central", "home_away": "AWAY"},
                {"date": "2026-05-26", "time": "14:00", "opponent": "West"},
            ],
            override_conflicts=True,
        )

        result = execute_import(session, school.season.id, request, actor_id="coach-7")

        assert result.imported == 2
        assert result.conflicts_overridden == 1

        games = _games(session, school.season.id)
        assert [g.opponent for g in games] == ["Central", "West"]
        assert games[0].home_away == "AWAY"

        entries = list_overrides_for_event(session, EventType.GAME, games[0].id)
        assert len(entries) == 1
        assert entries[0].blocker_id == finals.id
        assert entries[0].actor_id == "coach-7"
        assert entries[0].reason == DEFAULT_OVERRIDE_REASON
        assert list_overrides_for_event(session, EventType.GAME, games[1].id) == []

    def test_custom_override_reason(self, session, school, make_blocker):
        make_blocker(school.organization.id, FINALS_START, FINALS_END)
        request = ImportExecuteRequest(
            type="practices",
            rows=[{"date": "2026-05-18", "time": "15:00"}],
            override_conflicts=True,
            override_reason="Exams end at noon for athletes",
        )

        execute_import(session, school.season.id, request, actor_id="coach-7")

        practice = _practices(session, school.season.id)[0]
        entries = list_overrides_for_event(session, EventType.PRACTICE, practice.id)
        assert entries[0].reason == "Exams end at noon for athletes"

    def test_practices_default_duration(self, session, school):
        request = ImportExecuteRequest(
            type="practices",
            rows=[{"date": "2026-05-04", "time": "15:30"}, {"date": "2026-05-05", "time": "15:30", "duration": 45}],
        )

        result = execute_import(session, school.season.id, request, actor_id="coach-7")

        assert [p.duration_minutes for p in result.practices] == [90, 45]
        assert [p.duration_minutes for p in _practices(session, school.season.id)] == [90, 45]

    def test_facility_assignment_replaces_suggestion(self, session, school):
        request = ImportExecuteRequest(
            type="games",
            rows=[
                {"date": "2026-05-04", "time": "18:00", "opponent": "Central", "facility": "Main Gm"},
                {"date": "2026-05-05", "time": "18:00", "opponent": "West", "facility": "Stadium"},
            ],
            facility_assignments={3: school.practice_field.id},
        )

        execute_import(session, school.season.id, request, actor_id="coach-7")

        games = _games(session, school.season.id)
        assert games[0].facility_id == school.main_gym.id
        assert games[1].facility_id == school.practice_field.id

    def test_unknown_assigned_facility_rejects_batch(self, session, school, make_blocker):
        """A bad facility on the second row leaves neither event nor override behind"""
        make_blocker(school.organization.id, FINALS_START, FINALS_END)
        request = ImportExecuteRequest(
            type="games",
            rows=[
                {"date": "2026-05-18", "time": "14:00", "opponent": "Central"},
                {"date": "2026-05-26", "time": "14:00", "opponent": "West"},
            ],
            facility_assignments={3: 9999},
            override_conflicts=True,
        )

        with pytest.raises(NotFoundError):
            execute_import(session, school.season.id, request, actor_id="coach-7")

        assert _games(session, school.season.id) == []
        assert session.exec(select(ConflictOverride)).all() == []

    def test_facility_of_other_organization_rejected(self, session, school, rival_school):
        request = ImportExecuteRequest(
            type="games",
            rows=[{"date": "2026-05-18", "time": "14:00", "opponent": "Central"}],
            facility_assignments={2: rival_school.main_gym.id},
        )

        with pytest.raises(NotFoundError):
            execute_import(session, school.season.id, request, actor_id="coach-7")

        assert _games(session, school.season.id) == []

    def test_same_payload_twice_imports_twice(self, session, school):
        request = ImportExecuteRequest(
            type="games", rows=[{"date": "2026-05-04", "time": "18:00", "opponent": "Central"}]
        )

        execute_import(session, school.season.id, request, actor_id="coach-7")
        execute_import(session, school.season.id, request, actor_id="coach-7")

        assert len(_games(session, school.season.id)) == 2

    def test_failure_mid_transaction_rolls_back(self, session, school, make_blocker, monkeypatch):
        """Rows already flushed are discarded when a later row fails"""
        make_blocker(school.organization.id, FINALS_START, FINALS_END)
        calls = []

        def failing_override(*args, **kwargs):
            calls.append(args)
            if len(calls) == 2:
                raise RuntimeError("ledger unavailable")
            return create_override(*args, **kwargs)

        monkeypatch.setattr(import_pipeline, "create_override", failing_override)
        request = ImportExecuteRequest(
            type="games",
            rows=[
                {"date": "2026-05-18", "time": "14:00", "opponent": "Central"},
                {"date": "2026-05-19", "time": "14:00", "opponent": "West"},
                {"date": "2026-05-20", "time": "14:00", "opponent": "North"},
            ],
            override_conflicts=True,
        )

        with pytest.raises(RuntimeError):
            execute_import(session, school.season.id, request, actor_id="coach-7")

        assert _games(session, school.season.id) == []
        assert session.exec(select(ConflictOverride)).all() == []

    def test_duplicate_row_numbers_rejected(self, session, school, make_blocker):
        """Two rows claiming the same spreadsheet row cannot share overrides"""
        make_blocker(school.organization.id, FINALS_START, FINALS_END)
        request = ImportExecuteRequest(
            type="games",
            rows=[
                {"row": 2, "date": "2026-05-18", "time": "14:00", "opponent": "Central"},
                {"row": 2, "date": "2026-06-18", "time": "14:00", "opponent": "West"},
            ],
            override_conflicts=True,
        )

        with pytest.raises(ValidationError) as exc_info:
            execute_import(session, school.season.id, request, actor_id="coach-7")

        errors = exc_info.value.details["errors"]
        assert [(e["row"], e["field"]) for e in errors] == [(2, "row")]
        assert _games(session, school.season.id) == []
        assert session.exec(select(ConflictOverride)).all() == []

    def test_assigned_facility_is_conflict_checked(self, session, school, make_blocker):
        """Moving a row onto a closed facility needs acknowledgement like any other conflict"""
        closure = make_blocker(
            school.organization.id,
            datetime(2026, 5, 4, 0, 0),
            datetime(2026, 5, 5, 0, 0),
            name="Floor refinish",
            kind=BlockerKind.MAINTENANCE,
            applicability=BlockerApplicability.FACILITY,
            facility_id=school.practice_field.id,
        )
        rows = [{"date": "2026-05-04", "time": "18:00", "opponent": "Central", "facility": "Main Gym"}]

        with pytest.raises(ConflictsPresentError):
            execute_import(
                session,
                school.season.id,
                ImportExecuteRequest(type="games", rows=rows, facility_assignments={2: school.practice_field.id}),
                actor_id="coach-7",
            )
        assert _games(session, school.season.id) == []

        result = execute_import(
            session,
            school.season.id,
            ImportExecuteRequest(
                type="games",
                rows=rows,
                facility_assignments={2: school.practice_field.id},
                override_conflicts=True,
            ),
            actor_id="coach-7",
        )

        assert result.conflicts_overridden == 1
        game = _games(session, school.season.id)[0]
        assert game.facility_id == school.practice_field.id
        assert [e.blocker_id for e in list_overrides_for_event(session, EventType.GAME, game.id)] == [closure.id]


# ---------------------------------------------------------------------------
# API endpoint tests
# ---------------------------------------------------------------------------


def test_preview_endpoint(client, school):
    resp = client.post(
        f"/api/seasons/{school.season.id}/import/preview",
        json={
            "type": "games",
            "rows": [{"date": "2026-05-18", "time": "14:00", "opponent": "Central", "facility": "main gym"}],
        },
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["can_import"] is True
    assert data["preview"][0]["facility_match"]["kind"] == "EXACT"


def test_execute_endpoint_validation_error(client, school):
    resp = client.post(
        f"/api/seasons/{school.season.id}/import/execute",
        json={"type": "games", "rows": [{"date": "nope", "time": "14:00", "opponent": "Central"}]},
        headers={"X-Actor-Id": "coach-7"},
    )
    assert resp.status_code == 400
    detail = resp.json()["detail"]
    assert detail["code"] == "VALIDATION_ERROR"
    assert detail["details"]["errors"][0]["field"] == "date/time"


def test_execute_endpoint_conflicts(client, school, make_blocker):
    make_blocker(school.organization.id, FINALS_START, FINALS_END)
    payload = {"type": "games", "rows": [{"date": "2026-05-18", "time": "14:00", "opponent": "Central"}]}

    resp = client.post(
        f"/api/seasons/{school.season.id}/import/execute", json=payload, headers={"X-Actor-Id": "coach-7"}
    )
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "CONFLICTS_PRESENT"

    resp = client.post(
        f"/api/seasons/{school.season.id}/import/execute",
        json={**payload, "override_conflicts": True},
        headers={"X-Actor-Id": "coach-7"},
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["imported"] == 1
    assert data["conflicts_overridden"] == 1


def test_execute_endpoint_requires_actor(client, school):
    resp = client.post(
        f"/api/seasons/{school.season.id}/import/execute",
        json={"type": "games", "rows": [{"date": "2026-05-18", "time": "14:00", "opponent": "Central"}]},
    )
    assert resp.status_code == 422


def test_import_unknown_season(client):
    resp = client.post("/api/seasons/9999/import/preview", json={"type": "games", "rows": []})
    assert resp.status_code == 404


def test_execute_endpoint_rejects_long_override_reason(client, session, school, make_blocker):
    make_blocker(school.organization.id, FINALS_START, FINALS_END)

    resp = client.post(
        f"/api/seasons/{school.season.id}/import/execute",
        json={
            "type": "games",
            "rows": [{"date": "2026-05-18", "time": "14:00", "opponent": "Central"}],
            "override_conflicts": True,
            "override_reason": "x" * 501,
        },
        headers={"X-Actor-Id": "coach-7"},
    )

    assert resp.status_code == 422
    assert _games(session, school.season.id) == []
