"""Tests for the schema drift check."""

from sqlalchemy import text
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from check_migrations import missing_schema


def _empty_engine():
    return create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False}, poolclass=StaticPool)


def test_up_to_date_schema(session):
    assert missing_schema(session.get_bind()) == {}


def test_empty_database_reports_every_table():
    missing = missing_schema(_empty_engine())

    assert set(missing) == set(SQLModel.metadata.tables)
    assert "blocker_id" in missing["conflict_override"]


def test_missing_column_reported():
    engine = _empty_engine()
    SQLModel.metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(text("DROP TABLE conflict_override"))
        conn.execute(
            text(
                "CREATE TABLE conflict_override (id INTEGER PRIMARY KEY, organization_id INTEGER, "
                "event_type VARCHAR, event_id INTEGER, blocker_id INTEGER, actor_id VARCHAR, recorded_at DATETIME)"
            )
        )

    assert missing_schema(engine) == {"conflict_override": ["reason"]}
