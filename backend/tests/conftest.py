import os
from dataclasses import dataclass
from datetime import date, datetime
from typing import List

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from schedule_guard.database import get_session  # noqa: E402
from schedule_guard.main import app  # noqa: E402
from schedule_guard.models import (  # noqa: E402
    Blocker,
    BlockerApplicability,
    BlockerKind,
    Facility,
    Organization,
    Season,
    Team,
)

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. Tables created explicitly per test and dropped afterwards
# 4. App dependency overridden to use test_engine (see client_fixture)
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    import schedule_guard.models  # noqa: F401

    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override MUST be set BEFORE TestClient() and stay in place for the entire
    duration so the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


# ============================================================================
# Domain fixtures
# ============================================================================


@dataclass
class School:
    organization: Organization
    team: Team
    other_team: Team
    season: Season
    other_season: Season
    facilities: List[Facility]

    @property
    def main_gym(self) -> Facility:
        return self.facilities[0]

    @property
    def practice_field(self) -> Facility:
        return self.facilities[1]


def _build_school(session: Session, name: str, timezone: str = "UTC") -> School:
    organization = Organization(name=name, timezone=timezone)
    session.add(organization)
    session.commit()
    session.refresh(organization)

    team = Team(organization_id=organization.id, name="Varsity Basketball", sport="basketball")
    other_team = Team(organization_id=organization.id, name="JV Soccer", sport="soccer", level="JV")
    session.add(team)
    session.add(other_team)
    session.commit()
    session.refresh(team)
    session.refresh(other_team)

    season = Season(team_id=team.id, name="Spring 2026", year=2026, start_date=date(2026, 3, 1), end_date=date(2026, 6, 30))
    other_season = Season(
        team_id=other_team.id, name="Spring 2026", year=2026, start_date=date(2026, 3, 1), end_date=date(2026, 6, 30)
    )
    session.add(season)
    session.add(other_season)

    facilities = [
        Facility(organization_id=organization.id, name="Main Gym", facility_type="GYM"),
        Facility(organization_id=organization.id, name="Practice Field", facility_type="FIELD"),
    ]
    for facility in facilities:
        session.add(facility)
    session.commit()

    for obj in (season, other_season, *facilities):
        session.refresh(obj)

    return School(
        organization=organization,
        team=team,
        other_team=other_team,
        season=season,
        other_season=other_season,
        facilities=facilities,
    )


@pytest.fixture
def school(session: Session) -> School:
    """Organization with two teams (one season each) and two facilities"""
    return _build_school(session, "Lincoln High")


@pytest.fixture
def rival_school(session: Session) -> School:
    """A second, unrelated organization for cross-tenant checks"""
    return _build_school(session, "Roosevelt High")


@pytest.fixture
def make_blocker(session: Session):
    """Factory persisting a blocker; defaults to an org-wide exam period"""

    def _make(
        organization_id: int,
        start: datetime,
        end: datetime,
        name: str = "Finals",
        kind: BlockerKind = BlockerKind.EXAM,
        applicability: BlockerApplicability = BlockerApplicability.ORG_WIDE,
        team_id=None,
        facility_id=None,
        created_at=None,
    ) -> Blocker:
        blocker = Blocker(
            organization_id=organization_id,
            kind=kind,
            applicability=applicability,
            team_id=team_id,
            facility_id=facility_id,
            name=name,
            start_instant=start,
            end_instant=end,
        )
        if created_at is not None:
            blocker.created_at = created_at
        session.add(blocker)
        session.commit()
        session.refresh(blocker)
        return blocker

    return _make
