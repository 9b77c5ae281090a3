"""
Pytest configuration and shared fixtures for the calendar service tests.
"""
import os
import tempfile

# Point the application at a throwaway database before anything imports it.
_DB_PATH = os.path.join(tempfile.gettempdir(), "calendar_service_test.sqlite")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_PATH}"

import pytest
from datetime import datetime, time, timedelta, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from app.application.calendar_queries import CalendarQueries
from app.application.scheduler import MeetingScheduler
from app.domain.events import EventDispatcher
from app.infrastructure.repositories import (
    SqlAlchemyMeetingRepository,
    SqlAlchemyUserRepository,
)
from app.services import build_dispatcher
from core.interval import Interval
from core.meeting import MeetingSnapshot, MeetingStatus, Participant
from database.models import Base, User
from database.connection import get_db
from main import app


@pytest.fixture(scope="session")
def test_db_engine():
    """File-based SQLite so the TestClient and worker threads can share it."""
    engine = create_engine(
        f"sqlite:///{_DB_PATH}",
        connect_args={"check_same_thread": False, "timeout": 30}
    )
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture(scope="session")
def session_factory(test_db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_db_engine)


@pytest.fixture(scope="function")
def test_db_session(test_db_engine, session_factory):
    """Create a fresh database session for each test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
        # Clean up tables between tests
        with test_db_engine.connect() as connection:
            with connection.begin():
                for table in reversed(Base.metadata.sorted_tables):
                    connection.execute(table.delete())


@pytest.fixture(scope="function")
def test_client(test_db_session):
    """Create a test client with overridden database dependency."""

    def override_get_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as client:
        yield client

    # Clean up
    app.dependency_overrides.clear()


def _add_user(session, email, name, department="IT", role="user"):
    user = User(email=email, name=name, department=department, position="Engineer", role=role)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def organizer(test_db_session):
    return _add_user(test_db_session, "olivia@example.com", "Olivia Organizer", department="Operations")


@pytest.fixture
def alice(test_db_session):
    return _add_user(test_db_session, "alice@example.com", "Alice Nguyen")


@pytest.fixture
def bob(test_db_session):
    return _add_user(test_db_session, "bob@example.com", "Bob Tran", department="Sales")


@pytest.fixture
def admin_user(test_db_session):
    return _add_user(test_db_session, "root@example.com", "Rita Admin", department="HR", role="admin")


@pytest.fixture
def meeting_day():
    """A working day safely in the future."""
    return (datetime.now(timezone.utc) + timedelta(days=7)).date()


@pytest.fixture
def at(meeting_day):
    """Build aware UTC datetimes on ``meeting_day``: at(10, 30)."""
    def _at(hour, minute=0, day=None):
        return datetime.combine(day or meeting_day, time(hour, minute), tzinfo=timezone.utc)
    return _at


@pytest.fixture
def scheduler(test_db_session):
    return MeetingScheduler(
        meeting_repo=SqlAlchemyMeetingRepository(test_db_session),
        user_repo=SqlAlchemyUserRepository(test_db_session),
        dispatcher=build_dispatcher(test_db_session),
    )


@pytest.fixture
def quiet_scheduler(test_db_session):
    """Scheduler without notification handlers."""
    return MeetingScheduler(
        meeting_repo=SqlAlchemyMeetingRepository(test_db_session),
        user_repo=SqlAlchemyUserRepository(test_db_session),
        dispatcher=EventDispatcher(),
    )


@pytest.fixture
def calendar_queries(test_db_session):
    return CalendarQueries(
        meeting_repo=SqlAlchemyMeetingRepository(test_db_session),
        user_repo=SqlAlchemyUserRepository(test_db_session),
    )


# Utility functions for tests
def utc(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def make_snapshot(meeting_id, start, end, organizer="org", participants=(), status=MeetingStatus.SCHEDULED, title=""):
    """Build a MeetingSnapshot without touching the database."""
    return MeetingSnapshot(
        id=meeting_id,
        organizer_id=organizer,
        interval=Interval(start, end),
        status=status,
        participants=tuple(Participant(user_id=p) for p in participants),
        title=title or meeting_id,
    )


def auth_headers(user):
    return {"X-User-Id": str(user.id)}
