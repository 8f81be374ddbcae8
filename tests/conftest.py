"""
Pytest configuration and fixtures for the scheduler tests.

Every test gets a fresh in-memory SQLite database; API tests reuse the same
connection through a get_db override.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from weekly_scheduler import models  # noqa: F401
from weekly_scheduler.database import Base, create_db_engine, get_db
from weekly_scheduler.domain.scheduling.service import ScheduleService

# 2025-01-06 is a Monday; its week starts on Sunday 2025-01-05
MONDAY = "2025-01-06"
NEXT_MONDAY = "2025-01-13"
WEEK_SUNDAY = "2025-01-05"


@pytest.fixture
def engine():
    """In-memory SQLite engine with the schema created."""
    test_engine = create_db_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def service(db):
    return ScheduleService(db)


@pytest.fixture
def monday_slot(service):
    """Monday 09:00-11:00 recurring slot."""
    return service.create_slot(1, "09:00", "11:00")


@pytest.fixture
def client(session_factory):
    """FastAPI test client bound to the in-memory database."""
    from weekly_scheduler.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
