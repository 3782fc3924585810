"""
Pytest configuration and shared fixtures for testing.
"""
import os
from datetime import datetime, timezone
from pathlib import Path

# Point the application at a throwaway SQLite file before it is imported;
# the path is relative to this file so it lands inside tests/.
_TEST_DB = Path(__file__).parent / "test.db"
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DB}"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from testtutor.database import Base, SessionLocal, engine, get_db  # noqa: E402
from testtutor.helpers import get_now  # noqa: E402
from testtutor.main import app  # noqa: E402

# Reference time shared by API tests: Saturday 15 June 2024, noon UTC
FIXED_NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def db_session():
    """Fresh schema and session for each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    """TestClient sharing the test session and a pinned clock."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: FIXED_NOW

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
