"""
Shared pytest fixtures for the sessionauth test suite.

Uses an in-memory SQLite database shared across threads, so the FastAPI
TestClient (which runs sync endpoints in a worker thread) sees the same data
as the fixtures.
"""

import pytest
from fastapi.testclient import TestClient

from sessionauth.auth_utils import register_user
from sessionauth.config import load_settings
from sessionauth.db.connection import Database
from sessionauth.main import create_app

TEST_SECRET = "test-secret-key-for-tests-only-0123456789"


@pytest.fixture()
def settings():
    """Settings with cheap bcrypt rounds, independent of any .env file."""
    return load_settings(
        DATABASE_URL="sqlite://",
        SESSION_SECRET=TEST_SECRET,
        BCRYPT_ROUNDS=4,
        _env_file=None,
    )


@pytest.fixture()
def database(settings):
    """In-memory SQLite ``Database`` with the schema created."""
    db = Database(settings.DATABASE_URL)
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture()
def db_session(database):
    session = database.new_session()
    yield session
    session.close()


@pytest.fixture()
def test_user(db_session, settings):
    """Register and return alice / secret1."""
    return register_user(
        db_session, "alice", "alice@x.com", "secret1", rounds=settings.BCRYPT_ROUNDS
    )


@pytest.fixture()
def client(settings, database):
    app = create_app(settings, database)
    with TestClient(app) as test_client:
        yield test_client
