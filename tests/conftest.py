"""
Shared test fixtures.

Runs against an in-memory SQLite database (ENV=test selects
TEST_DATABASE_URL, which defaults to sqlite://). Tables are created and
dropped around every test.
"""

import os

os.environ["ENV"] = "test"  # Must be set before importing app modules
os.environ.setdefault("TEST_DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event

from app.db import Base, db_manager, get_db
import app.models  # noqa: F401
from app.main import create_app
from app.utils.rate_limit import get_rate_limit_redis

pytest_plugins = [
    "tests.fixtures.company_fixtures",
    "tests.fixtures.conversation_fixtures",
]

ADMIN_TOKEN = "test-admin-token"


@event.listens_for(db_manager.engine, "connect")
def _enable_fk(dbapi_conn, _):
    """SQLite ignores FKs by default; turn them on."""
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Integration settings start unset; tests opt in with monkeypatch.setenv."""
    for name in (
        "CHATWOOT_API_URL",
        "CHATWOOT_WEBHOOK_SECRET",
        "UAZAPI_WEBHOOK_SECRET",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("WEBHOOK_ADMIN_TOKEN", ADMIN_TOKEN)


@pytest.fixture(scope="function")
def db():
    """Create all tables, yield a session, then tear down."""
    Base.metadata.create_all(bind=db_manager.engine)
    session = db_manager.SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=db_manager.engine)


@pytest.fixture
def redis_client():
    """Rate-limit store; None disables limiting unless a test overrides it."""
    return None


@pytest.fixture
def client(db, redis_client):
    """TestClient with the test session and rate-limit store injected."""
    app = create_app(testing=True)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_rate_limit_redis] = lambda: redis_client
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}
