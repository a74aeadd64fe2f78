"""
Pytest configuration and fixtures for postback relay tests.

The database URL is pointed at a throwaway SQLite file before the package
is imported, since the engine is created at import time.
"""
import os
import tempfile

_TEST_DB_DIR = tempfile.mkdtemp(prefix="postback-relay-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DB_DIR, 'test.db')}"
os.environ["API_KEYS"] = ""
os.environ["RELAY_DISPATCH_MODE"] = "background"

import pytest
from fastapi.testclient import TestClient

from postback_relay import models
from postback_relay.database import Base, SessionLocal, engine, get_db

API_HEADERS = {"x-api-key": "test-key"}
OWNER = "test-user"


@pytest.fixture(autouse=True)
def reset_db():
    """Fresh tables for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def override_get_db(db_session):
    def _override():
        yield db_session
    return _override


@pytest.fixture
def client(db):
    from postback_relay.main import app

    app.dependency_overrides[get_db] = override_get_db(db)
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_endpoint(db):
    """Create an endpoint owned by the test API key's user."""

    def _make(slug="abc", config=None, **fields):
        endpoint = models.Endpoint(
            name=fields.pop("name", f"Endpoint {slug}"),
            slug=slug,
            user_id=fields.pop("user_id", OWNER),
            config=config if config is not None else {},
            **fields
        )
        db.add(endpoint)
        db.commit()
        db.refresh(endpoint)
        return endpoint

    return _make


@pytest.fixture
def make_relay(db):
    def _make(endpoint, **fields):
        relay = models.Relay(
            endpoint_id=endpoint.id,
            name=fields.pop("name", "Relay"),
            target_url=fields.pop("target_url", "https://relay.example.com/hook"),
            **fields
        )
        db.add(relay)
        db.commit()
        db.refresh(relay)
        return relay

    return _make


class FakeResponse:
    """Stand-in for requests.Response in relay tests."""

    def __init__(self, status_code=200, text="ok"):
        self.status_code = status_code
        self.text = text

