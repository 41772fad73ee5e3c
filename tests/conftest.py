"""Root conftest: shared fixtures for all drone_studio tests."""

from __future__ import annotations

import os
import tempfile

# Keep settings away from the developer's .env database and conf.json
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DRONE_STUDIO_DIR", tempfile.mkdtemp(prefix="drone-studio-tests-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from drone_studio.database import Base, make_engine
import drone_studio.models  # noqa: F401  register all models with Base
from drone_studio.services.store import MessageStore
from drone_studio.services.streaming import StreamingResponder

# In-memory SQLite; StaticPool makes all connections share the same DB
TEST_ENGINE = make_engine("sqlite:///:memory:", poolclass=StaticPool)
TestSession = sessionmaker(bind=TEST_ENGINE, autoflush=False, expire_on_commit=False)


@pytest.fixture(autouse=True)
def _setup_db():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=TEST_ENGINE)
    yield
    Base.metadata.drop_all(bind=TEST_ENGINE)


@pytest.fixture
def store():
    return MessageStore(TestSession)


@pytest.fixture
def chat(store):
    return store.create_chat("Test Chat", "en")


@pytest.fixture
def responder(store):
    """Unpaced responder so streams finish immediately."""
    return StreamingResponder(store, delay_ms=(0, 0), max_seconds=None)


@pytest.fixture
def app(store, responder):
    """The FastAPI app with the store and responder bound to the test database."""
    from drone_studio.api._helpers import get_responder
    from drone_studio.main import app as _app
    from drone_studio.services.store import get_store

    _app.dependency_overrides[get_store] = lambda: store
    _app.dependency_overrides[get_responder] = lambda: responder
    yield _app
    _app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)
