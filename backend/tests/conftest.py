"""Shared test fixtures for backend tests."""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from chatdeck.models.chat import Chat
from chatdeck.services import create_session_manager
from chatdeck.services.confirmation import PresetConfirmationGateway

# In-memory SQLite with StaticPool so all connections (including threads) share one DB
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(autouse=True)
def setup_test_db():
    """Create all tables before each test, drop after."""
    import chatdeck.models  # noqa: F401 - register models
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def engine():
    return test_engine


@pytest.fixture
def manager():
    """Session manager on the test DB that accepts every confirmation."""
    m = create_session_manager(test_engine, gateway=PresetConfirmationGateway(accepted=True))
    yield m
    m.store.session.close()


@pytest.fixture
def store(manager):
    return manager.store


@pytest.fixture
def repository(manager):
    return manager.repository


@pytest.fixture
def seed_chat(store):
    """Insert a committed chat directly through the store."""
    def _seed(name="Chat", updated=None, **fields):
        updated = updated or datetime.now(timezone.utc)
        chat = Chat(name=name, created_date=updated, updated_date=updated, **fields)
        store.add(chat)
        store.save()
        return chat.id
    return _seed


@pytest.fixture
def failing_commit(store, monkeypatch):
    """Make the next store saves fail like a full disk would."""
    def _fail():
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(store.session, "commit", _fail)
    return _fail


@pytest.fixture
def client():
    """FastAPI TestClient running on the test DB."""
    with patch("chatdeck.core.database.engine", test_engine):
        from chatdeck.main import app

        with TestClient(app) as c:
            yield c
