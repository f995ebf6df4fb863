import os
import tempfile

# Point the server at a throwaway database and log file before it is imported.
os.environ["RELAY_CHAT_DATABASE_URL"] = "sqlite://"
os.environ["RELAY_CHAT_LOG_FILE"] = os.path.join(tempfile.gettempdir(), "relay_chat_test.log")

import pytest
from fastapi.testclient import TestClient

from relay_chat.server.database import Base, SessionLocal, engine
from relay_chat.server.main import app
from relay_chat.server.models import User
from relay_chat.server.registry import registry


class FakeConnection:
    """Stands in for a WebSocket; records every payload it is sent."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send_json(self, payload):
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(payload)


@pytest.fixture(autouse=True)
def reset_state():
    """Fresh tables and an empty registry for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    registry.clear()
    yield
    registry.clear()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user():
    def _make(username: str) -> int:
        db = SessionLocal()
        try:
            user = User(username=username)
            db.add(user)
            db.commit()
            db.refresh(user)
            return user.id
        finally:
            db.close()

    return _make


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")
