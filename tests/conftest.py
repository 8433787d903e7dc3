import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_SECRET_KEY"] = "test-secret-key"
os.environ["GROQ_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["TRUST_USER_ID_HEADER"] = "false"

import pytest
from fastapi.testclient import TestClient

from backend.config import get_settings
from backend.database.db import Base, SessionLocal, engine
from backend.main import app, init_db
from backend.state import ServerState


class StubAssistant:
    provider_name = "stub"
    model_name = "stub-model"

    def __init__(self, text="Hello from the assistant", error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def reply(self, message):
        self.calls.append(message)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture(autouse=True)
def fresh_app():
    Base.metadata.drop_all(bind=engine)
    init_db()
    app.state.server = ServerState.from_settings(get_settings())
    original = app.state.assistant
    app.state.assistant = StubAssistant()
    yield
    app.state.assistant = original


@pytest.fixture
def set_assistant():
    def _set(**kwargs):
        app.state.assistant = StubAssistant(**kwargs)
        return app.state.assistant
    return _set


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def register(client):
    def _register(name="alice", password="secret123", email=None):
        body = {"username": name, "password": password}
        if email:
            body["email"] = email
        res = client.post("/api/auth/register", json=body)
        assert res.status_code == 201, res.text
        data = res.json()
        return data["user"], {"Authorization": f"Bearer {data['token']}"}
    return _register
