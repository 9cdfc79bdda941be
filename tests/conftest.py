"""
Shared fixtures.

The engine reads DENTALAI_DATABASE_URL at import time, so the test database
and a blank AI configuration are set before anything from dentalai is imported.
"""
import os
import tempfile
from pathlib import Path
from types import SimpleNamespace

_DB_DIR = Path(tempfile.mkdtemp(prefix="dentalai-tests-"))
os.environ["DENTALAI_DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.sqlite'}"
os.environ["AZURE_OPENAI_ENDPOINT"] = ""
os.environ["AZURE_OPENAI_API_KEY"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from dentalai.ai_service import ConfiguredAI, TextGenerationClient  # noqa: E402
from dentalai.api_main import app, get_ai_backend  # noqa: E402
from dentalai.db import Base, engine  # noqa: E402


class FakeOpenAI:
    """Stands in for the provider SDK: records every chat-completion request."""

    def __init__(self, reply: str = "Subjective:\n\nPain.\n\nObjective:\n\nNot documented.\n\nAssessment:\n\nNot documented.\n\nPlan:\n\nNot documented."):
        self.reply = reply
        self.error: Exception | None = None
        self.calls: list[dict] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def fake_llm():
    return FakeOpenAI()


@pytest.fixture
def ai_client(client, fake_llm):
    """API client whose AI backend is configured with the fake provider."""
    backend = ConfiguredAI(TextGenerationClient(fake_llm, deployment="test-deployment"))
    app.dependency_overrides[get_ai_backend] = lambda: backend
    yield client
    app.dependency_overrides.pop(get_ai_backend, None)


@pytest.fixture
def make_patient(client):
    def _make(first_name: str = "Ann", last_name: str = "Lee", **extra) -> dict:
        payload = {"firstName": first_name, "lastName": last_name, **extra}
        resp = client.post("/api/patients", json=payload)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make
