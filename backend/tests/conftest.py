"""
Pytest configuration for the chat backend test suite.

Configures:
- environment for a throwaway SQLite database (before any app import)
- tables recreated for every test
- fake generation model / embedder and a TestClient wired to them
"""
import os
import tempfile

_DB_PATH = os.path.join(tempfile.gettempdir(), f"unified_chat_test_{os.getpid()}.db")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ["DEBUG"] = "false"
os.environ["ALLOWED_ORIGINS"] = "https://widget.example.com"
os.environ["LIBRARY_API_TOKEN"] = ""
os.environ["GEMINI_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""

import pytest
from sqlalchemy import create_engine


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeModel:
    """Stand-in for GenerativeModel.

    `generate_replies` are returned in order by generate(); an Exception
    instance in the list is raised instead. stream() yields `fragments`, then
    raises `stream_error` if set.
    """

    provider = "gemini"

    def __init__(self, generate_replies=None, fragments=None, stream_error=None):
        self.generate_replies = list(generate_replies or [])
        self.fragments = list(fragments if fragments is not None else ["Hello", " there"])
        self.stream_error = stream_error
        self.generate_calls = []
        self.stream_calls = []

    async def generate(self, prompt, system_instruction=None):
        self.generate_calls.append({"prompt": prompt, "system_instruction": system_instruction})
        reply = self.generate_replies.pop(0) if self.generate_replies else "[]"
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def stream(self, messages, system_instruction=None):
        self.stream_calls.append({"messages": messages, "system_instruction": system_instruction})
        for fragment in self.fragments:
            yield fragment
        if self.stream_error is not None:
            raise self.stream_error


class FakeEmbedder:
    """Maps known texts to fixed vectors; anything else gets `default`."""

    def __init__(self, vectors=None, default=(1.0, 0.0, 0.0), error=None):
        self.vectors = dict(vectors or {})
        self.default = list(default)
        self.error = error
        self.batches = []

    async def embed(self, text):
        return (await self.embed_batch([text]))[0]

    async def embed_batch(self, texts):
        self.batches.append(list(texts))
        if self.error is not None:
            raise self.error
        return [list(self.vectors.get(t, self.default)) for t in texts]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def fresh_db():
    """Drop and recreate all tables around each test."""
    from models import Base

    sync_engine = create_engine(f"sqlite:///{_DB_PATH}")
    Base.metadata.drop_all(sync_engine)
    Base.metadata.create_all(sync_engine)
    yield
    Base.metadata.drop_all(sync_engine)
    sync_engine.dispose()


@pytest.fixture
def fake_model():
    return FakeModel()


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def app(fake_model, fake_embedder):
    from main import app as fastapi_app
    from services.embedder import get_embedder
    from services.llm_client import get_generative_model

    fastapi_app.dependency_overrides[get_generative_model] = lambda: fake_model
    fastapi_app.dependency_overrides[get_embedder] = lambda: fake_embedder
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    with TestClient(app) as c:
        yield c


def pytest_sessionfinish(session, exitstatus):
    if os.path.exists(_DB_PATH):
        os.remove(_DB_PATH)
