"""
Pytest configuration and fixtures
"""
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from firesafe.db.session import get_session
from firesafe.main import app


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeLLMClient:
    """Stands in for openai.OpenAI: exposes chat.completions.create."""

    def __init__(self, content=None, error=None):
        self.completions = FakeCompletions(content=content, error=error)
        self.chat = SimpleNamespace(completions=self.completions)


@pytest.fixture
def llm_client_factory():
    return FakeLLMClient


@pytest.fixture
def engine():
    """In-memory database shared by every session of one test"""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def _test_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _test_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def residential_input():
    return {
        "buildingType": "residential",
        "floors": 1,
        "rooms": 2,
        "kitchenAltar": 1,
        "totalArea": 50,
    }
