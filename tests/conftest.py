"""Pytest configuration and shared fixtures."""
import pytest
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock
import os

# Set test environment variables before importing app
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "True"
os.environ["OPENAI_API_KEY"] = "test-key-123"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-purposes-only-32-chars-min"
os.environ["POSTGRES_HOST"] = "localhost"
os.environ["REDIS_HOST"] = "localhost"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"  # Use DB 15 for testing
os.environ["GOOGLE_API_KEY"] = ""
os.environ["GOOGLE_SEARCH_ENGINE_ID"] = ""

from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.database import Base, build_engine
import app.models  # noqa: F401
from app.models.course import Course
from app.models.user import User


class FakeLLM:
    """Stands in for LLMService; embeddings come from a word-to-vector table."""

    def __init__(self, vectors=None, default=None, reply="Test response"):
        self.vectors = vectors or {}
        self.default = default or [1.0, 0.0, 0.0]
        self.generate_embedding = AsyncMock(side_effect=self._embed)
        self.chat_completion = AsyncMock(return_value=reply)
        self.generate_chat_title = AsyncMock(return_value="Generated Title")

    async def _embed(self, text):
        for word, vector in self.vectors.items():
            if word in text:
                return list(vector)
        return list(self.default)


@pytest.fixture
def make_fake_llm():
    return FakeLLM


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def mock_openai_client():
    """Mock OpenAI client for testing."""
    mock_client = MagicMock()
    mock_response = MagicMock()
    mock_response.choices = [MagicMock()]
    mock_response.choices[0].message = MagicMock()
    mock_response.choices[0].message.content = "Test response"
    mock_client.chat.completions.create = AsyncMock(return_value=mock_response)
    return mock_client


@pytest.fixture
def sample_chat_id():
    """Sample chat ID for testing."""
    return "test-chat-12345"


@pytest.fixture
def sample_user_id():
    """Sample user ID for testing."""
    return "test-user-12345"


@pytest.fixture
def sample_query():
    """Sample query for testing."""
    return "What does the lecture say about mitochondria?"


@pytest.fixture
async def db_engine(tmp_path):
    """A fresh SQLite database per test."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def sample_user(db_session) -> User:
    user = User(name="Test Student", email="student@example.com")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def sample_course(db_session, sample_user) -> Course:
    course = Course(name="Biology 101", description="Intro biology", user_id=sample_user.id)
    db_session.add(course)
    await db_session.commit()
    return course


def make_token(user_id: str) -> str:
    return jwt.encode({"sub": user_id}, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def token_for():
    return make_token


@pytest.fixture
def auth_headers(sample_user):
    return {"Authorization": f"Bearer {make_token(sample_user.id)}"}


@pytest.fixture
def enqueued(monkeypatch):
    """Captures documents handed to the worker instead of talking to the broker."""
    calls = []
    monkeypatch.setattr(
        "app.api.v1.documents.enqueue_processing",
        lambda document_id, force=False: calls.append((document_id, force)) or True,
    )
    return calls


@pytest.fixture
async def async_test_client(session_factory):
    """Async client for the FastAPI app, bound to the per-test database."""
    from httpx import AsyncClient, ASGITransport
    from app.api.deps import get_database
    from app.main import app

    async def override_get_database():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_database] = override_get_database
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
