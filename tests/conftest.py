"""Pytest fixtures for testing."""
import os

# Settings are read at import time by the app modules; pin a test environment first
os.environ["DEBUG"] = "true"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["REDIS_URL"] = ""
os.environ["FERNET_KEY"] = "MDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDA="
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["APP_URL"] = "http://test"
os.environ["RESEND_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["ANALYZER_DELAY_SECONDS"] = "0"
os.environ["DIGEST_USER_DELAY_SECONDS"] = "0"

from collections.abc import AsyncGenerator
from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from bookspark.config import get_settings
from bookspark.models import Base
from bookspark.models.bookmark import Bookmark
from bookspark.models.user import User
from bookspark.services.content_analyzer import AnalysisResult, ContentAnalyzer
from bookspark.services.feed_providers.base import BookmarkBatch
from bookspark.utils import now_utc

get_settings.cache_clear()


class FakeEmailService:
    """Records digests instead of calling Resend."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent = []
        self.samples = []

    async def send_daily_digest(self, email) -> bool:
        self.sent.append(email)
        return self.succeed

    async def send_test_digest(self, to_email: str, name: str, user_id: int = 0) -> bool:
        self.samples.append((to_email, name, user_id))
        return self.succeed


class FakeAnalyzer(ContentAnalyzer):
    """Returns a fixed analysis, or raises ``error`` when set.

    ``analyze_or_fallback`` is inherited, so failures take the real fallback path.
    """

    def __init__(self, result: AnalysisResult | None = None, error: Exception | None = None):
        self.result = result or AnalysisResult(
            summary="A short summary",
            content_type="tutorial",
            topics=["python", "testing"],
            suggested_actions=["Add to task list"],
        )
        self.error = error
        self.calls = []
        self.action_calls = []

    async def analyze(self, content: str, url: str | None = None) -> AnalysisResult:
        self.calls.append((content, url))
        if self.error:
            raise self.error
        return AnalysisResult(
            summary=self.result.summary,
            content_type=self.result.content_type,
            topics=list(self.result.topics),
            suggested_actions=list(self.result.suggested_actions),
        )

    async def suggest_actions(self, content: str, content_type: str) -> list[str]:
        self.action_calls.append((content, content_type))
        return ["Set reminder to practice"]


class FakeProvider:
    """Serves a canned X API v2 payload."""

    def __init__(self, payload: dict | None = None, error: Exception | None = None):
        self.payload = payload or {"data": []}
        self.error = error
        self.calls = []

    async def fetch_bookmarks(self, user_id: int, max_results: int = 100) -> BookmarkBatch:
        self.calls.append((user_id, max_results))
        if self.error:
            raise self.error
        batch = BookmarkBatch()
        batch.extend(self.payload)
        return batch


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """A fresh in-memory SQLite database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def user(db_session: AsyncSession) -> User:
    user = User(
        x_user_id="1001",
        x_username="reader",
        name="Reader One",
        email="reader@example.com",
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    user = User(x_user_id="2002", x_username="someone", name="Someone Else", email="else@example.com")
    db_session.add(user)
    await db_session.commit()
    return user


def make_bookmark(user: User, tweet_id: str, **fields) -> Bookmark:
    """A processed bookmark ready for the digest, overridable per field.

    Numeric tweet ids double as age in hours, so lower ids are newer.
    """
    values = {
        "content": f"Post {tweet_id}",
        "summary": f"Summary {tweet_id}",
        "topics": [f"topic-{tweet_id}"],
        "suggested_actions": ["Add to task list"],
        "content_type": "tweet",
        "processed_at": now_utc(),
        "created_at": now_utc() - timedelta(hours=int(tweet_id) if tweet_id.isdigit() else 1),
    }
    values.update(fields)
    return Bookmark(user_id=user.id, tweet_id=tweet_id, **values)


@pytest.fixture
def email_service() -> FakeEmailService:
    return FakeEmailService()


@pytest.fixture
def analyzer() -> FakeAnalyzer:
    return FakeAnalyzer()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
async def client(
    db_session: AsyncSession,
    email_service: FakeEmailService,
    analyzer: FakeAnalyzer,
    provider: FakeProvider,
) -> AsyncGenerator[AsyncClient]:
    """Create a test client with database and service overrides."""
    from bookspark.app import app
    from bookspark.db.session import get_db
    from bookspark.dependencies import get_bookmark_provider, get_content_analyzer, get_email_service

    async def override_get_db() -> AsyncGenerator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: email_service
    app.dependency_overrides[get_content_analyzer] = lambda: analyzer
    app.dependency_overrides[get_bookmark_provider] = lambda: provider

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
async def auth_client(client: AsyncClient, user: User) -> AsyncClient:
    """The test client carrying a session cookie for ``user``."""
    from bookspark.constants import COOKIE_NAME
    from bookspark.services.auth_service import create_jwt

    client.headers["Cookie"] = f"{COOKIE_NAME}={create_jwt(user.id)}"
    return client
