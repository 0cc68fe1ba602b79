"""Shared test fixtures.

The suite runs against an in-memory SQLite database (aiosqlite) built from
the ORM metadata, so no Postgres or Redis is needed.
"""

from __future__ import annotations

import os

os.environ["BUDDY_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["BUDDY_JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-hs256-signing"
os.environ["BUDDY_LOG_FORMAT"] = "console"
os.environ["BUDDY_LOG_LEVEL"] = "WARNING"
os.environ["BUDDY_DIGEST_TRIGGER_SECRET"] = ""

import uuid  # noqa: E402
from collections.abc import AsyncGenerator, Awaitable, Callable, Iterator  # noqa: E402
from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from buddy.config import get_settings  # noqa: E402

get_settings.cache_clear()

from buddy.auth.jwt import create_access_token  # noqa: E402
from buddy.database import get_session  # noqa: E402
from buddy.db.base import Base  # noqa: E402
from buddy.db.models import Profile, StudyPlan  # noqa: E402
from buddy.email.service import BaseEmailProvider, EmailDeliveryError  # noqa: E402
from buddy.main import create_app  # noqa: E402
from buddy.redis_client import get_redis_dep  # noqa: E402


class RecordingProvider(BaseEmailProvider):
    """Email provider that records every attempt and fails for chosen addresses."""

    name = "recording"

    def __init__(self, fail_for: tuple[str, ...] = ()) -> None:
        self.fail_for = set(fail_for)
        self.attempts: list[str] = []
        self.sent: list[dict] = []

    async def send(self, to_email: str, subject: str, html_body: str, text_body: str) -> None:
        self.attempts.append(to_email)
        if to_email in self.fail_for:
            raise EmailDeliveryError("550 mailbox unavailable")
        self.sent.append({"to": to_email, "subject": subject, "html": html_body, "text": text_body})


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    """Tests that tweak BUDDY_* env vars get a clean settings cache afterwards."""
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def make_profile(db_session: AsyncSession) -> Callable[..., Awaitable[Profile]]:
    """Factory for committed profiles."""

    async def _make(email: str | None = "student@example.com", full_name: str | None = "Student") -> Profile:
        profile = Profile(
            id=uuid.uuid4(),
            email=email,
            full_name=full_name,
            created_at=datetime.now(timezone.utc),
        )
        db_session.add(profile)
        await db_session.commit()
        return profile

    return _make


@pytest_asyncio.fixture
async def make_task(db_session: AsyncSession) -> Callable[..., Awaitable[StudyPlan]]:
    """Factory for committed study-plan tasks."""

    async def _make(
        user_id: uuid.UUID,
        title: str,
        due_date: datetime,
        priority: str = "medium",
        completed: bool = False,
        description: str | None = None,
    ) -> StudyPlan:
        task = StudyPlan(
            id=uuid.uuid4(),
            user_id=user_id,
            title=title,
            description=description,
            due_date=due_date,
            priority=priority,
            completed=completed,
            created_at=datetime.now(timezone.utc),
        )
        db_session.add(task)
        await db_session.commit()
        return task

    return _make


@pytest.fixture
def make_provider() -> Callable[..., RecordingProvider]:
    return RecordingProvider


@pytest.fixture
def auth_headers() -> Callable[[uuid.UUID], dict[str, str]]:
    def _headers(user_id: uuid.UUID) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers


@pytest_asyncio.fixture
async def app(db_session: AsyncSession) -> FastAPI:
    """App wired to the test's database session, with Redis disabled."""
    app = create_app()

    async def _session_override() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    async def _no_redis() -> None:
        return None

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_redis_dep] = _no_redis
    return app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
