"""Shared test fixtures.

Every test gets its own SQLite database file (aiosqlite) with the schema built
from the ORM metadata, so no Postgres or Redis is needed.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from streakup.auth.jwt import create_access_token
from streakup.config import get_settings
from streakup.database import close_db, get_engine, get_session_factory, init_db
from streakup.db.base import Base
from streakup.db.models import BadgeDefinition, Challenge, User
from streakup.progress.store import create_progress

TEST_JWT_SECRET = "streakup-test-secret-key-0123456789abcdef"
JOIN_TIME = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> None:
    monkeypatch.setenv("STREAKUP_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'streakup.db'}")
    monkeypatch.setenv("STREAKUP_JWT_SECRET_KEY", TEST_JWT_SECRET)
    monkeypatch.setenv("STREAKUP_SEED_BADGES_ON_STARTUP", "false")
    monkeypatch.setenv("STREAKUP_LOG_FORMAT", "console")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Initialise the engine and create all tables."""
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db(database: None) -> AsyncGenerator[AsyncSession, None]:
    """A session on the test database."""
    async with get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to a fresh app instance."""
    from streakup.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers


@pytest.fixture
def make_user(db: AsyncSession) -> Callable[..., Awaitable[User]]:
    counter = {"n": 0}

    async def _make(nickname: str | None = None, **fields: Any) -> User:
        counter["n"] += 1
        user = User(
            provider="kakao",
            social_id=f"social-{counter['n']}",
            nickname=nickname or f"user{counter['n']}",
            grade=fields.pop("grade", "bronze"),
            trust_score=fields.pop("trust_score", 0.0),
            **fields,
        )
        db.add(user)
        await db.commit()
        return user

    return _make


@pytest.fixture
def make_challenge(db: AsyncSession) -> Callable[..., Awaitable[Challenge]]:
    async def _make(creator: User, category: str = "exercise", max_participants: int = 100, **fields: Any) -> Challenge:
        challenge = Challenge(
            title=fields.pop("title", "Morning run"),
            description=fields.pop("description", "Run every morning"),
            rules="Upload a photo of your run",
            cautions="Stretch first",
            category=category,
            created_by=creator.id,
            max_participants=max_participants,
            frequency_type="daily",
            frequency_interval=1,
            **fields,
        )
        db.add(challenge)
        await db.commit()
        return challenge

    return _make


@pytest.fixture
def join(db: AsyncSession) -> Callable[..., Awaitable[Any]]:
    """Create a progress record directly (no participant row, no rate recompute)."""

    async def _join(user: User, challenge: Challenge, start: datetime = JOIN_TIME, **counters: int) -> Any:
        record = await create_progress(db, user.id, challenge.id, start_date=start)
        for name, value in counters.items():
            setattr(record, name, value)
        await db.commit()
        return record

    return _join


@pytest.fixture
def make_badge(db: AsyncSession) -> Callable[..., Awaitable[BadgeDefinition]]:
    async def _make(slug: str, condition_type: str, threshold: int, **fields: Any) -> BadgeDefinition:
        badge = BadgeDefinition(
            slug=slug,
            name=fields.pop("name", slug.replace("_", " ").title()),
            description=fields.pop("description", f"{condition_type} >= {threshold}"),
            condition_type=condition_type,
            threshold=threshold,
            **fields,
        )
        db.add(badge)
        await db.commit()
        return badge

    return _make
