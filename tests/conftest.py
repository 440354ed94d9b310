"""Shared test fixtures.

Every test that touches the database gets its own SQLite file, created from
the ORM metadata. Redis is replaced with an AsyncMock so published events can
be asserted on.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Iterator
from datetime import date
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

os.environ.setdefault("FOCUS_LOG_FORMAT", "console")
os.environ.setdefault("FOCUS_DAY_TIMEZONE", "UTC")

from focusstreak.config import get_settings  # noqa: E402
from focusstreak.database import close_db, create_schema, get_session_factory, init_db  # noqa: E402
from focusstreak.db.models import DailyProgress, Goal, User  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    """Drop cached settings so monkeypatched env vars apply per test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def db_url(tmp_path) -> AsyncGenerator[str, None]:
    """Initialize a fresh SQLite database for one test."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'focus.db'}"
    await init_db(url)
    await create_schema()
    yield url
    await close_db()


@pytest_asyncio.fixture
async def db_session(db_url: str) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for arranging data and asserting on it."""
    async with get_session_factory()() as session:
        yield session


@pytest.fixture
def mock_redis() -> AsyncMock:
    redis = AsyncMock()
    redis.publish = AsyncMock(return_value=1)
    return redis


@pytest_asyncio.fixture
async def client(db_url: str, mock_redis: AsyncMock) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, with the test database and mocked Redis."""
    from focusstreak.dependencies import get_redis_dep
    from focusstreak.main import create_app

    app = create_app()

    async def _redis_override() -> AsyncGenerator[object, None]:
        yield mock_redis

    app.dependency_overrides[get_redis_dep] = _redis_override

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def make_user(db: AsyncSession, email: str = "focus@example.com", coins: int = 0) -> User:
    user = User(email=email, display_name=email.split("@")[0], total_coins=coins)
    db.add(user)
    await db.commit()
    return user


async def make_goal(
    db: AsyncSession,
    user: User,
    target: int = 60,
    name: str = "Deep work",
    current_streak: int = 0,
    longest_streak: int | None = None,
    is_active: bool = True,
) -> Goal:
    goal = Goal(
        user_id=user.id,
        name=name,
        daily_target_minutes=target,
        category="work",
        current_streak=current_streak,
        longest_streak=current_streak if longest_streak is None else longest_streak,
        is_active=is_active,
    )
    db.add(goal)
    await db.commit()
    return goal


async def make_completed_day(db: AsyncSession, goal: Goal, day: date, coins: int = 10) -> DailyProgress:
    """A daily progress row that already reached its target."""
    progress = DailyProgress(
        user_id=goal.user_id,
        goal_id=goal.id,
        day=day,
        minutes_completed=goal.daily_target_minutes,
        target_minutes=goal.daily_target_minutes,
        is_completed=True,
        coins_earned=coins,
    )
    db.add(progress)
    await db.commit()
    return progress


def auth_headers(user: User) -> dict[str, str]:
    return {"X-User-Id": str(user.id)}
