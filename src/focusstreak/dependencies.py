"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from focusstreak.database import get_session as _get_session
from focusstreak.db.models import User
from focusstreak.redis_client import get_redis_or_none

get_db = _get_session


async def get_redis_dep() -> AsyncGenerator[object, None]:
    """Yield the Redis client (or None without Redis) as a FastAPI dependency."""
    yield get_redis_or_none()


async def get_current_user(
    x_user_id: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),  # noqa: B008
) -> User:
    """
    Resolve the caller from the X-User-Id header.

    The upstream auth gateway authenticates the request and forwards the user
    id; this service only checks that the user exists. Raises 401 otherwise.
    """
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    try:
        user_id = int(x_user_id)
    except ValueError as e:
        raise HTTPException(status_code=401, detail="Invalid X-User-Id header") from e

    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return user
