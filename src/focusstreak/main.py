"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from focusstreak.config import get_settings
from focusstreak.database import close_db, init_db
from focusstreak.goals.router import router as goals_router
from focusstreak.health.router import router as health_router
from focusstreak.middleware import setup_middleware
from focusstreak.progress.router import router as progress_router
from focusstreak.redis_client import close_redis, init_redis
from focusstreak.tracking.router import router as sessions_router
from focusstreak.users.router import router as users_router


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database and Redis pools for the life of the process."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Focus Streak API",
        description="Focus sessions, daily goal progress, streaks and coin rewards",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(sessions_router)
    app.include_router(goals_router)
    app.include_router(progress_router)
    app.include_router(users_router)

    return app


app = create_app()
