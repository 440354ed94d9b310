"""Streak sweep arq worker: nightly miss penalties and evening streak warnings.

Run with: arq focusstreak.workers.sweep_worker.SweepWorkerSettings
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from arq import cron
from arq.connections import RedisSettings

from focusstreak.config import get_settings
from focusstreak.database import close_db, get_session_factory, init_db
from focusstreak.middleware.logging import setup_logging
from focusstreak.tracking.day_utils import get_zone
from focusstreak.tracking.streak_reset import ACTION_PENALIZE, check_streak_warnings, run_daily_sweep

logger = logging.getLogger(__name__)


async def sweep_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Open DB and Redis connections for the worker process."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)
    ctx["redis"] = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=5,
    )
    logger.info("Sweep worker started (day timezone %s)", settings.day_timezone)


async def sweep_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    redis_client: aioredis.Redis | None = ctx.get("redis")
    if redis_client:
        await redis_client.aclose()
    await close_db()
    logger.info("Sweep worker shut down")


async def daily_streak_sweep(ctx: dict) -> int:  # type: ignore[type-arg]
    """Scheduled task: just after local midnight, penalize goals that missed yesterday.

    Returns the number of goals penalized.
    """
    async with get_session_factory()() as db:
        actions = await run_daily_sweep(db, ctx.get("redis"))
    return sum(1 for a in actions if a.action == ACTION_PENALIZE)


async def evening_streak_warnings(ctx: dict) -> int:  # type: ignore[type-arg]
    """Scheduled task: remind owners of live streaks not yet completed today."""
    async with get_session_factory()() as db:
        return await check_streak_warnings(db, ctx.get("redis"))


_settings = get_settings()


class SweepWorkerSettings:
    """arq worker settings for the streak sweep."""

    functions = [daily_streak_sweep, evening_streak_warnings]
    cron_jobs = [
        cron(daily_streak_sweep, hour=_settings.sweep_hour, minute=_settings.sweep_minute, second=0),
        cron(evening_streak_warnings, hour=_settings.streak_warning_hour, minute=0, second=0),
    ]
    on_startup = sweep_startup
    on_shutdown = sweep_shutdown
    redis_settings = RedisSettings.from_dsn(_settings.arq_redis_url)
    timezone = get_zone(_settings.day_timezone)
    max_jobs = 2
    job_timeout = 1800
