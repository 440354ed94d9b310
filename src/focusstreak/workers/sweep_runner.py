"""Run the streak sweep once, outside the arq scheduler.

Used for manual catch-up after a missed night or from an external cron.

Usage: python -m focusstreak.workers.sweep_runner [YYYY-MM-DD]

The optional date is the "as of" day: goals are checked for the day before it.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import date

import redis.asyncio as aioredis

from focusstreak.config import get_settings
from focusstreak.database import close_db, get_session_factory, init_db
from focusstreak.middleware.logging import setup_logging
from focusstreak.tracking.streak_reset import ACTION_PENALIZE, run_daily_sweep

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


def parse_as_of(argv: list[str]) -> date | None:
    """Optional ISO date from the command line."""
    if not argv:
        return None
    return date.fromisoformat(argv[0])


async def main(as_of: date | None = None) -> int:
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)
    redis_client = aioredis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)

    try:
        async with get_session_factory()() as db:
            actions = await run_daily_sweep(db, redis_client, as_of)
    finally:
        await redis_client.aclose()
        await close_db()

    penalized = sum(1 for a in actions if a.action == ACTION_PENALIZE)
    logger.info("Sweep finished: %d goals checked, %d penalized", len(actions), penalized)
    return penalized


if __name__ == "__main__":
    try:
        as_of_arg = parse_as_of(sys.argv[1:])
    except ValueError:
        logger.error("Expected a date as YYYY-MM-DD, got %r", sys.argv[1])
        sys.exit(2)
    asyncio.run(main(as_of_arg))
