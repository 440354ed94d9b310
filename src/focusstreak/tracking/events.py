"""Progress events published to Redis pub/sub for live dashboards."""

from __future__ import annotations

import json
from datetime import date

import structlog

logger = structlog.get_logger()

PROGRESS_CHANNEL = "pubsub:goal_progress"


async def _publish(redis: object, payload: dict) -> None:
    if redis is None:
        return
    try:
        await redis.publish(PROGRESS_CHANNEL, json.dumps(payload))  # type: ignore[attr-defined]
    except Exception:
        logger.warning("progress_event_publish_failed", event_name=payload.get("event"), exc_info=True)


async def emit_day_completed(
    redis: object,
    user_id: int,
    goal_id: int,
    day: date,
    streak: int,
    coins_earned: int,
    rank: str,
) -> None:
    """Announce that a goal reached its daily target."""
    await _publish(redis, {
        "event": "day_completed",
        "user_id": user_id,
        "goal_id": goal_id,
        "date": day.isoformat(),
        "streak": streak,
        "coins_earned": coins_earned,
        "rank": rank,
    })


async def emit_streak_broken(redis: object, user_id: int, goal_id: int, streak_length: int) -> None:
    """Tell the user their streak on a goal ended."""
    await _publish(redis, {
        "event": "streak_broken",
        "user_id": user_id,
        "goal_id": goal_id,
        "streak_length": streak_length,
    })


async def emit_streak_warning(
    redis: object,
    user_id: int,
    goal_id: int,
    streak_length: int,
    minutes_remaining: int,
) -> None:
    """Warn that a live streak ends tonight unless the goal is completed."""
    await _publish(redis, {
        "event": "streak_warning",
        "user_id": user_id,
        "goal_id": goal_id,
        "streak_length": streak_length,
        "minutes_remaining": minutes_remaining,
    })
