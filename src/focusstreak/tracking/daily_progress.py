"""Daily progress: one accumulator row per goal per calendar day."""

from __future__ import annotations

from datetime import date, datetime, timezone

import structlog
from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from focusstreak.db.models import DailyProgress

logger = structlog.get_logger()

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def completion_reached(was_completed: bool, minutes_completed: int, target_minutes: int) -> bool:
    """True only for the update that first pushes a day to its target."""
    return not was_completed and minutes_completed >= target_minutes


async def find_daily_progress(
    db: AsyncSession,
    user_id: int,
    goal_id: int,
    day: date,
) -> DailyProgress | None:
    """Fetch the progress row for (user, goal, day), bypassing stale identity-map state."""
    result = await db.execute(
        select(DailyProgress)
        .where(
            DailyProgress.user_id == user_id,
            DailyProgress.goal_id == goal_id,
            DailyProgress.day == day,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_or_create_daily_progress(
    db: AsyncSession,
    user_id: int,
    goal_id: int,
    day: date,
    target_minutes: int,
) -> DailyProgress:
    """Get the day's progress row, creating it on the first session of the day.

    ``target_minutes`` is only used on creation: the row keeps the goal's target
    as it was when the day started, even if the goal is edited later that day.
    A concurrent creator losing the race on the unique key re-reads the winner's
    row instead of failing.
    """
    existing = await find_daily_progress(db, user_id, goal_id, day)
    if existing is not None:
        return existing

    dialect = db.get_bind().dialect.name
    insert_fn = _UPSERT_INSERTS.get(dialect)
    if insert_fn is not None:
        stmt = (
            insert_fn(DailyProgress)
            .values(
                user_id=user_id,
                goal_id=goal_id,
                day=day,
                minutes_completed=0,
                target_minutes=target_minutes,
                is_completed=False,
                coins_earned=0,
            )
            .on_conflict_do_nothing(index_elements=["user_id", "goal_id", "day"])
        )
        await db.execute(stmt)
    else:
        try:
            async with db.begin_nested():
                db.add(DailyProgress(
                    user_id=user_id,
                    goal_id=goal_id,
                    day=day,
                    minutes_completed=0,
                    target_minutes=target_minutes,
                    is_completed=False,
                    coins_earned=0,
                ))
        except IntegrityError:
            logger.info("daily_progress_create_race", goal_id=goal_id, day=day.isoformat())

    progress = await find_daily_progress(db, user_id, goal_id, day)
    if progress is None:
        msg = f"Daily progress for goal {goal_id} on {day} vanished after insert"
        raise RuntimeError(msg)
    return progress


async def apply_minutes(
    db: AsyncSession,
    progress: DailyProgress,
    minutes: int,
    now: datetime | None = None,
) -> bool:
    """Add minutes to a progress row. Returns True if this call completed the day.

    Both steps run in the database: the increment cannot lose a concurrent
    update, and the completion flag flips in a conditional UPDATE that matches
    at most once per row. The caller owns streak and reward handling.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    await db.execute(
        update(DailyProgress)
        .where(DailyProgress.id == progress.id)
        .values(minutes_completed=DailyProgress.minutes_completed + minutes)
        .execution_options(synchronize_session=False)
    )
    flipped = await db.execute(
        update(DailyProgress)
        .where(
            DailyProgress.id == progress.id,
            DailyProgress.is_completed.is_(False),
            DailyProgress.minutes_completed >= DailyProgress.target_minutes,
        )
        .values(is_completed=True, completed_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(progress)
    return flipped.rowcount == 1


async def has_completed_day(db: AsyncSession, goal_id: int, day: date) -> bool:
    """Whether the goal reached its target on ``day``."""
    result = await db.execute(
        select(DailyProgress.id).where(
            DailyProgress.goal_id == goal_id,
            DailyProgress.day == day,
            DailyProgress.is_completed.is_(True),
        )
    )
    return result.first() is not None


async def completed_goal_ids_for_day(db: AsyncSession, day: date) -> set[int]:
    """IDs of every goal with a completed progress row on ``day``."""
    result = await db.execute(
        select(DailyProgress.goal_id).where(
            DailyProgress.day == day,
            DailyProgress.is_completed.is_(True),
        )
    )
    return set(result.scalars().all())
