"""Nightly streak sweep: penalize active goals that missed yesterday.

``plan_daily_sweep`` decides, ``run_daily_sweep`` applies. The arq cron job in
``focusstreak.workers.sweep_worker`` only calls ``run_daily_sweep``.

Re-running the sweep for the same day deducts the miss penalty again; the
scheduler is expected to fire once per day.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from focusstreak.config import get_settings
from focusstreak.db.models import DailyProgress, Goal
from focusstreak.tracking.daily_progress import completed_goal_ids_for_day
from focusstreak.tracking.day_utils import local_today, previous_day
from focusstreak.tracking.events import emit_streak_broken, emit_streak_warning
from focusstreak.tracking.streak_engine import penalize_for_miss

logger = structlog.get_logger()

ACTION_PENALIZE = "penalize"
ACTION_KEEP = "keep"


@dataclass(frozen=True)
class SweepAction:
    goal_id: int
    action: str
    user_id: int | None = None
    previous_streak: int = 0
    streak_broken: bool = False
    coins_deducted: int = 0


def plan_daily_sweep(goal_ids: Iterable[int], completed_goal_ids: set[int]) -> list[tuple[int, str]]:
    """Decide what happens to each active goal.

    Every goal without a completed day is penalized, including goals that had
    no streak and goals created the day before.
    """
    return [
        (goal_id, ACTION_KEEP if goal_id in completed_goal_ids else ACTION_PENALIZE)
        for goal_id in goal_ids
    ]


async def run_daily_sweep(
    db: AsyncSession,
    redis: object,
    as_of: date | None = None,
) -> list[SweepAction]:
    """Apply the sweep for the day before ``as_of`` (default: today in the day timezone).

    Each penalized goal commits on its own. A goal that fails is rolled back,
    logged and skipped until the next run.

    Returns the actions actually applied, in goal id order.
    """
    if as_of is None:
        as_of = local_today(get_settings().day_timezone)
    yesterday = previous_day(as_of)

    result = await db.execute(
        select(Goal.id).where(Goal.is_active.is_(True)).order_by(Goal.id)
    )
    goal_ids = list(result.scalars().all())
    completed = await completed_goal_ids_for_day(db, yesterday)
    # Release the read snapshot before taking per-goal locks
    await db.commit()

    applied: list[SweepAction] = []
    failures = 0

    for goal_id, action in plan_daily_sweep(goal_ids, completed):
        if action == ACTION_KEEP:
            applied.append(SweepAction(goal_id=goal_id, action=ACTION_KEEP))
            continue

        try:
            goal = await db.get(Goal, goal_id, with_for_update=True, populate_existing=True)
            if goal is None or not goal.is_active:
                await db.rollback()
                continue
            penalty = await penalize_for_miss(db, goal)
            await db.commit()
        except Exception:
            await db.rollback()
            failures += 1
            logger.exception("streak_sweep_goal_failed", goal_id=goal_id, day=yesterday.isoformat())
            continue

        if penalty.streak_broken:
            await emit_streak_broken(redis, penalty.user_id, goal_id, penalty.previous_streak)

        applied.append(SweepAction(
            goal_id=goal_id,
            action=ACTION_PENALIZE,
            user_id=penalty.user_id,
            previous_streak=penalty.previous_streak,
            streak_broken=penalty.streak_broken,
            coins_deducted=penalty.coins_deducted,
        ))

    penalized = sum(1 for a in applied if a.action == ACTION_PENALIZE)
    logger.info(
        "streak_sweep_complete",
        day=yesterday.isoformat(),
        goals=len(goal_ids),
        penalized=penalized,
        failed=failures,
    )
    return applied


async def check_streak_warnings(
    db: AsyncSession,
    redis: object,
    now: datetime | None = None,
) -> int:
    """Evening reminder: warn goals with a live streak that are not done today.

    Returns number of warnings sent.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    today = local_today(get_settings().day_timezone, now)

    result = await db.execute(
        select(Goal, DailyProgress)
        .outerjoin(
            DailyProgress,
            (DailyProgress.goal_id == Goal.id) & (DailyProgress.day == today),
        )
        .where(Goal.is_active.is_(True), Goal.current_streak > 0)
        .order_by(Goal.id)
    )

    warnings = 0
    for goal, progress in result.all():
        if progress is not None and progress.is_completed:
            continue
        done = progress.minutes_completed if progress is not None else 0
        target = progress.target_minutes if progress is not None else goal.daily_target_minutes
        await emit_streak_warning(redis, goal.user_id, goal.id, goal.current_streak, max(target - done, 0))
        warnings += 1

    return warnings
