"""Progress queries. Read-only: daily aggregates are written by the session recorder."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from focusstreak.db.models import DailyProgress, Goal
from focusstreak.tracking.session_recorder import get_owned_goal

MAX_HISTORY_DAYS = 90


async def daily_overview(db: AsyncSession, user_id: int, day: date) -> list[tuple[Goal, DailyProgress | None]]:
    """Every active goal paired with its progress row for ``day`` (or None)."""
    result = await db.execute(
        select(Goal, DailyProgress)
        .outerjoin(
            DailyProgress,
            (DailyProgress.goal_id == Goal.id) & (DailyProgress.day == day),
        )
        .where(Goal.user_id == user_id, Goal.is_active.is_(True))
        .order_by(Goal.created_at, Goal.id)
    )
    return [(row[0], row[1]) for row in result.all()]


async def goal_history(
    db: AsyncSession,
    user_id: int,
    goal_id: int,
    today: date,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[DailyProgress]:
    """Progress rows for one goal, newest first, spanning at most 90 days."""
    goal = await get_owned_goal(db, user_id, goal_id)
    end = end_date or today
    start = start_date or end - timedelta(days=MAX_HISTORY_DAYS - 1)
    start = max(start, end - timedelta(days=MAX_HISTORY_DAYS - 1))

    result = await db.execute(
        select(DailyProgress)
        .where(
            DailyProgress.goal_id == goal.id,
            DailyProgress.day >= start,
            DailyProgress.day <= end,
        )
        .order_by(DailyProgress.day.desc())
    )
    return list(result.scalars().all())


async def completion_calendar(
    db: AsyncSession,
    user_id: int,
    start_date: date,
    end_date: date,
) -> dict[str, dict]:
    """Completed days in a range grouped by ISO date."""
    result = await db.execute(
        select(DailyProgress.day, DailyProgress.goal_id, DailyProgress.minutes_completed)
        .where(
            DailyProgress.user_id == user_id,
            DailyProgress.is_completed.is_(True),
            DailyProgress.day >= start_date,
            DailyProgress.day <= end_date,
        )
        .order_by(DailyProgress.day, DailyProgress.goal_id)
    )
    days: dict[str, dict] = defaultdict(lambda: {"goal_ids": [], "minutes": 0})
    for day, goal_id, minutes in result.all():
        entry = days[day.isoformat()]
        entry["goal_ids"].append(goal_id)
        entry["minutes"] += minutes
    return dict(days)


async def overall_stats(db: AsyncSession, user_id: int) -> dict:
    """Lifetime totals across all goals, archived ones included."""
    totals = (await db.execute(
        select(
            func.coalesce(func.sum(Goal.total_minutes_completed), 0),
            func.coalesce(func.sum(Goal.total_sessions_completed), 0),
        ).where(Goal.user_id == user_id)
    )).one()

    active = (await db.execute(
        select(
            func.count(Goal.id),
            func.coalesce(func.max(Goal.current_streak), 0),
            func.coalesce(func.max(Goal.longest_streak), 0),
        ).where(Goal.user_id == user_id, Goal.is_active.is_(True))
    )).one()

    completed_days = (await db.execute(
        select(func.count(DailyProgress.id)).where(
            DailyProgress.user_id == user_id,
            DailyProgress.is_completed.is_(True),
        )
    )).scalar_one()

    return {
        "total_focus_minutes": int(totals[0]),
        "total_sessions": int(totals[1]),
        "completed_days": completed_days,
        "active_goals": active[0],
        "best_current_streak": active[1],
        "best_longest_streak": active[2],
    }
