"""Goal CRUD. Streak and counter fields are owned by the tracking services."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from focusstreak.db.models import (
    GOAL_CATEGORIES,
    MAX_DAILY_TARGET_MINUTES,
    MIN_DAILY_TARGET_MINUTES,
    DailyProgress,
    Goal,
)
from focusstreak.tracking.exceptions import ConcurrencyConflictError, InvalidGoalError
from focusstreak.tracking.session_recorder import get_owned_goal

logger = structlog.get_logger()

EDITABLE_FIELDS = ("name", "description", "daily_target_minutes", "category", "skip_break", "is_active")
# Fields an explicit null clears; for the rest null means "leave unchanged"
NULLABLE_FIELDS = ("description",)


def validate_goal_fields(fields: dict[str, Any]) -> None:
    """Check target range and category on create or update."""
    target = fields.get("daily_target_minutes")
    if target is not None and not MIN_DAILY_TARGET_MINUTES <= target <= MAX_DAILY_TARGET_MINUTES:
        msg = f"daily_target_minutes must be between {MIN_DAILY_TARGET_MINUTES} and {MAX_DAILY_TARGET_MINUTES}"
        raise InvalidGoalError(msg)
    category = fields.get("category")
    if category is not None and category not in GOAL_CATEGORIES:
        msg = f"category must be one of {', '.join(GOAL_CATEGORIES)}"
        raise InvalidGoalError(msg)
    if "name" in fields and not (fields["name"] or "").strip():
        msg = "name must not be empty"
        raise InvalidGoalError(msg)


async def list_active_goals(db: AsyncSession, user_id: int) -> list[Goal]:
    """Active goals, newest first."""
    result = await db.execute(
        select(Goal)
        .where(Goal.user_id == user_id, Goal.is_active.is_(True))
        .order_by(Goal.created_at.desc(), Goal.id.desc())
    )
    return list(result.scalars().all())


async def create_goal(db: AsyncSession, user_id: int, **fields: Any) -> Goal:
    """Create a goal with a zero streak."""
    validate_goal_fields(fields)
    goal = Goal(user_id=user_id, **fields)
    db.add(goal)
    await db.flush()
    logger.info("goal_created", goal_id=goal.id, user_id=user_id, target=goal.daily_target_minutes)
    return goal


async def update_goal(db: AsyncSession, user_id: int, goal_id: int, changes: dict[str, Any]) -> Goal:
    """
    Apply a partial update.

    A new daily target only affects days whose first session comes after the
    change; a day already in progress keeps the target it started with. An
    explicit None clears ``description`` and is ignored for other fields.

    Raises:
        GoalNotFoundError: If the goal does not belong to the user.
        InvalidGoalError: If a changed field is out of range.
        ConcurrencyConflictError: If a session or the sweep changed the goal meanwhile.
    """
    changes = {
        k: v for k, v in changes.items()
        if k in EDITABLE_FIELDS and (v is not None or k in NULLABLE_FIELDS)
    }
    validate_goal_fields(changes)
    goal = await get_owned_goal(db, user_id, goal_id)
    for field, value in changes.items():
        setattr(goal, field, value)
    try:
        await db.flush()
    except StaleDataError as e:
        await db.rollback()
        raise ConcurrencyConflictError(goal_id, 1) from e
    return goal


async def archive_goal(db: AsyncSession, user_id: int, goal_id: int) -> Goal:
    """Soft delete: the goal and its history stay, the sweep stops seeing it."""
    goal = await get_owned_goal(db, user_id, goal_id)
    goal.is_active = False
    try:
        await db.flush()
    except StaleDataError as e:
        await db.rollback()
        raise ConcurrencyConflictError(goal_id, 1) from e
    logger.info("goal_archived", goal_id=goal.id, user_id=user_id)
    return goal


async def get_goal_stats(
    db: AsyncSession,
    user_id: int,
    goal_id: int,
    today: date,
    days: int = 30,
) -> tuple[Goal, list[DailyProgress]]:
    """Goal plus its daily progress over the last ``days`` days, newest first."""
    goal = await get_owned_goal(db, user_id, goal_id)
    result = await db.execute(
        select(DailyProgress)
        .where(
            DailyProgress.goal_id == goal.id,
            DailyProgress.day > today - timedelta(days=days),
        )
        .order_by(DailyProgress.day.desc())
    )
    return goal, list(result.scalars().all())
