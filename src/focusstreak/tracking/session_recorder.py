"""Record a finished timer session and apply its effect on progress, streaks and rewards.

For a focus session:
1. Persist the session row (committed on its own, so it is logged even if
   the aggregate update below fails)
2. Lock the goal, bump its session/minute counters
3. Add the minutes to today's daily progress
4. If that completed the day: advance the streak, award coins
5. Recompute the user's rank
6. Commit steps 2-5 together, retrying on optimistic-lock conflicts

Break sessions only do step 1.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from focusstreak.config import get_settings
from focusstreak.db.models import SESSION_TYPES, DailyProgress, FocusSession, Goal
from focusstreak.tracking.coins import award_coins, get_balance, refresh_rank
from focusstreak.tracking.daily_progress import apply_minutes, get_or_create_daily_progress
from focusstreak.tracking.day_utils import local_day
from focusstreak.tracking.events import emit_day_completed
from focusstreak.tracking.exceptions import ConcurrencyConflictError, GoalNotFoundError, InvalidSessionError
from focusstreak.tracking.rewards import coins_for_completion
from focusstreak.tracking.streak_engine import advance_on_completion

logger = structlog.get_logger()


@dataclass
class SessionOutcome:
    session: FocusSession
    goal: Goal
    progress: DailyProgress | None = None
    just_completed: bool = False
    coins_awarded: int = 0
    total_coins: int | None = None
    rank: str | None = None


def validate_session_input(duration_minutes: int, session_type: str) -> None:
    """Reject a session before anything is written."""
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        msg = "durationMinutes must be an integer"
        raise InvalidSessionError(msg)
    if duration_minutes <= 0:
        msg = "durationMinutes must be positive"
        raise InvalidSessionError(msg)
    if session_type not in SESSION_TYPES:
        msg = f"sessionType must be one of {', '.join(SESSION_TYPES)}"
        raise InvalidSessionError(msg)


async def get_owned_goal(
    db: AsyncSession,
    user_id: int,
    goal_id: int,
    for_update: bool = False,
) -> Goal:
    """Load a goal owned by ``user_id`` or raise GoalNotFoundError."""
    stmt = (
        select(Goal)
        .where(Goal.id == goal_id, Goal.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    goal = result.scalar_one_or_none()
    if goal is None:
        msg = f"Goal {goal_id} not found"
        raise GoalNotFoundError(msg)
    return goal


async def record_session(
    db: AsyncSession,
    redis: object,
    user_id: int,
    goal_id: int,
    duration_minutes: int,
    session_type: str = "focus",
    notes: str | None = None,
    now: datetime | None = None,
) -> SessionOutcome:
    """Record one finished session. See module docstring for the steps.

    Raises:
        InvalidSessionError: bad duration or session type; nothing persisted.
        GoalNotFoundError: goal missing or owned by someone else; nothing persisted.
        ConcurrencyConflictError: the aggregate update kept colliding. The
            session row is already stored.
    """
    settings = get_settings()
    if now is None:
        now = datetime.now(timezone.utc)

    validate_session_input(duration_minutes, session_type)
    goal = await get_owned_goal(db, user_id, goal_id)

    session = FocusSession(
        user_id=user_id,
        goal_id=goal.id,
        duration_minutes=duration_minutes,
        session_type=session_type,
        notes=(notes or "")[: settings.session_notes_max_length],
        completed_at=now,
    )
    db.add(session)
    await db.commit()

    logger.info(
        "session_recorded",
        session_id=session.id,
        user_id=user_id,
        goal_id=goal.id,
        session_type=session_type,
        duration_minutes=duration_minutes,
    )

    if session_type != "focus":
        return SessionOutcome(session=session, goal=goal)

    today = local_day(now, settings.day_timezone)
    attempts = settings.session_record_max_attempts
    outcome: SessionOutcome | None = None

    for attempt in range(1, attempts + 1):
        try:
            outcome = await _apply_focus_minutes(db, session, user_id, goal_id, duration_minutes, today, now)
            await db.commit()
            break
        except StaleDataError:
            await db.rollback()
            logger.warning("session_apply_conflict", goal_id=goal_id, attempt=attempt, max_attempts=attempts)

    if outcome is None:
        raise ConcurrencyConflictError(goal_id, attempts)

    if outcome.just_completed:
        logger.info(
            "day_completed",
            user_id=user_id,
            goal_id=goal_id,
            day=today.isoformat(),
            streak=outcome.goal.current_streak,
            coins=outcome.coins_awarded,
        )
        await emit_day_completed(
            redis,
            user_id,
            goal_id,
            today,
            outcome.goal.current_streak,
            outcome.coins_awarded,
            outcome.rank or "",
        )

    return outcome


async def _apply_focus_minutes(
    db: AsyncSession,
    session: FocusSession,
    user_id: int,
    goal_id: int,
    minutes: int,
    today: date,
    now: datetime,
) -> SessionOutcome:
    """Steps 2-5 inside one transaction. Caller commits or rolls back."""
    goal = await get_owned_goal(db, user_id, goal_id, for_update=True)

    await db.execute(
        update(Goal)
        .where(Goal.id == goal.id)
        .values(
            total_sessions_completed=Goal.total_sessions_completed + 1,
            total_minutes_completed=Goal.total_minutes_completed + minutes,
        )
        .execution_options(synchronize_session=False)
    )

    progress = await get_or_create_daily_progress(db, user_id, goal.id, today, goal.daily_target_minutes)
    just_completed = await apply_minutes(db, progress, minutes, now)

    coins = 0
    if just_completed:
        await advance_on_completion(db, goal, today)
        coins = coins_for_completion(goal.current_streak)
        progress.coins_earned = coins
        await award_coins(db, user_id, coins)

    # Flush the versioned goal before ranking so the max() query sees it;
    # a version mismatch raises StaleDataError here.
    await db.flush()
    await refresh_rank(db, user_id, floor_streak=goal.longest_streak)

    await db.refresh(goal)
    await db.refresh(session)
    total_coins, rank = await get_balance(db, user_id)

    return SessionOutcome(
        session=session,
        goal=goal,
        progress=progress,
        just_completed=just_completed,
        coins_awarded=coins,
        total_coins=total_coins,
        rank=rank,
    )
