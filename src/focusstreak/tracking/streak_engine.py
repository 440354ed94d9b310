"""Per-goal daily streaks: advance on completion, reset on a missed day."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from focusstreak.db.models import Goal
from focusstreak.tracking.coins import deduct_coins
from focusstreak.tracking.daily_progress import has_completed_day
from focusstreak.tracking.day_utils import previous_day
from focusstreak.tracking.rewards import coin_penalty_for_miss

logger = structlog.get_logger()


@dataclass(frozen=True)
class MissPenalty:
    goal_id: int
    user_id: int
    previous_streak: int
    streak_broken: bool
    coins_deducted: int


def next_streak(current_streak: int, completed_prior_day: bool) -> int:
    """Streak length after completing today.

    Continues when yesterday was completed, and also when the streak is 0
    (a fresh start). A positive streak without a completed yesterday only
    happens after a missed sweep or a crash; it restarts at 1.
    """
    if completed_prior_day or current_streak == 0:
        return current_streak + 1
    return 1


async def advance_on_completion(db: AsyncSession, goal: Goal, completion_date: date) -> Goal:
    """Advance the goal's streak for a day that was just completed.

    Called at most once per (goal, day): the daily progress completion flag
    flips only once.
    """
    completed_prior_day = await has_completed_day(db, goal.id, previous_day(completion_date))

    goal.current_streak = next_streak(goal.current_streak, completed_prior_day)
    goal.longest_streak = max(goal.longest_streak, goal.current_streak)
    goal.last_completed_date = completion_date

    logger.debug(
        "streak_advanced",
        goal_id=goal.id,
        current_streak=goal.current_streak,
        longest_streak=goal.longest_streak,
        continued=completed_prior_day,
    )
    return goal


async def penalize_for_miss(db: AsyncSession, goal: Goal) -> MissPenalty:
    """Break the goal's streak and charge the owner for a missed day.

    The coin penalty applies whether or not there was a streak to break;
    ``coins_deducted`` is what was actually taken (0 on an empty balance).
    ``longest_streak`` is never reduced.
    """
    previous = goal.current_streak
    if goal.current_streak > 0:
        goal.current_streak = 0

    penalty = coin_penalty_for_miss()
    deducted = await deduct_coins(db, goal.user_id, penalty)

    return MissPenalty(
        goal_id=goal.id,
        user_id=goal.user_id,
        previous_streak=previous,
        streak_broken=previous > 0,
        coins_deducted=deducted,
    )
