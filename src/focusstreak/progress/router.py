"""Progress endpoints: daily overview, per-goal history, calendar and totals."""

from __future__ import annotations

from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from focusstreak.config import get_settings
from focusstreak.dependencies import get_current_user, get_db
from focusstreak.db.models import User
from focusstreak.goals.schemas import DailyProgressResponse
from focusstreak.progress.schemas import (
    CalendarDay,
    CalendarResponse,
    DailyOverviewResponse,
    GoalDayProgress,
    GoalHistoryResponse,
    OverallStatsResponse,
)
from focusstreak.progress.service import completion_calendar, daily_overview, goal_history, overall_stats
from focusstreak.tracking.coins import get_balance
from focusstreak.tracking.day_utils import local_today
from focusstreak.tracking.exceptions import GoalNotFoundError

router = APIRouter(prefix="/api/v1/progress", tags=["Progress"])


@router.get("/daily", response_model=DailyOverviewResponse)
async def get_daily_progress(
    day: date | None = Query(None, alias="date"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> DailyOverviewResponse:
    """All active goals for one day (default: today)."""
    day = day or local_today(get_settings().day_timezone)
    rows = await daily_overview(db, user.id, day)

    goals = [
        GoalDayProgress(
            goal_id=goal.id,
            goal_name=goal.name,
            minutes_completed=progress.minutes_completed if progress else 0,
            target_minutes=progress.target_minutes if progress else goal.daily_target_minutes,
            is_completed=progress.is_completed if progress else False,
            coins_earned=progress.coins_earned if progress else 0,
            current_streak=goal.current_streak,
        )
        for goal, progress in rows
    ]
    return DailyOverviewResponse(
        day=day,
        goals=goals,
        completed_goals=sum(1 for g in goals if g.is_completed),
        total_goals=len(goals),
    )


@router.get("/goals/{goal_id}", response_model=GoalHistoryResponse)
async def get_goal_progress(
    goal_id: int,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> GoalHistoryResponse:
    """Daily progress for one goal, newest first (at most 90 days)."""
    today = local_today(get_settings().day_timezone)
    try:
        rows = await goal_history(db, user.id, goal_id, today, start_date, end_date)
    except GoalNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return GoalHistoryResponse(
        goal_id=goal_id,
        days=[DailyProgressResponse.model_validate(r) for r in rows],
    )


@router.get("/calendar", response_model=CalendarResponse)
async def get_calendar(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CalendarResponse:
    """Completed days grouped by date (default: last 90 days)."""
    end = end_date or local_today(get_settings().day_timezone)
    start = start_date or end - timedelta(days=89)
    days = await completion_calendar(db, user.id, start, end)
    return CalendarResponse(days={k: CalendarDay(**v) for k, v in days.items()})


@router.get("/stats/overall", response_model=OverallStatsResponse)
async def get_overall_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OverallStatsResponse:
    stats = await overall_stats(db, user.id)
    total_coins, rank = await get_balance(db, user.id)
    return OverallStatsResponse(total_coins=total_coins, rank=rank, **stats)
