"""Response schemas for progress endpoints."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel

from focusstreak.goals.schemas import DailyProgressResponse


class GoalDayProgress(BaseModel):
    """One active goal's state on a given day. Days without sessions report zero."""

    goal_id: int
    goal_name: str
    minutes_completed: int
    target_minutes: int
    is_completed: bool
    coins_earned: int
    current_streak: int


class DailyOverviewResponse(BaseModel):
    day: date
    goals: list[GoalDayProgress]
    completed_goals: int
    total_goals: int


class GoalHistoryResponse(BaseModel):
    goal_id: int
    days: list[DailyProgressResponse]


class CalendarDay(BaseModel):
    goal_ids: list[int]
    minutes: int


class CalendarResponse(BaseModel):
    """Completed days keyed by ISO date."""

    days: dict[str, CalendarDay]


class OverallStatsResponse(BaseModel):
    total_focus_minutes: int
    total_sessions: int
    completed_days: int
    active_goals: int
    best_current_streak: int
    best_longest_streak: int
    total_coins: int
    rank: str
