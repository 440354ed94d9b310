"""Request/response schemas for goal endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from focusstreak.db.models import MAX_DAILY_TARGET_MINUTES, MIN_DAILY_TARGET_MINUTES

GoalCategory = Literal["work", "learning", "fitness", "personal", "other"]


class GoalCreateRequest(BaseModel):
    """Create a goal."""

    name: str = Field(..., min_length=1, max_length=128)
    description: str | None = Field(None, max_length=2000)
    daily_target_minutes: int = Field(..., ge=MIN_DAILY_TARGET_MINUTES, le=MAX_DAILY_TARGET_MINUTES)
    category: GoalCategory = "other"
    skip_break: bool = False


class GoalUpdateRequest(BaseModel):
    """Partial goal update. Omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=1, max_length=128)
    description: str | None = Field(None, max_length=2000)
    daily_target_minutes: int | None = Field(None, ge=MIN_DAILY_TARGET_MINUTES, le=MAX_DAILY_TARGET_MINUTES)
    category: GoalCategory | None = None
    skip_break: bool | None = None
    is_active: bool | None = None


class GoalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    daily_target_minutes: int
    category: str
    is_active: bool
    skip_break: bool
    current_streak: int
    longest_streak: int
    last_completed_date: date | None = None
    total_sessions_completed: int
    total_minutes_completed: int
    created_at: datetime


class DailyProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    goal_id: int
    day: date
    minutes_completed: int
    target_minutes: int
    is_completed: bool
    coins_earned: int
    completed_at: datetime | None = None


class GoalStatsResponse(BaseModel):
    goal: GoalResponse
    recent_progress: list[DailyProgressResponse]
