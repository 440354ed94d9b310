"""Request/response schemas for session endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from focusstreak.goals.schemas import DailyProgressResponse, GoalResponse

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class SessionCreateRequest(BaseModel):
    """A finished timer interval reported by the client."""

    goal_id: int
    duration_minutes: int = Field(..., gt=0, le=24 * 60)
    session_type: Literal["focus", "break"] = "focus"
    notes: str | None = None


class SessionNotesUpdateRequest(BaseModel):
    notes: str


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class SessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    goal_id: int
    duration_minutes: int
    session_type: str
    notes: str
    completed_at: datetime


class UserBalance(BaseModel):
    total_coins: int
    rank: str


class SessionCreateResponse(BaseModel):
    """Stored session plus the state it produced."""

    session: SessionResponse
    goal: GoalResponse
    progress: DailyProgressResponse | None = None
    day_completed: bool = False
    coins_awarded: int = 0
    user: UserBalance | None = None


class SessionListResponse(BaseModel):
    sessions: list[SessionResponse]
    total: int


class SessionStatsResponse(BaseModel):
    """Focus totals over the last ``period_days`` days."""

    period_days: int
    since: date
    total_sessions: int
    total_focus_minutes: int
    average_session_minutes: float
    break_sessions: int
