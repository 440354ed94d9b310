"""Focus session endpoints."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from focusstreak.config import get_settings
from focusstreak.dependencies import get_current_user, get_db, get_redis_dep
from focusstreak.db.models import User
from focusstreak.goals.schemas import DailyProgressResponse, GoalResponse
from focusstreak.tracking.exceptions import (
    ConcurrencyConflictError,
    GoalNotFoundError,
    InvalidSessionError,
    SessionNotFoundError,
)
from focusstreak.tracking.history import list_sessions, session_stats, update_session_notes
from focusstreak.tracking.schemas import (
    SessionCreateRequest,
    SessionCreateResponse,
    SessionListResponse,
    SessionNotesUpdateRequest,
    SessionResponse,
    SessionStatsResponse,
    UserBalance,
)
from focusstreak.tracking.session_recorder import record_session

router = APIRouter(prefix="/api/v1/sessions", tags=["Sessions"])


@router.post("", response_model=SessionCreateResponse, status_code=201)
async def create_session(
    body: SessionCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
) -> SessionCreateResponse:
    """Record a finished focus or break interval."""
    try:
        outcome = await record_session(
            db,
            redis,
            user.id,
            body.goal_id,
            body.duration_minutes,
            session_type=body.session_type,
            notes=body.notes,
        )
    except GoalNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except InvalidSessionError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except ConcurrencyConflictError as e:
        raise HTTPException(
            status_code=503,
            detail="Progress update collided with another request, please retry",
            headers={"Retry-After": "1"},
        ) from e

    balance = None
    if outcome.total_coins is not None:
        balance = UserBalance(total_coins=outcome.total_coins, rank=outcome.rank or user.rank)

    return SessionCreateResponse(
        session=SessionResponse.model_validate(outcome.session),
        goal=GoalResponse.model_validate(outcome.goal),
        progress=DailyProgressResponse.model_validate(outcome.progress) if outcome.progress else None,
        day_completed=outcome.just_completed,
        coins_awarded=outcome.coins_awarded,
        user=balance,
    )


@router.get("", response_model=SessionListResponse)
async def get_sessions(
    goal_id: int | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    limit: int = Query(50, ge=1),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SessionListResponse:
    """Session history, newest first."""
    limit = min(limit, get_settings().session_history_max_limit)
    sessions = await list_sessions(db, user.id, goal_id, start_date, end_date, limit)
    return SessionListResponse(
        sessions=[SessionResponse.model_validate(s) for s in sessions],
        total=len(sessions),
    )


@router.get("/stats", response_model=SessionStatsResponse)
async def get_session_stats(
    period: int = Query(30, ge=1, le=365),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SessionStatsResponse:
    """Focus totals for the last ``period`` days."""
    since = datetime.now(timezone.utc) - timedelta(days=period)
    stats = await session_stats(db, user.id, since)
    return SessionStatsResponse(period_days=period, since=since.date(), **stats)


@router.patch("/{session_id}", response_model=SessionResponse)
async def patch_session(
    session_id: int,
    body: SessionNotesUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    """Edit the notes of a recorded session."""
    try:
        session = await update_session_notes(db, user.id, session_id, body.notes)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return SessionResponse.model_validate(session)
