"""Goal endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from focusstreak.config import get_settings
from focusstreak.dependencies import get_current_user, get_db
from focusstreak.db.models import User
from focusstreak.goals.schemas import (
    DailyProgressResponse,
    GoalCreateRequest,
    GoalResponse,
    GoalStatsResponse,
    GoalUpdateRequest,
)
from focusstreak.goals.service import archive_goal, create_goal, get_goal_stats, list_active_goals, update_goal
from focusstreak.tracking.day_utils import local_today
from focusstreak.tracking.exceptions import ConcurrencyConflictError, GoalNotFoundError, InvalidGoalError
from focusstreak.tracking.session_recorder import get_owned_goal

router = APIRouter(prefix="/api/v1/goals", tags=["Goals"])


def _conflict() -> HTTPException:
    return HTTPException(
        status_code=503,
        detail="Goal was updated concurrently, please retry",
        headers={"Retry-After": "1"},
    )


@router.get("", response_model=list[GoalResponse])
async def get_goals(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[GoalResponse]:
    """Active goals, newest first."""
    goals = await list_active_goals(db, user.id)
    return [GoalResponse.model_validate(g) for g in goals]


@router.post("", response_model=GoalResponse, status_code=201)
async def post_goal(
    body: GoalCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> GoalResponse:
    try:
        goal = await create_goal(db, user.id, **body.model_dump())
    except InvalidGoalError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    await db.commit()
    return GoalResponse.model_validate(goal)


@router.get("/{goal_id}", response_model=GoalResponse)
async def get_goal(
    goal_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> GoalResponse:
    try:
        goal = await get_owned_goal(db, user.id, goal_id)
    except GoalNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return GoalResponse.model_validate(goal)


@router.patch("/{goal_id}", response_model=GoalResponse)
async def patch_goal(
    goal_id: int,
    body: GoalUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> GoalResponse:
    """Partial update; omitted fields are unchanged."""
    try:
        goal = await update_goal(db, user.id, goal_id, body.model_dump(exclude_unset=True))
    except GoalNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except InvalidGoalError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except ConcurrencyConflictError as e:
        raise _conflict() from e
    await db.commit()
    return GoalResponse.model_validate(goal)


@router.delete("/{goal_id}", status_code=204)
async def delete_goal(
    goal_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Archive the goal. History is kept."""
    try:
        await archive_goal(db, user.id, goal_id)
    except GoalNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ConcurrencyConflictError as e:
        raise _conflict() from e
    await db.commit()


@router.get("/{goal_id}/stats", response_model=GoalStatsResponse)
async def get_goal_statistics(
    goal_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> GoalStatsResponse:
    """Goal plus the last 30 days of daily progress."""
    today = local_today(get_settings().day_timezone)
    try:
        goal, progress = await get_goal_stats(db, user.id, goal_id, today)
    except GoalNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return GoalStatsResponse(
        goal=GoalResponse.model_validate(goal),
        recent_progress=[DailyProgressResponse.model_validate(p) for p in progress],
    )
