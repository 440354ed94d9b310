"""Reward profile and rank ladder endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from focusstreak.dependencies import get_current_user, get_db
from focusstreak.db.models import User
from focusstreak.tracking.coins import get_balance, max_longest_streak
from focusstreak.tracking.rewards import RANK_THRESHOLDS

router = APIRouter(prefix="/api/v1", tags=["Users"])


class ProfileResponse(BaseModel):
    id: int
    display_name: str | None = None
    total_coins: int
    rank: str
    best_streak: int


class RankEntry(BaseModel):
    rank: str
    min_streak: int


class RanksResponse(BaseModel):
    ranks: list[RankEntry]


@router.get("/users/me", response_model=ProfileResponse)
async def get_me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProfileResponse:
    """Coins, stored rank and best streak across active goals."""
    total_coins, rank = await get_balance(db, user.id)
    return ProfileResponse(
        id=user.id,
        display_name=user.display_name,
        total_coins=total_coins,
        rank=rank,
        best_streak=await max_longest_streak(db, user.id),
    )


@router.get("/ranks", response_model=RanksResponse)
async def get_ranks() -> RanksResponse:
    """The rank ladder, lowest first."""
    return RanksResponse(ranks=[
        RankEntry(rank=t["rank"], min_streak=t["min_streak"]) for t in RANK_THRESHOLDS
    ])
