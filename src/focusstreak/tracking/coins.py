"""User coin balance and rank updates.

Awards and full deductions are single-statement atomic updates, and a
deduction that would overdraw locks the row first, so concurrent awards and
penalties never lose each other's writes.
"""

from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from focusstreak.db.models import Goal, User
from focusstreak.tracking.rewards import compute_rank


async def award_coins(db: AsyncSession, user_id: int, amount: int) -> None:
    """Add coins to a user's balance."""
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(total_coins=User.total_coins + amount)
        .execution_options(synchronize_session=False)
    )


async def deduct_coins(db: AsyncSession, user_id: int, amount: int) -> int:
    """Remove coins from a user's balance, never going below zero.

    Returns the number of coins actually removed, which is less than
    ``amount`` when the balance was too small.
    """
    full = await db.execute(
        update(User)
        .where(User.id == user_id, User.total_coins >= amount)
        .values(total_coins=User.total_coins - amount)
        .execution_options(synchronize_session=False)
    )
    if full.rowcount == 1:
        return amount

    # Short balance: lock the row so the amount read is the amount removed
    result = await db.execute(
        select(User.total_coins).where(User.id == user_id).with_for_update()
    )
    balance = result.scalar_one_or_none() or 0
    removed = min(balance, amount)
    if removed > 0:
        await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(total_coins=User.total_coins - removed)
            .execution_options(synchronize_session=False)
        )
    return removed


async def max_longest_streak(db: AsyncSession, user_id: int) -> int:
    """Best streak ever reached on any of the user's active goals."""
    result = await db.execute(
        select(func.max(Goal.longest_streak)).where(
            Goal.user_id == user_id,
            Goal.is_active.is_(True),
        )
    )
    return result.scalar_one_or_none() or 0


async def refresh_rank(db: AsyncSession, user_id: int, floor_streak: int = 0) -> str:
    """Recompute and store the user's rank. Returns the new rank.

    ``floor_streak`` lets the caller include a goal that the active-goal query
    would not see (e.g. one just updated on an archived goal).
    """
    rank = compute_rank(max(await max_longest_streak(db, user_id), floor_streak))
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(rank=rank)
        .execution_options(synchronize_session=False)
    )
    return rank


async def get_balance(db: AsyncSession, user_id: int) -> tuple[int, str]:
    """Current (total_coins, rank) straight from the database."""
    result = await db.execute(
        select(User.total_coins, User.rank).where(User.id == user_id)
    )
    row = result.one()
    return row.total_coins, row.rank
