"""Read side of focus sessions: history, stats and note edits."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from focusstreak.config import get_settings
from focusstreak.db.models import FocusSession
from focusstreak.tracking.day_utils import day_bounds
from focusstreak.tracking.exceptions import SessionNotFoundError


async def list_sessions(
    db: AsyncSession,
    user_id: int,
    goal_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = 50,
) -> list[FocusSession]:
    """Sessions newest first. Dates are inclusive days in the day timezone."""
    tz = get_settings().day_timezone
    stmt = select(FocusSession).where(FocusSession.user_id == user_id)
    if goal_id is not None:
        stmt = stmt.where(FocusSession.goal_id == goal_id)
    if start_date is not None:
        stmt = stmt.where(FocusSession.completed_at >= day_bounds(start_date, tz)[0])
    if end_date is not None:
        stmt = stmt.where(FocusSession.completed_at < day_bounds(end_date, tz)[1])

    result = await db.execute(
        stmt.order_by(FocusSession.completed_at.desc(), FocusSession.id.desc()).limit(limit)
    )
    return list(result.scalars().all())


async def session_stats(db: AsyncSession, user_id: int, since: datetime) -> dict:
    """Aggregate sessions completed at or after ``since``."""
    result = await db.execute(
        select(
            FocusSession.session_type,
            func.count(FocusSession.id),
            func.coalesce(func.sum(FocusSession.duration_minutes), 0),
        )
        .where(FocusSession.user_id == user_id, FocusSession.completed_at >= since)
        .group_by(FocusSession.session_type)
    )
    counts = {row[0]: (row[1], row[2]) for row in result.all()}
    focus_count, focus_minutes = counts.get("focus", (0, 0))
    break_count, _ = counts.get("break", (0, 0))

    return {
        "total_sessions": focus_count,
        "total_focus_minutes": int(focus_minutes),
        "average_session_minutes": round(focus_minutes / focus_count, 1) if focus_count else 0.0,
        "break_sessions": break_count,
    }


async def update_session_notes(db: AsyncSession, user_id: int, session_id: int, notes: str) -> FocusSession:
    """Replace a session's notes. Duration and type are immutable."""
    result = await db.execute(
        select(FocusSession).where(FocusSession.id == session_id, FocusSession.user_id == user_id)
    )
    session = result.scalar_one_or_none()
    if session is None:
        msg = f"Session {session_id} not found"
        raise SessionNotFoundError(msg)
    session.notes = notes[: get_settings().session_notes_max_length]
    await db.flush()
    return session
