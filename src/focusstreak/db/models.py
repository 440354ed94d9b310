"""ORM models for users, goals, focus sessions and daily progress.

The Alembic migrations under ``alembic/versions`` create the same schema for
PostgreSQL deployments.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from focusstreak.db.base import Base, BigIntPK


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


GOAL_CATEGORIES = ("work", "learning", "fitness", "personal", "other")
SESSION_TYPES = ("focus", "break")
MIN_DAILY_TARGET_MINUTES = 10
MAX_DAILY_TARGET_MINUTES = 240


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Reward subject. Identity and credentials belong to the auth subsystem;
    this service only writes ``total_coins`` and ``rank``."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("total_coins >= 0", name="ck_users_total_coins_non_negative"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    email: Mapped[str | None] = mapped_column(String(320), unique=True, nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    total_coins: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    rank: Mapped[str] = mapped_column(String(16), nullable=False, default="Novice", server_default="Novice")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    goals: Mapped[list[Goal]] = relationship("Goal", back_populates="user")


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------


class Goal(Base):
    """A habit with a daily time target and its streak state.

    ``version`` is an optimistic concurrency token: every ORM flush of a goal
    checks and bumps it, so the session recorder and the nightly sweep cannot
    silently overwrite each other's streak changes.
    """

    __tablename__ = "goals"
    __table_args__ = (
        CheckConstraint(
            f"daily_target_minutes BETWEEN {MIN_DAILY_TARGET_MINUTES} AND {MAX_DAILY_TARGET_MINUTES}",
            name="ck_goals_daily_target_range",
        ),
        CheckConstraint("current_streak >= 0", name="ck_goals_current_streak_non_negative"),
        CheckConstraint("longest_streak >= current_streak", name="ck_goals_longest_streak_ge_current"),
        Index("idx_goals_user_active", "user_id", "is_active"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    daily_target_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[str] = mapped_column(String(16), nullable=False, default="other", server_default="other")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    skip_break: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_completed_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    total_sessions_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_minutes_completed: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")

    user: Mapped[User] = relationship("User", back_populates="goals")

    __mapper_args__ = {"version_id_col": version}  # noqa: RUF012


# ---------------------------------------------------------------------------
# Focus sessions
# ---------------------------------------------------------------------------


class FocusSession(Base):
    """One finished timer interval. Immutable except for ``notes``."""

    __tablename__ = "focus_sessions"
    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_focus_sessions_duration_positive"),
        Index("idx_focus_sessions_user_completed", "user_id", "completed_at"),
        Index("idx_focus_sessions_goal_completed", "goal_id", "completed_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    goal_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("goals.id", ondelete="CASCADE"), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    session_type: Mapped[str] = mapped_column(String(8), nullable=False, default="focus", server_default="focus")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    goal: Mapped[Goal] = relationship("Goal")


# ---------------------------------------------------------------------------
# Daily progress
# ---------------------------------------------------------------------------


class DailyProgress(Base):
    """Minutes accumulated by one goal on one calendar day.

    ``is_completed`` only ever moves false -> true, and ``coins_earned`` is
    written at that moment.
    """

    __tablename__ = "daily_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "goal_id", "day", name="uq_daily_progress_user_goal_day"),
        Index("idx_daily_progress_goal_day_completed", "goal_id", "day", "is_completed"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    goal_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("goals.id", ondelete="CASCADE"), nullable=False)
    day: Mapped[date] = mapped_column(Date, nullable=False)
    minutes_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    target_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    coins_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    goal: Mapped[Goal] = relationship("Goal")
