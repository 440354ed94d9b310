"""Users, goals, focus sessions and daily progress.

Daily progress is unique per (user, goal, day) so concurrent first sessions
of a day converge on one row. ``goals.version`` backs optimistic locking.

Revision ID: 001_focus_tables
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa  # noqa: F401
from alembic import op

revision: str = "001_focus_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id            BIGSERIAL PRIMARY KEY,
            email         VARCHAR(320) UNIQUE,
            display_name  VARCHAR(64),
            total_coins   INT NOT NULL DEFAULT 0,
            rank          VARCHAR(16) NOT NULL DEFAULT 'Novice',
            created_at    TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_users_total_coins_non_negative CHECK (total_coins >= 0)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS goals (
            id                        BIGSERIAL PRIMARY KEY,
            user_id                   BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            name                      VARCHAR(128) NOT NULL,
            description               TEXT,
            daily_target_minutes      INT NOT NULL,
            category                  VARCHAR(16) NOT NULL DEFAULT 'other',
            is_active                 BOOLEAN NOT NULL DEFAULT TRUE,
            skip_break                BOOLEAN NOT NULL DEFAULT FALSE,
            current_streak            INT NOT NULL DEFAULT 0,
            longest_streak            INT NOT NULL DEFAULT 0,
            last_completed_date       DATE,
            total_sessions_completed  INT NOT NULL DEFAULT 0,
            total_minutes_completed   BIGINT NOT NULL DEFAULT 0,
            created_at                TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at                TIMESTAMPTZ NOT NULL DEFAULT now(),
            version                   INT NOT NULL DEFAULT 1,
            CONSTRAINT ck_goals_daily_target_range CHECK (daily_target_minutes BETWEEN 10 AND 240),
            CONSTRAINT ck_goals_current_streak_non_negative CHECK (current_streak >= 0),
            CONSTRAINT ck_goals_longest_streak_ge_current CHECK (longest_streak >= current_streak)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_goals_user_active ON goals (user_id, is_active)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS focus_sessions (
            id                BIGSERIAL PRIMARY KEY,
            user_id           BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            goal_id           BIGINT NOT NULL REFERENCES goals(id) ON DELETE CASCADE,
            duration_minutes  INT NOT NULL,
            session_type      VARCHAR(8) NOT NULL DEFAULT 'focus',
            notes             TEXT NOT NULL DEFAULT '',
            completed_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_focus_sessions_duration_positive CHECK (duration_minutes > 0)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_focus_sessions_user_completed
        ON focus_sessions (user_id, completed_at)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_focus_sessions_goal_completed
        ON focus_sessions (goal_id, completed_at)
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS daily_progress (
            id                 BIGSERIAL PRIMARY KEY,
            user_id            BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            goal_id            BIGINT NOT NULL REFERENCES goals(id) ON DELETE CASCADE,
            day                DATE NOT NULL,
            minutes_completed  INT NOT NULL DEFAULT 0,
            target_minutes     INT NOT NULL,
            is_completed       BOOLEAN NOT NULL DEFAULT FALSE,
            coins_earned       INT NOT NULL DEFAULT 0,
            completed_at       TIMESTAMPTZ,
            CONSTRAINT uq_daily_progress_user_goal_day UNIQUE (user_id, goal_id, day)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_daily_progress_goal_day_completed
        ON daily_progress (goal_id, day, is_completed)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS daily_progress CASCADE")
    op.execute("DROP TABLE IF EXISTS focus_sessions CASCADE")
    op.execute("DROP TABLE IF EXISTS goals CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
