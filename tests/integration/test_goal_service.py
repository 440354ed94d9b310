"""Goal service rules outside the HTTP layer."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from conftest import make_goal, make_user
from focusstreak.goals.service import archive_goal, create_goal, update_goal, validate_goal_fields
from focusstreak.tracking.exceptions import GoalNotFoundError, InvalidGoalError, SessionNotFoundError
from focusstreak.tracking.history import list_sessions, update_session_notes
from focusstreak.tracking.session_recorder import record_session


class TestValidation:
    @pytest.mark.parametrize("fields", [
        {"daily_target_minutes": 5},
        {"daily_target_minutes": 300},
        {"category": "sleep"},
        {"name": "   "},
    ])
    def test_rejects(self, fields):
        with pytest.raises(InvalidGoalError):
            validate_goal_fields(fields)

    def test_bounds_are_inclusive(self):
        validate_goal_fields({"daily_target_minutes": 10})
        validate_goal_fields({"daily_target_minutes": 240})


class TestGoalLifecycle:
    @pytest.mark.asyncio
    async def test_create_starts_without_streak(self, db_session):
        user = await make_user(db_session)
        goal = await create_goal(db_session, user.id, name="Piano", daily_target_minutes=20, category="personal")
        await db_session.commit()
        assert goal.current_streak == 0
        assert goal.longest_streak == 0
        assert goal.last_completed_date is None

    @pytest.mark.asyncio
    async def test_update_ignores_streak_fields(self, db_session):
        user = await make_user(db_session)
        goal = await make_goal(db_session, user, current_streak=3)
        updated = await update_goal(db_session, user.id, goal.id, {"name": "Renamed", "current_streak": 50})
        await db_session.commit()
        assert updated.name == "Renamed"
        assert updated.current_streak == 3

    @pytest.mark.asyncio
    async def test_null_clears_description_only(self, db_session):
        user = await make_user(db_session)
        goal = await create_goal(
            db_session, user.id, name="Piano", description="Scales first", daily_target_minutes=20, category="personal"
        )
        await db_session.commit()

        updated = await update_goal(db_session, user.id, goal.id, {"description": None, "name": None})
        await db_session.commit()

        assert updated.description is None
        assert updated.name == "Piano"

    @pytest.mark.asyncio
    async def test_archive_foreign_goal(self, db_session):
        owner = await make_user(db_session, "owner@example.com")
        other = await make_user(db_session, "other@example.com")
        goal = await make_goal(db_session, owner)
        with pytest.raises(GoalNotFoundError):
            await archive_goal(db_session, other.id, goal.id)


class TestSessionHistory:
    @pytest.mark.asyncio
    async def test_date_range_is_inclusive(self, db_session, mock_redis):
        user = await make_user(db_session)
        goal = await make_goal(db_session, user, target=240)
        for day in (1, 2, 3):
            await record_session(
                db_session, mock_redis, user.id, goal.id, 10,
                now=datetime(2026, 7, day, 23, 59, tzinfo=timezone.utc),
            )

        sessions = await list_sessions(
            db_session, user.id, start_date=date(2026, 7, 2), end_date=date(2026, 7, 2),
        )
        assert len(sessions) == 1

        sessions = await list_sessions(db_session, user.id, start_date=date(2026, 7, 2))
        assert len(sessions) == 2

    @pytest.mark.asyncio
    async def test_notes_for_unknown_session(self, db_session):
        user = await make_user(db_session)
        with pytest.raises(SessionNotFoundError):
            await update_session_notes(db_session, user.id, 12345, "hello")
