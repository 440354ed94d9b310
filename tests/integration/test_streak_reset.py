"""Nightly sweep: miss penalties, streak resets, warnings."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone

import pytest
from sqlalchemy import select

from conftest import make_completed_day, make_goal, make_user
from focusstreak.db.models import Goal, User
from focusstreak.tracking import streak_reset
from focusstreak.tracking.daily_progress import apply_minutes, get_or_create_daily_progress
from focusstreak.tracking.streak_reset import (
    ACTION_KEEP,
    ACTION_PENALIZE,
    check_streak_warnings,
    run_daily_sweep,
)

AS_OF = date(2026, 5, 12)
YESTERDAY = date(2026, 5, 11)


async def _goal(db, goal_id) -> Goal:
    return await db.get(Goal, goal_id, populate_existing=True)


async def _user(db, user_id) -> User:
    return await db.get(User, user_id, populate_existing=True)


class TestRunDailySweep:
    @pytest.mark.asyncio
    async def test_missed_day_resets_streak_and_costs_a_coin(self, db_session, mock_redis):
        user = await make_user(db_session, coins=25)
        goal = await make_goal(db_session, user, current_streak=5, longest_streak=9)

        actions = await run_daily_sweep(db_session, mock_redis, as_of=AS_OF)

        assert [a.action for a in actions] == [ACTION_PENALIZE]
        assert actions[0].previous_streak == 5
        assert actions[0].streak_broken is True
        goal = await _goal(db_session, goal.id)
        assert goal.current_streak == 0
        assert goal.longest_streak == 9
        assert (await _user(db_session, user.id)).total_coins == 24

    @pytest.mark.asyncio
    async def test_completed_yesterday_is_untouched(self, db_session, mock_redis):
        user = await make_user(db_session, coins=25)
        goal = await make_goal(db_session, user, current_streak=3)
        await make_completed_day(db_session, goal, YESTERDAY)

        actions = await run_daily_sweep(db_session, mock_redis, as_of=AS_OF)

        assert [a.action for a in actions] == [ACTION_KEEP]
        assert (await _goal(db_session, goal.id)).current_streak == 3
        assert (await _user(db_session, user.id)).total_coins == 25
        mock_redis.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_partial_day_counts_as_missed(self, db_session, mock_redis):
        user = await make_user(db_session, coins=5)
        goal = await make_goal(db_session, user, target=60, current_streak=2)
        progress = await get_or_create_daily_progress(db_session, user.id, goal.id, YESTERDAY, 60)
        await apply_minutes(db_session, progress, 45)
        await db_session.commit()

        await run_daily_sweep(db_session, mock_redis, as_of=AS_OF)

        assert (await _goal(db_session, goal.id)).current_streak == 0
        assert (await _user(db_session, user.id)).total_coins == 4

    @pytest.mark.asyncio
    async def test_coins_never_go_negative(self, db_session, mock_redis):
        user = await make_user(db_session, coins=0)
        await make_goal(db_session, user, current_streak=1)

        await run_daily_sweep(db_session, mock_redis, as_of=AS_OF)

        assert (await _user(db_session, user.id)).total_coins == 0

    @pytest.mark.asyncio
    async def test_penalty_applies_without_streak(self, db_session, mock_redis):
        """Goals with no streak still cost a coin for an idle day, but no broken event."""
        user = await make_user(db_session, coins=3)
        await make_goal(db_session, user, current_streak=0)

        actions = await run_daily_sweep(db_session, mock_redis, as_of=AS_OF)

        assert actions[0].streak_broken is False
        assert actions[0].coins_deducted == 1
        assert (await _user(db_session, user.id)).total_coins == 2
        mock_redis.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_each_missed_goal_is_charged(self, db_session, mock_redis):
        user = await make_user(db_session, coins=10)
        await make_goal(db_session, user, name="A", current_streak=1)
        await make_goal(db_session, user, name="B", current_streak=2)

        await run_daily_sweep(db_session, mock_redis, as_of=AS_OF)

        assert (await _user(db_session, user.id)).total_coins == 8

    @pytest.mark.asyncio
    async def test_archived_goals_are_skipped(self, db_session, mock_redis):
        user = await make_user(db_session, coins=10)
        goal = await make_goal(db_session, user, current_streak=4, is_active=False)

        actions = await run_daily_sweep(db_session, mock_redis, as_of=AS_OF)

        assert actions == []
        assert (await _goal(db_session, goal.id)).current_streak == 4
        assert (await _user(db_session, user.id)).total_coins == 10

    @pytest.mark.asyncio
    async def test_streak_broken_event(self, db_session, mock_redis):
        user = await make_user(db_session, coins=10)
        goal = await make_goal(db_session, user, current_streak=8)

        await run_daily_sweep(db_session, mock_redis, as_of=AS_OF)

        payload = json.loads(mock_redis.publish.await_args.args[1])
        assert payload == {
            "event": "streak_broken",
            "user_id": user.id,
            "goal_id": goal.id,
            "streak_length": 8,
        }

    @pytest.mark.asyncio
    async def test_one_failing_goal_does_not_stop_the_sweep(self, db_session, mock_redis, monkeypatch):
        user = await make_user(db_session, coins=10)
        bad = await make_goal(db_session, user, name="Bad", current_streak=3)
        good = await make_goal(db_session, user, name="Good", current_streak=3)
        # The failed goal's rollback expires every loaded instance
        user_id, bad_id, good_id = user.id, bad.id, good.id

        real_penalize = streak_reset.penalize_for_miss

        async def flaky_penalize(db, goal):
            if goal.id == bad_id:
                raise RuntimeError("simulated write failure")
            return await real_penalize(db, goal)

        monkeypatch.setattr(streak_reset, "penalize_for_miss", flaky_penalize)

        actions = await run_daily_sweep(db_session, mock_redis, as_of=AS_OF)

        assert [a.goal_id for a in actions] == [good_id]
        assert (await _goal(db_session, bad_id)).current_streak == 3
        assert (await _goal(db_session, good_id)).current_streak == 0
        assert (await _user(db_session, user_id)).total_coins == 9

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_stop_the_sweep(self, db_session, mock_redis):
        mock_redis.publish.side_effect = ConnectionError("redis down")
        user = await make_user(db_session, coins=10)
        first = await make_goal(db_session, user, name="First", current_streak=3)
        second = await make_goal(db_session, user, name="Second", current_streak=5)
        first_id, second_id, user_id = first.id, second.id, user.id

        actions = await run_daily_sweep(db_session, mock_redis, as_of=AS_OF)

        assert [a.goal_id for a in actions] == [first_id, second_id]
        assert (await _goal(db_session, first_id)).current_streak == 0
        assert (await _goal(db_session, second_id)).current_streak == 0
        assert (await _user(db_session, user_id)).total_coins == 8
        assert mock_redis.publish.await_count == 2

    @pytest.mark.asyncio
    async def test_empty_balance_reports_nothing_deducted(self, db_session, mock_redis):
        user = await make_user(db_session, coins=0)
        await make_goal(db_session, user, current_streak=2)

        actions = await run_daily_sweep(db_session, mock_redis, as_of=AS_OF)

        assert actions[0].coins_deducted == 0
        assert actions[0].streak_broken is True

    @pytest.mark.asyncio
    async def test_defaults_to_local_today(self, db_session, mock_redis):
        user = await make_user(db_session, coins=1)
        await make_goal(db_session, user, current_streak=1)

        actions = await run_daily_sweep(db_session, mock_redis)

        assert len(actions) == 1


class TestStreakWarnings:
    @pytest.mark.asyncio
    async def test_warns_live_streaks_not_done_today(self, db_session, mock_redis):
        now = datetime(2026, 5, 12, 20, 0, tzinfo=timezone.utc)
        user = await make_user(db_session)
        pending = await make_goal(db_session, user, name="Pending", target=60, current_streak=4)
        done = await make_goal(db_session, user, name="Done", current_streak=2)
        await make_goal(db_session, user, name="No streak", current_streak=0)
        await make_completed_day(db_session, done, date(2026, 5, 12))

        progress = await get_or_create_daily_progress(db_session, user.id, pending.id, date(2026, 5, 12), 60)
        await apply_minutes(db_session, progress, 25)
        await db_session.commit()

        sent = await check_streak_warnings(db_session, mock_redis, now=now)

        assert sent == 1
        payload = json.loads(mock_redis.publish.await_args.args[1])
        assert payload["event"] == "streak_warning"
        assert payload["goal_id"] == pending.id
        assert payload["streak_length"] == 4
        assert payload["minutes_remaining"] == 35

    @pytest.mark.asyncio
    async def test_no_progress_row_uses_goal_target(self, db_session, mock_redis):
        user = await make_user(db_session)
        await make_goal(db_session, user, target=45, current_streak=1)

        sent = await check_streak_warnings(db_session, mock_redis, now=datetime(2026, 5, 12, 20, tzinfo=timezone.utc))

        assert sent == 1
        assert json.loads(mock_redis.publish.await_args.args[1])["minutes_remaining"] == 45

    @pytest.mark.asyncio
    async def test_publish_failure_still_warns_every_goal(self, db_session, mock_redis):
        mock_redis.publish.side_effect = ConnectionError("redis down")
        user = await make_user(db_session)
        await make_goal(db_session, user, name="A", current_streak=2)
        await make_goal(db_session, user, name="B", current_streak=6)

        sent = await check_streak_warnings(db_session, mock_redis, now=datetime(2026, 5, 12, 20, tzinfo=timezone.utc))

        assert sent == 2
        assert mock_redis.publish.await_count == 2


@pytest.mark.asyncio
async def test_sweep_then_session_starts_new_streak(db_session, mock_redis):
    """After a reset the next completed day starts again at 1."""
    from focusstreak.tracking.session_recorder import record_session

    user = await make_user(db_session, coins=0)
    goal = await make_goal(db_session, user, target=10, current_streak=6)
    await run_daily_sweep(db_session, mock_redis, as_of=AS_OF)

    outcome = await record_session(
        db_session, mock_redis, user.id, goal.id, 10,
        now=datetime(2026, 5, 12, 8, 0, tzinfo=timezone.utc),
    )
    assert outcome.goal.current_streak == 1
    assert outcome.goal.longest_streak == 6
    result = await db_session.execute(select(User.total_coins).where(User.id == user.id))
    assert result.scalar_one() == 10
