"""Progress and profile endpoints over HTTP."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from conftest import auth_headers, make_completed_day, make_goal, make_user

DAY = date(2026, 6, 15)


class TestDailyProgress:
    @pytest.mark.asyncio
    async def test_goals_without_sessions_report_zero(self, client, db_session):
        user = await make_user(db_session)
        done = await make_goal(db_session, user, name="Done", target=30)
        await make_goal(db_session, user, name="Idle", target=45)
        await make_completed_day(db_session, done, DAY)

        response = await client.get(f"/api/v1/progress/daily?date={DAY.isoformat()}", headers=auth_headers(user))
        body = response.json()

        assert body["day"] == DAY.isoformat()
        assert body["total_goals"] == 2
        assert body["completed_goals"] == 1
        idle = next(g for g in body["goals"] if g["goal_name"] == "Idle")
        assert idle["minutes_completed"] == 0
        assert idle["target_minutes"] == 45

    @pytest.mark.asyncio
    async def test_goal_history_window(self, client, db_session):
        user = await make_user(db_session)
        goal = await make_goal(db_session, user)
        for offset in (0, 1, 5, 120):
            await make_completed_day(db_session, goal, DAY - timedelta(days=offset))

        response = await client.get(
            f"/api/v1/progress/goals/{goal.id}?end_date={DAY.isoformat()}",
            headers=auth_headers(user),
        )
        days = [d["day"] for d in response.json()["days"]]
        assert days == [
            DAY.isoformat(),
            (DAY - timedelta(days=1)).isoformat(),
            (DAY - timedelta(days=5)).isoformat(),
        ]

    @pytest.mark.asyncio
    async def test_goal_history_unknown_goal(self, client, db_session):
        user = await make_user(db_session)
        response = await client.get("/api/v1/progress/goals/999", headers=auth_headers(user))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_calendar_groups_by_day(self, client, db_session):
        user = await make_user(db_session)
        a = await make_goal(db_session, user, name="A", target=30)
        b = await make_goal(db_session, user, name="B", target=20)
        await make_completed_day(db_session, a, DAY)
        await make_completed_day(db_session, b, DAY)
        await make_completed_day(db_session, a, DAY - timedelta(days=1))

        response = await client.get(
            f"/api/v1/progress/calendar?start_date={(DAY - timedelta(days=7)).isoformat()}&end_date={DAY.isoformat()}",
            headers=auth_headers(user),
        )
        days = response.json()["days"]
        assert days[DAY.isoformat()] == {"goal_ids": [a.id, b.id], "minutes": 50}
        assert days[(DAY - timedelta(days=1)).isoformat()]["goal_ids"] == [a.id]

    @pytest.mark.asyncio
    async def test_overall_stats(self, client, db_session):
        user = await make_user(db_session, coins=42)
        await make_goal(db_session, user, name="A", current_streak=3, longest_streak=8)
        await make_goal(db_session, user, name="B", current_streak=1)

        body = (await client.get("/api/v1/progress/stats/overall", headers=auth_headers(user))).json()
        assert body["active_goals"] == 2
        assert body["best_current_streak"] == 3
        assert body["best_longest_streak"] == 8
        assert body["total_coins"] == 42


class TestProfile:
    @pytest.mark.asyncio
    async def test_me(self, client, db_session):
        user = await make_user(db_session, coins=7)
        await make_goal(db_session, user, current_streak=2, longest_streak=11)

        body = (await client.get("/api/v1/users/me", headers=auth_headers(user))).json()
        assert body["total_coins"] == 7
        assert body["best_streak"] == 11
        assert body["rank"] == "Novice"

    @pytest.mark.asyncio
    async def test_rank_ladder(self, client):
        body = (await client.get("/api/v1/ranks")).json()
        assert [r["rank"] for r in body["ranks"]] == [
            "Novice", "Beginner", "Intermediate", "Advanced", "Expert", "Master",
        ]
        assert body["ranks"][-1]["min_streak"] == 100
