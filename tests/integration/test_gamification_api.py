"""Achievements, XP, streak summary, leaderboard and admin corrections."""

from datetime import timedelta

from httpx import AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from goal_assistant.db.models import User
from goal_assistant.timeutils import utcnow
from tests.conftest import register


async def first_goal(client: AsyncClient) -> None:
    response = await client.post("/api/v1/goals", json={"module_id": "fitness", "title": "Run a 10k"})
    assert response.status_code == 201


async def make_admin(db: AsyncSession, user_id: int) -> None:
    await db.execute(update(User).where(User.id == user_id).values(is_admin=True))
    await db.commit()


class TestLevels:
    async def test_levels_are_public(self, client: AsyncClient):
        response = await client.get("/api/v1/levels")
        assert response.status_code == 200
        levels = response.json()["levels"]
        assert levels[0]["level"] == 1
        assert levels[0]["cumulative"] == 0
        assert levels[-1]["level"] == 21


class TestAchievements:
    async def test_catalog_with_progress(self, authed_client: AsyncClient):
        await first_goal(authed_client)
        response = await authed_client.get("/api/v1/achievements")
        assert response.status_code == 200
        data = response.json()
        by_slug = {a["slug"]: a for a in data["achievements"]}
        assert by_slug["first_goal"]["unlocked"] is True
        assert by_slug["first_goal"]["progress"] == 1.0
        assert by_slug["goal_creator"]["unlocked"] is False
        assert by_slug["goal_creator"]["progress"] == 0.2
        assert "fitness.first_workout" in by_slug
        assert data["unlocked"] == 1

    async def test_catalog_filtered_by_module(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/achievements", params={"module_id": "fitness"})
        slugs = [a["slug"] for a in response.json()["achievements"]]
        assert slugs
        assert all(slug.startswith("fitness.") for slug in slugs)

    async def test_my_achievements(self, authed_client: AsyncClient):
        empty = await authed_client.get("/api/v1/users/me/achievements")
        assert empty.json()["total_unlocked"] == 0

        await first_goal(authed_client)
        response = await authed_client.get("/api/v1/users/me/achievements")
        data = response.json()
        assert data["total_unlocked"] == 1
        assert data["unlocked"][0]["slug"] == "first_goal"
        assert data["total_available"] > 1


class TestXP:
    async def test_xp_and_history(self, authed_client: AsyncClient):
        await first_goal(authed_client)

        xp = (await authed_client.get("/api/v1/users/me/xp")).json()
        assert xp["total_xp"] == 16
        assert xp["level"] == 1
        assert xp["next_level"] == 2

        history = (await authed_client.get("/api/v1/users/me/xp/history")).json()
        assert history["total"] == 3
        assert sorted(e["source"] for e in history["entries"]) == ["achievement", "create_goal", "daily_login"]

    async def test_summary(self, authed_client: AsyncClient):
        await first_goal(authed_client)
        data = (await authed_client.get("/api/v1/users/me/gamification")).json()
        assert data["xp"]["total_xp"] == 16
        assert data["streak"]["current_streak"] == 1
        assert data["streak"]["is_active"] is True
        assert data["achievements"]["unlocked"] == 1

    async def test_new_user_has_no_streak(self, authed_client: AsyncClient):
        data = (await authed_client.get("/api/v1/users/me/gamification")).json()
        assert data["streak"]["current_streak"] == 0
        assert data["streak"]["is_active"] is False

    async def test_lapsed_streak_reported_as_zero(
        self, authed_client: AsyncClient, registered_user: dict, db_session: AsyncSession
    ):
        lapsed = utcnow().date() - timedelta(days=3)
        await db_session.execute(
            update(User)
            .where(User.id == registered_user["user_id"])
            .values(streak_count=6, longest_streak=6, last_activity_date=lapsed)
        )
        await db_session.commit()

        streak = (await authed_client.get("/api/v1/users/me/gamification")).json()["streak"]
        assert streak["current_streak"] == 0
        assert streak["longest_streak"] == 6
        assert streak["is_active"] is False


class TestLeaderboard:
    async def test_xp_board(self, authed_client: AsyncClient, registered_user: dict):
        await first_goal(authed_client)
        bob = await register(authed_client, email="bob@example.com", name="Bob")

        response = await authed_client.get("/api/v1/leaderboard")
        assert response.status_code == 200
        entries = response.json()["entries"]
        assert [e["user_id"] for e in entries] == [registered_user["user_id"], bob["user_id"]]
        assert entries[0]["rank"] == 1
        assert entries[0]["total_xp"] == 16
        assert entries[0]["is_current_user"] is True
        assert entries[1]["is_current_user"] is False

    async def test_achievements_board(self, authed_client: AsyncClient):
        await register(authed_client, email="bob@example.com", name="Bob")
        await first_goal(authed_client)

        response = await authed_client.get("/api/v1/leaderboard", params={"type": "achievements", "limit": 1})
        entries = response.json()["entries"]
        assert len(entries) == 1
        assert entries[0]["name"] == "Alice"
        assert entries[0]["achievements"] == 1

    async def test_unknown_board(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/leaderboard", params={"type": "karma"})
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "type"


class TestXPCorrection:
    async def test_requires_admin(self, authed_client: AsyncClient, registered_user: dict):
        response = await authed_client.post(
            f"/api/v1/admin/users/{registered_user['user_id']}/xp-correction",
            json={"delta": 100, "reason": "Bonus"},
        )
        assert response.status_code == 403

    async def test_correction(self, authed_client: AsyncClient, registered_user: dict, db_session: AsyncSession):
        await make_admin(db_session, registered_user["user_id"])
        bob = await register(authed_client, email="bob@example.com", name="Bob")

        response = await authed_client.post(
            f"/api/v1/admin/users/{bob['user_id']}/xp-correction",
            json={"delta": 300, "reason": "Migrated from the old tracker"},
        )
        assert response.status_code == 200
        assert response.json() == {"user_id": bob["user_id"], "total_xp": 300, "level": 3}

        lowered = await authed_client.post(
            f"/api/v1/admin/users/{bob['user_id']}/xp-correction",
            json={"delta": -1000, "reason": "Abuse"},
        )
        assert lowered.json()["total_xp"] == 0
        assert lowered.json()["level"] == 1

    async def test_zero_delta(self, authed_client: AsyncClient, registered_user: dict, db_session: AsyncSession):
        await make_admin(db_session, registered_user["user_id"])
        response = await authed_client.post(
            f"/api/v1/admin/users/{registered_user['user_id']}/xp-correction",
            json={"delta": 0, "reason": "Nothing"},
        )
        assert response.status_code == 400

    async def test_unknown_user(self, authed_client: AsyncClient, registered_user: dict, db_session: AsyncSession):
        await make_admin(db_session, registered_user["user_id"])
        response = await authed_client.post(
            "/api/v1/admin/users/9999/xp-correction", json={"delta": 5, "reason": "Typo fix"}
        )
        assert response.status_code == 404
