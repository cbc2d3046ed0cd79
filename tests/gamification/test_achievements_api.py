"""Achievement definitions, awarding and the public endpoints."""

from __future__ import annotations

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.db.models import CommunityPost, User
from oceo.gamification.achievement_service import (
    award_achievement,
    check_and_award_achievements,
    create_achievement,
    get_user_achievements,
    get_user_stat,
    list_achievements,
)
from oceo.gamification.points_service import award_points, get_or_create_profile, get_profile
from oceo.gamification.seed import DEFAULT_ACHIEVEMENTS, seed_default_achievements
from tests.factories import auth_headers


class TestSeed:
    async def test_seed_is_idempotent(self, db_session: AsyncSession) -> None:
        assert len(DEFAULT_ACHIEVEMENTS) == 11
        assert await seed_default_achievements(db_session) == 11
        assert await seed_default_achievements(db_session) == 0
        assert len(await list_achievements(db_session)) == 10
        assert len(await list_achievements(db_session, include_secret=True)) == 11

    async def test_seed_endpoint(self, client: AsyncClient, admin_headers: dict, member_headers: dict) -> None:
        assert (await client.post("/api/v1/achievements/seed", headers=member_headers)).status_code == 403
        response = await client.post("/api/v1/achievements/seed", headers=admin_headers)
        assert response.json() == {"inserted": 11}


class TestAwarding:
    async def test_award_once_with_points(self, db_session: AsyncSession, member: User) -> None:
        await seed_default_achievements(db_session)
        first_steps = next(a for a in await list_achievements(db_session) if a.slug == "first-steps")

        assert await award_achievement(db_session, member.id, first_steps) is not None
        assert await award_achievement(db_session, member.id, first_steps) is None
        assert (await get_profile(db_session, member.id)).points == 25

    async def test_points_threshold_chains(self, db_session: AsyncSession, member: User) -> None:
        await seed_default_achievements(db_session)
        await award_points(db_session, member.id, 960, "manual")

        earned = await check_and_award_achievements(db_session, member.id)
        # 960 + 50 (point-collector) crosses the 1000 secret threshold in the same pass
        assert [a.slug for a in earned] == ["point-collector", "high-achiever"]
        assert (await get_profile(db_session, member.id)).points == 960 + 50 + 100

        assert await check_and_award_achievements(db_session, member.id) == []
        assert len(await get_user_achievements(db_session, member.id)) == 2

    async def test_points_from_later_trigger_reach_earlier_threshold(
        self, db_session: AsyncSession, member: User
    ) -> None:
        await create_achievement(
            db_session, name="Regular", slug="regular", trigger_type="streak_days", trigger_value=3, points_value=100
        )
        await create_achievement(
            db_session, name="Centurion", slug="centurion", trigger_type="points_earned", trigger_value=100
        )
        profile = await get_or_create_profile(db_session, member.id)
        profile.streak = 3
        await db_session.flush()

        earned = await check_and_award_achievements(db_session, member.id)
        assert [a.slug for a in earned] == ["regular", "centurion"]
        assert await check_and_award_achievements(db_session, member.id) == []


class TestAchievementEndpoints:
    async def test_secret_hidden_from_public(self, client: AsyncClient, admin_headers: dict) -> None:
        await client.post("/api/v1/achievements/seed", headers=admin_headers)

        public = (await client.get("/api/v1/achievements")).json()["achievements"]
        assert "high-achiever" not in {a["slug"] for a in public}

        admin_view = (await client.get("/api/v1/achievements", headers=admin_headers)).json()["achievements"]
        assert "high-achiever" in {a["slug"] for a in admin_view}

    async def test_secret_shown_once_earned(
        self, client: AsyncClient, db_session: AsyncSession, member: User, member_headers: dict
    ) -> None:
        await seed_default_achievements(db_session)
        await award_points(db_session, member.id, 2000, "manual")
        await check_and_award_achievements(db_session, member.id)
        await db_session.commit()

        listed = (await client.get("/api/v1/achievements", headers=member_headers)).json()["achievements"]
        assert "high-achiever" in {a["slug"] for a in listed}

        mine = (await client.get("/api/v1/achievements/me", headers=member_headers)).json()
        assert mine["total_earned"] == 2
        assert mine["total_available"] == 10

    async def test_create_update_delete(self, client: AsyncClient, admin_headers: dict) -> None:
        created = await client.post("/api/v1/achievements", json={
            "name": "Night Owl",
            "slug": "night-owl",
            "points_value": 5,
            "trigger_type": "lessons_completed",
            "trigger_value": 3,
        }, headers=admin_headers)
        assert created.status_code == 201
        achievement_id = created.json()["id"]

        updated = await client.put(
            f"/api/v1/achievements/{achievement_id}", json={"points_value": 15}, headers=admin_headers
        )
        assert updated.json()["points_value"] == 15

        bad = await client.put(
            f"/api/v1/achievements/{achievement_id}", json={"trigger_type": "page_views"}, headers=admin_headers
        )
        assert bad.status_code == 400

        deleted = await client.delete(f"/api/v1/achievements/{achievement_id}", headers=admin_headers)
        assert deleted.status_code == 200
        assert (await client.get(f"/api/v1/achievements/{achievement_id}")).status_code == 404

    async def test_create_rejects_bad_trigger_and_duplicates(self, client: AsyncClient, admin_headers: dict) -> None:
        body = {"name": "X", "slug": "x", "trigger_type": "unknown"}
        assert (await client.post("/api/v1/achievements", json=body, headers=admin_headers)).status_code == 400

        body["trigger_type"] = "posts_created"
        assert (await client.post("/api/v1/achievements", json=body, headers=admin_headers)).status_code == 201
        duplicate = await client.post("/api/v1/achievements", json=body, headers=admin_headers)
        assert duplicate.status_code == 400
        assert duplicate.json()["detail"] == "An achievement with this slug already exists"


class TestLeaderboardEndpoint:
    async def test_public_leaderboard(self, client: AsyncClient, db_session: AsyncSession, member: User) -> None:
        await award_points(db_session, member.id, 40, "manual")
        await db_session.commit()
        response = await client.get("/api/v1/leaderboard?limit=5")
        assert response.status_code == 200
        assert response.json()["leaderboard"] == [
            {"rank": 1, "user_id": member.id, "name": "Mia Member", "points": 40, "streak": 0}
        ]

    async def test_posts_created_counts_community_posts(
        self, client: AsyncClient, admin: User, db_session: AsyncSession
    ) -> None:
        await seed_default_achievements(db_session)
        await db_session.commit()
        await client.post(
            "/api/v1/blog/admin/posts", json={"title": "Hello", "content": "World"}, headers=auth_headers(admin)
        )
        assert await get_user_stat(db_session, admin.id, "posts_created") == 0

        db_session.add(CommunityPost(user_id=admin.id, title="Hi all", content="Introducing myself"))
        await db_session.flush()
        assert await get_user_stat(db_session, admin.id, "posts_created") == 1
        earned = await check_and_award_achievements(db_session, admin.id)
        assert "community-contributor" in {a.slug for a in earned}
