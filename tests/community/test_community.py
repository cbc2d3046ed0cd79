"""Community posts, comments, likes, moderation and stats."""

from __future__ import annotations

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.db.models import Course, User
from oceo.gamification.points_service import get_profile
from oceo.gamification.seed import seed_default_achievements
from tests.factories import add_rows, auth_headers, make_user

BASE = "/api/v1/community"


async def _post(client: AsyncClient, headers: dict, **fields) -> dict:
    body = {"title": "Pricing help", "content": "How do you price a tech pack?", **fields}
    response = await client.post(f"{BASE}/posts", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["post"]


class TestPosts:
    async def test_requires_login(self, client: AsyncClient) -> None:
        assert (await client.get(f"{BASE}/posts")).status_code == 401

    async def test_create_awards_points_and_achievement(
        self, client: AsyncClient, db_session: AsyncSession, member: User, member_headers: dict
    ) -> None:
        await seed_default_achievements(db_session)
        await db_session.commit()

        response = await client.post(
            f"{BASE}/posts", json={"title": "Hello", "content": "First post"}, headers=member_headers
        )
        assert response.status_code == 201
        data = response.json()
        assert data["points_awarded"] == 10
        assert data["new_achievements"] == ["community-contributor"]
        assert data["post"]["post_type"] == "discussion"
        assert data["post"]["user"] == {"id": member.id, "name": "Mia Member"}

        profile = await get_profile(db_session, member.id)
        assert profile.points == 35

    async def test_rejects_unknown_type_and_course(self, client: AsyncClient, member_headers: dict) -> None:
        bad_type = await client.post(
            f"{BASE}/posts", json={"title": "x", "content": "y", "post_type": "rant"}, headers=member_headers
        )
        assert bad_type.status_code == 400
        assert bad_type.json()["detail"].startswith("Invalid post type")

        bad_course = await client.post(
            f"{BASE}/posts", json={"title": "x", "content": "y", "course_id": 999}, headers=member_headers
        )
        assert bad_course.status_code == 400

    async def test_feed_pinned_first_and_filters(
        self, client: AsyncClient, member_headers: dict, admin_headers: dict
    ) -> None:
        course = Course(title="Foundations", slug="foundations")
        await add_rows(course)
        older = await _post(client, member_headers, title="Older", post_type="question")
        await _post(client, member_headers, title="Newer", course_id=course.id)
        await _post(client, admin_headers, title="Newest", post_type="win")

        pinned = await client.patch(
            f"{BASE}/posts/{older['id']}/pin", json={"is_pinned": True}, headers=admin_headers
        )
        assert pinned.json()["is_pinned"] is True

        feed = (await client.get(f"{BASE}/posts", headers=member_headers)).json()["posts"]
        assert [p["title"] for p in feed] == ["Older", "Newest", "Newer"]

        wins = (await client.get(f"{BASE}/posts?type=win", headers=member_headers)).json()["posts"]
        assert [p["title"] for p in wins] == ["Newest"]

        by_course = (await client.get(f"{BASE}/posts?course_id={course.id}", headers=member_headers)).json()
        assert by_course["posts"][0]["course"] == {"id": course.id, "title": "Foundations", "slug": "foundations"}

        mine = (await client.get(f"{BASE}/posts?mine=true", headers=admin_headers)).json()["posts"]
        assert [p["title"] for p in mine] == ["Newest"]

    async def test_pin_is_admin_only(self, client: AsyncClient, member_headers: dict) -> None:
        post = await _post(client, member_headers)
        url = f"{BASE}/posts/{post['id']}/pin"
        response = await client.patch(url, json={"is_pinned": True}, headers=member_headers)
        assert response.status_code == 403

    async def test_only_author_edits(self, client: AsyncClient, member_headers: dict) -> None:
        post = await _post(client, member_headers)
        other = await make_user("other@example.com", name="Olive Other")

        url = f"{BASE}/posts/{post['id']}"
        assert (await client.patch(url, json={"title": "Hijacked"}, headers=auth_headers(other))).status_code == 404

        updated = await client.patch(url, json={"title": "Edited", "post_type": "question"}, headers=member_headers)
        assert updated.status_code == 200
        assert updated.json()["title"] == "Edited"
        assert updated.json()["post_type"] == "question"

    async def test_delete_own_or_as_admin(
        self, client: AsyncClient, member_headers: dict, admin_headers: dict
    ) -> None:
        first = await _post(client, member_headers)
        second = await _post(client, member_headers)
        other = await make_user("other@example.com")

        assert (await client.delete(f"{BASE}/posts/{first['id']}", headers=auth_headers(other))).status_code == 404
        assert (await client.delete(f"{BASE}/posts/{first['id']}", headers=member_headers)).json() == {"success": True}
        assert (await client.delete(f"{BASE}/posts/{second['id']}", headers=admin_headers)).status_code == 200
        assert (await client.get(f"{BASE}/posts/{second['id']}", headers=member_headers)).status_code == 404


class TestComments:
    async def test_threaded_comments_and_counts(
        self, client: AsyncClient, db_session: AsyncSession, member: User, member_headers: dict, admin_headers: dict
    ) -> None:
        post = await _post(client, member_headers)
        url = f"{BASE}/posts/{post['id']}/comments"

        top = (await client.post(url, json={"content": "Great question"}, headers=admin_headers)).json()
        reply_body = {"content": "Thanks", "parent_id": top["id"]}
        reply = (await client.post(url, json=reply_body, headers=member_headers)).json()
        nested = await client.post(url, json={"content": "Welcome", "parent_id": reply["id"]}, headers=admin_headers)
        assert nested.json()["parent_id"] == top["id"]

        detail = (await client.get(f"{BASE}/posts/{post['id']}", headers=member_headers)).json()
        assert detail["post"]["comments_count"] == 3
        assert len(detail["comments"]) == 1
        assert [r["content"] for r in detail["comments"][0]["replies"]] == ["Thanks", "Welcome"]

        profile = await get_profile(db_session, member.id)
        assert profile.points == 15

    async def test_reply_must_be_on_same_post(self, client: AsyncClient, member_headers: dict) -> None:
        first = await _post(client, member_headers)
        second = await _post(client, member_headers)
        comment = (await client.post(
            f"{BASE}/posts/{first['id']}/comments", json={"content": "On first"}, headers=member_headers
        )).json()

        response = await client.post(
            f"{BASE}/posts/{second['id']}/comments",
            json={"content": "Wrong thread", "parent_id": comment["id"]},
            headers=member_headers,
        )
        assert response.status_code == 400

    async def test_delete_comment_removes_replies(
        self, client: AsyncClient, member_headers: dict, admin_headers: dict
    ) -> None:
        post = await _post(client, member_headers)
        url = f"{BASE}/posts/{post['id']}/comments"
        top = (await client.post(url, json={"content": "Top"}, headers=member_headers)).json()
        await client.post(url, json={"content": "Reply", "parent_id": top["id"]}, headers=admin_headers)

        edit_url = f"{BASE}/comments/{top['id']}"
        edited = await client.patch(edit_url, json={"content": "Top (edited)"}, headers=admin_headers)
        assert edited.status_code == 404

        deleted = await client.delete(f"{BASE}/comments/{top['id']}", headers=member_headers)
        assert deleted.json() == {"success": True, "removed": 2}

        detail = (await client.get(f"{BASE}/posts/{post['id']}", headers=member_headers)).json()
        assert detail["post"]["comments_count"] == 0
        assert detail["comments"] == []


class TestLikes:
    async def test_like_once_and_unlike(
        self, client: AsyncClient, member_headers: dict, admin_headers: dict, admin: User
    ) -> None:
        post = await _post(client, member_headers)
        url = f"{BASE}/posts/{post['id']}/like"

        assert (await client.post(url, headers=admin_headers)).json() == {
            "success": True, "liked": True, "likes_count": 1
        }
        assert (await client.post(url, headers=admin_headers)).json()["success"] is False

        detail = (await client.get(f"{BASE}/posts/{post['id']}", headers=admin_headers)).json()
        assert detail["liked"] is True
        likers = (await client.get(f"{BASE}/posts/{post['id']}/likes", headers=member_headers)).json()
        assert likers["users"] == [{"id": admin.id, "name": "Ada Admin"}]

        assert (await client.delete(url, headers=admin_headers)).json()["likes_count"] == 0
        assert (await client.delete(url, headers=admin_headers)).json()["success"] is False

    async def test_missing_post(self, client: AsyncClient, member_headers: dict) -> None:
        assert (await client.post(f"{BASE}/posts/999/like", headers=member_headers)).status_code == 404


class TestStats:
    async def test_totals_and_own_activity(
        self, client: AsyncClient, member_headers: dict, admin_headers: dict
    ) -> None:
        post = await _post(client, member_headers)
        await _post(client, admin_headers)
        await client.post(f"{BASE}/posts/{post['id']}/comments", json={"content": "Nice"}, headers=admin_headers)
        await client.post(f"{BASE}/posts/{post['id']}/like", headers=admin_headers)

        stats = (await client.get(f"{BASE}/stats", headers=member_headers)).json()
        assert stats == {
            "total_posts": 2,
            "total_comments": 1,
            "pinned_posts": 0,
            "posts_created": 1,
            "comments_created": 0,
            "likes_received": 1,
        }
