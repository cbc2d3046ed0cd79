"""Blog CMS and public blog endpoints."""

from __future__ import annotations

from httpx import AsyncClient

from oceo.blog.service import calculate_reading_time
from oceo.slugs import generate_slug


async def _create(client: AsyncClient, headers: dict, **fields) -> dict:
    body = {"title": "Scaling Your Studio", "content": "word " * 450}
    body.update(fields)
    response = await client.post("/api/v1/blog/admin/posts", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestSlugsAndReadingTime:
    def test_generate_slug(self) -> None:
        assert generate_slug("  Hello, World! 2025 ") == "hello-world-2025"
        assert generate_slug("Already-a-slug") == "already-a-slug"
        assert generate_slug("!!!") == ""

    def test_reading_time(self) -> None:
        assert calculate_reading_time("one") == 1
        assert calculate_reading_time("word " * 200) == 1
        assert calculate_reading_time("word " * 201) == 2
        assert calculate_reading_time("") == 1


class TestAdminPosts:
    async def test_create_draft(self, client: AsyncClient, admin_headers: dict) -> None:
        post = await _create(client, admin_headers)
        assert post["slug"] == "scaling-your-studio"
        assert post["is_published"] is False
        assert post["published_at"] is None
        assert post["reading_time_minutes"] == 3

    async def test_duplicate_title_gets_suffixed_slug(self, client: AsyncClient, admin_headers: dict) -> None:
        first = await _create(client, admin_headers)
        second = await _create(client, admin_headers)
        third = await _create(client, admin_headers)
        assert first["slug"] == "scaling-your-studio"
        assert second["slug"] == "scaling-your-studio-1"
        assert third["slug"] == "scaling-your-studio-2"

    async def test_create_requires_title_and_content(self, client: AsyncClient, admin_headers: dict) -> None:
        response = await client.post("/api/v1/blog/admin/posts", json={"title": "  "}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Title and content are required"

    async def test_publish_stamps_published_at(self, client: AsyncClient, admin_headers: dict) -> None:
        post = await _create(client, admin_headers)
        response = await client.put(
            f"/api/v1/blog/admin/posts/{post['id']}", json={"is_published": True}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["published_at"] is not None

        response = await client.put(
            f"/api/v1/blog/admin/posts/{post['id']}", json={"is_published": False}, headers=admin_headers
        )
        assert response.json()["published_at"] is None

    async def test_slug_conflict_on_update(self, client: AsyncClient, admin_headers: dict) -> None:
        await _create(client, admin_headers, title="First Post")
        second = await _create(client, admin_headers, title="Second Post")
        response = await client.put(
            f"/api/v1/blog/admin/posts/{second['id']}", json={"slug": "first-post"}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Slug is already in use"

    async def test_content_update_recomputes_reading_time(self, client: AsyncClient, admin_headers: dict) -> None:
        post = await _create(client, admin_headers)
        response = await client.put(
            f"/api/v1/blog/admin/posts/{post['id']}", json={"content": "short"}, headers=admin_headers
        )
        assert response.json()["reading_time_minutes"] == 1

    async def test_list_includes_drafts(self, client: AsyncClient, admin_headers: dict) -> None:
        await _create(client, admin_headers, title="Draft")
        await _create(client, admin_headers, title="Live", is_published=True)
        response = await client.get("/api/v1/blog/admin/posts", headers=admin_headers)
        assert {p["title"] for p in response.json()} == {"Draft", "Live"}

    async def test_delete(self, client: AsyncClient, admin_headers: dict) -> None:
        post = await _create(client, admin_headers)
        response = await client.delete(f"/api/v1/blog/admin/posts/{post['id']}", headers=admin_headers)
        assert response.json() == {"success": True}
        missing = await client.get(f"/api/v1/blog/admin/posts/{post['id']}", headers=admin_headers)
        assert missing.status_code == 404

    async def test_member_forbidden(self, client: AsyncClient, member_headers: dict) -> None:
        response = await client.get("/api/v1/blog/admin/posts", headers=member_headers)
        assert response.status_code == 403


class TestPublicBlog:
    async def test_only_published_listed(self, client: AsyncClient, admin_headers: dict) -> None:
        await _create(client, admin_headers, title="Hidden Draft")
        await _create(client, admin_headers, title="Public Post", is_published=True)
        response = await client.get("/api/v1/blog")
        assert response.status_code == 200
        assert [p["title"] for p in response.json()] == ["Public Post"]

    async def test_get_by_slug(self, client: AsyncClient, admin_headers: dict) -> None:
        await _create(client, admin_headers, title="Public Post", is_published=True, meta_title="SEO Title")
        response = await client.get("/api/v1/blog/public-post")
        assert response.status_code == 200
        assert response.json()["meta_title"] == "SEO Title"

    async def test_draft_slug_is_404(self, client: AsyncClient, admin_headers: dict) -> None:
        await _create(client, admin_headers, title="Hidden Draft")
        response = await client.get("/api/v1/blog/hidden-draft")
        assert response.status_code == 404
