"""Resource library endpoints."""

from __future__ import annotations

from httpx import AsyncClient

from oceo.db.models import Resource
from tests.factories import add_rows

BASE = "/api/v1/resources"


def _resource(slug: str, published: bool = True, category: str = "templates", **extra) -> Resource:
    return Resource(
        title=slug.replace("-", " ").title(),
        slug=slug,
        category=category,
        is_published=published,
        download_url=f"https://cdn.example.com/{slug}.pdf",
        **extra,
    )


class TestResourceListing:
    async def test_public_sees_published(self, client: AsyncClient) -> None:
        await add_rows(_resource("pricing-sheet"), _resource("draft-sheet", published=False))
        data = (await client.get(BASE, params={"include_unpublished": "true"})).json()
        assert [r["slug"] for r in data["resources"]] == ["pricing-sheet"]

    async def test_admin_can_include_drafts(self, client: AsyncClient, admin_headers: dict) -> None:
        await add_rows(
            _resource("pricing-sheet", display_order=1),
            _resource("draft-sheet", published=False, display_order=2),
        )
        data = (await client.get(BASE, params={"include_unpublished": "true"}, headers=admin_headers)).json()
        assert [r["slug"] for r in data["resources"]] == ["pricing-sheet", "draft-sheet"]

    async def test_category_filter(self, client: AsyncClient) -> None:
        await add_rows(_resource("pricing-sheet"), _resource("launch-guide", category="guides"))
        data = (await client.get(BASE, params={"category": "guides"})).json()
        assert [r["slug"] for r in data["resources"]] == ["launch-guide"]

    async def test_categories(self, client: AsyncClient) -> None:
        categories = (await client.get(f"{BASE}/categories")).json()["categories"]
        assert {"value": "tech-packs", "label": "Tech Packs"} in categories

    async def test_draft_hidden_from_members(self, client: AsyncClient, member_headers: dict) -> None:
        draft = _resource("draft-sheet", published=False)
        await add_rows(draft)
        assert (await client.get(f"{BASE}/{draft.id}", headers=member_headers)).status_code == 404


class TestResourceAdmin:
    async def test_create(self, client: AsyncClient, admin_headers: dict) -> None:
        response = await client.post(
            BASE,
            json={"title": "Tech Pack", "slug": "tech-pack", "category": "tech-packs", "is_published": True},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json()["download_count"] == 0

    async def test_create_requires_fields(self, client: AsyncClient, admin_headers: dict) -> None:
        response = await client.post(BASE, json={"title": "Tech Pack"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Title, slug, and category are required"

    async def test_duplicate_slug(self, client: AsyncClient, admin_headers: dict) -> None:
        await add_rows(_resource("tech-pack"))
        response = await client.post(
            BASE, json={"title": "Tech Pack", "slug": "tech-pack", "category": "general"}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "A resource with this slug already exists"

    async def test_update_and_delete(self, client: AsyncClient, admin_headers: dict) -> None:
        resource = _resource("tech-pack")
        await add_rows(resource)
        response = await client.put(
            f"{BASE}/{resource.id}", json={"title": "Tech Pack v2", "is_featured": True}, headers=admin_headers
        )
        assert response.json()["title"] == "Tech Pack v2"
        assert response.json()["is_featured"] is True

        assert (await client.delete(f"{BASE}/{resource.id}", headers=admin_headers)).json() == {"success": True}
        assert (await client.get(f"{BASE}/{resource.id}", headers=admin_headers)).status_code == 404

    async def test_members_cannot_create(self, client: AsyncClient, member_headers: dict) -> None:
        response = await client.post(
            BASE, json={"title": "X", "slug": "x", "category": "general"}, headers=member_headers
        )
        assert response.status_code == 403


class TestDownloads:
    async def test_counts_and_stats(self, client: AsyncClient, admin_headers: dict) -> None:
        resource = _resource("pricing-sheet")
        await add_rows(resource, _resource("launch-guide", category="guides", published=False))

        first = (await client.post(f"{BASE}/{resource.id}/download")).json()
        second = (await client.post(f"{BASE}/{resource.id}/download")).json()
        assert first == {"download_url": "https://cdn.example.com/pricing-sheet.pdf", "download_count": 1}
        assert second["download_count"] == 2

        stats = (await client.get(f"{BASE}/stats", headers=admin_headers)).json()
        assert stats["total"] == 2
        assert stats["published"] == 1
        assert stats["by_category"] == {"templates": 1, "guides": 1}
        assert stats["total_downloads"] == 2

    async def test_unpublished_download_hidden(self, client: AsyncClient) -> None:
        draft = _resource("draft-sheet", published=False)
        await add_rows(draft)
        assert (await client.post(f"{BASE}/{draft.id}/download")).status_code == 404
