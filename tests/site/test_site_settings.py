"""Link and SEO settings."""

from __future__ import annotations

from httpx import AsyncClient

from oceo.db.models import User


class TestLinks:
    async def test_empty(self, client: AsyncClient) -> None:
        assert (await client.get("/api/v1/links")).json() == {"links": []}

    async def test_upsert_by_key(self, client: AsyncClient, admin: User, admin_headers: dict) -> None:
        await client.put(
            "/api/v1/links",
            json={"links": [{"key": "calendly", "label": "Book a call", "url": "https://calendly.com/oceo"}]},
            headers=admin_headers,
        )
        response = await client.put(
            "/api/v1/links",
            json={
                "links": [
                    {"key": "calendly", "label": "Book now", "url": "https://calendly.com/oceo/30"},
                    {"key": "instagram", "label": "Instagram", "url": "https://instagram.com/oceoluxe"},
                ]
            },
            headers=admin_headers,
        )
        links = response.json()["links"]
        assert [(link["key"], link["label"]) for link in links] == [
            ("calendly", "Book now"),
            ("instagram", "Instagram"),
        ]
        assert links[0]["updated_by"] == admin.id

        public = (await client.get("/api/v1/links")).json()["links"]
        assert len(public) == 2

    async def test_update_requires_admin(self, client: AsyncClient, member_headers: dict) -> None:
        response = await client.put("/api/v1/links", json={"links": []}, headers=member_headers)
        assert response.status_code == 403


class TestSeo:
    async def test_default_fallback(self, client: AsyncClient) -> None:
        seo = (await client.get("/api/v1/seo/home")).json()["seo"]
        assert seo["page"] == "home"
        assert seo["id"] is None
        assert seo["meta_robots"] == "index, follow"
        assert seo["twitter_card"] == "summary_large_image"

    async def test_upsert_fills_defaults(self, client: AsyncClient, admin_headers: dict) -> None:
        response = await client.put(
            "/api/v1/seo/about",
            json={"title": "About Oceo Luxe", "description": "Our story", "og_type": ""},
            headers=admin_headers,
        )
        seo = response.json()["seo"]
        assert seo["id"] is not None
        assert seo["og_type"] == "website"
        assert seo["keywords"] is None

        assert (await client.get("/api/v1/seo/about")).json()["seo"]["title"] == "About Oceo Luxe"
        listed = (await client.get("/api/v1/seo", headers=admin_headers)).json()["settings"]
        assert [row["page"] for row in listed] == ["about"]

    async def test_title_and_description_required(self, client: AsyncClient, admin_headers: dict) -> None:
        response = await client.put("/api/v1/seo/about", json={"title": "About"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Title and description are required"
