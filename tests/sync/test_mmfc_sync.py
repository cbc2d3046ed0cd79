"""MMFC key management and storefront mirroring against a mocked storefront."""

from __future__ import annotations

import functools
from datetime import timedelta

import httpx
import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from oceo.db.base import utcnow
from oceo.db.models import MmfcApiKey, User
from oceo.sync import mmfc_service
from oceo.sync.crypto import decrypt_api_key, encrypt_api_key
from oceo.sync.mmfc_client import MmfcClient
from tests.factories import add_rows

API_KEY = "int_4P-xifrSecretValue"

PRODUCT_PAGES = {
    "1": {
        "products": [
            {
                "id": 11,
                "title": "Launch Kit",
                "slug": "launch-kit",
                "price": "49.00",
                "featured_image": {"url": "https://cdn.example.com/kit.png", "alt": "Kit"},
                "has_files": True,
                "file_count": 3,
            }
        ],
        "pagination": {"has_more": True},
    },
    "2": {
        "products": [
            {"id": 12, "title": "Pricing Course", "slug": "pricing-course", "checkout_url": "https://pay.example.com/c"}
        ],
        "pagination": {"has_more": False},
    },
}


class Storefront:
    """Scripted storefront answering the paths the client calls."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.products_status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/api/v1/products":
            if self.products_status != 200:
                return httpx.Response(self.products_status, text="denied")
            page = request.url.params.get("page", "1")
            return httpx.Response(200, json=PRODUCT_PAGES.get(page, PRODUCT_PAGES["1"]))
        if path == "/api/v1/scheduling/availability":
            if self.products_status != 200:
                return httpx.Response(self.products_status, text="denied")
            return httpx.Response(
                200,
                json={
                    "scheduling_links": [
                        {
                            "id": 5,
                            "slug": "discovery",
                            "title": "Discovery Call",
                            "duration_minutes": 30,
                            "booking_url": "https://book.example.com/discovery",
                        }
                    ]
                },
            )
        if path == "/api/v1/services":
            return httpx.Response(
                200,
                json={"services": [{"id": 8, "title": "Site Audit", "slug": "site-audit", "price": "250.5"}]},
            )
        return httpx.Response(404)


@pytest.fixture
def storefront(monkeypatch: pytest.MonkeyPatch) -> Storefront:
    handler = Storefront()
    monkeypatch.setattr(
        mmfc_service, "MmfcClient", functools.partial(MmfcClient, transport=httpx.MockTransport(handler))
    )
    return handler


async def _key(user: User, **extra) -> MmfcApiKey:
    key = MmfcApiKey(
        user_id=user.id,
        name="Main store",
        api_key=encrypt_api_key(API_KEY),
        base_url="https://makemoneyfromcoding.com",
        **extra,
    )
    await add_rows(key)
    return key


class TestKeyManagement:
    async def test_create_validates_and_encrypts(
        self, client: AsyncClient, admin_headers: dict, storefront: Storefront, db_session: AsyncSession
    ) -> None:
        response = await client.post(
            "/api/v1/mmfc-keys", json={"name": "Main store", "api_key": API_KEY}, headers=admin_headers
        )
        assert response.status_code == 201
        data = response.json()
        assert data["masked_api_key"] == "int_4P-xifr..."
        assert "api_key" not in data
        assert storefront.requests[0].headers["authorization"] == f"Bearer {API_KEY}"

        stored = await db_session.get(MmfcApiKey, data["id"])
        assert stored.api_key != API_KEY
        assert decrypt_api_key(stored.api_key) == API_KEY

    async def test_bad_prefix(self, client: AsyncClient, admin_headers: dict, storefront: Storefront) -> None:
        response = await client.post(
            "/api/v1/mmfc-keys", json={"name": "Main store", "api_key": "sk_live_1"}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == 'Invalid API key format. Must start with "int_"'
        assert storefront.requests == []

    async def test_rejected_key(self, client: AsyncClient, admin_headers: dict, storefront: Storefront) -> None:
        storefront.products_status = 401
        response = await client.post(
            "/api/v1/mmfc-keys", json={"name": "Main store", "api_key": API_KEY}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"].startswith("Invalid API key or insufficient permissions.")

    async def test_skip_validation(self, client: AsyncClient, admin_headers: dict, storefront: Storefront) -> None:
        storefront.products_status = 401
        response = await client.post(
            "/api/v1/mmfc-keys",
            json={"name": "Main store", "api_key": API_KEY, "skip_validation": True},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert storefront.requests == []

    async def test_keys_are_per_user(self, client: AsyncClient, owner: User, admin_headers: dict) -> None:
        key = await _key(owner)
        assert (await client.get(f"/api/v1/mmfc-keys/{key.id}", headers=admin_headers)).status_code == 404
        assert (await client.get("/api/v1/mmfc-keys", headers=admin_headers)).json() == {"keys": []}

    async def test_delete_removes_mirrored_rows(
        self, client: AsyncClient, admin: User, admin_headers: dict, storefront: Storefront
    ) -> None:
        key = await _key(admin)
        await client.post(f"/api/v1/mmfc-keys/{key.id}/sync", headers=admin_headers)
        assert (await client.delete(f"/api/v1/mmfc-keys/{key.id}", headers=admin_headers)).json() == {"success": True}
        assert (await client.get("/api/v1/mmfc-products", headers=admin_headers)).json()["products"] == []


class TestProductSync:
    async def test_pages_and_upserts(
        self, client: AsyncClient, admin: User, admin_headers: dict, storefront: Storefront
    ) -> None:
        key = await _key(admin)
        response = await client.post(f"/api/v1/mmfc-keys/{key.id}/sync", headers=admin_headers)
        assert response.json() == {"success": True, "products_count": 2}

        products = (await client.get("/api/v1/mmfc-products", headers=admin_headers)).json()["products"]
        by_slug = {p["slug"]: p for p in products}
        assert by_slug["launch-kit"]["featured_image_url"] == "https://cdn.example.com/kit.png"
        assert by_slug["launch-kit"]["file_count"] == 3
        assert by_slug["launch-kit"]["checkout_url"] == (
            "https://makemoneyfromcoding.com/store/patrick/launch-kit?ref=iampatrickfarrell"
        )
        assert by_slug["pricing-course"]["checkout_url"] == "https://pay.example.com/c"

        # A second run updates in place
        await client.post(f"/api/v1/mmfc-keys/{key.id}/sync", headers=admin_headers)
        assert len((await client.get("/api/v1/mmfc-products", headers=admin_headers)).json()["products"]) == 2

        stored = (await client.get(f"/api/v1/mmfc-keys/{key.id}", headers=admin_headers)).json()
        assert stored["last_sync_status"] == "success"

    async def test_failure_recorded(
        self, client: AsyncClient, admin: User, admin_headers: dict, storefront: Storefront
    ) -> None:
        key = await _key(admin)
        storefront.products_status = 500
        response = await client.post(f"/api/v1/mmfc-keys/{key.id}/sync", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["success"] is False

        stored = (await client.get(f"/api/v1/mmfc-keys/{key.id}", headers=admin_headers)).json()
        assert stored["last_sync_status"] == "error"
        assert "500" in stored["last_sync_error"]

    async def test_inactive_key(
        self, client: AsyncClient, admin: User, admin_headers: dict, storefront: Storefront
    ) -> None:
        key = await _key(admin, is_active=False)
        response = await client.post(f"/api/v1/mmfc-keys/{key.id}/sync", headers=admin_headers)
        assert response.json() == {"success": False, "error": "API key is inactive"}

    async def test_visibility_and_public_listing(
        self, client: AsyncClient, admin: User, admin_headers: dict, storefront: Storefront
    ) -> None:
        key = await _key(admin)
        await client.post(f"/api/v1/mmfc-keys/{key.id}/sync", headers=admin_headers)
        products = (await client.get("/api/v1/mmfc-products", headers=admin_headers)).json()["products"]
        hidden = next(p for p in products if p["slug"] == "pricing-course")

        response = await client.patch(
            "/api/v1/mmfc-products", json={"product_id": hidden["id"], "is_visible": False}, headers=admin_headers
        )
        assert response.json()["is_visible"] is False

        public = (await client.get("/api/v1/mmfc-products/public")).json()
        assert [p["slug"] for p in public["products"]] == ["launch-kit"]
        assert public["count"] == 1


class TestSchedulingAndServices:
    async def test_scheduling_links(
        self, client: AsyncClient, admin: User, admin_headers: dict, storefront: Storefront
    ) -> None:
        key = await _key(admin)
        response = await client.post(f"/api/v1/mmfc-scheduling/sync/{key.id}", headers=admin_headers)
        assert response.json() == {"success": True, "links_count": 1}

        [link] = (await client.get("/api/v1/mmfc-scheduling", headers=admin_headers)).json()["links"]
        assert link["api_key_name"] == "Main store"
        await client.patch(
            "/api/v1/mmfc-scheduling", json={"link_id": link["id"], "is_enabled": False}, headers=admin_headers
        )
        assert (await client.get("/api/v1/mmfc-scheduling/public")).json()["links"] == []

    async def test_services(
        self, client: AsyncClient, admin: User, admin_headers: dict, storefront: Storefront
    ) -> None:
        key = await _key(admin)
        response = await client.post(f"/api/v1/mmfc-services/sync/{key.id}", headers=admin_headers)
        assert response.json() == {"success": True, "services_count": 1}

        [service] = (await client.get("/api/v1/mmfc-services/public")).json()["services"]
        assert service["title"] == "Site Audit"
        assert float(service["price"]) == 250.5

    async def test_toggle_unknown_row(self, client: AsyncClient, admin_headers: dict) -> None:
        response = await client.patch(
            "/api/v1/mmfc-services", json={"service_id": 999, "is_visible": False}, headers=admin_headers
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Service not found"


class TestAutoSync:
    def test_sync_due(self) -> None:
        now = utcnow()
        assert mmfc_service.is_sync_due(MmfcApiKey(sync_frequency="daily", last_sync_at=None), now)
        assert mmfc_service.is_sync_due(
            MmfcApiKey(sync_frequency="daily", last_sync_at=now - timedelta(days=2)), now
        )
        assert not mmfc_service.is_sync_due(
            MmfcApiKey(sync_frequency="weekly", last_sync_at=now - timedelta(days=2)), now
        )
        assert not mmfc_service.is_sync_due(
            MmfcApiKey(sync_frequency="manual", last_sync_at=now - timedelta(days=30)), now
        )

    async def test_only_due_auto_keys(self, admin: User, db_session: AsyncSession, storefront: Storefront) -> None:
        due = await _key(admin, auto_sync=True)
        await _key(admin, auto_sync=True, last_sync_at=utcnow() - timedelta(hours=1))
        await _key(admin, auto_sync=False)
        await _key(admin, auto_sync=True, is_active=False)

        summary = await mmfc_service.sync_all_auto_sync_keys(db_session)
        assert summary["synced"] == 1
        assert summary["failed"] == 0
        assert [r["api_key_id"] for r in summary["results"]] == [due.id]
