"""Dashboard product catalogue, upsells, storefront and Stripe sync."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
import stripe
from httpx import AsyncClient

from oceo.checkout import stripe_client
from oceo.db.models import DashboardProduct, ProductUpsell, Purchase
from tests.factories import add_rows

BASE = "/api/v1/dashboard-products"
PUBLIC = "/api/v1/products/public"


def _product(name: str, slug: str, price: int = 4900, published: bool = True, **extra) -> DashboardProduct:
    return DashboardProduct(name=name, slug=slug, price_in_cents=price, is_published=published, **extra)


class TestProductAdmin:
    async def test_members_forbidden(self, client: AsyncClient, member_headers: dict) -> None:
        response = await client.get(BASE, headers=member_headers)
        assert response.status_code == 403

    async def test_create_derives_slug(self, client: AsyncClient, admin_headers: dict) -> None:
        response = await client.post(
            BASE, json={"name": "Brand Playbook", "price_in_cents": 4900}, headers=admin_headers
        )
        assert response.status_code == 201
        data = response.json()
        assert data["slug"] == "brand-playbook"
        assert data["product_type"] == "one_time"
        assert data["currency"] == "usd"
        assert data["is_published"] is False

    @pytest.mark.parametrize(
        ("body", "detail"),
        [
            ({"price_in_cents": 100}, "Name is required"),
            ({"name": "  ", "price_in_cents": 100}, "Name is required"),
            ({"name": "Guide"}, "Price is required"),
            ({"name": "Guide", "price_in_cents": -1}, "Price is required"),
        ],
    )
    async def test_create_validation(self, client: AsyncClient, admin_headers: dict, body: dict, detail: str) -> None:
        response = await client.post(BASE, json=body, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == detail

    async def test_duplicate_slug(self, client: AsyncClient, admin_headers: dict) -> None:
        await add_rows(_product("Brand Playbook", "brand-playbook"))
        response = await client.post(
            BASE, json={"name": "Brand Playbook", "price_in_cents": 100}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "A product with this slug already exists"

    async def test_rename_regenerates_slug(self, client: AsyncClient, admin_headers: dict) -> None:
        product = _product("Brand Playbook", "brand-playbook")
        await add_rows(product)
        response = await client.put(f"{BASE}/{product.id}", json={"name": "Launch Kit"}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["slug"] == "launch-kit"

    async def test_unknown_product(self, client: AsyncClient, admin_headers: dict) -> None:
        response = await client.get(f"{BASE}/999", headers=admin_headers)
        assert response.status_code == 404

    async def test_delete(self, client: AsyncClient, admin_headers: dict) -> None:
        product = _product("Brand Playbook", "brand-playbook")
        await add_rows(product)
        response = await client.delete(f"{BASE}/{product.id}", headers=admin_headers)
        assert response.json() == {"success": True}
        assert (await client.get(f"{BASE}/{product.id}", headers=admin_headers)).status_code == 404

    async def test_delete_with_purchases_refused(self, client: AsyncClient, admin_headers: dict) -> None:
        product = _product("Brand Playbook", "brand-playbook")
        await add_rows(product)
        await add_rows(Purchase(product_id=product.id, customer_email="a@example.com", amount_paid_cents=4900))
        response = await client.delete(f"{BASE}/{product.id}", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Product has purchases and cannot be deleted"


class TestUpsells:
    async def _pair(self) -> tuple[DashboardProduct, DashboardProduct]:
        main = _product("Brand Playbook", "brand-playbook")
        extra = _product("Caption Pack", "caption-pack", price=1900)
        await add_rows(main, extra)
        return main, extra

    async def test_add_and_list(self, client: AsyncClient, admin_headers: dict) -> None:
        main, extra = await self._pair()
        response = await client.post(
            f"{BASE}/{main.id}/upsells",
            json={"upsell_product_id": extra.id, "discount_percent": 20},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json()["upsell_product_id"] == extra.id

        data = (await client.get(f"{BASE}/{main.id}/upsells", headers=admin_headers)).json()
        assert [u["upsell_product"]["slug"] for u in data["upsells"]] == ["caption-pack"]
        assert data["upsells"][0]["discount_percent"] == 20
        assert [p["slug"] for p in data["available_products"]] == ["caption-pack"]

    async def test_self_upsell(self, client: AsyncClient, admin_headers: dict) -> None:
        main, _ = await self._pair()
        response = await client.post(
            f"{BASE}/{main.id}/upsells", json={"upsell_product_id": main.id}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot add product as its own upsell"

    async def test_missing_upsell_product(self, client: AsyncClient, admin_headers: dict) -> None:
        main, _ = await self._pair()
        response = await client.post(
            f"{BASE}/{main.id}/upsells", json={"upsell_product_id": 999}, headers=admin_headers
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Upsell product not found"

    async def test_duplicate_upsell(self, client: AsyncClient, admin_headers: dict) -> None:
        main, extra = await self._pair()
        await add_rows(ProductUpsell(product_id=main.id, upsell_product_id=extra.id))
        response = await client.post(
            f"{BASE}/{main.id}/upsells", json={"upsell_product_id": extra.id}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "This upsell already exists for this product"

    async def test_remove(self, client: AsyncClient, admin_headers: dict) -> None:
        main, extra = await self._pair()
        await add_rows(ProductUpsell(product_id=main.id, upsell_product_id=extra.id))
        response = await client.delete(
            f"{BASE}/{main.id}/upsells", params={"upsell_product_id": extra.id}, headers=admin_headers
        )
        assert response.json() == {"success": True}
        data = (await client.get(f"{BASE}/{main.id}/upsells", headers=admin_headers)).json()
        assert data["upsells"] == []

    async def test_available_excludes_drafts(self, client: AsyncClient, admin_headers: dict) -> None:
        main, _ = await self._pair()
        await add_rows(_product("Draft Kit", "draft-kit", published=False))
        data = (await client.get(f"{BASE}/{main.id}/available-upsells", headers=admin_headers)).json()
        assert [p["slug"] for p in data["products"]] == ["caption-pack"]


class TestStorefront:
    async def test_lists_published_only(self, client: AsyncClient) -> None:
        await add_rows(
            _product("Brand Playbook", "brand-playbook", is_featured=True),
            _product("Draft Kit", "draft-kit", published=False),
        )
        data = (await client.get(PUBLIC)).json()
        assert [p["slug"] for p in data["products"]] == ["brand-playbook"]
        assert "download_url" not in data["products"][0]

    async def test_featured_filter(self, client: AsyncClient) -> None:
        await add_rows(
            _product("Brand Playbook", "brand-playbook", is_featured=True),
            _product("Caption Pack", "caption-pack"),
        )
        data = (await client.get(PUBLIC, params={"featured": "true"})).json()
        assert [p["slug"] for p in data["products"]] == ["brand-playbook"]

    async def test_detail_with_published_upsells(self, client: AsyncClient) -> None:
        main = _product("Brand Playbook", "brand-playbook")
        extra = _product("Caption Pack", "caption-pack", price=1900)
        hidden = _product("Draft Kit", "draft-kit", published=False)
        await add_rows(main, extra, hidden)
        await add_rows(
            ProductUpsell(product_id=main.id, upsell_product_id=extra.id, display_order=1, discount_percent=10),
            ProductUpsell(product_id=main.id, upsell_product_id=hidden.id, display_order=2),
        )
        data = (await client.get(f"{PUBLIC}/brand-playbook")).json()
        assert data["product"]["name"] == "Brand Playbook"
        assert data["upsells"] == [
            {
                "id": extra.id,
                "name": "Caption Pack",
                "short_description": None,
                "price_in_cents": 1900,
                "discount_percent": 10,
            }
        ]

    async def test_draft_is_hidden(self, client: AsyncClient) -> None:
        await add_rows(_product("Draft Kit", "draft-kit", published=False))
        assert (await client.get(f"{PUBLIC}/draft-kit")).status_code == 404


class TestStripeSync:
    async def test_one_time_product(
        self, client: AsyncClient, admin_headers: dict, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        product = _product("Brand Playbook", "brand-playbook")
        await add_rows(product)
        create_product = AsyncMock(return_value=SimpleNamespace(id="prod_1"))
        create_price = AsyncMock(return_value=SimpleNamespace(id="price_1"))
        monkeypatch.setattr(stripe_client, "create_product", create_product)
        monkeypatch.setattr(stripe_client, "create_price", create_price)

        response = await client.post(f"{BASE}/{product.id}/stripe-sync", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["stripe_product_id"] == "prod_1"
        assert data["stripe_price_id"] == "price_1"
        assert data["stripe_yearly_price_id"] is None
        assert data["stripe_synced_at"] is not None
        assert create_product.await_args.kwargs["metadata"]["dashboardProductId"] == str(product.id)
        create_price.assert_awaited_once_with("prod_1", 4900, "usd", None)

    async def test_subscription_gets_both_prices(
        self, client: AsyncClient, admin_headers: dict, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        product = _product(
            "Content Club", "content-club", price=2900, product_type="subscription", yearly_price_in_cents=29000
        )
        await add_rows(product)
        monkeypatch.setattr(stripe_client, "create_product", AsyncMock(return_value=SimpleNamespace(id="prod_2")))
        create_price = AsyncMock(
            side_effect=[SimpleNamespace(id="price_month"), SimpleNamespace(id="price_year")]
        )
        monkeypatch.setattr(stripe_client, "create_price", create_price)

        data = (await client.post(f"{BASE}/{product.id}/stripe-sync", headers=admin_headers)).json()
        assert data["stripe_price_id"] == "price_month"
        assert data["stripe_yearly_price_id"] == "price_year"
        intervals = [call.args[3] for call in create_price.await_args_list]
        assert intervals == ["month", "year"]

    async def test_unchanged_price_is_kept(
        self, client: AsyncClient, admin_headers: dict, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        product = _product(
            "Brand Playbook", "brand-playbook", stripe_product_id="prod_1", stripe_price_id="price_1"
        )
        await add_rows(product)
        update_product = AsyncMock(return_value=SimpleNamespace(id="prod_1"))
        replace_price = AsyncMock()
        monkeypatch.setattr(stripe_client, "update_product", update_product)
        monkeypatch.setattr(stripe_client, "retrieve_price", AsyncMock(return_value=SimpleNamespace(unit_amount=4900)))
        monkeypatch.setattr(stripe_client, "replace_price", replace_price)

        data = (await client.post(f"{BASE}/{product.id}/stripe-sync", headers=admin_headers)).json()
        assert data["stripe_price_id"] == "price_1"
        assert update_product.await_args.args == ("prod_1",)
        replace_price.assert_not_awaited()

    async def test_changed_price_is_replaced(
        self, client: AsyncClient, admin_headers: dict, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        product = _product(
            "Brand Playbook", "brand-playbook", stripe_product_id="prod_1", stripe_price_id="price_1"
        )
        await add_rows(product)
        monkeypatch.setattr(stripe_client, "update_product", AsyncMock(return_value=SimpleNamespace(id="prod_1")))
        monkeypatch.setattr(stripe_client, "retrieve_price", AsyncMock(return_value=SimpleNamespace(unit_amount=3900)))
        monkeypatch.setattr(stripe_client, "replace_price", AsyncMock(return_value=SimpleNamespace(id="price_2")))

        data = (await client.post(f"{BASE}/{product.id}/stripe-sync", headers=admin_headers)).json()
        assert data["stripe_price_id"] == "price_2"

    async def test_stripe_failure(
        self, client: AsyncClient, admin_headers: dict, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        product = _product("Brand Playbook", "brand-playbook")
        await add_rows(product)
        monkeypatch.setattr(
            stripe_client, "create_product", AsyncMock(side_effect=stripe.APIConnectionError("network down"))
        )
        response = await client.post(f"{BASE}/{product.id}/stripe-sync", headers=admin_headers)
        assert response.status_code == 502

    async def test_not_configured(
        self, client: AsyncClient, admin_headers: dict, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        product = _product("Brand Playbook", "brand-playbook")
        await add_rows(product)
        monkeypatch.setattr(
            stripe_client,
            "create_product",
            AsyncMock(side_effect=stripe_client.StripeNotConfiguredError("Stripe is not configured")),
        )
        response = await client.post(f"{BASE}/{product.id}/stripe-sync", headers=admin_headers)
        assert response.status_code == 400
