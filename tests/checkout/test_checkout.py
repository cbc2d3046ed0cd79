"""Payment intent and subscription checkout."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
import stripe
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from oceo.checkout import stripe_client
from oceo.config import get_settings
from oceo.database import get_session_factory
from oceo.db.models import DashboardProduct, NotionProduct, Purchase
from tests.factories import add_rows

BASE = "/api/v1/checkout"


@pytest.fixture
def stripe_calls(monkeypatch: pytest.MonkeyPatch) -> SimpleNamespace:
    calls = SimpleNamespace(
        customer=AsyncMock(return_value=SimpleNamespace(id="cus_1")),
        intent=AsyncMock(return_value=SimpleNamespace(id="pi_1", client_secret="pi_1_secret")),
        subscription=AsyncMock(return_value=(SimpleNamespace(id="sub_1"), "sub_1_secret")),
    )
    monkeypatch.setattr(stripe_client, "find_or_create_customer", calls.customer)
    monkeypatch.setattr(stripe_client, "create_payment_intent", calls.intent)
    monkeypatch.setattr(stripe_client, "create_subscription", calls.subscription)
    return calls


async def _purchases() -> list[Purchase]:
    async with get_session_factory()() as db:
        result = await db.execute(select(Purchase).options(selectinload(Purchase.items)).order_by(Purchase.id))
        return list(result.scalars().all())


def _one_time(name: str, slug: str, price: int, synced: bool = True) -> DashboardProduct:
    return DashboardProduct(
        name=name,
        slug=slug,
        price_in_cents=price,
        is_published=True,
        stripe_price_id=f"price_{slug}" if synced else None,
    )


def _subscription() -> DashboardProduct:
    return DashboardProduct(
        name="Content Club",
        slug="content-club",
        product_type="subscription",
        price_in_cents=2900,
        yearly_price_in_cents=29000,
        stripe_price_id="price_month",
        stripe_yearly_price_id="price_year",
        is_published=True,
    )


class TestPaymentIntent:
    async def test_product_with_upsells(self, client: AsyncClient, stripe_calls: SimpleNamespace) -> None:
        main = _one_time("Brand Playbook", "brand-playbook", 4900)
        extra = _one_time("Caption Pack", "caption-pack", 1900)
        unsynced = _one_time("Draft Kit", "draft-kit", 900, synced=False)
        await add_rows(main, extra, unsynced)

        response = await client.post(
            f"{BASE}/create-payment-intent",
            json={
                "product_id": main.id,
                "customer_email": "buyer@example.com",
                "customer_name": "Bea Buyer",
                "upsell_ids": [extra.id, unsynced.id],
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["client_secret"] == "pi_1_secret"
        assert data["payment_intent_id"] == "pi_1"
        assert data["total_cents"] == 6800
        assert [u["name"] for u in data["upsells"]] == ["Caption Pack"]

        stripe_calls.customer.assert_awaited_once_with("buyer@example.com", "Bea Buyer")
        amount, currency, customer_id, metadata = stripe_calls.intent.await_args.args
        assert (amount, currency, customer_id) == (6800, "usd", "cus_1")
        assert metadata["productId"] == str(main.id)

        [purchase] = await _purchases()
        assert purchase.status == "pending"
        assert purchase.stripe_payment_intent_id == "pi_1"
        assert purchase.amount_paid_cents == 6800
        assert sorted((i.product_id, i.is_upsell) for i in purchase.items) == [(main.id, False), (extra.id, True)]

    async def test_unknown_product(self, client: AsyncClient, stripe_calls: SimpleNamespace) -> None:
        response = await client.post(
            f"{BASE}/create-payment-intent", json={"product_id": 999, "customer_email": "buyer@example.com"}
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Product not found"

    async def test_not_synced(self, client: AsyncClient, stripe_calls: SimpleNamespace) -> None:
        product = _one_time("Brand Playbook", "brand-playbook", 4900, synced=False)
        await add_rows(product)
        response = await client.post(
            f"{BASE}/create-payment-intent", json={"product_id": product.id, "customer_email": "buyer@example.com"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Product is not synced to Stripe. Please contact support."
        stripe_calls.intent.assert_not_awaited()

    async def test_subscription_product_refused(self, client: AsyncClient, stripe_calls: SimpleNamespace) -> None:
        product = _subscription()
        await add_rows(product)
        response = await client.post(
            f"{BASE}/create-payment-intent", json={"product_id": product.id, "customer_email": "buyer@example.com"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Use create-subscription endpoint for subscription products"

    async def test_stripe_failure(
        self, client: AsyncClient, stripe_calls: SimpleNamespace, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        product = _one_time("Brand Playbook", "brand-playbook", 4900)
        await add_rows(product)
        monkeypatch.setattr(
            stripe_client, "create_payment_intent", AsyncMock(side_effect=stripe.CardError("declined", None, None))
        )
        response = await client.post(
            f"{BASE}/create-payment-intent", json={"product_id": product.id, "customer_email": "buyer@example.com"}
        )
        assert response.status_code == 502
        assert await _purchases() == []


class TestSubscriptionCheckout:
    async def test_monthly(self, client: AsyncClient, stripe_calls: SimpleNamespace) -> None:
        product = _subscription()
        await add_rows(product)
        response = await client.post(
            f"{BASE}/create-subscription",
            json={"product_id": product.id, "customer_email": "buyer@example.com"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["client_secret"] == "sub_1_secret"
        assert data["price_in_cents"] == 2900
        assert data["billing_interval"] == "month"
        assert stripe_calls.subscription.await_args.args[0] == "price_month"

        [purchase] = await _purchases()
        assert purchase.stripe_subscription_id == "sub_1"
        assert purchase.billing_interval == "month"

    async def test_yearly(self, client: AsyncClient, stripe_calls: SimpleNamespace) -> None:
        product = _subscription()
        await add_rows(product)
        data = (
            await client.post(
                f"{BASE}/create-subscription",
                json={"product_id": product.id, "customer_email": "buyer@example.com", "billing_interval": "year"},
            )
        ).json()
        assert data["price_in_cents"] == 29000
        assert data["product"]["yearly_price_in_cents"] == 29000
        assert stripe_calls.subscription.await_args.args[0] == "price_year"

    async def test_one_time_refused(self, client: AsyncClient, stripe_calls: SimpleNamespace) -> None:
        product = _one_time("Brand Playbook", "brand-playbook", 4900)
        await add_rows(product)
        response = await client.post(
            f"{BASE}/create-subscription", json={"product_id": product.id, "customer_email": "buyer@example.com"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Use create-payment-intent endpoint for one-time products"

    async def test_bad_interval(self, client: AsyncClient, stripe_calls: SimpleNamespace) -> None:
        response = await client.post(
            f"{BASE}/create-subscription",
            json={"product_id": 1, "customer_email": "buyer@example.com", "billing_interval": "week"},
        )
        assert response.status_code == 422


def _notion_product(slug: str) -> NotionProduct:
    return NotionProduct(notion_page_id=f"page-{slug}", title=slug.replace("-", " ").title(), slug=slug)


class TestCartCheckout:
    async def test_mixed_cart_totals_quantities(
        self, client: AsyncClient, stripe_calls: SimpleNamespace, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        playbook = _one_time("Brand Playbook", "brand-playbook", 4900)
        workbook = _notion_product("launch-workbook")
        await add_rows(playbook, workbook)
        monkeypatch.setattr(get_settings(), "notion_product_prices", {"launch-workbook": 1500})

        response = await client.post(f"{BASE}/cart", json={
            "customer_email": "buyer@example.com",
            "items": [
                {"product_id": playbook.id, "product_source": "dashboard", "quantity": 2},
                {"product_id": workbook.id, "product_source": "notion"},
            ],
        })
        assert response.status_code == 200
        data = response.json()
        assert data["is_free_order"] is False
        assert data["total_cents"] == 11300
        assert data["payment_intent_id"] == "pi_1"
        assert [line["source"] for line in data["items"]] == ["dashboard", "notion"]

        amount, currency, _customer, metadata = stripe_calls.intent.call_args.args
        assert (amount, currency) == (11300, "usd")
        assert metadata["productIds"] == f"dashboard:{playbook.id},notion:{workbook.id}"
        assert metadata["quantities"] == "2,1"
        assert await _purchases() == []

    async def test_free_cart_skips_payment(
        self, client: AsyncClient, stripe_calls: SimpleNamespace, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        freebie = _notion_product("starter-checklist")
        await add_rows(freebie)
        monkeypatch.setattr(get_settings(), "notion_product_prices", {"starter-checklist": 0})

        response = await client.post(f"{BASE}/cart", json={
            "customer_email": "buyer@example.com",
            "items": [{"product_id": freebie.id, "product_source": "notion"}],
        })
        assert response.json()["is_free_order"] is True
        assert response.json()["client_secret"] is None
        stripe_calls.intent.assert_not_called()

    async def test_rejected_carts(self, client: AsyncClient, stripe_calls: SimpleNamespace) -> None:
        unsynced = _one_time("Draft Kit", "draft-kit", 900, synced=False)
        unpriced = _notion_product("no-price")
        await add_rows(unsynced, _subscription(), unpriced)
        email = "buyer@example.com"

        empty = await client.post(f"{BASE}/cart", json={"customer_email": email, "items": []})
        assert empty.status_code == 400
        assert empty.json()["detail"] == "Cart items are required"

        missing = await client.post(f"{BASE}/cart", json={"customer_email": email, "items": [{"product_id": 999}]})
        assert missing.status_code == 404

        not_synced = await client.post(
            f"{BASE}/cart", json={"customer_email": email, "items": [{"product_id": unsynced.id}]}
        )
        assert not_synced.status_code == 400

        no_price = await client.post(f"{BASE}/cart", json={
            "customer_email": email,
            "items": [{"product_id": unpriced.id, "product_source": "notion"}],
        })
        assert no_price.json()["detail"] == 'Product "No Price" does not have checkout configured.'
        stripe_calls.intent.assert_not_called()
