"""Purchase administration endpoints."""

from __future__ import annotations

from httpx import AsyncClient

from oceo.db.models import DashboardProduct, Purchase, PurchaseItem
from tests.factories import RecordingProvider, add_rows

BASE = "/api/v1/purchases"


async def _completed_purchase() -> Purchase:
    product = DashboardProduct(name="Brand Playbook", slug="brand-playbook", price_in_cents=4900)
    extra = DashboardProduct(name="Caption Pack", slug="caption-pack", price_in_cents=1900)
    await add_rows(product, extra)
    purchase = Purchase(
        product_id=product.id,
        customer_email="buyer@example.com",
        amount_paid_cents=6800,
        status="completed",
        stripe_payment_intent_id="pi_1",
    )
    await add_rows(purchase)
    await add_rows(
        PurchaseItem(purchase_id=purchase.id, product_id=product.id, price_in_cents=4900),
        PurchaseItem(purchase_id=purchase.id, product_id=extra.id, price_in_cents=1900, is_upsell=True),
    )
    return purchase


class TestPurchaseAdmin:
    async def test_requires_admin(self, client: AsyncClient, member_headers: dict) -> None:
        assert (await client.get(BASE, headers=member_headers)).status_code == 403

    async def test_list(self, client: AsyncClient, admin_headers: dict) -> None:
        await _completed_purchase()
        data = (await client.get(BASE, headers=admin_headers)).json()
        assert len(data["purchases"]) == 1
        assert data["purchases"][0]["product_name"] == "Brand Playbook"
        assert data["purchases"][0]["amount_paid_cents"] == 6800

    async def test_detail(self, client: AsyncClient, admin_headers: dict) -> None:
        purchase = await _completed_purchase()
        data = (await client.get(f"{BASE}/{purchase.id}", headers=admin_headers)).json()
        assert data["customer_email"] == "buyer@example.com"
        assert sorted(item["is_upsell"] for item in data["items"]) == [False, True]

    async def test_missing(self, client: AsyncClient, admin_headers: dict) -> None:
        response = await client.get(f"{BASE}/999", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Purchase not found"


class TestResendEmail:
    async def test_resend(self, client: AsyncClient, admin_headers: dict, outbox: RecordingProvider) -> None:
        purchase = await _completed_purchase()
        response = await client.post(f"{BASE}/{purchase.id}/resend-email", headers=admin_headers)
        assert response.json() == {"success": True}
        assert outbox.subjects() == ["Your Oceoluxe order: Brand Playbook"]

    async def test_provider_failure(self, client: AsyncClient, admin_headers: dict, outbox: RecordingProvider) -> None:
        purchase = await _completed_purchase()
        outbox.fail = True
        response = await client.post(f"{BASE}/{purchase.id}/resend-email", headers=admin_headers)
        assert response.status_code == 502
        assert response.json()["detail"] == "Failed to send email"
