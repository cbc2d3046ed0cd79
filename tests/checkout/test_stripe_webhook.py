"""Stripe webhook signature handling and event dispatch."""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from datetime import timedelta

from httpx import AsyncClient, Response
from sqlalchemy import select

from oceo.database import get_session_factory
from oceo.db.base import utcnow
from oceo.db.models import DashboardProduct, EducationSubscription, Purchase, User
from tests.factories import RecordingProvider, add_rows

URL = "/api/v1/stripe/webhook"
SECRET = "whsec_test_secret"


def _signature(payload: str, secret: str = SECRET) -> str:
    ts = int(time.time())
    digest = hmac.new(secret.encode(), f"{ts}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


async def _deliver(client: AsyncClient, event_type: str, obj: dict, secret: str = SECRET) -> Response:
    payload = json.dumps({"id": "evt_1", "object": "event", "type": event_type, "data": {"object": obj}})
    return await client.post(
        URL,
        content=payload,
        headers={"stripe-signature": _signature(payload, secret), "content-type": "application/json"},
    )


async def _reload(model: type, row_id: int):
    async with get_session_factory()() as db:
        return await db.get(model, row_id)


async def _one_time_purchase() -> tuple[DashboardProduct, Purchase]:
    product = DashboardProduct(
        name="Brand Playbook",
        slug="brand-playbook",
        price_in_cents=4900,
        download_url="https://cdn.example.com/playbook.pdf",
    )
    await add_rows(product)
    purchase = Purchase(
        product_id=product.id,
        customer_email="buyer@example.com",
        customer_name="Bea Buyer",
        amount_paid_cents=4900,
        stripe_payment_intent_id="pi_1",
    )
    await add_rows(purchase)
    return product, purchase


async def _subscription_purchase() -> Purchase:
    product = DashboardProduct(
        name="Content Club", slug="content-club", product_type="subscription", price_in_cents=2900
    )
    await add_rows(product)
    purchase = Purchase(
        product_id=product.id,
        customer_email="buyer@example.com",
        amount_paid_cents=2900,
        stripe_subscription_id="sub_1",
        billing_interval="month",
    )
    await add_rows(purchase)
    return purchase


class TestSignature:
    async def test_bad_signature(self, client: AsyncClient) -> None:
        response = await _deliver(client, "payment_intent.succeeded", {"id": "pi_1"}, secret="whsec_wrong")
        assert response.status_code == 400
        assert response.json()["detail"] == "Webhook signature verification failed."

    async def test_missing_signature(self, client: AsyncClient) -> None:
        response = await client.post(URL, content=b"{}")
        assert response.status_code == 400

    async def test_unknown_event_acknowledged(self, client: AsyncClient) -> None:
        response = await _deliver(client, "charge.refunded", {"id": "ch_1"})
        assert response.status_code == 200
        assert response.json() == {"received": True}


class TestPaymentIntentSucceeded:
    async def test_completes_and_emails(self, client: AsyncClient, outbox: RecordingProvider) -> None:
        _, purchase = await _one_time_purchase()
        response = await _deliver(client, "payment_intent.succeeded", {"id": "pi_1"})
        assert response.json() == {"received": True}

        stored = await _reload(Purchase, purchase.id)
        assert stored.status == "completed"
        assert stored.access_granted_at is not None
        assert stored.delivery_email_sent_at is not None
        assert outbox.subjects() == ["Your Oceoluxe order: Brand Playbook"]
        assert outbox.sent[0]["to"] == "buyer@example.com"
        assert "https://cdn.example.com/playbook.pdf" in outbox.sent[0]["html"]

    async def test_unknown_intent_ignored(self, client: AsyncClient, outbox: RecordingProvider) -> None:
        response = await _deliver(client, "payment_intent.succeeded", {"id": "pi_missing"})
        assert response.status_code == 200
        assert outbox.sent == []

    async def test_failed_email_leaves_purchase_completed(
        self, client: AsyncClient, outbox: RecordingProvider
    ) -> None:
        _, purchase = await _one_time_purchase()
        outbox.fail = True
        await _deliver(client, "payment_intent.succeeded", {"id": "pi_1"})
        stored = await _reload(Purchase, purchase.id)
        assert stored.status == "completed"
        assert stored.delivery_email_sent_at is None


class TestInvoicePaymentSucceeded:
    async def test_first_invoice_sends_welcome(self, client: AsyncClient, outbox: RecordingProvider) -> None:
        purchase = await _subscription_purchase()
        await _deliver(
            client,
            "invoice.payment_succeeded",
            {"id": "in_1", "subscription": "sub_1", "billing_reason": "subscription_create"},
        )
        assert (await _reload(Purchase, purchase.id)).status == "completed"
        assert outbox.subjects() == ["Welcome to Content Club!"]

    async def test_renewal_is_silent(self, client: AsyncClient, outbox: RecordingProvider) -> None:
        purchase = await _subscription_purchase()
        await _deliver(
            client,
            "invoice.payment_succeeded",
            {
                "id": "in_2",
                "billing_reason": "subscription_cycle",
                "parent": {"subscription_details": {"subscription": "sub_1"}},
            },
        )
        assert (await _reload(Purchase, purchase.id)).status == "completed"
        assert outbox.sent == []


class TestMembershipEvents:
    async def _membership(self, user: User) -> EducationSubscription:
        membership = EducationSubscription(
            user_id=user.id,
            status="active",
            stripe_subscription_id="sub_studio",
            current_period_end=utcnow() + timedelta(days=2),
        )
        await add_rows(membership)
        return membership

    async def test_updated(self, client: AsyncClient, member: User) -> None:
        membership = await self._membership(member)
        period_end = int(time.time()) + 30 * 86400
        await _deliver(
            client,
            "customer.subscription.updated",
            {
                "id": "sub_studio",
                "status": "past_due",
                "cancel_at_period_end": True,
                "items": {"data": [{"current_period_end": period_end}]},
            },
        )
        stored = await _reload(EducationSubscription, membership.id)
        assert stored.status == "past_due"
        assert stored.cancel_at_period_end is True
        assert int(stored.current_period_end.timestamp()) == period_end

    async def test_deleted(self, client: AsyncClient, member: User) -> None:
        membership = await self._membership(member)
        await _deliver(client, "customer.subscription.deleted", {"id": "sub_studio", "status": "canceled"})
        assert (await _reload(EducationSubscription, membership.id)).status == "canceled"

    async def test_checkout_session_activates(
        self, client: AsyncClient, member: User, outbox: RecordingProvider
    ) -> None:
        await _deliver(
            client,
            "checkout.session.completed",
            {
                "id": "cs_1",
                "subscription": "sub_new",
                "customer": "cus_new",
                "metadata": {"subscriptionType": "studio_systems", "userId": str(member.id)},
            },
        )
        async with get_session_factory()() as db:
            membership = (
                await db.execute(select(EducationSubscription).where(EducationSubscription.user_id == member.id))
            ).scalar_one()
        assert membership.status == "active"
        assert membership.stripe_subscription_id == "sub_new"
        assert membership.stripe_customer_id == "cus_new"
        assert outbox.subjects() == ["Welcome to Studio Systems - Let's Get Started!"]

    async def test_other_checkout_sessions_ignored(
        self, client: AsyncClient, member: User, outbox: RecordingProvider
    ) -> None:
        await _deliver(client, "checkout.session.completed", {"id": "cs_2", "metadata": {}})
        assert outbox.sent == []
