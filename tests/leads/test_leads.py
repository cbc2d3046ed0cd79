"""Applications, free product claims and the waitlist."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from oceo.db.models import Application
from tests.factories import RecordingProvider, add_rows


class TestApplications:
    async def test_submit_notifies_admin(self, client: AsyncClient, outbox: RecordingProvider) -> None:
        response = await client.post(
            "/api/v1/applications",
            json={
                "type": "coaching",
                "name": "Cora Client",
                "email": "cora@example.com",
                "interest": "Pricing my offers",
            },
        )
        assert response.status_code == 201
        assert response.json()["message"] == "Application submitted successfully"

        [message] = outbox.sent
        assert message["to"] == "kerrib@oceoluxe.com"
        assert message["subject"] == "New Coaching Application: Cora Client"
        assert "Pricing my offers" in message["text"]

    @pytest.mark.parametrize(
        ("body", "detail"),
        [
            ({"type": "coaching", "email": "cora@example.com"}, "Missing required fields"),
            ({"name": "Cora", "email": "cora@example.com"}, "Missing required fields"),
            ({"type": "retreat", "name": "Cora", "email": "cora@example.com"}, "Invalid application type"),
        ],
    )
    async def test_validation(self, client: AsyncClient, body: dict, detail: str) -> None:
        response = await client.post("/api/v1/applications", json=body)
        assert response.status_code == 400
        assert response.json()["detail"] == detail

    async def test_list_filters_by_type(self, client: AsyncClient, admin_headers: dict) -> None:
        await add_rows(
            Application(type="coaching", name="Cora", email="cora@example.com"),
            Application(type="entrepreneur-circle", name="Eve", email="eve@example.com"),
        )
        data = (
            await client.get("/api/v1/applications", params={"type": "entrepreneur-circle"}, headers=admin_headers)
        ).json()
        assert [a["name"] for a in data["applications"]] == ["Eve"]

    async def test_list_requires_admin(self, client: AsyncClient, member_headers: dict) -> None:
        assert (await client.get("/api/v1/applications", headers=member_headers)).status_code == 403

    async def test_review(self, client: AsyncClient, admin, admin_headers: dict) -> None:
        application = Application(type="coaching", name="Cora", email="cora@example.com")
        await add_rows(application)
        response = await client.put(
            f"/api/v1/applications/{application.id}",
            json={"status": "approved", "notes": "Great fit"},
            headers=admin_headers,
        )
        data = response.json()
        assert data["status"] == "approved"
        assert data["notes"] == "Great fit"
        assert data["reviewed_by"] == admin.id
        assert data["reviewed_at"] is not None

    async def test_review_bad_status(self, client: AsyncClient, admin_headers: dict) -> None:
        application = Application(type="coaching", name="Cora", email="cora@example.com")
        await add_rows(application)
        response = await client.put(
            f"/api/v1/applications/{application.id}", json={"status": "maybe"}, headers=admin_headers
        )
        assert response.status_code == 400

    async def test_review_missing(self, client: AsyncClient, admin_headers: dict) -> None:
        response = await client.put("/api/v1/applications/999", json={"status": "approved"}, headers=admin_headers)
        assert response.status_code == 404


class TestFreeProduct:
    async def test_claim_sends_download(self, client: AsyncClient, outbox: RecordingProvider) -> None:
        response = await client.post(
            "/api/v1/leads/claim-free-product",
            json={
                "email": "reader@example.com",
                "name": "Rita",
                "product_slug": "free-guide",
                "product_name": "Free Pricing Guide",
            },
        )
        data = response.json()
        assert data["success"] is True
        assert data["email_sent"] is True
        assert outbox.subjects() == ["Your Free Download: Free Pricing Guide"]
        assert "https://cdn.example.com/free-guide.pdf" in outbox.sent[0]["text"]

    async def test_unknown_product(self, client: AsyncClient, outbox: RecordingProvider) -> None:
        response = await client.post(
            "/api/v1/leads/claim-free-product",
            json={"email": "reader@example.com", "product_slug": "paid-course", "product_name": "Paid"},
        )
        assert response.status_code == 400
        assert outbox.sent == []

    async def test_lead_recorded_when_email_fails(
        self, client: AsyncClient, admin_headers: dict, outbox: RecordingProvider
    ) -> None:
        outbox.fail = True
        data = (
            await client.post(
                "/api/v1/leads/claim-free-product",
                json={"email": "reader@example.com", "product_slug": "free-guide", "product_name": "Guide"},
            )
        ).json()
        assert data["email_sent"] is False

        leads = (await client.get("/api/v1/leads", headers=admin_headers)).json()["leads"]
        assert [(lead["source"], lead["delivery_email_sent_at"]) for lead in leads] == [("free_product", None)]


class TestWaitlist:
    async def test_join(self, client: AsyncClient, admin_headers: dict, outbox: RecordingProvider) -> None:
        response = await client.post("/api/v1/waitlist", json={"email": "Wendy@Example.com", "name": "Wendy"})
        assert response.status_code == 201
        assert response.json()["message"] == "Successfully joined the waitlist!"
        assert outbox.subjects() == ["New Studio Systems Waitlist Signup!"]

        leads = (await client.get("/api/v1/waitlist", headers=admin_headers)).json()["leads"]
        assert [lead["email"] for lead in leads] == ["wendy@example.com"]

    async def test_duplicate(self, client: AsyncClient) -> None:
        await client.post("/api/v1/waitlist", json={"email": "wendy@example.com"})
        response = await client.post("/api/v1/waitlist", json={"email": "WENDY@example.com"})
        assert response.status_code == 400
        assert response.json()["detail"] == "You are already on the waitlist!"
