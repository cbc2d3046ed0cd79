"""Admin CRM: waitlist conversion, members and churn."""

from __future__ import annotations

from datetime import timedelta

from httpx import AsyncClient

from oceo.db.base import utcnow
from oceo.db.models import EducationSubscription, Lead, UserProfile
from tests.factories import add_rows, make_user

URL = "/api/v1/crm"


class TestCrm:
    async def test_admin_only(self, client: AsyncClient, member_headers: dict) -> None:
        assert (await client.get(URL, headers=member_headers)).status_code == 403

    async def test_unknown_tab(self, client: AsyncClient, admin_headers: dict) -> None:
        response = await client.get(f"{URL}?tab=prospects", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid tab"

    async def test_waitlist_conversion(self, client: AsyncClient, admin_headers: dict) -> None:
        now = utcnow()
        joined = await make_user("Joined@Example.com", name="Jo Joined")
        await add_rows(
            Lead(email="joined@example.com", source="studio_waitlist", created_at=now - timedelta(days=20)),
            Lead(email="fresh@example.com", source="studio_waitlist", created_at=now - timedelta(days=1)),
            Lead(email="guide@example.com", source="free_product", created_at=now),
            EducationSubscription(user_id=joined.id, status="active"),
        )

        response = await client.get(URL, headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert [lead["email"] for lead in data["data"]] == ["fresh@example.com", "joined@example.com"]
        assert data["stats"] == {"total": 2, "this_week": 1, "converted": 1, "conversion_rate": "50.0%"}

    async def test_members_tab(self, client: AsyncClient, admin_headers: dict) -> None:
        active = await make_user("active@example.com")
        trial = await make_user("trial@example.com")
        gone = await make_user("gone@example.com")
        await add_rows(
            EducationSubscription(user_id=active.id, status="active", cancel_at_period_end=True),
            EducationSubscription(user_id=trial.id, status="trialing"),
            EducationSubscription(user_id=gone.id, status="canceled"),
            UserProfile(user_id=active.id, points=120),
        )

        data = (await client.get(f"{URL}?tab=members", headers=admin_headers)).json()
        assert [m["email"] for m in data["data"]] == ["active@example.com", "trial@example.com"]
        assert data["data"][0]["points"] == 120
        assert data["data"][1]["points"] is None
        assert data["stats"] == {"total": 2, "active": 1, "trialing": 1, "at_risk": 1}

    async def test_churned_tab(self, client: AsyncClient, admin_headers: dict) -> None:
        now = utcnow()
        stayed = await make_user("stayed@example.com")
        left = await make_user("left@example.com")
        await add_rows(
            EducationSubscription(user_id=stayed.id, status="active"),
            EducationSubscription(
                user_id=left.id,
                status="canceled",
                created_at=now - timedelta(days=30),
                updated_at=now,
            ),
        )

        data = (await client.get(f"{URL}?tab=churned", headers=admin_headers)).json()
        assert [m["email"] for m in data["data"]] == ["left@example.com"]
        assert data["stats"] == {"total": 1, "churn_rate": "50.0%", "avg_membership_days": 30}
