"""Email templates and the rate-limited email service."""

from __future__ import annotations

import pytest

from oceo.email import templates
from oceo.email.service import EmailService, SendGridProvider
from tests.factories import RecordingProvider


class FakeRedis:
    """The two counter commands the email rate limit uses."""

    def __init__(self) -> None:
        self.counts: dict[str, int] = {}
        self.ttls: dict[str, int] = {}

    async def incr(self, key: str) -> int:
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    async def expire(self, key: str, seconds: int) -> bool:
        self.ttls[key] = seconds
        return True


class TestFormatPrice:
    @pytest.mark.parametrize(
        ("cents", "currency", "expected"),
        [(4900, "usd", "$49.00"), (123456, "USD", "$1,234.56"), (999, "eur", "€9.99"), (500, "cad", "5.00 CAD")],
    )
    def test_format(self, cents: int, currency: str, expected: str) -> None:
        assert templates.format_price(cents, currency) == expected


class TestTemplates:
    def test_purchase_confirmation_download(self) -> None:
        subject, html, text = templates.purchase_confirmation(
            "Bea",
            "Brand Playbook",
            4900,
            "usd",
            "https://oceoluxe.com/checkout/thank-you?product=brand-playbook",
            download_url="https://cdn.example.com/playbook.pdf",
        )
        assert subject == "Your Oceoluxe order: Brand Playbook"
        assert "Download Now" in html
        assert "Hi Bea," in text
        assert "$49.00" in text

    def test_purchase_confirmation_instructions_escaped(self) -> None:
        _, html, text = templates.purchase_confirmation(
            None,
            "Coaching",
            10000,
            "usd",
            "https://oceoluxe.com/thank-you",
            delivery_type="access",
            access_instructions="Reply with <your> goals",
        )
        assert "&lt;your&gt;" in html
        assert "Reply with <your> goals" in text
        assert "Hi there," in text

    def test_subscription_welcome_yearly(self) -> None:
        subject, _, text = templates.subscription_welcome("Bea", "Content Club", 29000, "usd", "year")
        assert subject == "Welcome to Content Club!"
        assert "$290.00/year" in text

    def test_studio_welcome(self) -> None:
        subject, html, _ = templates.studio_welcome("Mia", "https://oceoluxe.com/studio")
        assert subject == "Welcome to Studio Systems - Let's Get Started!"
        assert "https://oceoluxe.com/studio" in html

    def test_application_notification_fills_blanks(self) -> None:
        subject, _, text = templates.new_application_notification(
            "entrepreneur-circle",
            "Eve",
            "eve@example.com",
            {"Phone": None, "Interest": "Scaling"},
            "https://oceoluxe.com/dashboard/applications",
        )
        assert subject == "New Entrepreneur Circle Application: Eve"
        assert "Phone: Not provided" in text
        assert "Interest: Scaling" in text


class TestEmailService:
    async def test_rate_limit_per_recipient(self) -> None:
        provider = RecordingProvider()
        redis = FakeRedis()
        service = EmailService(provider=provider, redis=redis, rate_limit_max=2)

        results = [await service.send_email("a@example.com", "Hi", "<p>Hi</p>", "Hi") for _ in range(3)]
        assert results == [True, True, False]
        assert await service.send_email("b@example.com", "Hi", "<p>Hi</p>", "Hi") is True
        assert set(redis.ttls.values()) == {3600}
        assert all("a@example.com" not in key for key in redis.counts)

    async def test_rate_limit_ignores_case(self) -> None:
        service = EmailService(provider=RecordingProvider(), redis=FakeRedis(), rate_limit_max=1)
        assert await service.send_email("A@Example.com", "Hi", "", "") is True
        assert await service.send_email("a@example.com", "Hi", "", "") is False

    async def test_notify_admin_bypasses_limit(self) -> None:
        provider = RecordingProvider()
        service = EmailService(provider=provider, redis=FakeRedis(), rate_limit_max=1)
        context = {"name": "Wendy", "email": "wendy@example.com", "dashboard_url": "https://oceoluxe.com/dashboard"}
        assert await service.notify_admin("waitlist_admin_notification", context) is True
        assert await service.notify_admin("waitlist_admin_notification", context) is True
        assert [m["to"] for m in provider.sent] == ["kerrib@oceoluxe.com", "kerrib@oceoluxe.com"]

    async def test_unknown_template(self) -> None:
        service = EmailService(provider=RecordingProvider())
        with pytest.raises(ValueError, match="Unknown template: nope"):
            await service.send_template("a@example.com", "nope", {})

    async def test_sendgrid_without_key(self) -> None:
        provider = SendGridProvider(api_key="", from_address="hello@oceoluxe.com", from_name="Oceo Luxe")
        assert await provider.send("a@example.com", "Hi", "<p>Hi</p>", "Hi") is False
