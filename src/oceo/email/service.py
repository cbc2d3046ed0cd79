"""
Transactional mail for purchases, memberships and lead capture.

Delivery goes through one of three providers chosen by ``OCEO_EMAIL_PROVIDER``:
SMTP (aiosmtplib), Resend or SendGrid (both plain HTTPS via httpx).
Providers never raise; a failed delivery is logged and reported as False so
that a webhook or signup is never rolled back because mail bounced.
"""

from __future__ import annotations

import hashlib
import ssl
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from oceo.config import get_settings
from oceo.email.templates import (
    free_download,
    new_application_notification,
    purchase_confirmation,
    studio_welcome,
    subscription_welcome,
    waitlist_admin_notification,
)
from oceo.redis_client import get_redis_optional

if TYPE_CHECKING:
    from collections.abc import Callable

    from redis.asyncio import Redis

    from oceo.config import Settings

logger = structlog.get_logger()

TEMPLATES: dict[str, Callable[..., tuple[str, str, str]]] = {
    "purchase_confirmation": purchase_confirmation,
    "subscription_welcome": subscription_welcome,
    "studio_welcome": studio_welcome,
    "free_download": free_download,
    "waitlist_admin_notification": waitlist_admin_notification,
    "new_application_notification": new_application_notification,
}


class BaseEmailProvider(ABC):
    """Delivers one rendered message to one recipient."""

    @abstractmethod
    async def send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        """Return True once the provider accepted the message."""


class SMTPProvider(BaseEmailProvider):
    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_address: str,
        from_name: str,
        use_tls: bool = True,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username or None
        self.password = password or None
        self.sender = f"{from_name} <{from_address}>"
        self.use_tls = use_tls

    def build_message(self, to_email: str, subject: str, html_body: str, text_body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to_email
        message["Subject"] = subject
        message.set_content(text_body)
        message.add_alternative(html_body, subtype="html")
        return message

    async def send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        import aiosmtplib

        message = self.build_message(to_email, subject, html_body, text_body)
        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                start_tls=self.use_tls,
                tls_context=ssl.create_default_context() if self.use_tls else None,
            )
        except (aiosmtplib.SMTPException, OSError):
            logger.exception("email_send_failed", to=to_email, provider="smtp")
            return False
        logger.info("email_sent", to=to_email, subject=subject, provider="smtp")
        return True


class HttpApiProvider(BaseEmailProvider):
    """Bearer-authenticated JSON mail API."""

    name = "http"
    endpoint = ""

    def __init__(self, api_key: str, from_address: str, from_name: str) -> None:
        self.api_key = api_key
        self.from_address = from_address
        self.from_name = from_name

    @abstractmethod
    def payload(self, to_email: str, subject: str, html_body: str, text_body: str) -> dict[str, Any]:
        """Request body in the provider's schema."""

    async def send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        if not self.api_key:
            logger.warning("email_not_configured", to=to_email, provider=self.name)
            return False
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.post(
                    self.endpoint,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json=self.payload(to_email, subject, html_body, text_body),
                )
                response.raise_for_status()
        except httpx.HTTPError:
            logger.exception("email_send_failed", to=to_email, provider=self.name)
            return False
        logger.info("email_sent", to=to_email, subject=subject, provider=self.name)
        return True


class ResendProvider(HttpApiProvider):
    name = "resend"
    endpoint = "https://api.resend.com/emails"

    def payload(self, to_email: str, subject: str, html_body: str, text_body: str) -> dict[str, Any]:
        return {
            "from": f"{self.from_name} <{self.from_address}>",
            "to": [to_email],
            "subject": subject,
            "html": html_body,
            "text": text_body,
        }


class SendGridProvider(HttpApiProvider):
    name = "sendgrid"
    endpoint = "https://api.sendgrid.com/v3/mail/send"

    def payload(self, to_email: str, subject: str, html_body: str, text_body: str) -> dict[str, Any]:
        # SendGrid requires text/plain before text/html
        return {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {"email": self.from_address, "name": self.from_name},
            "subject": subject,
            "content": [
                {"type": "text/plain", "value": text_body},
                {"type": "text/html", "value": html_body},
            ],
        }


def provider_from_settings(settings: Settings | None = None) -> BaseEmailProvider:
    """Build the configured provider; unknown names raise ValueError."""
    settings = settings or get_settings()
    sender = {"from_address": settings.email_from_address, "from_name": settings.email_from_name}
    kind = settings.email_provider.lower()
    if kind == "smtp":
        return SMTPProvider(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            **sender,
        )
    if kind == "resend":
        return ResendProvider(api_key=settings.resend_api_key, **sender)
    if kind == "sendgrid":
        return SendGridProvider(api_key=settings.sendgrid_api_key, **sender)
    msg = f"Unsupported email provider: {kind}"
    raise ValueError(msg)


class EmailService:
    """
    Renders named templates and hands them to the provider.

    Customer mail is capped per recipient per hour through a Redis counter
    keyed by the hashed, lower-cased address. Without Redis nothing is capped.
    Admin notifications skip the cap.
    """

    WINDOW_SECONDS = 3600

    def __init__(
        self,
        provider: BaseEmailProvider | None = None,
        redis: Redis | None = None,
        rate_limit_max: int | None = None,
    ) -> None:
        self.provider = provider or provider_from_settings()
        self._redis = redis
        self.rate_limit_max = rate_limit_max or get_settings().email_rate_limit_per_hour

    async def _within_limit(self, email: str) -> bool:
        if self._redis is None:
            return True
        digest = hashlib.sha256(email.strip().lower().encode()).hexdigest()
        key = f"email_rate:{digest}"
        sent = await self._redis.incr(key)
        if sent == 1:
            await self._redis.expire(key, self.WINDOW_SECONDS)
        return sent <= self.rate_limit_max

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
        rate_limited: bool = True,
    ) -> bool:
        """False when the recipient is over the hourly cap or delivery failed."""
        if rate_limited and not await self._within_limit(to):
            logger.warning("email_rate_limited", to=to, subject=subject)
            return False
        return await self.provider.send(to, subject, html_body, text_body)

    async def send_template(
        self,
        to: str,
        template_name: str,
        context: dict[str, Any],
        rate_limited: bool = True,
    ) -> bool:
        """
        Render ``template_name`` with ``context`` as keyword arguments and send it.

        Raises:
            ValueError: If no template has that name.
        """
        render = TEMPLATES.get(template_name)
        if render is None:
            msg = f"Unknown template: {template_name}"
            raise ValueError(msg)
        subject, html_body, text_body = render(**context)
        return await self.send_email(to, subject, html_body, text_body, rate_limited=rate_limited)

    async def notify_admin(self, template_name: str, context: dict[str, Any]) -> bool:
        return await self.send_template(
            get_settings().admin_notification_email, template_name, context, rate_limited=False
        )


_email_service: EmailService | None = None


def get_email_service() -> EmailService:
    """Process-wide service, created on first use with the shared Redis client."""
    global _email_service  # noqa: PLW0603
    if _email_service is None:
        _email_service = EmailService(redis=get_redis_optional())
    return _email_service


def set_email_service(service: EmailService | None) -> None:
    global _email_service  # noqa: PLW0603
    _email_service = service
