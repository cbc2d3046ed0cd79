"""Shared test fixtures."""

from __future__ import annotations

import json
import os

os.environ["OCEO_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["OCEO_SESSION_COOKIE_SECURE"] = "false"
os.environ["OCEO_STRIPE_SECRET_KEY"] = "sk_test_oceo"
os.environ["OCEO_STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["OCEO_MMFC_ENCRYPTION_KEY"] = "test-encryption-key-with-enough-length-0123"
os.environ["OCEO_NOTION_API_KEY"] = "secret_notion_test"
os.environ["OCEO_NOTION_RESOURCES_DB_ID"] = "db-resources"
os.environ["OCEO_NOTION_BLOG_DB_ID"] = "db-blog"
os.environ["OCEO_NOTION_PRODUCTS_DB_ID"] = "db-products"
os.environ["OCEO_FREE_PRODUCT_DOWNLOADS"] = json.dumps({"free-guide": "https://cdn.example.com/free-guide.pdf"})

from collections.abc import AsyncGenerator, Generator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from oceo.config import get_settings  # noqa: E402

get_settings.cache_clear()

from oceo.database import close_db, get_engine, get_session_factory, init_db  # noqa: E402
from oceo.db.base import Base  # noqa: E402
from oceo.db.models import User  # noqa: E402
from oceo.email.service import EmailService, set_email_service  # noqa: E402
from oceo.main import create_app  # noqa: E402
from tests.factories import RecordingProvider, auth_headers, make_user  # noqa: E402


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh in-memory schema per test."""
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest.fixture
def outbox() -> Generator[RecordingProvider, None, None]:
    """Route all outgoing email into memory."""
    provider = RecordingProvider()
    set_email_service(EmailService(provider=provider))
    yield provider
    set_email_service(None)


@pytest_asyncio.fixture
async def client(database: None, outbox: RecordingProvider) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client against a fresh app."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for setup and assertions."""
    async with get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def owner(database: None) -> User:
    return await make_user("owner@oceoluxe.com", role="owner", name="Kerri Owner")


@pytest_asyncio.fixture
async def admin(database: None) -> User:
    return await make_user("admin@oceoluxe.com", role="admin", name="Ada Admin")


@pytest_asyncio.fixture
async def member(database: None) -> User:
    return await make_user("member@example.com", name="Mia Member")


@pytest.fixture
def owner_headers(owner: User) -> dict[str, str]:
    return auth_headers(owner)


@pytest.fixture
def admin_headers(admin: User) -> dict[str, str]:
    return auth_headers(admin)


@pytest.fixture
def member_headers(member: User) -> dict[str, str]:
    return auth_headers(member)
