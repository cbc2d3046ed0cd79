"""Row builders shared by the test modules."""

from __future__ import annotations

import functools
import json

import httpx
import pytest

from oceo.auth.jwt import create_session_token
from oceo.auth.service import register_user
from oceo.database import get_session_factory
from oceo.db.models import User
from oceo.email.service import BaseEmailProvider
from oceo.sync.notion_client import NotionClient


class RecordingProvider(BaseEmailProvider):
    """Email provider that keeps every message in memory."""

    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []
        self.fail = False

    async def send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        if self.fail:
            return False
        self.sent.append({"to": to_email, "subject": subject, "html": html_body, "text": text_body})
        return True

    def subjects(self) -> list[str]:
        return [m["subject"] for m in self.sent]


async def make_user(
    email: str,
    role: str = "member",
    name: str | None = None,
    password: str = "Sup3rSecret!",
) -> User:
    """Register and commit a user outside any request."""
    async with get_session_factory()() as db:
        user = await register_user(db, email, password, name=name, role=role)
        await db.commit()
    return user


def auth_headers(user: User) -> dict[str, str]:
    token, _ = create_session_token(user.id, user.role)
    return {"Authorization": f"Bearer {token}"}


async def add_rows(*rows: object) -> None:
    """Insert ORM rows in one committed session. Rows keep their loaded state."""
    async with get_session_factory()() as db:
        db.add_all(rows)
        await db.commit()


class NotionDatabase:
    """
    Notion API stand-in for httpx.MockTransport.

    Database queries return one page per cursor. Pages are retrievable by id
    and ``blocks`` maps a page or block id to its children.
    """

    def __init__(self, pages: list[dict], status: int = 200, blocks: dict[str, list[dict]] | None = None) -> None:
        self.pages = pages
        self.status = status
        self.blocks = blocks or {}
        self.bodies: list[dict] = []
        self.paths: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/v1")
        self.paths.append(path)
        if self.status != 200:
            return httpx.Response(self.status, text="unauthorized")
        if request.method == "GET" and path.startswith("/blocks/"):
            block_id = path.split("/")[2]
            return httpx.Response(200, json={"results": self.blocks.get(block_id, []), "has_more": False})
        if request.method == "GET" and path.startswith("/pages/"):
            page = next((p for p in self.pages if p["id"] == path.split("/")[2]), None)
            if page is None:
                return httpx.Response(404, text="object_not_found")
            return httpx.Response(200, json=page)

        body = json.loads(request.content)
        self.bodies.append(body)
        start = int(body.get("start_cursor") or 0)
        chunk = self.pages[start : start + 1]
        more = start + 1 < len(self.pages)
        return httpx.Response(
            200, json={"results": chunk, "has_more": more, "next_cursor": str(start + 1) if more else None}
        )


def patch_notion(monkeypatch: pytest.MonkeyPatch, module: object, database: NotionDatabase) -> NotionDatabase:
    """Point ``module.NotionClient`` at ``database``."""
    monkeypatch.setattr(
        module, "NotionClient", functools.partial(NotionClient, transport=httpx.MockTransport(database))
    )
    return database


def notion_page(page_id: str, title: str, title_key: str = "Name", **props) -> dict:
    properties = {title_key: {"type": "title", "title": [{"plain_text": title}]}}
    properties.update(props)
    return {"id": page_id, "url": f"https://www.notion.so/{page_id}", "properties": properties}
