"""Minimal Notion REST client: database queries, pages and block trees."""

from __future__ import annotations

from typing import Any

import httpx

from oceo.config import get_settings


class NotionApiError(Exception):
    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Notion API error: {status_code} - {body}")


class NotionClient:
    def __init__(self, api_key: str, transport: httpx.AsyncBaseTransport | None = None) -> None:
        settings = get_settings()
        self._client = httpx.AsyncClient(
            base_url=settings.notion_base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {api_key}",
                "Notion-Version": settings.notion_api_version,
                "Content-Type": "application/json",
            },
            timeout=30.0,
            transport=transport,
        )

    async def __aenter__(self) -> NotionClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self._client.aclose()

    async def query_database(self, database_id: str, sorts: list[dict[str, str]] | None = None) -> list[dict[str, Any]]:
        """Every page in the database, following next_cursor."""
        pages: list[dict[str, Any]] = []
        body: dict[str, Any] = {"page_size": 100}
        if sorts:
            body["sorts"] = sorts
        while True:
            response = await self._client.post(f"/databases/{database_id}/query", json=body)
            if response.status_code >= 400:
                raise NotionApiError(response.status_code, response.text)
            data = response.json()
            pages.extend(data.get("results") or [])
            if not data.get("has_more") or not data.get("next_cursor"):
                return pages
            body["start_cursor"] = data["next_cursor"]

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        response = await self._client.get(path, params=params)
        if response.status_code >= 400:
            raise NotionApiError(response.status_code, response.text)
        return response.json()

    async def retrieve_page(self, page_id: str) -> dict[str, Any]:
        return await self._get(f"/pages/{page_id}")

    async def list_block_children(self, block_id: str) -> list[dict[str, Any]]:
        """Direct children of a block or page, following next_cursor."""
        blocks: list[dict[str, Any]] = []
        params: dict[str, Any] = {"page_size": 100}
        while True:
            data = await self._get(f"/blocks/{block_id}/children", params=params)
            blocks.extend(data.get("results") or [])
            if not data.get("has_more") or not data.get("next_cursor"):
                return blocks
            params["start_cursor"] = data["next_cursor"]

    async def fetch_block_tree(self, block_id: str) -> list[dict[str, Any]]:
        """Children of ``block_id`` with nested blocks attached under ``children``."""
        blocks = await self.list_block_children(block_id)
        for block in blocks:
            if block.get("has_children"):
                block["children"] = await self.fetch_block_tree(block["id"])
        return blocks
