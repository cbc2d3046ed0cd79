"""HTTP client for the Make Money from Coding (MMFC) storefront API."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from oceo.config import get_settings

logger = structlog.get_logger()


class MmfcApiError(Exception):
    """Non-2xx answer from the storefront."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"MMFC API error: {status_code} - {body}")


class MmfcClient:
    """Bearer-authenticated client bound to one API key and base URL."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.mmfc_default_base_url).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
            timeout=settings.mmfc_request_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> MmfcClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        response = await self._client.get(path, params=params)
        if response.status_code >= 400:
            raise MmfcApiError(response.status_code, response.text)
        return response.json()

    async def fetch_products_page(self, page: int = 1, limit: int = 100) -> dict[str, Any]:
        return await self._get(
            "/api/v1/products",
            {"page": page, "limit": limit, "ref": get_settings().mmfc_referral_code},
        )

    async def fetch_all_products(self) -> list[dict[str, Any]]:
        """Walk the paged product listing until has_more is false or the page cap."""
        max_pages = get_settings().mmfc_max_pages
        products: list[dict[str, Any]] = []
        page = 1
        while True:
            data = await self.fetch_products_page(page)
            products.extend(data.get("products") or [])
            if not (data.get("pagination") or {}).get("has_more"):
                break
            page += 1
            if page > max_pages:
                logger.warning("mmfc_page_limit_reached", max_pages=max_pages)
                break
        return products

    async def fetch_scheduling_links(self) -> list[dict[str, Any]]:
        data = await self._get("/api/v1/scheduling/availability")
        return data.get("scheduling_links") or []

    async def fetch_services(self) -> list[dict[str, Any]]:
        data = await self._get("/api/v1/services")
        return data.get("services") or []

    async def validate(self) -> tuple[bool, str]:
        """
        Try products, then scheduling. Returns (ok, reason).

        Raises:
            httpx.HTTPError: The storefront could not be reached.
        """
        response = await self._client.get("/api/v1/products", params={"limit": 1})
        if response.is_success:
            return True, ""
        reason = f"Products endpoint: Status {response.status_code}"
        response = await self._client.get("/api/v1/scheduling/availability")
        if response.is_success:
            return True, ""
        return False, f"{reason}. Scheduling endpoint: Status {response.status_code}"
