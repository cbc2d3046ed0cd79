"""Liveness, readiness and version checks."""

from __future__ import annotations

from httpx import AsyncClient


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    async def test_ready_without_redis(self, client: AsyncClient) -> None:
        data = (await client.get("/ready")).json()
        assert data["status"] == "degraded"
        assert data["checks"]["database"] == "ok"
        assert data["checks"]["redis"].startswith("error:")

    async def test_version(self, client: AsyncClient) -> None:
        data = (await client.get("/version")).json()
        assert data["version"] == "0.1.0"
        assert "environment" in data
