"""Tests for GET /api/health, /api/version and the root endpoint."""
import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_returns_200(client: AsyncClient):
    resp = await client.get("/api/health/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["database"] == "ok"


@pytest.mark.asyncio
async def test_version(client: AsyncClient):
    resp = await client.get("/api/version")
    assert resp.status_code == 200
    assert resp.json() == {"version": "1.0.0", "env": "dev"}


@pytest.mark.asyncio
async def test_root_endpoint(client: AsyncClient):
    resp = await client.get("/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "Document Builder API"
    assert "X-Process-Time" in resp.headers
