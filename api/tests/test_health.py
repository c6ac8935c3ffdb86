"""Tests for the health and version endpoints."""

import re
from datetime import datetime

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from taskboard.main import app


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
async def test_health_returns_200(client: AsyncClient):
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")


@pytest.mark.asyncio
async def test_health_response_schema(client: AsyncClient):
    data = (await client.get("/api/health")).json()
    assert set(data.keys()) == {
        "status",
        "version",
        "timestamp",
        "started_at",
        "uptime_seconds",
        "store_path",
        "store_present",
        "gateway_url",
    }
    assert data["status"] == "ok"
    assert re.match(r"^\d+\.\d+\.\d+$", data["version"])
    ts = datetime.fromisoformat(data["timestamp"].replace("Z", "+00:00"))
    assert ts.tzinfo is not None
    assert isinstance(data["uptime_seconds"], int)


@pytest.mark.asyncio
async def test_health_reports_store_file(client: AsyncClient, store_path):
    data = (await client.get("/api/health")).json()
    assert data["store_path"] == str(store_path)
    assert data["store_present"] is False

    await client.post("/api/tasks", json={"title": "x"})
    assert (await client.get("/api/health")).json()["store_present"] is True


@pytest.mark.asyncio
async def test_version(client: AsyncClient):
    response = await client.get("/api/version")
    assert response.status_code == 200
    assert re.match(r"^\d+\.\d+\.\d+$", response.json()["version"])


@pytest.mark.asyncio
async def test_root_redirects_to_docs(client: AsyncClient):
    response = await client.get("/")
    assert response.status_code in (302, 307)
    assert response.headers["location"] == "/docs"


def test_router_and_service_loggers_reach_package_handler():
    import logging

    package_logger = logging.getLogger("taskboard")
    assert package_logger.handlers
    for name in ("taskboard.routers.agent", "taskboard.services.agent_dispatcher", "taskboard.api"):
        assert logging.getLogger(name).isEnabledFor(logging.INFO)
