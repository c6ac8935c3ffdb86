"""Gateway status and model listing endpoints."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
import respx
from httpx import ASGITransport, AsyncClient, Response

from taskboard.main import app

HEALTH_URL = "http://127.0.0.1:18789/health"


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
@respx.mock
async def test_gateway_status_online(client: AsyncClient) -> None:
    respx.get(HEALTH_URL).mock(return_value=Response(200, json={"version": "2.1"}))
    response = await client.get("/api/gateway/status")
    assert response.status_code == 200
    assert response.json() == {
        "connected": True,
        "gatewayUrl": "http://127.0.0.1:18789",
        "status": "online",
        "details": {"version": "2.1"},
    }


@pytest.mark.asyncio
@respx.mock
async def test_gateway_status_offline_is_still_200(client: AsyncClient) -> None:
    respx.get(HEALTH_URL).mock(side_effect=httpx.ConnectError("refused"))
    response = await client.get("/api/gateway/status")
    assert response.status_code == 200
    body = response.json()
    assert body["connected"] is False
    assert body["status"] == "offline"
    assert "details" not in body


@pytest.mark.asyncio
async def test_agents_unconfigured(client: AsyncClient) -> None:
    response = await client.get("/api/agents")
    assert response.json() == {"models": [], "primary": None, "configured": False}


@pytest.mark.asyncio
async def test_agents_from_config(client: AsyncClient, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config = tmp_path / "openclaw.json"
    config.write_text(
        json.dumps({"agents": {"defaults": {"models": {"a": {}, "b": {}}, "model": {"primary": "b"}}}}),
        encoding="utf-8",
    )
    monkeypatch.setenv("AGENT_CONFIG_PATH", str(config))

    response = await client.get("/api/agents")
    assert response.json() == {"models": ["a", "b"], "primary": "b", "configured": True}
