"""Agent gateway client: OpenAI-style chat completion plus a health probe.

The gateway is treated as an opaque "prompt in, text out" capability. httpx only.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional

import httpx

from taskboard.services import gateway_config

logger = logging.getLogger(__name__)

HEALTH_TIMEOUT_S = 5.0


class GatewayError(RuntimeError):
    pass


def _headers() -> dict[str, str]:
    headers = {
        "Content-Type": "application/json",
        "x-openclaw-agent-id": gateway_config.gateway_agent_id(),
    }
    token = gateway_config.gateway_token()
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _reply_text(data: Any) -> str:
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            msg = choices[0].get("message")
            content = msg.get("content") if isinstance(msg, dict) else None
            if isinstance(content, str) and content:
                return content
    # Not an OpenAI-shaped reply; keep the whole body so nothing is lost.
    return json.dumps(data, indent=2)


async def chat_completion(
    prompt: str,
    *,
    tools: Optional[list[dict[str, Any]]] = None,
    timeout_s: Optional[float] = None,
) -> str:
    """Send prompt to the gateway and return the reply text. Raises GatewayError."""
    url = f"{gateway_config.gateway_url()}/v1/chat/completions"
    payload: dict[str, Any] = {
        "model": gateway_config.gateway_model(),
        "messages": [{"role": "user", "content": prompt}],
        "stream": False,
    }
    if tools:
        payload["tools"] = tools

    timeout = timeout_s if timeout_s is not None else gateway_config.gateway_timeout_seconds()
    started = time.perf_counter()
    try:
        async with httpx.AsyncClient(timeout=httpx.Timeout(timeout), headers=_headers()) as client:
            resp = await client.post(url, json=payload)
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
        # ValueError covers header values that cannot be encoded (e.g. a non-ASCII token).
        raise GatewayError(f"Gateway request failed: {exc.__class__.__name__}: {exc}") from exc
    elapsed_ms = int(round((time.perf_counter() - started) * 1000))

    status = int(resp.status_code)
    if status >= 400:
        body_preview = (resp.text or "")[:500]
        raise GatewayError(f"Gateway error (status={status}): {body_preview}")

    try:
        data = resp.json()
    except ValueError:
        body_preview = (resp.text or "")[:500]
        raise GatewayError(f"Gateway response was not JSON (status={status}): {body_preview}")

    logger.info("gateway_reply status=%s elapsed_ms=%s", status, elapsed_ms)
    return _reply_text(data)


async def check_health(timeout_s: float = HEALTH_TIMEOUT_S) -> dict[str, Any]:
    """Probe GET /health. Never raises; the result says whether the gateway is reachable."""
    base = gateway_config.gateway_url()
    headers = {}
    token = gateway_config.gateway_token()
    if token:
        headers["Authorization"] = f"Bearer {token}"
    try:
        async with httpx.AsyncClient(timeout=timeout_s, headers=headers) as client:
            resp = await client.get(f"{base}/health")
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
        return {
            "connected": False,
            "gatewayUrl": base,
            "status": "offline",
            "error": str(exc) or exc.__class__.__name__,
        }
    if resp.status_code >= 400:
        return {
            "connected": False,
            "gatewayUrl": base,
            "status": "error",
            "error": f"HTTP {resp.status_code}",
        }
    try:
        details = resp.json()
    except ValueError:
        details = {}
    return {"connected": True, "gatewayUrl": base, "status": "online", "details": details}
