"""Gateway settings and agent-side config files.

Everything is read from the environment (and the files it points at) on each call,
so a running service picks up config edits on the next dispatch.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

_DEFAULT_GATEWAY_URL = "http://127.0.0.1:18789"


def gateway_url() -> str:
    raw = os.getenv("GATEWAY_URL", "").strip()
    return (raw or _DEFAULT_GATEWAY_URL).rstrip("/")


def gateway_token() -> Optional[str]:
    return os.getenv("GATEWAY_TOKEN", "").strip() or None


def gateway_agent_id() -> str:
    return os.getenv("GATEWAY_AGENT_ID", "").strip() or "main"


def gateway_model() -> str:
    return os.getenv("GATEWAY_MODEL", "").strip() or "openclaw"


def gateway_timeout_seconds() -> Optional[float]:
    """Client-side timeout for agent calls. Unset or non-positive means wait indefinitely."""
    raw = os.getenv("GATEWAY_TIMEOUT_SECONDS", "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def agent_config_path() -> Path:
    configured = os.getenv("AGENT_CONFIG_PATH")
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".openclaw" / "openclaw.json"


def tool_manifest_path() -> Path:
    configured = os.getenv("TOOL_MANIFEST_PATH")
    if configured:
        return Path(configured).expanduser()
    return Path.cwd() / "openclaw-skill.json"


def _read_json_dict(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.warning("config_unreadable path=%s", path, exc_info=True)
        return {}
    return payload if isinstance(payload, dict) else {}


def _agent_defaults(config: dict[str, Any]) -> dict[str, Any]:
    agents = config.get("agents")
    defaults = agents.get("defaults") if isinstance(agents, dict) else None
    return defaults if isinstance(defaults, dict) else {}


def load_agent_config() -> dict[str, Any]:
    return _read_json_dict(agent_config_path())


def working_directory() -> Optional[str]:
    workspace = _agent_defaults(load_agent_config()).get("workspace")
    if isinstance(workspace, str) and workspace.strip():
        return workspace.strip()
    return None


def load_tools() -> list[dict[str, Any]]:
    tools = _read_json_dict(tool_manifest_path()).get("tools")
    if not isinstance(tools, list):
        return []
    return [tool for tool in tools if isinstance(tool, dict)]


def available_models() -> tuple[list[str], Optional[str], bool]:
    """Return (model names, primary model, whether the agent config file exists)."""
    path = agent_config_path()
    if not path.is_file():
        return [], None, False
    defaults = _agent_defaults(_read_json_dict(path))
    models = defaults.get("models")
    names = [str(name) for name in models] if isinstance(models, dict) else []
    model = defaults.get("model")
    primary = model.get("primary") if isinstance(model, dict) else None
    return names, (str(primary) if primary else None), True
