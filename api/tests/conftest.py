"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def _isolate_task_board(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    # Every test gets its own task document and no ambient gateway/agent config.
    from taskboard.services import agent_dispatcher, bulk_processor, task_store

    store_path = tmp_path / "tasks.json"
    monkeypatch.setenv("TASKS_STORE_PATH", str(store_path))
    monkeypatch.setenv("AGENT_CONFIG_PATH", str(tmp_path / "missing-openclaw.json"))
    monkeypatch.setenv("TOOL_MANIFEST_PATH", str(tmp_path / "missing-skill.json"))
    for key in (
        "GATEWAY_URL",
        "GATEWAY_TOKEN",
        "GATEWAY_AGENT_ID",
        "GATEWAY_MODEL",
        "GATEWAY_TIMEOUT_SECONDS",
        "TASKS_STORE_LOCK_TIMEOUT",
    ):
        monkeypatch.delenv(key, raising=False)

    task_store.reset_store_cache()
    bulk_processor.reset_sweep_lock()
    agent_dispatcher._IN_FLIGHT.clear()
    yield store_path
    agent_dispatcher._IN_FLIGHT.clear()
    task_store.reset_store_cache()


@pytest.fixture
def store_path(_isolate_task_board: Path) -> Path:
    return _isolate_task_board


@pytest.fixture
def store(store_path: Path):
    from taskboard.services.task_store import get_store

    return get_store()
