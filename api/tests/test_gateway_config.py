"""Agent config file and tool manifest loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from taskboard.services import gateway_config


def _write_agent_config(path: Path, payload) -> None:
    path.write_text(json.dumps(payload) if not isinstance(payload, str) else payload, encoding="utf-8")


def test_missing_agent_config_means_unconfigured() -> None:
    assert gateway_config.available_models() == ([], None, False)
    assert gateway_config.working_directory() is None


def test_models_and_workspace_from_agent_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config = tmp_path / "openclaw.json"
    _write_agent_config(
        config,
        {
            "agents": {
                "defaults": {
                    "workspace": " /srv/projects/site ",
                    "models": {"openclaw": {}, "gpt-big": {}, "local-small": {}},
                    "model": {"primary": "gpt-big"},
                }
            }
        },
    )
    monkeypatch.setenv("AGENT_CONFIG_PATH", str(config))

    models, primary, configured = gateway_config.available_models()
    assert models == ["openclaw", "gpt-big", "local-small"]
    assert primary == "gpt-big"
    assert configured is True
    assert gateway_config.working_directory() == "/srv/projects/site"


def test_unreadable_agent_config_is_treated_as_empty(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config = tmp_path / "openclaw.json"
    _write_agent_config(config, "{broken")
    monkeypatch.setenv("AGENT_CONFIG_PATH", str(config))

    assert gateway_config.load_agent_config() == {}
    assert gateway_config.available_models() == ([], None, True)


def test_tools_loaded_from_manifest(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manifest = tmp_path / "openclaw-skill.json"
    manifest.write_text(
        json.dumps({"tools": [{"type": "function", "function": {"name": "x"}}, "junk"]}),
        encoding="utf-8",
    )
    monkeypatch.setenv("TOOL_MANIFEST_PATH", str(manifest))
    assert gateway_config.load_tools() == [{"type": "function", "function": {"name": "x"}}]


def test_missing_manifest_means_no_tools() -> None:
    assert gateway_config.load_tools() == []
