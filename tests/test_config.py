from __future__ import annotations

import json
from pathlib import Path

import pytest

from streambridge.config import BridgeConfig, load_bridge_config


def test_defaults_when_no_file(tmp_path: Path, monkeypatch) -> None:
    for name in (
        "STREAMBRIDGE_CONNECT_TIMEOUT",
        "STREAMBRIDGE_READ_TIMEOUT",
        "STREAMBRIDGE_MAX_LINE_BYTES",
    ):
        monkeypatch.delenv(name, raising=False)
    config = load_bridge_config(tmp_path / "missing.json")
    assert config == BridgeConfig()


def test_file_values_are_loaded(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("STREAMBRIDGE_READ_TIMEOUT", raising=False)
    monkeypatch.delenv("STREAMBRIDGE_MAX_LINE_BYTES", raising=False)
    monkeypatch.delenv("STREAMBRIDGE_CONNECT_TIMEOUT", raising=False)
    path = tmp_path / "bridge.json"
    path.write_text(
        json.dumps({"read_timeout_s": None, "max_line_bytes": 2048, "follow_redirects": False}),
        encoding="utf-8",
    )
    config = load_bridge_config(path)
    assert config.read_timeout_s is None
    assert config.max_line_bytes == 2048
    assert config.follow_redirects is False
    assert config.timeout().read is None


def test_env_overrides_file(tmp_path: Path, monkeypatch) -> None:
    path = tmp_path / "bridge.json"
    path.write_text(json.dumps({"connect_timeout_s": 3.0}), encoding="utf-8")
    monkeypatch.setenv("STREAMBRIDGE_CONNECT_TIMEOUT", "7.5")
    monkeypatch.setenv("STREAMBRIDGE_READ_TIMEOUT", "none")
    config = load_bridge_config(path)
    assert config.connect_timeout_s == 7.5
    assert config.read_timeout_s is None


def test_config_path_from_env(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("STREAMBRIDGE_MAX_LINE_BYTES", raising=False)
    path = tmp_path / "custom.json"
    path.write_text(json.dumps({"max_line_bytes": 99}), encoding="utf-8")
    monkeypatch.setenv("STREAMBRIDGE_CONFIG", str(path))
    assert load_bridge_config().max_line_bytes == 99


def test_malformed_file_falls_back_to_defaults(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("STREAMBRIDGE_CONNECT_TIMEOUT", raising=False)
    path = tmp_path / "bridge.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_bridge_config(path).connect_timeout_s == BridgeConfig().connect_timeout_s


def test_follow_redirects_must_be_a_json_boolean(tmp_path: Path) -> None:
    path = tmp_path / "bridge.json"
    path.write_text(json.dumps({"follow_redirects": "false"}), encoding="utf-8")
    with pytest.raises(ValueError, match="follow_redirects"):
        load_bridge_config(path)
