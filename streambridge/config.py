from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import httpx

from streambridge.framing import DEFAULT_MAX_LINE_BYTES


@dataclass(frozen=True)
class BridgeConfig:
    connect_timeout_s: float = 10.0
    read_timeout_s: float | None = 300.0
    max_line_bytes: int = DEFAULT_MAX_LINE_BYTES
    follow_redirects: bool = True

    def timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.read_timeout_s, connect=self.connect_timeout_s)


DEFAULT_CONFIG_PATH = Path.home() / ".streambridge" / "bridge.json"


def _optional_float(value: object) -> float | None:
    if value is None or value == "" or str(value).lower() == "none":
        return None
    return float(value)  # type: ignore[arg-type]


def _strict_bool(name: str, value: object) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"{name} must be true or false, got {value!r}")


def load_bridge_config(path: Path | None = None) -> BridgeConfig:
    config_path = path or Path(os.getenv("STREAMBRIDGE_CONFIG", str(DEFAULT_CONFIG_PATH)))
    data: dict[str, object] = {}
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            data = {}
    env_connect = os.getenv("STREAMBRIDGE_CONNECT_TIMEOUT")
    env_read = os.getenv("STREAMBRIDGE_READ_TIMEOUT")
    env_max_line = os.getenv("STREAMBRIDGE_MAX_LINE_BYTES")

    defaults = BridgeConfig()
    return BridgeConfig(
        connect_timeout_s=float(
            env_connect or data.get("connect_timeout_s", defaults.connect_timeout_s)
        ),
        read_timeout_s=_optional_float(
            env_read if env_read is not None else data.get("read_timeout_s", defaults.read_timeout_s)
        ),
        max_line_bytes=int(env_max_line or data.get("max_line_bytes", defaults.max_line_bytes)),
        follow_redirects=_strict_bool(
            "follow_redirects", data.get("follow_redirects", defaults.follow_redirects)
        ),
    )
