from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RECORD_FIELDS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: str = "plain"
    service: str = "streambridge"
    redact_keys: tuple[str, ...] = (
        "authorization",
        "api_key",
        "token",
        "secret",
    )

    @classmethod
    def from_env(cls) -> LoggingConfig:
        level = os.getenv("STREAMBRIDGE_LOG_LEVEL", "INFO").upper()
        log_format = os.getenv("STREAMBRIDGE_LOG_FORMAT", "plain").lower()
        return cls(level=level, format=log_format)


class _JsonFormatter(logging.Formatter):
    def __init__(self, config: LoggingConfig) -> None:
        super().__init__()
        self.config = config

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.config.service,
        }
        context = _sanitize_context(record.__dict__, self.config.redact_keys)
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _sanitize_context(context: Mapping[str, Any], redact_keys: tuple[str, ...]) -> dict[str, Any]:
    filtered = {}
    for key, value in context.items():
        if key.startswith("_") or key in _RECORD_FIELDS:
            continue
        if key.lower() in redact_keys:
            filtered[key] = "[redacted]"
        else:
            filtered[key] = _safe_json_value(value, redact_keys)
    return filtered


def _safe_json_value(value: Any, redact_keys: tuple[str, ...]) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple)):
        return [_safe_json_value(item, redact_keys) for item in value]
    if isinstance(value, Mapping):
        return {
            str(key): "[redacted]"
            if str(key).lower() in redact_keys
            else _safe_json_value(val, redact_keys)
            for key, val in value.items()
        }
    return str(value)


_PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _formatter(config: LoggingConfig) -> logging.Formatter:
    if config.format == "json":
        return _JsonFormatter(config)
    return logging.Formatter(_PLAIN_FORMAT)


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Set the root level and give every root handler the configured formatter."""
    config = config or LoggingConfig.from_env()
    root = logging.getLogger()
    root.setLevel(getattr(logging, config.level, logging.INFO))
    if not root.handlers:
        root.addHandler(logging.StreamHandler())
    for handler in root.handlers:
        handler.setFormatter(_formatter(config))
