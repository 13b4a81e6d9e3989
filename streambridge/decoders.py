from __future__ import annotations

import json
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

from streambridge.errors import DecodeError
from streambridge.models import DecodeFunc

T = TypeVar("T")


def json_decoder() -> DecodeFunc[Any]:
    """Decode each chunk as a bare JSON value."""

    def decode(chunk: bytes) -> Any:
        try:
            return json.loads(chunk)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            return DecodeError(f"invalid JSON: {exc}", chunk)

    return decode


def model_decoder(model_type: type[T]) -> DecodeFunc[T]:
    """Decode each chunk into ``model_type`` with pydantic validation."""
    adapter = TypeAdapter(model_type)

    def decode(chunk: bytes) -> T | DecodeError:
        try:
            return adapter.validate_json(chunk)
        except ValidationError as exc:
            errors = exc.errors(include_url=False)
            first = errors[0] if errors else {}
            location = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
            message = first.get("msg", str(exc))
            return DecodeError(
                f"{exc.error_count()} validation error(s), first at {location}: {message}",
                chunk,
            )

    return decode
