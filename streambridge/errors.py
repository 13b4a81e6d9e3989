from __future__ import annotations

_EXCERPT_LIMIT = 120


def _excerpt(chunk: bytes, limit: int = _EXCERPT_LIMIT) -> str:
    text = chunk[:limit].decode("utf-8", errors="replace")
    if len(chunk) > limit:
        text += "..."
    return text


class StreamError(Exception):
    """Base class for every terminal failure a stream can report."""


class TransportValidationError(StreamError):
    def __init__(self, status_code: int, reason: str = "", url: str = "") -> None:
        message = f"HTTP {status_code}"
        if reason:
            message += f" {reason}"
        if url:
            message += f" for {url}"
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason
        self.url = url


class TransportIOError(StreamError):
    @classmethod
    def from_exception(cls, exc: BaseException) -> TransportIOError:
        detail = str(exc) or type(exc).__name__
        error = cls(f"{type(exc).__name__}: {detail}")
        error.__cause__ = exc
        return error


class DecodeError(StreamError):
    def __init__(self, message: str, chunk: bytes = b"", index: int | None = None) -> None:
        super().__init__(message)
        self.excerpt = _excerpt(chunk) if chunk else ""
        self.index = index

    def at(self, index: int) -> DecodeError:
        """Attach the 1-based position of the failing chunk."""
        if self.index is None:
            self.index = index
        return self

    def __str__(self) -> str:
        message = super().__str__()
        if self.index is not None:
            message = f"chunk {self.index}: {message}"
        if self.excerpt:
            message = f"{message} ({self.excerpt!r})"
        return message
