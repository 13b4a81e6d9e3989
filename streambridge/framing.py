from __future__ import annotations

from streambridge.errors import DecodeError

DEFAULT_MAX_LINE_BYTES = 1024 * 1024


class LineFramer:
    """Split a newline-delimited byte stream into complete lines.

    Pieces arrive with arbitrary boundaries; a line is only released once its
    terminator has been seen, except for the final unterminated line which
    ``flush`` hands back at end of stream. Blank lines are dropped.

    A line longer than ``max_line_bytes`` does not discard the lines framed
    ahead of it in the same piece: ``feed`` returns those and leaves the error
    on ``overflow``. Once set, every further ``feed`` or ``flush`` raises it.
    """

    def __init__(self, max_line_bytes: int = DEFAULT_MAX_LINE_BYTES) -> None:
        self.max_line_bytes = max_line_bytes
        self.overflow: DecodeError | None = None
        self._buffer = bytearray()

    def feed(self, piece: bytes) -> list[bytes]:
        if self.overflow is not None:
            raise self.overflow
        self._buffer.extend(piece)
        lines: list[bytes] = []
        while True:
            newline = self._buffer.find(b"\n")
            if newline < 0:
                break
            if newline > self.max_line_bytes:
                self._overflowed()
                return lines
            line = bytes(self._buffer[:newline]).strip()
            del self._buffer[: newline + 1]
            if line:
                lines.append(line)
        if len(self._buffer) > self.max_line_bytes:
            self._overflowed()
        return lines

    def flush(self) -> list[bytes]:
        if self.overflow is not None:
            raise self.overflow
        line = bytes(self._buffer).strip()
        self._buffer.clear()
        return [line] if line else []

    def _overflowed(self) -> None:
        self.overflow = DecodeError(
            f"line exceeds {self.max_line_bytes} bytes",
            bytes(self._buffer[:64]),
        )
        self._buffer.clear()
