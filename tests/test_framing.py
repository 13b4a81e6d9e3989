from __future__ import annotations

import pytest

from streambridge.errors import DecodeError
from streambridge.framing import LineFramer


def test_feed_releases_only_terminated_lines() -> None:
    framer = LineFramer()
    assert framer.feed(b'{"a":1}\n{"b"') == [b'{"a":1}']
    assert framer.feed(b":2}\n") == [b'{"b":2}']
    assert framer.flush() == []


def test_crlf_and_blank_lines_are_dropped() -> None:
    framer = LineFramer()
    assert framer.feed(b'{"a":1}\r\n\r\n  \n{"b":2}\n') == [b'{"a":1}', b'{"b":2}']


def test_flush_returns_unterminated_tail_once() -> None:
    framer = LineFramer()
    assert framer.feed(b'{"a":1}\n{"b":2}') == [b'{"a":1}']
    assert framer.flush() == [b'{"b":2}']
    assert framer.flush() == []


def test_oversized_complete_line_sets_overflow() -> None:
    framer = LineFramer(max_line_bytes=8)
    assert framer.feed(b'{"text":"too long"}\n') == []
    assert isinstance(framer.overflow, DecodeError)
    with pytest.raises(DecodeError):
        framer.feed(b'{"a":1}\n')


def test_lines_ahead_of_oversized_line_are_released() -> None:
    framer = LineFramer(max_line_bytes=12)
    assert framer.feed(b'{"a":1}\n{"b":2}\n{"text":"too long"}\n{"c":3}\n') == [
        b'{"a":1}',
        b'{"b":2}',
    ]
    assert framer.overflow is not None
    assert framer.overflow.excerpt.startswith('{"text"')


def test_oversized_pending_buffer_sets_overflow_before_newline() -> None:
    framer = LineFramer(max_line_bytes=8)
    assert framer.feed(b'{"a":1}\n12345') == [b'{"a":1}']
    assert framer.overflow is None
    assert framer.feed(b"67890") == []
    assert framer.overflow is not None
    with pytest.raises(DecodeError):
        framer.flush()
