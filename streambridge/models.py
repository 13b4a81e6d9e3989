from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Generic, NamedTuple, TypeVar, Union

from streambridge.errors import DecodeError, StreamError

if TYPE_CHECKING:
    from streambridge.observable import ObservableStream, Subscription

T = TypeVar("T")

DecodeFunc = Callable[[bytes], Union[T, DecodeError]]


@dataclass(frozen=True)
class RequestDescriptor:
    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    content: bytes | None = None


class StreamState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset({StreamState.COMPLETED, StreamState.FAILED, StreamState.CANCELLED})


@dataclass(frozen=True)
class Finished:
    pass


@dataclass(frozen=True)
class Failed:
    error: StreamError


StreamOutcome = Union[Finished, Failed]


class StreamHandle(NamedTuple, Generic[T]):
    stream: ObservableStream[T]
    subscription: Subscription
