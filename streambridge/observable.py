"""Consumer-facing side of a stream: observers, subscriptions, iteration.

A stream is cold. Nothing goes over the wire until ``subscribe`` is called or
the stream is iterated, and it accepts a single subscriber. Every event reaches
the observer from the stream's own pump task, one at a time:

    stream, subscription = bridge.open(descriptor, json_decoder())
    stream.subscribe(on_next=print, on_error=report, on_complete=done)
    ...
    subscription.cancel()

or, pull style:

    async for item in bridge.open(descriptor, json_decoder()).stream:
        ...
"""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import AsyncIterator, Callable
from typing import TYPE_CHECKING, Any, Generic, Protocol, TypeVar

from streambridge.errors import StreamError
from streambridge.models import StreamOutcome, StreamState

if TYPE_CHECKING:
    from streambridge.bridge import StreamRun

T = TypeVar("T")
T_contra = TypeVar("T_contra", contravariant=True)


class Observer(Protocol[T_contra]):
    def on_next(self, item: T_contra) -> None: ...

    def on_error(self, error: StreamError) -> None: ...

    def on_complete(self) -> None: ...


class CallbackObserver(Generic[T]):
    """Adapt up to three plain callables to the ``Observer`` protocol."""

    def __init__(
        self,
        on_next: Callable[[T], None] | None = None,
        on_error: Callable[[StreamError], None] | None = None,
        on_complete: Callable[[], None] | None = None,
    ) -> None:
        self._on_next = on_next
        self._on_error = on_error
        self._on_complete = on_complete

    def on_next(self, item: T) -> None:
        if self._on_next is not None:
            self._on_next(item)

    def on_error(self, error: StreamError) -> None:
        if self._on_error is not None:
            self._on_error(error)

    def on_complete(self) -> None:
        if self._on_complete is not None:
            self._on_complete()


class Subscription:
    """Handle on one stream invocation.

    Cancelling is idempotent and also happens when the last reference to the
    subscription is dropped.
    """

    def __init__(self, run: StreamRun[Any]) -> None:
        self._run = run
        self._finalizer = weakref.finalize(self, run.cancel)
        self._finalizer.atexit = False

    def cancel(self) -> None:
        self._run.cancel()

    @property
    def state(self) -> StreamState:
        return self._run.state

    @property
    def outcome(self) -> StreamOutcome | None:
        return self._run.outcome

    @property
    def cancelled(self) -> bool:
        return self._run.state is StreamState.CANCELLED

    @property
    def closed(self) -> bool:
        return self._run.state.is_terminal

    @property
    def emitted(self) -> int:
        return self._run.emitted

    @property
    def callback_error(self) -> BaseException | None:
        """Exception raised by the observer itself, if any."""
        return self._run.callback_error

    async def wait(self) -> StreamState:
        """Wait until the underlying connection has been released."""
        await self._run.wait()
        return self._run.state

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.cancel()
        await self.wait()


_NEXT = "next"
_ERROR = "error"
_COMPLETE = "complete"
_CANCELLED = "cancelled"


class _QueueObserver:
    def __init__(self, queue: asyncio.Queue[tuple[str, Any]]) -> None:
        self._queue = queue

    def on_next(self, item: Any) -> None:
        self._queue.put_nowait((_NEXT, item))

    def on_error(self, error: StreamError) -> None:
        self._queue.put_nowait((_ERROR, error))

    def on_complete(self) -> None:
        self._queue.put_nowait((_COMPLETE, None))


class ObservableStream(Generic[T]):
    def __init__(self, run: StreamRun[T], subscription: Subscription) -> None:
        self._run = run
        self._subscription = subscription

    def subscribe(
        self,
        observer: Observer[T] | None = None,
        *,
        on_next: Callable[[T], None] | None = None,
        on_error: Callable[[StreamError], None] | None = None,
        on_complete: Callable[[], None] | None = None,
    ) -> Subscription:
        """Attach the single subscriber and issue the request.

        Must be called with an event loop running. If the subscription was
        cancelled beforehand no request is made and no event is delivered.
        """
        if observer is None:
            observer = CallbackObserver(on_next, on_error, on_complete)
        elif on_next is not None or on_error is not None or on_complete is not None:
            raise TypeError("pass either an observer or callbacks, not both")
        self._run.start(observer)
        return self._subscription

    async def __aiter__(self) -> AsyncIterator[T]:
        queue: asyncio.Queue[tuple[str, Any]] = asyncio.Queue()
        subscription = self.subscribe(_QueueObserver(queue))
        # Cancellation delivers nothing to the observer; wake the iterator instead.
        self._run.add_cancel_callback(lambda: queue.put_nowait((_CANCELLED, None)))
        try:
            while True:
                kind, value = await queue.get()
                # Events queued ahead of a cancel are dropped with it.
                if self._run.state is StreamState.CANCELLED:
                    return
                if kind == _NEXT:
                    yield value
                elif kind == _ERROR:
                    raise value
                else:
                    return
        finally:
            subscription.cancel()
