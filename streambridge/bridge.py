from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any, Generic, TypeVar

import httpx

from streambridge.config import BridgeConfig
from streambridge.errors import DecodeError, StreamError, TransportIOError, TransportValidationError
from streambridge.framing import LineFramer
from streambridge.models import (
    DecodeFunc,
    Failed,
    Finished,
    RequestDescriptor,
    StreamHandle,
    StreamOutcome,
    StreamState,
)
from streambridge.observability.metrics import MetricsRegistry, StreamMetrics
from streambridge.observable import ObservableStream, Observer, Subscription

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _current_task() -> asyncio.Task[Any] | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class StreamBridge:
    """Turn a streaming NDJSON HTTP response into an observable sequence.

    Each ``open`` call is independent and owns one HTTP response. When no
    client is injected, every invocation also owns a private ``httpx.AsyncClient``
    that is closed together with the response.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        config: BridgeConfig | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self.config = config or BridgeConfig()
        self.metrics = metrics
        self.stream_metrics = StreamMetrics(metrics) if metrics is not None else None
        self._client = client

    def open(self, descriptor: RequestDescriptor, decode: DecodeFunc[T]) -> StreamHandle[T]:
        run: StreamRun[T] = StreamRun(self, descriptor, decode)
        subscription = Subscription(run)
        return StreamHandle(ObservableStream(run, subscription), subscription)

    @asynccontextmanager
    async def client_scope(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self.config.timeout()) as client:
            yield client


class StreamRun(Generic[T]):
    """State machine for one invocation.

    The pump task is the only writer once streaming starts: decoding, emission
    and terminal transitions all happen inside it, so events reach the observer
    strictly one after another. ``cancel`` is marshalled onto the loop thread.
    """

    def __init__(
        self, bridge: StreamBridge, descriptor: RequestDescriptor, decode: DecodeFunc[T]
    ) -> None:
        self.state = StreamState.IDLE
        self.outcome: StreamOutcome | None = None
        self.emitted = 0
        self.callback_error: BaseException | None = None
        self._bridge = bridge
        self._descriptor = descriptor
        self._decode = decode
        self._observer: Observer[T] | None = None
        self._subscribed = False
        self._chunks = 0
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task[None] | None = None
        self._cancel_callbacks: list[Callable[[], None]] = []

    def start(self, observer: Observer[T]) -> None:
        if self._subscribed:
            raise RuntimeError("stream already has a subscriber")
        self._subscribed = True
        if self.state is not StreamState.IDLE:
            return
        self._loop = asyncio.get_running_loop()
        self._observer = observer
        self.state = StreamState.STREAMING
        self._task = self._loop.create_task(self._pump())

    def cancel(self) -> None:
        loop = self._loop
        if loop is not None and _running_loop() is not loop:
            if not loop.is_closed():
                loop.call_soon_threadsafe(self._cancel)
            return
        self._cancel()

    def add_cancel_callback(self, callback: Callable[[], None]) -> None:
        if self.state is StreamState.CANCELLED:
            callback()
        else:
            self._cancel_callbacks.append(callback)

    async def wait(self) -> None:
        if self._task is not None:
            await asyncio.wait([self._task])

    def _transition(self, state: StreamState) -> bool:
        if self.state.is_terminal:
            return False
        self.state = state
        return True

    def _cancel(self) -> None:
        if not self._transition(StreamState.CANCELLED):
            return
        self._observer = None
        task = self._task
        # From inside the pump the state change alone stops delivery and lets
        # the response close normally.
        if task is not None and not task.done() and _current_task() is not task:
            task.cancel()
        callbacks, self._cancel_callbacks = self._cancel_callbacks, []
        for callback in callbacks:
            callback()

    async def _pump(self) -> None:
        metrics = self._bridge.stream_metrics
        started = time.perf_counter()
        if metrics:
            metrics.opened()
        logger.debug(
            "stream opening",
            extra={"method": self._descriptor.method, "url": self._descriptor.url},
        )
        try:
            await self._stream()
        except asyncio.CancelledError:
            self._cancel()
            raise
        except DecodeError as exc:
            self._fail(exc.at(self._chunks + 1))
        except httpx.HTTPError as exc:
            self._fail(TransportIOError.from_exception(exc))
        except Exception as exc:
            logger.debug("unexpected transport failure", exc_info=True)
            self._fail(TransportIOError.from_exception(exc))
        finally:
            duration = time.perf_counter() - started
            if metrics:
                metrics.closed(self.state, self.emitted, duration)
            logger.info(
                "stream %s",
                self.state.value,
                extra={
                    "url": self._descriptor.url,
                    "state": self.state.value,
                    "chunks": self.emitted,
                    "duration_ms": int(duration * 1000),
                },
            )

    async def _stream(self) -> None:
        config = self._bridge.config
        descriptor = self._descriptor
        async with self._bridge.client_scope() as client:
            request = client.build_request(
                descriptor.method,
                descriptor.url,
                headers=dict(descriptor.headers),
                content=descriptor.content,
                timeout=config.timeout(),
            )
            response = await client.send(
                request, stream=True, follow_redirects=config.follow_redirects
            )
            try:
                if not response.is_success:
                    self._fail(
                        TransportValidationError(
                            response.status_code, response.reason_phrase, str(request.url)
                        )
                    )
                    return
                framer = LineFramer(config.max_line_bytes)
                async for piece in response.aiter_bytes():
                    for chunk in framer.feed(piece):
                        if not self._emit(chunk):
                            return
                    if framer.overflow is not None:
                        raise framer.overflow
                for chunk in framer.flush():
                    if not self._emit(chunk):
                        return
            finally:
                await response.aclose()
        self._finish()

    def _emit(self, chunk: bytes) -> bool:
        """Decode and deliver one chunk; False once the stream must stop."""
        if self.state is not StreamState.STREAMING:
            return False
        self._chunks += 1
        item = self._decode_chunk(chunk)
        if isinstance(item, DecodeError):
            self._fail(item.at(self._chunks))
            return False
        observer = self._observer
        if observer is None:
            return False
        try:
            observer.on_next(item)
        except Exception as exc:
            self._observer_failed(exc, "on_next")
            return False
        self.emitted += 1
        return self.state is StreamState.STREAMING

    def _decode_chunk(self, chunk: bytes) -> T | DecodeError:
        try:
            return self._decode(chunk)
        except DecodeError as exc:
            return exc
        except Exception as exc:
            error = DecodeError(f"{type(exc).__name__}: {exc}", chunk)
            error.__cause__ = exc
            return error

    def _finish(self) -> None:
        if not self._transition(StreamState.COMPLETED):
            return
        self.outcome = Finished()
        observer, self._observer = self._observer, None
        if observer is not None:
            try:
                observer.on_complete()
            except Exception as exc:
                self._observer_failed(exc, "on_complete")

    def _fail(self, error: StreamError) -> None:
        if not self._transition(StreamState.FAILED):
            return
        self.outcome = Failed(error)
        logger.warning(
            "stream failed: %s",
            error,
            extra={"url": self._descriptor.url, "error_type": type(error).__name__},
        )
        observer, self._observer = self._observer, None
        if observer is not None:
            try:
                observer.on_error(error)
            except Exception as exc:
                self._observer_failed(exc, "on_error")

    def _observer_failed(self, exc: Exception, hook: str) -> None:
        self.callback_error = exc
        logger.error(
            "observer %s raised, detaching subscriber",
            hook,
            exc_info=exc,
            extra={"url": self._descriptor.url, "hook": hook},
        )
        self._cancel()
