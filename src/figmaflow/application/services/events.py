"""Progress and error events published by the batch pipeline."""

from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import dataclass, field
from typing import Any, Callable, Union

from ...domain.types import Stage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    document_id: str
    stage: Stage
    percent: float
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ErrorEvent:
    document_id: str
    stage: str
    error: BaseException
    recoverable: bool


PipelineEvent = Union[ProgressEvent, ErrorEvent]
Subscriber = Callable[[PipelineEvent], None]

_CLOSED = object()


class EventStream:
    """
    Async iterator over the events a bus publishes after the stream was opened.

    The bus holds streams weakly: a stream that is dropped without being
    iterated stops receiving events once it is garbage collected.
    """

    def __init__(self, detach: Callable[[EventStream], None]) -> None:
        self._detach = detach
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._done = False

    def push(self, item: Any) -> None:
        if not self._done:
            self._queue.put_nowait(item)

    def __aiter__(self) -> EventStream:
        return self

    async def __anext__(self) -> PipelineEvent:
        if self._done:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            await self.aclose()
            raise StopAsyncIteration
        return item

    async def aclose(self) -> None:
        """Stop the stream; events still queued are discarded."""
        if not self._done:
            self._done = True
            self._detach(self)


class PipelineEventBus:
    """
    Fan-out of pipeline events to callback subscribers and async streams.

    Delivery is fire-and-forget: a subscriber that raises is logged and
    skipped, and never affects the pipeline that published the event.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._streams: weakref.WeakSet[EventStream] = weakref.WeakSet()
        self._closed = False

    @property
    def open_streams(self) -> int:
        return len(self._streams)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: PipelineEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception(f"Event subscriber failed on {type(event).__name__}")
        for stream in list(self._streams):
            stream.push(event)

    def stream(self) -> EventStream:
        """
        Iterate over events published from now on until :meth:`close` is called.

        The stream is registered when this method is called, so events
        published before the consumer starts iterating are not lost.

        Usage:
            async for event in bus.stream():
                ...
        """
        stream = EventStream(self._streams.discard)
        if self._closed:
            stream.push(_CLOSED)
        self._streams.add(stream)
        return stream

    def close(self) -> None:
        """End every open stream after the events already queued."""
        self._closed = True
        for stream in list(self._streams):
            stream.push(_CLOSED)
