"""Ordered, consumer-cancelable progress channel for streamed runs.

A single producer (the pipeline task) writes events into a bounded queue and
a single consumer (the HTTP response) reads them back in emission order. The
channel closes after exactly one terminal event (``complete`` or ``error``).
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence

from issue_cost_estimator.errors import StreamClosedError
from issue_cost_estimator.logging import get_logger
from issue_cost_estimator.schemas.estimation import EstimationResult, EstimationSummary
from issue_cost_estimator.schemas.events import (
    CompleteEvent,
    ErrorEvent,
    LogEvent,
    ProgressEvent,
    ResultEvent,
)

logger = get_logger(__name__)


def format_sse(event: ProgressEvent) -> str:
    """Render one event as a server-sent event frame."""
    return f"event: {event.type}\ndata: {event.model_dump_json(by_alias=True)}\n\n"


class ProgressStream:
    """Bounded event queue between a pipeline run and its remote consumer.

    The producer waits when the queue is full. Once the consumer disconnects,
    writes become no-ops and the producer may finish on its own.

    Usage:
        stream = ProgressStream()
        await stream.log("Fetching issues...")
        ...
        await stream.complete(summary, csv_content, results)

        async for chunk in stream.sse():
            yield chunk
    """

    def __init__(self, maxsize: int = 64) -> None:
        """Initialize the stream.

        Args:
            maxsize: Events buffered before ``emit`` waits for the consumer
        """
        self._queue: asyncio.Queue[ProgressEvent] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._disconnected = False
        self._emitted = 0

    @property
    def closed(self) -> bool:
        """Whether the terminal event has been emitted."""
        return self._closed

    @property
    def disconnected(self) -> bool:
        """Whether the consumer has gone away."""
        return self._disconnected

    @property
    def emitted(self) -> int:
        """Events accepted so far (including those dropped after a disconnect)."""
        return self._emitted

    async def emit(self, event: ProgressEvent) -> None:
        """Queue an event for the consumer.

        Raises:
            StreamClosedError: If a terminal event was already emitted
        """
        if self._closed:
            raise StreamClosedError(f"Cannot emit {event.type!r} event: stream already closed")
        if event.terminal:
            self._closed = True
        self._emitted += 1
        if self._disconnected:
            return
        await self._queue.put(event)

    async def log(self, message: str) -> None:
        await self.emit(LogEvent(message=message))

    async def result(self, result: EstimationResult, index: int, total: int) -> None:
        await self.emit(ResultEvent(result=result, index=index, total=total))

    async def complete(
        self,
        summary: EstimationSummary,
        csv_content: str,
        estimations: Sequence[EstimationResult] = (),
    ) -> None:
        """Emit the terminal event of a successful run."""
        await self.emit(
            CompleteEvent(
                summary=summary,
                csv_content=csv_content,
                estimations=list(estimations),
            )
        )

    async def error(self, message: str) -> None:
        """Emit the terminal event of a failed run."""
        await self.emit(ErrorEvent(message=message))

    # ProgressSink
    async def on_result(self, result: EstimationResult, index: int, total: int) -> None:
        await self.result(result, index, total)

    async def on_progress(self, processed: int, total: int) -> None:
        await self.log(f"Estimated {processed}/{total} issues")

    async def events(self) -> AsyncIterator[ProgressEvent]:
        """Yield events in emission order, ending after the terminal event."""
        while not self._disconnected:
            event = await self._queue.get()
            yield event
            if event.terminal:
                return

    async def sse(self) -> AsyncIterator[str]:
        """Yield one server-sent event frame per event.

        If the consumer stops iterating early (client gone), the stream is
        marked disconnected.
        """
        try:
            async for event in self.events():
                yield format_sse(event)
        finally:
            if not self._queue.empty() or not self._closed:
                self.disconnect()

    def disconnect(self) -> None:
        """Mark the consumer gone, drop buffered events and ignore further writes."""
        if self._disconnected:
            return
        self._disconnected = True
        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            dropped += 1
        logger.info("Progress consumer disconnected ({} buffered events dropped)", dropped)
