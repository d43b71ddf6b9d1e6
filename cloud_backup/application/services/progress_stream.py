"""Upload progress fan-out: any number of observers, none of which can stall the write."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable

logger = logging.getLogger(__name__)

ProgressListener = Callable[[float], None]

_CLOSED = object()


def _offer(queue: asyncio.Queue, item: object) -> None:
    """Put item, dropping the oldest buffered value when the observer lags."""
    while True:
        try:
            queue.put_nowait(item)
            return
        except asyncio.QueueFull:
            queue.get_nowait()


class ProgressStream:
    """Monotonic progress values in [0, 1] for one upload.

    Publishing never blocks: an observer that falls behind loses its oldest
    intermediate values, never the latest one. Observers that stop iterating
    (or listeners that raise) are detached without affecting the upload.
    """

    def __init__(self, buffer_size: int = 64) -> None:
        if buffer_size < 2:
            raise ValueError("buffer_size must be at least 2")
        self._buffer_size = buffer_size
        self._queues: list[asyncio.Queue] = []
        self._listeners: list[ProgressListener] = []
        self._latest = 0.0
        self._closed = False

    @property
    def latest(self) -> float:
        return self._latest

    @property
    def closed(self) -> bool:
        return self._closed

    def add_listener(self, listener: ProgressListener) -> Callable[[], None]:
        """Register a callback; returns a function that removes it."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def publish(self, fraction: float) -> None:
        """Record a new progress value (clamped; values below the latest are ignored)."""
        if self._closed:
            return
        value = min(1.0, max(0.0, fraction))
        if value < self._latest:
            return
        self._latest = value
        for queue in list(self._queues):
            _offer(queue, value)
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                logger.exception("Progress listener failed; detaching it")
                self._listeners.remove(listener)

    def close(self) -> None:
        """End the stream. Iterators finish after draining what they buffered."""
        if self._closed:
            return
        self._closed = True
        for queue in self._queues:
            _offer(queue, _CLOSED)
        self._listeners.clear()

    async def __aiter__(self) -> AsyncIterator[float]:
        """Yield the current value, then every published value until close()."""
        if self._closed:
            yield self._latest
            return
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._buffer_size)
        queue.put_nowait(self._latest)
        self._queues.append(queue)
        try:
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    return
                yield item
        finally:
            self._queues.remove(queue)
