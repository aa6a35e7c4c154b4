"""Stream pumps: feed text deltas through the segmenter and deliver units.

Two architectures with the same observable ordering:

- :class:`StreamPump` calls the sink inline from :meth:`StreamPump.append`.
- :class:`QueuedStreamPump` puts units on an unbounded asyncio queue that a
  worker task drains, awaiting the sink for each unit. Ingestion never waits
  on the sink.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from collections.abc import AsyncIterable, Awaitable, Callable, Iterable
from typing import Any

import httpx

from streamblocks.core.segmenter import Segmenter
from streamblocks.errors import PumpClosedError, SourceError
from streamblocks.types.config import EndOfStreamPolicy, PumpConfig
from streamblocks.types.units import RenderableUnit, UnitKind

logger = logging.getLogger(__name__)

SyncSink = Callable[[RenderableUnit], Any]
AsyncSink = Callable[[RenderableUnit], Awaitable[Any]]


class _PumpBase:
    """Residual buffer handling shared by both pumps."""

    def __init__(
        self,
        segmenter: Segmenter | None = None,
        config: PumpConfig | None = None,
    ) -> None:
        self._segmenter = segmenter or Segmenter()
        self._config = config or PumpConfig()
        self._buffer = ""
        self._closed = False
        self._units_emitted = 0
        self._cap_warned = False

    @property
    def buffer(self) -> str:
        """Text received but not yet emitted."""
        return self._buffer

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def units_emitted(self) -> int:
        return self._units_emitted

    @property
    def segmenter(self) -> Segmenter:
        return self._segmenter

    def _push(self, delta: str) -> None:
        if self._closed:
            raise PumpClosedError("Cannot append to a pump that has finished or aborted")
        self._buffer += delta
        self._check_cap()

    def _drain(self, deliver: Callable[[RenderableUnit], Any]) -> list[RenderableUnit]:
        """Cut complete units off the buffer and deliver them one at a time.

        Each unit leaves the buffer right before it is delivered. If *deliver*
        raises, the units behind it are still in the buffer for the next
        drain.
        """
        units: list[RenderableUnit] = []
        while self._buffer:
            hit = self._segmenter.segment(self._buffer)
            if hit is None:
                break
            self._buffer = self._buffer[hit.consumed:]
            logger.debug(
                "Extracted %s unit (%d chars consumed, %d buffered)",
                hit.kind.value, hit.consumed, len(self._buffer),
            )
            unit = hit.unit
            deliver(unit)
            self._units_emitted += 1
            units.append(unit)
        return units

    def _take_remainder(self) -> RenderableUnit | None:
        """Close the pump and apply the end-of-stream policy to the buffer."""
        rest = self._buffer.lstrip()
        self._buffer = ""
        self._closed = True
        if not rest:
            return None
        if self._config.on_end is EndOfStreamPolicy.DISCARD:
            logger.warning("Discarding %d unterminated chars at end of stream", len(rest))
            return None
        return RenderableUnit(text=rest, kind=UnitKind.REMAINDER)

    def _discard(self) -> None:
        if self._buffer:
            logger.info("Stream aborted, dropping %d buffered chars", len(self._buffer))
        self._buffer = ""
        self._closed = True

    def _check_cap(self) -> None:
        cap = self._config.max_buffer_chars
        if cap and len(self._buffer) > cap and not self._cap_warned:
            self._cap_warned = True
            logger.warning(
                "Residual buffer holds %d chars (soft cap %d); no unit boundary found yet",
                len(self._buffer), cap,
            )


def _resolve_sync_sink(sink: Any) -> SyncSink:
    accept = getattr(sink, "accept", None)
    if callable(accept):
        return accept
    if callable(sink):
        return sink
    raise TypeError(f"Sink must be callable or define accept(): {sink!r}")


class StreamPump(_PumpBase):
    """Synchronous pump: every extracted unit is handed to the sink inline.

    Usage:
        pump = StreamPump(print)
        pump.append("Hello ")
        pump.append("world.\\n\\n")   # sink receives "Hello world.\\n\\n"
        pump.finish()

    A lock makes append+segment one critical section, so deltas arriving from
    more than one thread still observe a stable buffer.
    """

    def __init__(
        self,
        sink: Any,
        segmenter: Segmenter | None = None,
        config: PumpConfig | None = None,
    ) -> None:
        super().__init__(segmenter, config)
        self._deliver = _resolve_sync_sink(sink)
        self._lock = threading.Lock()

    def append(self, delta: str) -> list[RenderableUnit]:
        """Add a delta; deliver and return the units it completed."""
        with self._lock:
            self._push(delta)
            return self._drain(self._deliver)

    def finish(self) -> RenderableUnit | None:
        """Signal end of stream. Returns the flushed remainder unit, if any.

        Complete units left behind by an earlier sink failure are delivered
        before the remainder.
        """
        with self._lock:
            if self._closed:
                return None
            self._drain(self._deliver)
            unit = self._take_remainder()
            if unit is not None:
                self._deliver(unit)
                self._units_emitted += 1
        return unit

    def abort(self) -> None:
        """Cancel the stream: drop the buffer without emitting anything."""
        with self._lock:
            self._discard()

    def feed(self, deltas: Iterable[str]) -> list[RenderableUnit]:
        """Append every delta, then finish. Returns all delivered units."""
        units: list[RenderableUnit] = []
        for delta in deltas:
            units.extend(self.append(delta))
        tail = self.finish()
        if tail is not None:
            units.append(tail)
        return units


_STOP = object()


class QueuedStreamPump(_PumpBase):
    """Asyncio pump with an unbounded FIFO between segmentation and the sink.

    The sink is an :class:`~streamblocks.types.sinks.AsyncUnitSink` (or any
    coroutine function). The worker awaits it for one unit before taking the
    next, so a sink that plays an animation keeps visual order while deltas
    keep being segmented.

    Usage:
        async with QueuedStreamPump(renderer) as pump:
            await pump.consume(source.stream())
    """

    def __init__(
        self,
        sink: Any,
        segmenter: Segmenter | None = None,
        config: PumpConfig | None = None,
    ) -> None:
        super().__init__(segmenter, config)
        self._deliver = self._resolve_sink(sink)
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None

    @staticmethod
    def _resolve_sink(sink: Any) -> AsyncSink:
        target = getattr(sink, "accept", None)
        if not callable(target):
            target = sink
        if not callable(target):
            raise TypeError(f"Sink must be callable or define accept(): {sink!r}")

        if inspect.iscoroutinefunction(target):
            return target

        async def _call(unit: RenderableUnit) -> None:
            result = target(unit)
            if inspect.isawaitable(result):
                await result

        return _call

    async def __aenter__(self) -> QueuedStreamPump:
        self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if exc_type is None:
            await self.finish()
        else:
            await self.abort()

    @property
    def pending(self) -> int:
        """Units segmented but not yet handed to the sink."""
        return self._queue.qsize()

    def start(self) -> None:
        """Spawn the worker task. Must be called from a running event loop."""
        if self._worker is None:
            self._worker = asyncio.get_running_loop().create_task(self._run())

    def append(self, delta: str) -> list[RenderableUnit]:
        """Add a delta and enqueue the units it completed."""
        self._push(delta)
        return self._drain(self._queue.put_nowait)

    async def finish(self) -> RenderableUnit | None:
        """End of stream: flush per policy and wait until the sink saw every unit."""
        if self._closed:
            await self.join()
            return None
        unit = self._take_remainder()
        if unit is not None:
            self._queue.put_nowait(unit)
            self._units_emitted += 1
        self._queue.put_nowait(_STOP)
        if self._worker is None:
            self.start()
        await self.join()
        return unit

    async def join(self) -> None:
        """Wait for the worker to stop; re-raises a sink failure."""
        if self._worker is not None and not self._worker.cancelled():
            await self._worker

    async def abort(self) -> None:
        """Cancel delivery and drop both the buffer and queued units."""
        self._discard()
        while not self._queue.empty():
            self._queue.get_nowait()
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass

    async def consume(self, source: AsyncIterable[str]) -> None:
        """Pump every delta of *source*, then finish.

        A source that fails with a network error counts as stream completion:
        whatever is buffered is flushed before the error is reported. Any
        other exception aborts the pump and propagates, so the worker never
        outlives this call.
        """
        self.start()
        failure: BaseException | None = None
        try:
            async for delta in source:
                self.append(delta)
        except asyncio.CancelledError:
            await self.abort()
            raise
        except (SourceError, httpx.HTTPError, OSError) as exc:
            logger.error("Stream source failed: %s", exc)
            failure = exc
        except Exception:
            logger.exception("Stream source raised an unexpected error, aborting")
            await self.abort()
            raise

        await self.finish()
        if failure is not None and self._config.raise_source_errors:
            raise failure

    async def _run(self) -> None:
        while True:
            item = await self._queue.get()
            if item is _STOP:
                return
            try:
                await self._deliver(item)
            except Exception:
                logger.exception("Sink failed while handling a %s unit", item.kind.value)
                raise
