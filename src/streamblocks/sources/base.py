"""Source protocol and an in-memory replay source."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable


@runtime_checkable
class StreamSource(Protocol):
    """Produces text deltas that concatenate, in order, into one document."""

    def stream(self) -> AsyncIterator[str]:
        ...


def delta_from_cumulative(previous: str, current: str) -> str:
    """New text in *current* given the full text *previous* sent before it.

    Some providers resend the whole answer on every event. When *current*
    does not extend *previous* the provider restarted, so all of it is new.
    """
    if current.startswith(previous):
        return current[len(previous):]
    return current


class TextChunkSource:
    """Replays a fixed text as fixed-size deltas, optionally paced.

    Handy for demos and tests: ``TextChunkSource(doc, chunk_size=4, delay=0.02)``
    behaves like a model typing *doc* four characters at a time.
    """

    def __init__(self, text: str, chunk_size: int = 8, delay: float = 0.0) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self._text = text
        self._chunk_size = chunk_size
        self._delay = delay

    @property
    def chunks(self) -> list[str]:
        size = self._chunk_size
        return [self._text[i:i + size] for i in range(0, len(self._text), size)]

    async def stream(self) -> AsyncIterator[str]:
        for chunk in self.chunks:
            if self._delay:
                await asyncio.sleep(self._delay)
            yield chunk
