"""Sink protocols: where completed units are delivered."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from streamblocks.types.units import RenderableUnit


@runtime_checkable
class UnitSink(Protocol):
    """Synchronous sink. Handles one unit and returns when done with it."""

    def accept(self, unit: RenderableUnit) -> None:
        ...


@runtime_checkable
class AsyncUnitSink(Protocol):
    """Sink whose handling may suspend (e.g. while a typing effect plays)."""

    async def accept(self, unit: RenderableUnit) -> None:
        ...
