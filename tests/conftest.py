"""Test fixtures: recording sinks and scripted sources."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from streamblocks.errors import SourceError
from streamblocks.types.units import RenderableUnit


class RecordingSink:
    """Synchronous sink that remembers every unit it was given."""

    def __init__(self) -> None:
        self.units: list[RenderableUnit] = []

    def accept(self, unit: RenderableUnit) -> None:
        self.units.append(unit)

    @property
    def texts(self) -> list[str]:
        return [u.text for u in self.units]


class SlowAsyncSink:
    """Async sink that suspends for a while per unit, like an animation would."""

    def __init__(self, delay: float = 0.005) -> None:
        self.units: list[RenderableUnit] = []
        self._delay = delay

    async def accept(self, unit: RenderableUnit) -> None:
        await asyncio.sleep(self._delay)
        self.units.append(unit)

    @property
    def texts(self) -> list[str]:
        return [u.text for u in self.units]


class ScriptedSource:
    """Yields the given deltas, then optionally fails or hangs.

    Usage:
        ScriptedSource(["Hi.\\n\\n", "part"], fail_with=SourceError("boom"))
    """

    def __init__(
        self,
        deltas: list[str],
        *,
        fail_with: BaseException | None = None,
        hang: bool = False,
    ) -> None:
        self._deltas = list(deltas)
        self._fail_with = fail_with
        self._hang = hang

    async def stream(self) -> AsyncIterator[str]:
        for delta in self._deltas:
            await asyncio.sleep(0)
            yield delta
        if self._fail_with is not None:
            raise self._fail_with
        if self._hang:
            await asyncio.Event().wait()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep user config files and env vars out of every test."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    for var in (
        "STREAMBLOCKS_DISPLAY_MATH",
        "STREAMBLOCKS_ON_END",
        "STREAMBLOCKS_PROVIDER",
        "STREAMBLOCKS_MODEL",
        "DASHSCOPE_API_KEY",
        "OPENAI_API_KEY",
    ):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def slow_sink() -> SlowAsyncSink:
    return SlowAsyncSink()


@pytest.fixture
def failing_source() -> ScriptedSource:
    return ScriptedSource(["Hi.\n\n", "part"], fail_with=SourceError("connection reset"))
