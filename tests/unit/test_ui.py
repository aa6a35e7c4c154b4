"""Tests for streamblocks.ui: markup helpers and the Rich renderer."""

from __future__ import annotations

from io import StringIO

import pytest
from rich.console import Console

from streamblocks.core.pump import QueuedStreamPump
from streamblocks.sources.base import TextChunkSource
from streamblocks.types.sinks import AsyncUnitSink
from streamblocks.types.units import RenderableUnit, UnitKind
from streamblocks.ui.markup import (
    display_math_body,
    is_plain_text,
    normalize_inline_math,
    split_image,
)
from streamblocks.ui.renderer import RichRenderer


class TestMarkupHelpers:
    def test_normalize_inline_math(self):
        assert normalize_inline_math("  Some $x$ and $$y$$ \n") == "Some $$x$$ and $$y$$"

    def test_normalize_leaves_plain_text(self):
        assert normalize_inline_math("costs 5 dollars\n") == "costs 5 dollars"

    def test_is_plain_text(self):
        assert is_plain_text("Just words.\n\n")
        assert not is_plain_text("$$x$$")
        assert not is_plain_text("![a](b)")
        assert not is_plain_text("a | b")
        assert not is_plain_text("\\begin{align}")

    def test_split_image(self):
        assert split_image("![cat](http://x/cat.png)") == ("cat", "http://x/cat.png")
        assert split_image("no image") is None

    def test_display_math_body(self):
        assert display_math_body("$$ E=mc^2 $$\n") == "E=mc^2"


class TestRichRenderer:
    def _make_renderer(self, **kwargs):
        buf = StringIO()
        console = Console(file=buf, width=100)
        return RichRenderer(console=console, **kwargs), buf

    def test_satisfies_sink_protocol(self):
        renderer, _ = self._make_renderer()
        assert isinstance(renderer, AsyncUnitSink)

    @pytest.mark.asyncio
    async def test_paragraph(self):
        renderer, buf = self._make_renderer()
        await renderer.accept(RenderableUnit("Hello **world**.\n\n", UnitKind.PARAGRAPH))
        output = buf.getvalue()
        assert "Hello" in output
        assert "world" in output
        assert "**" not in output
        assert renderer.rendered == 1

    @pytest.mark.asyncio
    async def test_display_math(self):
        renderer, buf = self._make_renderer()
        await renderer.accept(RenderableUnit("$$E=mc^2$$", UnitKind.DISPLAY_MATH))
        output = buf.getvalue()
        assert "E=mc^2" in output
        assert "$$" not in output

    @pytest.mark.asyncio
    async def test_image(self):
        renderer, buf = self._make_renderer()
        await renderer.accept(RenderableUnit("![a cat](http://x/cat.png)", UnitKind.IMAGE))
        output = buf.getvalue()
        assert "[image]" in output
        assert "a cat" in output
        assert "http://x/cat.png" in output

    @pytest.mark.asyncio
    async def test_inline_math(self):
        renderer, buf = self._make_renderer()
        await renderer.accept(RenderableUnit("Some $E=mc^2$ explained.\n", UnitKind.INLINE_MATH))
        assert "Some $E=mc^2$ explained." in buf.getvalue()

    @pytest.mark.asyncio
    async def test_table(self):
        renderer, buf = self._make_renderer()
        table = "| a | b |\n|---|---|\n| 1 | 2 |\n\n"
        await renderer.accept(RenderableUnit(table, UnitKind.TABLE))
        output = buf.getvalue()
        assert "a" in output
        assert "2" in output

    @pytest.mark.asyncio
    async def test_remainder(self):
        renderer, buf = self._make_renderer()
        await renderer.accept(RenderableUnit("partial tex", UnitKind.REMAINDER))
        assert "partial tex" in buf.getvalue()

    @pytest.mark.asyncio
    async def test_typing_effect(self):
        renderer, buf = self._make_renderer(typing_delay=0.0001)
        await renderer.accept(RenderableUnit("Typed out.\n\n", UnitKind.PARAGRAPH))
        assert buf.getvalue() == "Typed out.\n"

    @pytest.mark.asyncio
    async def test_behind_queued_pump(self):
        renderer, buf = self._make_renderer(typing_delay=0.0001)
        doc = "First.\n\n$$x^2$$Second.\n\n"
        await QueuedStreamPump(renderer).consume(TextChunkSource(doc, chunk_size=4).stream())
        output = buf.getvalue()
        assert output.index("First.") < output.index("x^2") < output.index("Second.")
        assert renderer.rendered == 3
