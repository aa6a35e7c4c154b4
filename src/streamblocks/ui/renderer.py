"""Rich-powered sink that renders units as they arrive."""

from __future__ import annotations

import asyncio

from rich.console import Console
from rich.markdown import Markdown
from rich.text import Text

from streamblocks.types.units import RenderableUnit, UnitKind
from streamblocks.ui.markup import display_math_body, is_plain_text, split_image

# ── Palette ──────────────────────────────────────────────────────────────────

STYLE_MATH = "bold #a78bfa"         # violet
STYLE_IMAGE_LABEL = "bold #94a3b8"  # slate
STYLE_IMAGE_URL = "underline #7c7c8a"
STYLE_REMAINDER = "dim"

_INLINE_MATH_PATTERN = r"(?<!\$)\$[^$\n]+\$(?!\$)"


class RichRenderer:
    """Renders each unit to a Rich console, one at a time.

    Plain prose can be typed out character by character (``typing_delay``
    seconds per character). :meth:`accept` only returns once the unit is fully
    shown, so a queued pump waits for the effect before the next unit.
    """

    def __init__(self, console: Console | None = None, *, typing_delay: float = 0.0) -> None:
        self._console = console or Console()
        self._typing_delay = typing_delay
        self._rendered = 0

    @property
    def rendered(self) -> int:
        return self._rendered

    async def accept(self, unit: RenderableUnit) -> None:
        match unit.kind:
            case UnitKind.DISPLAY_MATH:
                self._render_display_math(unit.text)
            case UnitKind.IMAGE:
                self._render_image(unit.text)
            case UnitKind.INLINE_MATH:
                self._render_inline_math(unit.text)
            case UnitKind.REMAINDER:
                self._console.print(Text(unit.text.rstrip(), style=STYLE_REMAINDER))
            case _:
                if self._typing_delay > 0 and is_plain_text(unit.text):
                    await self._type_out(unit.text.strip())
                else:
                    self._console.print(Markdown(unit.text.strip()))
        self._rendered += 1

    def _render_display_math(self, text: str) -> None:
        self._console.print(Text(display_math_body(text), style=STYLE_MATH, justify="center"))

    def _render_image(self, text: str) -> None:
        parts = split_image(text)
        if parts is None:
            self._console.print(text.strip(), highlight=False)
            return
        alt, url = parts
        self._console.print(Text.assemble(
            ("[image] ", STYLE_IMAGE_LABEL),
            (alt or "untitled", ""),
            " ",
            (url, STYLE_IMAGE_URL),
        ))

    def _render_inline_math(self, text: str) -> None:
        line = Text(text.strip())
        line.highlight_regex(_INLINE_MATH_PATTERN, STYLE_MATH)
        self._console.print(line)

    async def _type_out(self, text: str) -> None:
        for ch in text:
            self._console.print(ch, end="", highlight=False, markup=False)
            await asyncio.sleep(self._typing_delay)
        self._console.print()
