"""Units emitted by the segmenter."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class UnitKind(Enum):
    """Which markup construct a unit represents."""

    PARAGRAPH = "paragraph"
    IMAGE = "image"
    DISPLAY_MATH = "display_math"
    INLINE_MATH = "inline_math"
    TABLE = "table"
    TEXT = "text"  # Prose that preceded an image or display-math block
    REMAINDER = "remainder"  # Best-effort flush at end of stream


@dataclass(frozen=True, slots=True)
class RenderableUnit:
    """One complete block of markup, detached from the buffer it came from."""

    text: str
    kind: UnitKind = UnitKind.PARAGRAPH

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True, slots=True)
class MatchCandidate:
    """A rule hit against one buffer snapshot.

    Offsets index the untrimmed buffer: ``text[start:end]`` is the unit and
    ``consumed`` is how many characters the pump drops from the front,
    including any leading whitespace that was skipped.
    """

    kind: UnitKind
    start: int
    end: int
    consumed: int
    text: str

    @property
    def unit(self) -> RenderableUnit:
        return RenderableUnit(text=self.text, kind=self.kind)
