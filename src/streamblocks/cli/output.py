"""Basic text output for non-interactive mode."""

from __future__ import annotations

import json
import sys
from typing import TextIO

from streamblocks.types.units import RenderableUnit
from streamblocks.ui.markup import normalize_inline_math


class PlainPrinter:
    """Writes each unit's text straight to a stream (stdout by default)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def accept(self, unit: RenderableUnit) -> None:
        out = self._stream or sys.stdout
        out.write(unit.text)
        if not unit.text.endswith("\n"):
            out.write("\n")
        out.flush()


def unit_to_json(unit: RenderableUnit, *, normalize_math: bool = False) -> str:
    """One JSON line describing *unit*."""
    text = normalize_inline_math(unit.text) if normalize_math else unit.text
    return json.dumps({"kind": unit.kind.value, "text": text}, ensure_ascii=False)


def print_unit_json(unit: RenderableUnit, *, normalize_math: bool = False) -> None:
    sys.stdout.write(unit_to_json(unit, normalize_math=normalize_math) + "\n")
    sys.stdout.flush()
