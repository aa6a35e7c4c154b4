"""Block-detection rules and the ordered rule table.

Every matcher sees the buffer with leading whitespace already removed and
answers with one of:

- a :class:`RuleMatch` (offsets into that trimmed text),
- :attr:`Verdict.NO_MATCH` to let the next rule try,
- :attr:`Verdict.WAIT` to stop evaluation: the text is not decidable yet and
  lower-priority rules must not get a chance to misread it.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from streamblocks.errors import ConfigError
from streamblocks.types.config import DisplayMathPolicy, RuleKind, SegmenterConfig
from streamblocks.types.units import UnitKind

PARAGRAPH_BREAK = "\n\n"
DISPLAY_MATH_FENCE = "$$"
TABLE_RULE_MARKER = "\n---"

# Latin and CJK sentence terminators accepted after an inline formula.
SENTENCE_TERMINATORS = "。！？.!?；;"

_IMAGE_RE = re.compile(r"!\[.*?\]\(.*?\)")
_TERM = re.escape(SENTENCE_TERMINATORS)
_INLINE_MATH_SENTENCE_RE = re.compile(
    rf"(?<!\$)\$(.+?)\$(?!\$)[^{_TERM}\n]*[{_TERM}]?\s*\n"
)


class Verdict(Enum):
    NO_MATCH = "no_match"
    WAIT = "wait"


@dataclass(frozen=True, slots=True)
class RuleMatch:
    """Where a rule matched inside the trimmed text.

    ``detachable`` marks constructs that may start mid-text (images, display
    math); any prose before ``start`` is handled by the segmenter.
    """

    kind: UnitKind
    start: int
    end: int
    detachable: bool = False


Matcher = Callable[[str, SegmenterConfig], RuleMatch | Verdict]


@dataclass(frozen=True, slots=True)
class Rule:
    kind: RuleKind
    matcher: Matcher
    priority: int


def match_paragraph(text: str, config: SegmenterConfig) -> RuleMatch | Verdict:
    """Everything up to and including the first blank line."""
    idx = text.find(PARAGRAPH_BREAK)
    if idx == -1:
        return Verdict.NO_MATCH
    return RuleMatch(UnitKind.PARAGRAPH, 0, idx + len(PARAGRAPH_BREAK))


def match_image(text: str, config: SegmenterConfig) -> RuleMatch | Verdict:
    """Shortest ``![alt](url)`` reference."""
    m = _IMAGE_RE.search(text)
    if m is None:
        return Verdict.NO_MATCH
    return RuleMatch(UnitKind.IMAGE, m.start(), m.end(), detachable=True)


def match_display_math(text: str, config: SegmenterConfig) -> RuleMatch | Verdict:
    """A ``$$ ... $$`` block.

    An opening fence without its partner blocks all lower rules: the block is
    still arriving and its body must not be read as inline math or a table.
    """
    open_at = text.find(DISPLAY_MATH_FENCE)
    if open_at == -1:
        return Verdict.NO_MATCH
    close_at = text.find(DISPLAY_MATH_FENCE, open_at + len(DISPLAY_MATH_FENCE))
    if close_at == -1:
        return Verdict.WAIT
    end = close_at + len(DISPLAY_MATH_FENCE)

    if config.display_math is DisplayMathPolicy.STANDALONE:
        starts_line = open_at == 0 or text[open_at - 1] == "\n"
        ends_line = end == len(text) or text[end] == "\n"
        if not (starts_line and ends_line):
            return Verdict.NO_MATCH

    return RuleMatch(UnitKind.DISPLAY_MATH, open_at, end, detachable=True)


def match_inline_math(text: str, config: SegmenterConfig) -> RuleMatch | Verdict:
    """A line holding ``$...$`` that has been closed by a newline.

    The unit starts at the beginning of the text: the prose before the
    formula is part of the same sentence.
    """
    m = _INLINE_MATH_SENTENCE_RE.search(text)
    if m is None:
        return Verdict.NO_MATCH
    return RuleMatch(UnitKind.INLINE_MATH, 0, m.end())


def match_table(text: str, config: SegmenterConfig) -> RuleMatch | Verdict:
    """Pipe table whose dash row has been followed by a blank line."""
    if "|" not in text:
        return Verdict.NO_MATCH
    rule_at = text.find(TABLE_RULE_MARKER)
    if rule_at == -1:
        return Verdict.NO_MATCH
    end = text.find(PARAGRAPH_BREAK, rule_at)
    if end == -1:
        return Verdict.NO_MATCH
    return RuleMatch(UnitKind.TABLE, 0, end + len(PARAGRAPH_BREAK))


MATCHERS: dict[RuleKind, Matcher] = {
    RuleKind.PARAGRAPH: match_paragraph,
    RuleKind.IMAGE: match_image,
    RuleKind.DISPLAY_MATH: match_display_math,
    RuleKind.INLINE_MATH: match_inline_math,
    RuleKind.TABLE: match_table,
}


def build_rule_table(order: Iterable[RuleKind | str]) -> tuple[Rule, ...]:
    """Build the evaluation table, lowest priority value first.

    Raises :class:`ConfigError` for unknown or repeated rule names.
    """
    rules: list[Rule] = []
    seen: set[RuleKind] = set()
    for priority, item in enumerate(order):
        try:
            kind = item if isinstance(item, RuleKind) else RuleKind(item)
        except ValueError:
            valid = ", ".join(k.value for k in RuleKind)
            raise ConfigError(f"Unknown rule '{item}' (expected one of: {valid})") from None
        if kind in seen:
            raise ConfigError(f"Rule '{kind.value}' listed more than once")
        seen.add(kind)
        rules.append(Rule(kind=kind, matcher=MATCHERS[kind], priority=priority))
    return tuple(sorted(rules, key=lambda r: r.priority))
