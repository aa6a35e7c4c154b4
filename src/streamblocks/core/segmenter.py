"""Segmenter: decides whether the buffered text starts with a complete block."""

from __future__ import annotations

from streamblocks.core.rules import Rule, RuleMatch, Verdict, build_rule_table
from streamblocks.types.config import SegmenterConfig
from streamblocks.types.units import MatchCandidate, RenderableUnit, UnitKind


class Segmenter:
    """Pure block detector over a snapshot of accumulated text.

    :meth:`segment` either returns the first complete unit at the front of the
    text together with how many characters it consumed, or ``None`` when the
    text is not decidable yet. The rules are tried in priority order and the
    first one with an opinion wins. Calls are side-effect free, so the same
    text always yields the same answer.

    Usage:
        seg = Segmenter()
        hit = seg.segment("Hello world.\\n\\nmore")
        hit.text      # "Hello world.\\n\\n"
        hit.consumed  # 14
    """

    def __init__(self, config: SegmenterConfig | None = None) -> None:
        self._config = config or SegmenterConfig()
        self._rules = build_rule_table(self._config.rule_order)

    @property
    def config(self) -> SegmenterConfig:
        return self._config

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def segment(self, text: str) -> MatchCandidate | None:
        """Return the first complete unit in *text*, or ``None`` to wait."""
        trimmed = text.lstrip()
        if not trimmed:
            return None
        skipped = len(text) - len(trimmed)

        for rule in self._rules:
            result = rule.matcher(trimmed, self._config)
            if result is Verdict.NO_MATCH:
                continue
            if result is Verdict.WAIT:
                return None
            return self._to_candidate(result, trimmed, skipped)
        return None

    def extract(self, text: str) -> tuple[RenderableUnit, int] | None:
        """Like :meth:`segment` but returns ``(unit, consumed)``."""
        candidate = self.segment(text)
        if candidate is None:
            return None
        return candidate.unit, candidate.consumed

    def _to_candidate(self, match: RuleMatch, trimmed: str, skipped: int) -> MatchCandidate:
        kind, start, end = match.kind, match.start, match.end
        if match.detachable and start > 0:
            # Prose in front of an image or $$ block goes out first, on its own.
            if self._config.split_prelude:
                kind, end = UnitKind.TEXT, start
            start = 0
        return MatchCandidate(
            kind=kind,
            start=skipped + start,
            end=skipped + end,
            consumed=skipped + end,
            text=trimmed[start:end],
        )
