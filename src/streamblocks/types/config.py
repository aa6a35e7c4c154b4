"""Configuration types for streamblocks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DisplayMathPolicy(Enum):
    """When a closed ``$$ ... $$`` pair may be emitted."""

    ANY = "any"  # As soon as a closing pair exists
    STANDALONE = "standalone"  # Only when it sits on its own line(s)


class EndOfStreamPolicy(Enum):
    """What happens to the residual buffer when the source completes."""

    FLUSH = "flush"  # Emit the remainder as one final unit
    DISCARD = "discard"  # Drop it


class RuleKind(Enum):
    """Segmentation rules, named for use in ``SegmenterConfig.rule_order``."""

    PARAGRAPH = "paragraph"
    IMAGE = "image"
    DISPLAY_MATH = "display_math"
    INLINE_MATH = "inline_math"
    TABLE = "table"


DEFAULT_RULE_ORDER: tuple[RuleKind, ...] = (
    RuleKind.PARAGRAPH,
    RuleKind.IMAGE,
    RuleKind.DISPLAY_MATH,
    RuleKind.INLINE_MATH,
    RuleKind.TABLE,
)


@dataclass(frozen=True, slots=True)
class SegmenterConfig:
    """Knobs for the segmenter. The grammar itself is fixed."""

    display_math: DisplayMathPolicy = DisplayMathPolicy.ANY
    rule_order: tuple[RuleKind, ...] = DEFAULT_RULE_ORDER
    split_prelude: bool = True  # Emit prose before an image/$$ block as its own unit


@dataclass(frozen=True, slots=True)
class PumpConfig:
    """Configuration shared by both pump architectures."""

    on_end: EndOfStreamPolicy = EndOfStreamPolicy.FLUSH
    max_buffer_chars: int = 0  # Soft cap; 0 disables the warning
    raise_source_errors: bool = False


@dataclass(slots=True)
class SourceConfig:
    """Settings for a live model stream."""

    provider: str = "dashscope"
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    temperature: float = 0.8
    top_p: float = 0.8
