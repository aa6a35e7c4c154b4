"""Shared value types for streamblocks."""

from streamblocks.types.config import (
    DisplayMathPolicy,
    EndOfStreamPolicy,
    PumpConfig,
    RuleKind,
    SegmenterConfig,
    SourceConfig,
)
from streamblocks.types.sinks import AsyncUnitSink, UnitSink
from streamblocks.types.units import MatchCandidate, RenderableUnit, UnitKind

__all__ = [
    "AsyncUnitSink",
    "DisplayMathPolicy",
    "EndOfStreamPolicy",
    "MatchCandidate",
    "PumpConfig",
    "RenderableUnit",
    "RuleKind",
    "SegmenterConfig",
    "SourceConfig",
    "UnitKind",
    "UnitSink",
]
