"""streamblocks: cut streaming LLM markdown into complete, renderable blocks.

Usage:
    import streamblocks

    pump = streamblocks.StreamPump(print)
    for delta in ["Hello ", "world.\n\n", "![a](http://x/y.png)"]:
        pump.append(delta)
    pump.finish()
"""

from streamblocks.core.pump import QueuedStreamPump, StreamPump
from streamblocks.core.segmenter import Segmenter
from streamblocks.errors import (
    ConfigError,
    PumpClosedError,
    SourceError,
    StreamBlocksError,
)
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

__version__ = "0.1.0"

__all__ = [
    # Engine
    "QueuedStreamPump",
    "Segmenter",
    "StreamPump",
    # Units
    "MatchCandidate",
    "RenderableUnit",
    "UnitKind",
    # Sinks
    "AsyncUnitSink",
    "UnitSink",
    # Configuration
    "DisplayMathPolicy",
    "EndOfStreamPolicy",
    "PumpConfig",
    "RuleKind",
    "SegmenterConfig",
    "SourceConfig",
    # Errors
    "ConfigError",
    "PumpClosedError",
    "SourceError",
    "StreamBlocksError",
]
