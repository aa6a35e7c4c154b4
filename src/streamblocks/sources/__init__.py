"""Stream sources: where text deltas come from."""

from __future__ import annotations

from streamblocks.errors import StreamBlocksError
from streamblocks.sources.base import StreamSource, TextChunkSource, delta_from_cumulative
from streamblocks.types.config import SourceConfig

__all__ = [
    "SOURCE_NAMES",
    "StreamSource",
    "TextChunkSource",
    "create_source",
    "delta_from_cumulative",
]

SOURCE_NAMES = ("dashscope", "openai")


def create_source(prompt: str, config: SourceConfig) -> StreamSource:
    """Build the live source named by ``config.provider``."""
    if config.provider == "dashscope":
        from streamblocks.sources.dashscope import DashScopeSource

        return DashScopeSource(prompt, config)
    if config.provider == "openai":
        from streamblocks.sources.openai import OpenAISource

        return OpenAISource(prompt, config)
    raise StreamBlocksError(
        f"Unknown provider '{config.provider}' (expected one of: {', '.join(SOURCE_NAMES)})"
    )
