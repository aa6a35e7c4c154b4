"""Exception hierarchy for streamblocks.

"Not yet decidable" is never an exception: the segmenter returns ``None``.
These errors cover misuse of a pump, upstream source failures and bad
configuration values.
"""

from __future__ import annotations


class StreamBlocksError(Exception):
    """Base class for all streamblocks errors."""


class PumpClosedError(StreamBlocksError):
    """Raised when text is appended to a pump that already finished or aborted."""


class ConfigError(StreamBlocksError):
    """Raised when a configuration value cannot be parsed."""


class SourceError(StreamBlocksError):
    """Raised by a stream source when the upstream service fails."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
