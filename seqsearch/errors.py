"""Error taxonomy for search sessions.

Per-file failures (``ReadError``) are recovered inside a chunk. Control-level
failures propagate to the session, which turns them into user notifications.
"""

from __future__ import annotations

from pathlib import Path


class SeqSearchError(Exception):
    """Base class for all seqsearch errors."""


class QueryCompileError(SeqSearchError):
    """Raised when a regex query cannot be compiled for a content search."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid regex pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class ReadError(SeqSearchError):
    """Raised by file readers when a file is unreadable or binary."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Cannot read {path}: {reason}")
        self.path = path
        self.reason = reason


class EmptyResultError(SeqSearchError):
    """Raised when saving a buffer while there are no current results."""

    def __init__(self) -> None:
        super().__init__("No search results to save")


class BufferNotFoundError(SeqSearchError):
    """Raised when activating a buffer id that is not on the stack."""

    def __init__(self, buffer_id: int) -> None:
        super().__init__(f"Buffer {buffer_id} not found")
        self.buffer_id = buffer_id


class SearchCancelledError(SeqSearchError):
    """Control-flow signal for a search superseded by a newer one."""
