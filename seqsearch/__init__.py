"""Public package surface for seqsearch.

Exports the session and value types for programmatic use, and ``main`` for
CLI invocation. The CLI entrypoint is imported lazily.
"""

from __future__ import annotations

from .errors import (
    BufferNotFoundError,
    EmptyResultError,
    QueryCompileError,
    ReadError,
    SearchCancelledError,
    SeqSearchError,
)
from .models import FileResult, MatchRecord, SearchBuffer, SearchQuery, StateSnapshot
from .session import SearchSession


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)


__all__ = [
    "BufferNotFoundError",
    "EmptyResultError",
    "FileResult",
    "MatchRecord",
    "QueryCompileError",
    "ReadError",
    "SearchBuffer",
    "SearchCancelledError",
    "SearchQuery",
    "SearchSession",
    "SeqSearchError",
    "StateSnapshot",
    "main",
]
