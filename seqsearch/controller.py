"""Chunked, cancellable search orchestration.

Chunks run one after another on the calling thread. The cancellation token is
checked only between chunks: a chunk that has started always finishes, but no
further chunk starts and nothing more is emitted once the token is cancelled.
"""

from __future__ import annotations

import enum
import threading
import time
from collections.abc import Callable, Iterable, Iterator, Sequence
from pathlib import Path
from typing import Protocol

from loguru import logger

from .chunks import ChunkProcessor
from .errors import SearchCancelledError
from .matching import RegexPattern, compile_query
from .models import FileResult, SearchQuery, file_sort_key
from .state import SearchState

DEFAULT_CHUNK_SIZE = 100
DEFAULT_BATCH_SIZE = 20


class FileLister(Protocol):
    def list_files(self, exclude_patterns: Iterable[str]) -> list[Path]: ...


class SearchPhase(enum.Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    CHUNKING = "chunking"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class CancellationToken:
    """Cooperative cancel flag and lifecycle phase of one search.

    The session creates one token per search, so a superseded worker only ever
    updates its own token.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self.phase = SearchPhase.IDLE

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise SearchCancelledError()


def sort_results(results: Iterable[FileResult]) -> list[FileResult]:
    return sorted(results, key=lambda result: file_sort_key(result.file_path))


def iter_chunks(candidates: Sequence[Path], chunk_size: int) -> Iterator[Sequence[Path]]:
    """Yield contiguous slices of at most ``chunk_size`` paths."""
    size = max(1, chunk_size)
    for offset in range(0, len(candidates), size):
        yield candidates[offset : offset + size]


class SearchController:
    def __init__(
        self,
        processor: ChunkProcessor,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self.processor = processor
        self.chunk_size = chunk_size
        self.batch_size = batch_size

    def resolve_candidates(
        self,
        state: SearchState,
        lister: FileLister,
        exclude_patterns: Iterable[str],
    ) -> list[Path]:
        """Return the sorted candidate set for the next search.

        An active buffer narrows the search to its saved files; otherwise the
        lister supplies the filtered workspace.
        """
        active = state.active_buffer()
        if active is not None:
            candidates: Iterable[Path] = active.files
        else:
            candidates = lister.list_files(tuple(exclude_patterns))
        return sorted(set(candidates), key=file_sort_key)

    def check_query(self, query: SearchQuery) -> RegexPattern:
        """Compile ``query``, raising ``QueryCompileError`` when it cannot run in its mode."""
        return compile_query(query)

    def run(
        self,
        query: SearchQuery,
        candidates: Sequence[Path],
        token: CancellationToken,
        on_partial: Callable[[list[FileResult]], None] | None = None,
    ) -> list[FileResult]:
        """Search ``candidates`` and return results sorted by file identity.

        Raises ``QueryCompileError`` before any file is read, and
        ``SearchCancelledError`` at the first chunk boundary after ``token`` is
        cancelled.
        """
        pattern = compile_query(query)
        token.phase = SearchPhase.CHUNKING
        started_at = time.monotonic()
        collected: list[FileResult] = []
        pending = 0
        try:
            for index, chunk in enumerate(iter_chunks(candidates, self.chunk_size)):
                token.raise_if_cancelled()
                chunk_result = self.processor.process(chunk, query, pattern)
                collected.extend(chunk_result.results)
                pending += len(chunk_result.results)
                logger.debug(
                    "chunk {} searched {} files, {} included",
                    index,
                    len(chunk),
                    len(chunk_result.results),
                )
                if on_partial is not None and pending >= self.batch_size:
                    token.raise_if_cancelled()
                    on_partial(sort_results(collected))
                    pending = 0
            token.raise_if_cancelled()
        except SearchCancelledError:
            token.phase = SearchPhase.CANCELLED
            logger.debug("search for {!r} cancelled after {} results", query.text, len(collected))
            raise

        token.phase = SearchPhase.COMPLETED
        logger.info(
            "searched {} files for {!r} in {:.3f}s, {} included",
            len(candidates),
            query.text,
            time.monotonic() - started_at,
            len(collected),
        )
        return sort_results(collected)
