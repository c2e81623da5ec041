"""Search session: collaborators, state, and request dispatch.

A session owns the ``SearchState``, the buffer stack, and the cancellation
token of the single in-flight search. Searches either run synchronously on the
caller's thread (``search``) or on a worker thread whose progress is drained by
``poll_search_updates``. In both cases state is only mutated on the thread
that owns the session.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from pathlib import Path
from queue import Empty, Queue
from typing import Protocol

from loguru import logger

from .buffers import BufferStack
from .cache import ContentCache, FileReader
from .chunks import ChunkProcessor
from .classify import FileClassifier
from .config import SearchSettings
from .controller import CancellationToken, FileLister, SearchController, SearchPhase
from .errors import (
    BufferNotFoundError,
    EmptyResultError,
    QueryCompileError,
    SearchCancelledError,
)
from .models import FileResult, SearchBuffer, SearchQuery, StateSnapshot
from .state import SearchState

REGEX_FALLBACK_WARNING = "Invalid regex pattern. Searching as plain text."


class Presenter(Protocol):
    def update_state(self, snapshot: StateSnapshot) -> None: ...

    def notify(self, level: str, message: str) -> None: ...


class FileOpener(Protocol):
    def open_file(self, file_path: Path, search_text: str, line_number: int | None = None) -> str | None: ...


def _default_display_path(path: Path) -> str:
    return path.as_posix()


class SearchSession:
    def __init__(
        self,
        lister: FileLister,
        reader: FileReader,
        presenter: Presenter,
        opener: FileOpener | None = None,
        settings: SearchSettings | None = None,
        display_path: Callable[[Path], str] | None = None,
    ) -> None:
        self.settings = settings if settings is not None else SearchSettings()
        self.lister = lister
        self.presenter = presenter
        self.opener = opener
        self.display_path = display_path or _default_display_path
        self.state = SearchState()
        self.cache = ContentCache(reader, ttl_seconds=self.settings.cache_ttl_seconds)
        self.controller = SearchController(
            ChunkProcessor(self.cache, FileClassifier(), self.display_path),
            chunk_size=self.settings.chunk_size,
            batch_size=self.settings.batch_size,
        )
        self.buffers = BufferStack(self.state, self.display_path, on_change=self.emit_state)
        self._token: CancellationToken | None = None
        self._generation = 0
        self._active_generation: int | None = None
        self._active_query: SearchQuery | None = None
        self._events: Queue[tuple[str, int, object]] = Queue()
        self._worker: threading.Thread | None = None

    # state
    def snapshot(self) -> StateSnapshot:
        return self.state.snapshot()

    def emit_state(self) -> None:
        self.presenter.update_state(self.state.snapshot())

    @property
    def is_searching(self) -> bool:
        return self._active_generation is not None

    @property
    def phase(self) -> SearchPhase:
        """Phase of the in-flight search, ``IDLE`` when none is running."""
        return self._token.phase if self._token is not None else SearchPhase.IDLE

    # search lifecycle
    def cancel_search(self) -> None:
        """Stop any in-flight search; its pending results are discarded."""
        if self._token is not None:
            self._token.cancel()
        self._token = None
        self._active_generation = None
        self._active_query = None

    def _join_worker(self) -> None:
        # a cancelled worker stops at its next chunk boundary
        worker, self._worker = self._worker, None
        if worker is not None and worker is not threading.current_thread():
            worker.join()

    def _begin(self, query: SearchQuery) -> tuple[int, CancellationToken, list[Path]] | None:
        """Cancel the previous search and prepare candidates for ``query``.

        Returns ``None`` (after notifying) when the query cannot run.
        """
        self.cancel_search()
        self._join_worker()
        if not query.text.strip():
            logger.debug("ignoring blank search request")
            return None
        try:
            pattern = self.controller.check_query(query)
        except QueryCompileError as exc:
            logger.info("rejected search: {}", exc)
            self.presenter.notify("error", str(exc))
            return None
        if query.use_regex and pattern.is_literal:
            logger.info("searching file names for {!r} as plain text", query.text)
            self.presenter.notify("warning", REGEX_FALLBACK_WARNING)

        self._generation += 1
        token = CancellationToken()
        token.phase = SearchPhase.RESOLVING
        self._token = token
        self._active_generation = self._generation
        self._active_query = query
        candidates = self.controller.resolve_candidates(self.state, self.lister, self.settings.exclude_patterns)
        return self._generation, token, candidates

    def _complete(self, query: SearchQuery, results: list[FileResult]) -> None:
        self.state.commit_results(results, query.describe())
        self.buffers.update_active_label(query.describe())
        self._token = None
        self._active_generation = None
        self._active_query = None
        self.emit_state()
        self.presenter.notify("info", query.summary(len(results)))

    def _emit_partial(self, results: list[FileResult]) -> None:
        self.presenter.update_state(self.state.snapshot(results=results, is_partial_result=True))

    def search(self, query: SearchQuery) -> list[FileResult] | None:
        """Run ``query`` to completion on the calling thread.

        Returns the committed results, or ``None`` when the query was blank,
        invalid, or cancelled.
        """
        begun = self._begin(query)
        if begun is None:
            return None
        _generation, token, candidates = begun
        try:
            results = self.controller.run(query, candidates, token, on_partial=self._emit_partial)
        except SearchCancelledError:
            return None
        self._complete(query, results)
        return results

    def start_search(self, query: SearchQuery) -> bool:
        """Start ``query`` on a worker thread; returns whether it started."""
        begun = self._begin(query)
        if begun is None:
            return False
        generation, token, candidates = begun

        def on_partial(results: list[FileResult]) -> None:
            self._events.put(("partial", generation, results))

        def run_worker() -> None:
            try:
                results = self.controller.run(query, candidates, token, on_partial=on_partial)
            except SearchCancelledError:
                return
            except Exception as exc:
                logger.exception("search worker for {!r} failed", query.text)
                self._events.put(("error", generation, exc))
                return
            self._events.put(("done", generation, results))

        self._worker = threading.Thread(
            target=run_worker,
            name=f"seqsearch-search-{generation}",
            daemon=True,
        )
        self._worker.start()
        return True

    def poll_search_updates(self, timeout_seconds: float = 0.0) -> bool:
        """Apply queued worker events on the calling thread.

        Waits up to ``timeout_seconds`` for the first event. Events from
        superseded searches are dropped. Returns whether anything was applied.
        """
        processed = False
        try:
            first = self._events.get(timeout=timeout_seconds) if timeout_seconds > 0 else self._events.get_nowait()
        except Empty:
            return False

        pending = [first]
        while True:
            try:
                pending.append(self._events.get_nowait())
            except Empty:
                break

        for kind, generation, payload in pending:
            if generation != self._active_generation or self._active_query is None:
                continue
            if kind == "partial":
                self._emit_partial(payload)
            elif kind == "done":
                self._complete(self._active_query, payload)
            elif kind == "error":
                self.cancel_search()
                self.presenter.notify("error", f"Search failed: {payload}")
            processed = True
        return processed

    def wait_for_search(self, timeout_seconds: float = 0.05) -> None:
        """Drain worker events until the active search finishes or is cancelled."""
        while self.is_searching:
            self.poll_search_updates(timeout_seconds)

    # buffers
    def save_buffer(self) -> SearchBuffer | None:
        self.cancel_search()
        try:
            buffer = self.buffers.save()
        except EmptyResultError as exc:
            self.presenter.notify("warning", str(exc))
            return None
        self.presenter.notify("info", f"Saved {len(buffer.files)} files to buffer {buffer.id + 1}")
        return buffer

    def activate_buffer(self, buffer_id: int) -> SearchBuffer | None:
        self.cancel_search()
        try:
            return self.buffers.activate(buffer_id)
        except BufferNotFoundError as exc:
            self.presenter.notify("error", str(exc))
            return None

    def clear_all_buffers(self) -> None:
        self.cancel_search()
        self.buffers.clear_all()

    # files
    def open_file(self, file_path: Path, search_text: str, line_number: int | None = None) -> None:
        if self.opener is None:
            logger.warning("no file opener configured, cannot open {}", file_path)
            return
        error = self.opener.open_file(file_path, search_text, line_number)
        if error:
            self.presenter.notify("error", error)

    # requests
    def handle_message(self, message: Mapping[str, object], background: bool = False) -> None:
        """Dispatch one inbound request dict by its ``command`` key."""
        command = message.get("command")
        if command == "search":
            query = SearchQuery.from_message(message)
            if background:
                self.start_search(query)
            else:
                self.search(query)
        elif command == "saveBuffer":
            self.save_buffer()
        elif command == "activateBuffer":
            buffer_id = message.get("bufferId")
            if isinstance(buffer_id, bool) or not isinstance(buffer_id, int):
                self.presenter.notify("error", f"Buffer {buffer_id} not found")
                return
            self.activate_buffer(buffer_id)
        elif command == "clearAllBuffers":
            self.clear_all_buffers()
        elif command == "openFile":
            line_number = message.get("lineNumber")
            self.open_file(
                Path(str(message.get("filePath", ""))),
                str(message.get("searchText") or ""),
                line_number if isinstance(line_number, int) and not isinstance(line_number, bool) else None,
            )
        elif command == "getState":
            self.emit_state()
        else:
            logger.warning("ignoring unknown command {!r}", command)
