"""Saved result snapshots and the active-buffer pointer."""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from pathlib import Path

from .errors import BufferNotFoundError, EmptyResultError
from .matching import buffer_placeholder
from .models import FileResult, SearchBuffer
from .state import NO_ACTIVE_BUFFER, SearchState


class BufferStack:
    """Save, activate, and clear buffers on a ``SearchState``.

    Failing operations leave the state untouched. ``on_change`` runs after
    every successful mutation so presenters can be refreshed.
    """

    def __init__(
        self,
        state: SearchState,
        display_path: Callable[[Path], str],
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self.state = state
        self.display_path = display_path
        self.on_change = on_change

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()

    def next_id(self) -> int:
        return max((buffer.id for buffer in self.state.buffers), default=-1) + 1

    def save(self) -> SearchBuffer:
        if not self.state.current_results:
            raise EmptyResultError()
        buffer = SearchBuffer(
            id=self.next_id(),
            files=tuple(self.state.current_files),
            search_pattern=self.state.last_query_description,
        )
        self.state.buffers.append(buffer)
        self.state.active_buffer_id = buffer.id
        self._changed()
        return buffer

    def activate(self, buffer_id: int) -> SearchBuffer:
        buffer = self.state.find_buffer(buffer_id)
        if buffer is None:
            raise BufferNotFoundError(buffer_id)
        results = []
        for path in buffer.files:
            display_path = self.display_path(path)
            results.append(
                FileResult(
                    file_path=path,
                    display_path=display_path,
                    matches=(buffer_placeholder(display_path),),
                )
            )
        self.state.active_buffer_id = buffer.id
        self.state.current_files = list(buffer.files)
        self.state.current_results = results
        self.state.last_query_description = buffer.search_pattern
        self._changed()
        return buffer

    def clear_all(self) -> None:
        self.state.reset()
        self._changed()

    def update_active_label(self, search_pattern: str) -> None:
        """Relabel the active buffer by swapping in a new snapshot."""
        if self.state.active_buffer_id == NO_ACTIVE_BUFFER:
            return
        for index, buffer in enumerate(self.state.buffers):
            if buffer.id == self.state.active_buffer_id:
                self.state.buffers[index] = dataclasses.replace(buffer, search_pattern=search_pattern)
                return
