from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .models import FileResult, SearchBuffer, StateSnapshot

NO_ACTIVE_BUFFER = -1


@dataclass
class SearchState:
    """Mutable session aggregate.

    Only the search controller (on completion) and the buffer stack touch these
    fields. ``active_buffer_id`` is ``NO_ACTIVE_BUFFER`` or the id of a buffer
    present in ``buffers``.
    """

    current_files: list[Path] = field(default_factory=list)
    current_results: list[FileResult] = field(default_factory=list)
    buffers: list[SearchBuffer] = field(default_factory=list)
    active_buffer_id: int = NO_ACTIVE_BUFFER
    last_query_description: str = ""

    def find_buffer(self, buffer_id: int) -> SearchBuffer | None:
        for buffer in self.buffers:
            if buffer.id == buffer_id:
                return buffer
        return None

    def active_buffer(self) -> SearchBuffer | None:
        if self.active_buffer_id == NO_ACTIVE_BUFFER:
            return None
        return self.find_buffer(self.active_buffer_id)

    def commit_results(self, results: list[FileResult], description: str) -> None:
        """Replace current results and files with a completed search."""
        self.current_results = list(results)
        self.current_files = [result.file_path for result in results]
        self.last_query_description = description

    def reset(self) -> None:
        self.current_files = []
        self.current_results = []
        self.buffers = []
        self.active_buffer_id = NO_ACTIVE_BUFFER
        self.last_query_description = ""

    def snapshot(
        self,
        results: list[FileResult] | None = None,
        is_partial_result: bool = False,
    ) -> StateSnapshot:
        """Build a presenter snapshot, optionally overriding the result list."""
        return StateSnapshot(
            results=tuple(self.current_results if results is None else results),
            buffers=tuple(self.buffers),
            active_buffer_id=self.active_buffer_id,
            is_partial_result=is_partial_result,
        )
