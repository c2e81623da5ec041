"""Immutable value types shared by the search core and its collaborators."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path


def file_sort_key(path: Path) -> str:
    """Lexicographic ordering key for file identities."""
    return path.as_posix()


@dataclass(frozen=True)
class SearchQuery:
    text: str
    is_exclude: bool = False
    search_in_file_names: bool = False
    case_sensitive: bool = False
    use_regex: bool = False

    @classmethod
    def from_message(cls, message: Mapping[str, object]) -> SearchQuery:
        """Build a query from an inbound ``search`` request payload."""
        return cls(
            text=str(message.get("searchText") or ""),
            is_exclude=bool(message.get("isExclude", False)),
            search_in_file_names=bool(message.get("searchInFileNames", False)),
            case_sensitive=bool(message.get("caseSensitive", False)),
            use_regex=bool(message.get("useRegex", False)),
        )

    def describe(self) -> str:
        """Return the buffer label for results produced by this query."""
        prefix = "NOT " if self.is_exclude else ""
        where = "(in file names)" if self.search_in_file_names else "(in contents)"
        return f"{prefix}{self.text} {where}"

    def summary(self, file_count: int) -> str:
        """Return the completion message shown after a search."""
        verb = "excluding" if self.is_exclude else "containing"
        where = "in file names" if self.search_in_file_names else "in contents"
        return f'Found {file_count} files {verb} "{self.text}" {where}'


@dataclass(frozen=True)
class MatchRecord:
    line_number: int  # 1-based
    preview_text: str
    match_start_column: int  # 0-based, inclusive
    match_end_column: int  # 0-based, exclusive

    def to_message(self) -> dict[str, object]:
        return {
            "lineNumber": self.line_number,
            "previewText": self.preview_text,
            "matchStartColumn": self.match_start_column,
            "matchEndColumn": self.match_end_column,
        }


@dataclass(frozen=True)
class FileResult:
    file_path: Path
    display_path: str
    matches: tuple[MatchRecord, ...]

    def to_message(self) -> dict[str, object]:
        return {
            "filePath": str(self.file_path),
            "displayPath": self.display_path,
            "matches": [match.to_message() for match in self.matches],
        }


@dataclass(frozen=True)
class SearchBuffer:
    """Write-once snapshot of a result file set.

    ``id`` is zero-based; presenters show it as ``id + 1``.
    """

    id: int
    files: tuple[Path, ...]
    search_pattern: str

    def to_message(self) -> dict[str, object]:
        return {
            "id": self.id,
            "files": [str(path) for path in self.files],
            "searchPattern": self.search_pattern,
        }


@dataclass(frozen=True)
class StateSnapshot:
    """Serializable view of session state handed to presenters."""

    results: tuple[FileResult, ...]
    buffers: tuple[SearchBuffer, ...]
    active_buffer_id: int
    is_partial_result: bool = False

    @property
    def match_count(self) -> int:
        return sum(len(result.matches) for result in self.results)

    def to_message(self) -> dict[str, object]:
        return {
            "results": [result.to_message() for result in self.results],
            "buffers": [buffer.to_message() for buffer in self.buffers],
            "activeBufferId": self.active_buffer_id,
            "isPartialResult": self.is_partial_result,
        }
