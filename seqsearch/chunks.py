"""Per-chunk file evaluation against a compiled query."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from .cache import ContentCache
from .classify import FileClassifier
from .errors import ReadError
from .matching import (
    CompiledPattern,
    excluded_placeholder,
    extract_content_matches,
    extract_name_match,
    first_match_record,
)
from .models import FileResult, MatchRecord, SearchQuery


@dataclass
class ChunkResult:
    results: list[FileResult] = field(default_factory=list)
    matched_files: list[Path] = field(default_factory=list)


class ChunkProcessor:
    """Evaluate one slice of the candidate list.

    Every file is handled independently; a failure on one file only drops that
    file from the chunk output.
    """

    def __init__(
        self,
        cache: ContentCache,
        classifier: FileClassifier,
        display_path: Callable[[Path], str],
    ) -> None:
        self.cache = cache
        self.classifier = classifier
        self.display_path = display_path

    def process(self, chunk: Sequence[Path], query: SearchQuery, pattern: CompiledPattern) -> ChunkResult:
        out = ChunkResult()
        for path in chunk:
            try:
                result = self._process_file(path, query, pattern)
            except ReadError as exc:
                logger.opt(exception=exc).debug("skipping unreadable file {}", path)
                continue
            except Exception:
                logger.exception("failed to search {}", path)
                continue
            if result is None:
                continue
            out.results.append(result)
            out.matched_files.append(path)
        return out

    def _process_file(self, path: Path, query: SearchQuery, pattern: CompiledPattern) -> FileResult | None:
        """Return the file's result when it is included, else ``None``.

        Raises ``ReadError`` for files that cannot be searched.
        """
        display_path = self.display_path(path)
        records: list[MatchRecord]
        if query.search_in_file_names:
            record = extract_name_match(display_path, query, pattern)
            records = [record] if record is not None else []
            has_match = record is not None
        else:
            if self.classifier.is_binary(path):
                return None
            content = self.cache.get(path)
            has_match = pattern.test(content)
            records = []
            if has_match and not query.is_exclude:
                records = extract_content_matches(content, pattern)
                if not records:
                    # only zero-width matches, e.g. (?m)^$
                    anchor = first_match_record(content, pattern)
                    records = [anchor] if anchor is not None else []

        if has_match == query.is_exclude:
            return None
        if query.is_exclude:
            records = [excluded_placeholder()]
        return FileResult(file_path=path, display_path=display_path, matches=tuple(records))
