"""Query compilation and per-match line/column extraction.

Offsets are Python string indices (Unicode code points) into the same text
that ends up in ``MatchRecord.preview_text``.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from functools import lru_cache
from typing import Protocol

from .errors import QueryCompileError
from .models import MatchRecord, SearchQuery

DISPLAY_PREFIX = "./"
EXCLUDED_PLACEHOLDER_TEXT = "File does not contain the search pattern"


class CompiledPattern(Protocol):
    def test(self, subject: str) -> bool: ...

    def spans(self, subject: str) -> Iterator[tuple[int, int]]: ...

    def first_span(self, subject: str) -> tuple[int, int] | None: ...


class RegexPattern:
    """``CompiledPattern`` backed by the ``re`` module."""

    def __init__(self, regex: re.Pattern[str], is_literal: bool) -> None:
        self.regex = regex
        self.is_literal = is_literal

    def test(self, subject: str) -> bool:
        return self.regex.search(subject) is not None

    def spans(self, subject: str) -> Iterator[tuple[int, int]]:
        # finditer resumes after each match end, so spans never overlap.
        for match in self.regex.finditer(subject):
            start, end = match.span()
            if end > start:
                yield start, end

    def first_span(self, subject: str) -> tuple[int, int] | None:
        """Return the first match span, zero-width matches included."""
        match = self.regex.search(subject)
        return match.span() if match is not None else None


@lru_cache(maxsize=64)
def _compile(text: str, case_sensitive: bool, use_regex: bool, literal_fallback: bool) -> RegexPattern:
    flags = 0 if case_sensitive else re.IGNORECASE
    if use_regex:
        try:
            return RegexPattern(re.compile(text, flags), is_literal=False)
        except re.error as exc:
            if not literal_fallback:
                raise QueryCompileError(text, str(exc)) from exc
    return RegexPattern(re.compile(re.escape(text), flags), is_literal=True)


def compile_pattern(query: SearchQuery, *, literal_fallback: bool) -> RegexPattern:
    """Compile ``query`` into a matcher.

    With ``literal_fallback`` a malformed regex degrades to a literal search;
    otherwise ``QueryCompileError`` is raised.
    """
    return _compile(query.text, query.case_sensitive, query.use_regex, literal_fallback)


def compile_query(query: SearchQuery) -> RegexPattern:
    """Compile with the fallback policy of the query's search mode."""
    return compile_pattern(query, literal_fallback=query.search_in_file_names)


def _content_record(content: str, start: int, end: int, line_number: int) -> MatchRecord:
    line_start = content.rfind("\n", 0, start) + 1
    line_end = content.find("\n", start)
    if line_end < 0:
        line_end = len(content)
    preview = content[line_start:line_end]
    if preview.endswith("\r"):
        preview = preview[:-1]
    start_column = start - line_start
    end_column = min(end - line_start, len(preview))
    return MatchRecord(
        line_number=line_number,
        preview_text=preview,
        match_start_column=start_column,
        match_end_column=max(start_column, end_column),
    )


def extract_content_matches(content: str, pattern: CompiledPattern) -> list[MatchRecord]:
    records: list[MatchRecord] = []
    line_number = 1
    counted_upto = 0
    for start, end in pattern.spans(content):
        line_number += content.count("\n", counted_upto, start)
        counted_upto = start
        records.append(_content_record(content, start, end, line_number))
    return records


def first_match_record(content: str, pattern: CompiledPattern) -> MatchRecord | None:
    """Locate the first match, zero-width or not, as a single record."""
    span = pattern.first_span(content)
    if span is None:
        return None
    start, end = span
    return _content_record(content, start, end, content.count("\n", 0, start) + 1)


def _literal_span(subject: str, text: str, case_sensitive: bool) -> tuple[int, int] | None:
    if not text:
        return None
    flags = 0 if case_sensitive else re.IGNORECASE
    match = re.search(re.escape(text), subject, flags)
    return match.span() if match is not None else None


def extract_name_match(display_path: str, query: SearchQuery, pattern: CompiledPattern) -> MatchRecord | None:
    """Return the single file-name match record, or ``None`` when the path does not match.

    A leading ``./`` is not part of the tested path, but columns index into the
    full ``display_path``.
    """
    prefix_len = len(DISPLAY_PREFIX) if display_path.startswith(DISPLAY_PREFIX) else 0
    subject = display_path[prefix_len:]
    if not pattern.test(subject):
        return None

    span = _literal_span(subject, query.text, query.case_sensitive)
    if span is None:
        span = next(pattern.spans(subject), (0, 0))
    start, end = span
    return MatchRecord(
        line_number=1,
        preview_text=display_path,
        match_start_column=start + prefix_len,
        match_end_column=end + prefix_len,
    )


def extract(subject: str, query: SearchQuery) -> list[MatchRecord]:
    """Return the positive match records of ``query`` within ``subject``.

    ``subject`` is the display path in file-name mode and the full file text in
    content mode. ``is_exclude`` does not change what is reported here.
    """
    pattern = compile_query(query)
    if query.search_in_file_names:
        record = extract_name_match(subject, query, pattern)
        return [record] if record is not None else []
    return extract_content_matches(subject, pattern)


def excluded_placeholder() -> MatchRecord:
    """Record standing in for "this file does not contain the pattern"."""
    return MatchRecord(
        line_number=1,
        preview_text=EXCLUDED_PLACEHOLDER_TEXT,
        match_start_column=0,
        match_end_column=0,
    )


def buffer_placeholder(display_path: str) -> MatchRecord:
    """Record used to display a buffer's files without re-running a search."""
    return MatchRecord(
        line_number=1,
        preview_text=display_path,
        match_start_column=0,
        match_end_column=0,
    )
