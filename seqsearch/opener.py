"""Open a search hit in ``$EDITOR``.

Highlight lookup here never fails on a bad pattern: an invalid regex is
searched as plain text instead.
"""

from __future__ import annotations

import os
import shlex
import subprocess
from pathlib import Path

from .errors import ReadError
from .matching import compile_pattern, extract_content_matches
from .models import MatchRecord, SearchQuery
from .workspace import WorkspaceFileReader


def highlight_ranges(text: str, search_text: str) -> list[MatchRecord]:
    """Return every case-insensitive occurrence of ``search_text`` in ``text``."""
    if not search_text:
        return []
    query = SearchQuery(text=search_text, use_regex=True)
    return extract_content_matches(text, compile_pattern(query, literal_fallback=True))


class EditorFileOpener:
    """``FileOpener`` that runs ``$EDITOR +LINE path``.

    Errors come back as message strings instead of exceptions.
    """

    def __init__(self, reader: WorkspaceFileReader | None = None) -> None:
        self.reader = reader or WorkspaceFileReader()

    def target_line(self, file_path: Path, search_text: str, line_number: int | None) -> int | None:
        if line_number is not None:
            return line_number
        try:
            text = self.reader.read(file_path)
        except ReadError:
            return None
        hits = highlight_ranges(text, search_text)
        return hits[0].line_number if hits else None

    def open_file(self, file_path: Path, search_text: str, line_number: int | None = None) -> str | None:
        editor_env = os.environ.get("EDITOR", "").strip()
        if not editor_env:
            return "Cannot open file: $EDITOR is not set."
        cmd = shlex.split(editor_env)
        if not cmd:
            return "Cannot open file: $EDITOR is empty."

        line = self.target_line(file_path, search_text, line_number)
        if line is not None:
            cmd.append(f"+{line}")
        try:
            subprocess.run([*cmd, str(file_path)], check=False)
        except Exception as exc:
            return f"Failed to open file: {exc}"
        return None
