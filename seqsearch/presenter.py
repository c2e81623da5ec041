"""Terminal presenter for search snapshots and notifications.

Preview lines are syntax coloured with Pygments and the match span is shown in
reverse video. With ``no_color`` the span is bracketed instead.
"""

from __future__ import annotations

import sys
from functools import lru_cache
from typing import TextIO

from pygments import highlight
from pygments.formatters import TerminalFormatter
from pygments.lexer import Lexer
from pygments.lexers import TextLexer, get_lexer_for_filename
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from .models import FileResult, MatchRecord, StateSnapshot

REVERSE = "\033[7m"
REVERSE_OFF = "\033[27m"
MAX_PREVIEW_CHARS = 200
LEVEL_PREFIXES = {"info": "", "warning": "warning: ", "error": "error: "}


@lru_cache(maxsize=256)
def _lexer_for(display_path: str) -> Lexer:
    try:
        return get_lexer_for_filename(display_path, stripnl=False)
    except ClassNotFound:
        return TextLexer(stripnl=False)


@lru_cache(maxsize=16)
def _formatter_for(style: str) -> TerminalFormatter:
    try:
        get_style_by_name(style)
    except ClassNotFound:
        style = "monokai"
    return TerminalFormatter(style=style)


class TerminalPresenter:
    def __init__(self, stream: TextIO | None = None, no_color: bool = False, style: str = "monokai") -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.no_color = no_color
        self.style = style
        self.last_snapshot: StateSnapshot | None = None

    def _colorize(self, fragment: str, display_path: str) -> str:
        if self.no_color or not fragment:
            return fragment
        rendered = highlight(fragment, _lexer_for(display_path), _formatter_for(self.style))
        return rendered[:-1] if rendered.endswith("\n") and not fragment.endswith("\n") else rendered

    def format_match(self, result: FileResult, match: MatchRecord) -> str:
        preview = match.preview_text[:MAX_PREVIEW_CHARS]
        start = min(match.match_start_column, len(preview))
        end = min(max(start, match.match_end_column), len(preview))
        head, hit, tail = (part.replace("\t", "    ") for part in (preview[:start], preview[start:end], preview[end:]))
        if not hit:
            # placeholders are zero-width
            body = head + tail
        elif self.no_color:
            body = f"{head}[{hit}]{tail}"
        else:
            body = (
                self._colorize(head, result.display_path)
                + f"{REVERSE}{hit}{REVERSE_OFF}"
                + self._colorize(tail, result.display_path)
            )
        return f"{result.display_path}:{match.line_number}:{match.match_start_column + 1}: {body}"

    def format_buffers(self, snapshot: StateSnapshot) -> list[str]:
        rows = []
        for buffer in snapshot.buffers:
            marker = "*" if buffer.id == snapshot.active_buffer_id else " "
            rows.append(f"{marker}[{buffer.id + 1}] {buffer.search_pattern} ({len(buffer.files)} files)")
        return rows

    def update_state(self, snapshot: StateSnapshot) -> None:
        self.last_snapshot = snapshot
        if snapshot.is_partial_result:
            self.stream.write(f"... {len(snapshot.results)} files so far\n")
            self.stream.flush()
            return
        lines: list[str] = []
        for result in snapshot.results:
            for match in result.matches:
                lines.append(self.format_match(result, match))
        lines.extend(self.format_buffers(snapshot))
        lines.append(f"Found {snapshot.match_count} matches in {len(snapshot.results)} files")
        self.stream.write("\n".join(lines) + "\n")
        self.stream.flush()

    def notify(self, level: str, message: str) -> None:
        self.stream.write(f"{LEVEL_PREFIXES.get(level, level + ': ')}{message}\n")
        self.stream.flush()
