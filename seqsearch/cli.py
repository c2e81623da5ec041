"""Command-line front door for seqsearch.

Builds a session over a workspace root, then either runs one search and
prints it, or starts an interactive prompt for successive narrowing searches.
"""

from __future__ import annotations

import argparse
import dataclasses
import shlex
import sys
from pathlib import Path
from typing import TextIO

from loguru import logger

from .config import SearchSettings, load_settings, save_settings
from .models import SearchQuery
from .opener import EditorFileOpener
from .presenter import TerminalPresenter
from .session import SearchSession
from .workspace import WorkspaceFileLister, WorkspaceFileReader, display_path_for

PROMPT = "seqsearch> "
HELP_TEXT = """\
commands:
  search|s [-x] [-n] [-c] [-r] TEXT   search contents (-n: file names, -x: exclude,
                                      -c: case-sensitive, -r: regex)
  save                                save current results to a new buffer
  use K                               narrow further searches to buffer K
  buffers                             list buffers
  clear                               drop all buffers and results
  open PATH [LINE]                    open a file in $EDITOR
  help                                show this help
  quit                                leave
"""


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def _add_query_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-x", "--exclude-match", action="store_true", help="Keep files that do NOT match.")
    parser.add_argument("-n", "--names", action="store_true", help="Match file names instead of contents.")
    parser.add_argument("-c", "--case-sensitive", action="store_true", help="Match case exactly.")
    parser.add_argument("-r", "--regex", action="store_true", help="Treat the query as a regular expression.")


def _query_from_args(text: str, args: argparse.Namespace) -> SearchQuery:
    return SearchQuery(
        text=text,
        is_exclude=args.exclude_match,
        search_in_file_names=args.names,
        case_sensitive=args.case_sensitive,
        use_regex=args.regex,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Search file contents or names and narrow results through saved buffers."
    )
    parser.add_argument("root", nargs="?", default=None, help="Workspace root. Defaults to current directory.")
    parser.add_argument(
        "-e",
        "--exclude",
        action="append",
        default=None,
        metavar="GLOB",
        help="Exclude glob relative to the root (repeatable; replaces configured excludes).",
    )
    parser.add_argument("--hidden", action="store_true", help="Include hidden files and directories.")
    parser.add_argument("--no-gitignore", action="store_true", help="Do not skip git-ignored files.")
    parser.add_argument("--chunk-size", type=_positive_int, default=None, help="Files per search chunk.")
    parser.add_argument("--batch-size", type=_positive_int, default=None, help="New results per partial update.")
    parser.add_argument("--no-color", action="store_true", help="Disable color output.")
    parser.add_argument("--style", default="monokai", help="Pygments style name for previews.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr.")
    parser.add_argument("--log-file", default=None, help="Also write debug logs to this file.")
    parser.add_argument("--remember", action="store_true", help="Persist the effective settings as defaults.")
    parser.add_argument("-q", "--query", default=None, help="Run one search, print results, and exit.")
    _add_query_flags(parser)
    return parser


def configure_logging(verbose: bool, log_file: str | None) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")
    if log_file:
        logger.add(log_file, level="DEBUG")


def settings_from_args(args: argparse.Namespace, base: SearchSettings) -> SearchSettings:
    """Overlay command-line options on configured settings."""
    overrides: dict[str, object] = {}
    if args.exclude is not None:
        overrides["exclude_patterns"] = tuple(args.exclude)
    if args.hidden:
        overrides["show_hidden"] = True
    if args.no_gitignore:
        overrides["skip_gitignored"] = False
    if args.chunk_size is not None:
        overrides["chunk_size"] = args.chunk_size
    if args.batch_size is not None:
        overrides["batch_size"] = args.batch_size
    return dataclasses.replace(base, **overrides)


def build_session(root: Path, settings: SearchSettings, presenter: TerminalPresenter) -> SearchSession:
    reader = WorkspaceFileReader(settings.max_file_bytes)
    return SearchSession(
        lister=WorkspaceFileLister(root, show_hidden=settings.show_hidden, skip_gitignored=settings.skip_gitignored),
        reader=reader,
        presenter=presenter,
        opener=EditorFileOpener(reader),
        settings=settings,
        display_path=display_path_for(root),
    )


def _run_interactive_search(session: SearchSession, query: SearchQuery) -> None:
    """Run a search on the worker thread; Ctrl-C cancels it."""
    if not session.start_search(query):
        return
    try:
        session.wait_for_search()
    except KeyboardInterrupt:
        session.cancel_search()
        session.presenter.notify("info", "Search cancelled")


def run_command(session: SearchSession, line: str, out: TextIO) -> bool:
    """Execute one prompt line. Returns ``False`` when the prompt should exit."""
    try:
        words = shlex.split(line)
    except ValueError as exc:
        out.write(f"error: {exc}\n")
        return True
    if not words:
        return True

    command, rest = words[0], words[1:]
    if command in {"quit", "exit", "q"}:
        return False
    if command in {"search", "s"}:
        parser = argparse.ArgumentParser(prog="search", add_help=False, exit_on_error=False)
        _add_query_flags(parser)
        parser.add_argument("text", nargs="+")
        try:
            args = parser.parse_args(rest)
        except (argparse.ArgumentError, SystemExit):
            out.write("usage: search [-x] [-n] [-c] [-r] TEXT\n")
            return True
        _run_interactive_search(session, _query_from_args(" ".join(args.text), args))
    elif command == "save":
        session.handle_message({"command": "saveBuffer"})
    elif command == "use":
        if len(rest) != 1 or not rest[0].isdigit():
            out.write("usage: use K\n")
            return True
        session.handle_message({"command": "activateBuffer", "bufferId": int(rest[0]) - 1})
    elif command == "buffers":
        presenter = session.presenter
        rows = presenter.format_buffers(session.snapshot()) if isinstance(presenter, TerminalPresenter) else []
        out.write("\n".join(rows or ["no buffers"]) + "\n")
    elif command == "clear":
        session.handle_message({"command": "clearAllBuffers"})
    elif command == "open":
        if not rest or len(rest) > 2 or (len(rest) == 2 and not rest[1].isdigit()):
            out.write("usage: open PATH [LINE]\n")
            return True
        message: dict[str, object] = {"command": "openFile", "filePath": rest[0], "searchText": ""}
        if len(rest) == 2:
            message["lineNumber"] = int(rest[1])
        session.handle_message(message)
    elif command == "help":
        out.write(HELP_TEXT)
    else:
        out.write(f"unknown command: {command} (try 'help')\n")
    return True


def interactive_loop(session: SearchSession, stdin: TextIO, out: TextIO) -> None:
    while True:
        out.write(PROMPT)
        out.flush()
        line = stdin.readline()
        if not line:
            out.write("\n")
            return
        if not run_command(session, line, out):
            return


def main(argv: list[str] | None = None, default_path: Path | None = None) -> None:
    """Parse CLI arguments and search the workspace.

    ``default_path`` is primarily for tests; when omitted the current working
    directory is used.
    """
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose, args.log_file)

    if default_path is None:
        default_path = Path.cwd()
    root = Path(args.root) if args.root is not None else default_path
    if not root.is_dir():
        raise SystemExit(f"Not a directory: {root}")

    settings = settings_from_args(args, load_settings())
    if args.remember:
        save_settings(settings)

    presenter = TerminalPresenter(sys.stdout, no_color=args.no_color or not sys.stdout.isatty(), style=args.style)
    session = build_session(root, settings, presenter)

    if args.query is not None:
        results = session.search(_query_from_args(args.query, args))
        if results is None:
            raise SystemExit(1)
        return

    try:
        interactive_loop(session, sys.stdin, sys.stdout)
    except KeyboardInterrupt:
        sys.stdout.write("\n")
