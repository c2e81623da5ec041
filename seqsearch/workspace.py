"""Filesystem-backed file lister and reader for a workspace root."""

from __future__ import annotations

import fnmatch
import os
import shutil
import subprocess
from collections.abc import Callable, Iterable
from pathlib import Path

from loguru import logger

from .config import DEFAULT_MAX_FILE_BYTES
from .errors import ReadError
from .gitignore import get_ignore_rules

BINARY_SNIFF_BYTES = 8192
TEXT_ENCODINGS = ("utf-8", "utf-8-sig", "latin-1")


def to_workspace_relative(path: Path, root: Path) -> str:
    try:
        return path.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        return path.as_posix()


def display_path_for(root: Path) -> Callable[[Path], str]:
    """Return a function mapping files to root-relative posix labels."""
    resolved_root = root.resolve()

    def display_path(path: Path) -> str:
        return to_workspace_relative(path, resolved_root)

    return display_path


def should_exclude(relative_path: str, exclude_patterns: Iterable[str]) -> bool:
    """Return whether a root-relative path matches any exclude glob.

    ``**/name/**`` style globs also match at the top level because the path is
    tested in ``/``-anchored form too.
    """
    anchored = f"/{relative_path}"
    return any(
        fnmatch.fnmatch(relative_path, pattern) or fnmatch.fnmatch(anchored, pattern)
        for pattern in exclude_patterns
    )


def should_exclude_dir(relative_dir: str, exclude_patterns: Iterable[str]) -> bool:
    """Return whether every file below ``relative_dir`` would be excluded.

    Tested with a trailing ``/`` so ``**/name/**`` prunes the directory itself.
    """
    return should_exclude(f"{relative_dir}/", exclude_patterns)


class WorkspaceFileLister:
    """Enumerate candidate files below ``root``.

    Uses ``rg --files`` when ripgrep is installed and falls back to ``os.walk``.
    Ignored and excluded directories are pruned while listing; the exclude
    globs are applied once more to the listed files.
    """

    def __init__(self, root: Path, show_hidden: bool = False, skip_gitignored: bool = True) -> None:
        self.root = root.resolve()
        self.show_hidden = show_hidden
        self.skip_gitignored = skip_gitignored

    def list_files(self, exclude_patterns: Iterable[str]) -> list[Path]:
        patterns = tuple(exclude_patterns)
        files = self._list_with_rg(patterns)
        if files is None:
            files = self._list_with_walk(patterns)
        return [path for path in files if not should_exclude(self._relative(path), patterns)]

    def _relative(self, path: Path) -> str:
        # listed paths are always built from the resolved root
        return path.relative_to(self.root).as_posix()

    def _is_hidden(self, relative: Path) -> bool:
        return any(part.startswith(".") for part in relative.parts)

    def _list_with_rg(self, patterns: tuple[str, ...]) -> list[Path] | None:
        if shutil.which("rg") is None:
            return None
        cmd = ["rg", "--files"]
        if not self.skip_gitignored:
            cmd.append("--no-ignore")
        if self.show_hidden:
            cmd.append("--hidden")
        # rg globs are gitignore-style; only path globs are passed so rg never
        # drops a file the exclude filter would keep.
        for pattern in patterns:
            if "/" in pattern:
                cmd.extend(["--glob", f"!{pattern}"])
        try:
            proc = subprocess.run(
                cmd,
                cwd=self.root,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=True,
            )
        except (OSError, subprocess.CalledProcessError) as exc:
            logger.debug("rg --files failed in {}: {}", self.root, exc)
            return None

        files: list[Path] = []
        for raw in proc.stdout.splitlines():
            if not raw:
                continue
            relative = Path(raw)
            if relative.is_absolute() or ".." in relative.parts:
                continue
            if not self.show_hidden and self._is_hidden(relative):
                continue
            files.append(self.root / relative)
        return files

    def _list_with_walk(self, patterns: tuple[str, ...]) -> list[Path]:
        rules = get_ignore_rules(self.root) if self.skip_gitignored else None
        files: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            base = Path(dirpath)
            if not self.show_hidden:
                dirnames[:] = [name for name in dirnames if not name.startswith(".")]
                filenames = [name for name in filenames if not name.startswith(".")]
            if rules is not None:
                dirnames[:] = [name for name in dirnames if not rules.is_ignored(base / name)]
                filenames = [name for name in filenames if not rules.is_ignored(base / name)]
            if patterns:
                dirnames[:] = [
                    name for name in dirnames if not should_exclude_dir(self._relative(base / name), patterns)
                ]
            for filename in filenames:
                path = base / filename
                if path.is_file():
                    files.append(path)
        return files


class WorkspaceFileReader:
    """Read text files, refusing binary and oversized content with ``ReadError``."""

    def __init__(self, max_file_bytes: int = DEFAULT_MAX_FILE_BYTES) -> None:
        self.max_file_bytes = max_file_bytes

    def read(self, path: Path) -> str:
        try:
            size = path.stat().st_size
            if size > self.max_file_bytes:
                raise ReadError(path, f"file is larger than {self.max_file_bytes} bytes")
            data = path.read_bytes()
        except OSError as exc:
            raise ReadError(path, exc.strerror or str(exc)) from exc

        if b"\x00" in data[:BINARY_SNIFF_BYTES]:
            raise ReadError(path, "binary content")
        for encoding in TEXT_ENCODINGS:
            try:
                return data.decode(encoding)
            except UnicodeDecodeError:
                continue
        return data.decode("utf-8", errors="replace")
