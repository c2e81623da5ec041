"""Git-backed ignore rules for workspace file listing.

Asks git which paths under a workspace root are ignored and caches the answer
briefly so consecutive searches do not re-run git.
"""

from __future__ import annotations

import shutil
import subprocess
import time
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

IGNORE_CACHE_MAX = 16
IGNORE_CACHE_TTL_SECONDS = 2.0


@dataclass(frozen=True)
class IgnoreRules:
    """Ignored files and directories (resolved paths) under ``root``."""

    root: Path
    ignored_files: frozenset[Path]
    ignored_dirs: frozenset[Path]

    def is_ignored(self, path: Path) -> bool:
        resolved = path.resolve()
        if not resolved.is_relative_to(self.root):
            return False
        if resolved in self.ignored_files:
            return True
        return any(parent in self.ignored_dirs for parent in (resolved, *resolved.parents))


@dataclass(frozen=True)
class _CachedRules:
    rules: IgnoreRules | None
    root_mtime_ns: int | None
    loaded_at: float


_RULES_CACHE: OrderedDict[Path, _CachedRules] = OrderedDict()


def clear_ignore_cache() -> None:
    _RULES_CACHE.clear()


def _git_lines(args: list[str]) -> bytes | None:
    try:
        proc = subprocess.run(
            ["git", *args],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        logger.debug("git {} failed: {}", " ".join(args), exc)
        return None
    return proc.stdout


def load_ignore_rules(root: Path) -> IgnoreRules | None:
    """Query git for ignored paths under ``root``.

    Returns ``None`` when git is missing or ``root`` is not inside a work tree.
    """
    if shutil.which("git") is None:
        return None

    root = root.resolve()
    top_level = _git_lines(["-C", str(root), "rev-parse", "--show-toplevel"])
    if not top_level or not top_level.strip():
        return None
    repo_root = Path(top_level.decode("utf-8", errors="replace").strip()).resolve()
    if not root.is_relative_to(repo_root):
        return None

    listing = _git_lines(
        ["-C", str(repo_root), "ls-files", "-z", "--others", "-i", "--exclude-standard", "--directory"]
    )
    if listing is None:
        return None

    ignored_files: set[Path] = set()
    ignored_dirs: set[Path] = set()
    for raw in listing.split(b"\x00"):
        relative = raw.decode("utf-8", errors="replace")
        is_dir = relative.endswith("/")
        relative = relative.rstrip("/")
        if not relative:
            continue
        absolute = (repo_root / relative).resolve()
        if not absolute.is_relative_to(root):
            continue
        if is_dir or absolute.is_dir():
            ignored_dirs.add(absolute)
        else:
            ignored_files.add(absolute)

    return IgnoreRules(root=root, ignored_files=frozenset(ignored_files), ignored_dirs=frozenset(ignored_dirs))


def get_ignore_rules(root: Path) -> IgnoreRules | None:
    """Return cached rules for ``root``, reloading after TTL or a root mtime change."""
    resolved_root = root.resolve()
    try:
        root_mtime_ns: int | None = resolved_root.stat().st_mtime_ns
    except OSError:
        root_mtime_ns = None
    now = time.monotonic()

    cached = _RULES_CACHE.get(resolved_root)
    if (
        cached is not None
        and cached.root_mtime_ns == root_mtime_ns
        and now - cached.loaded_at <= IGNORE_CACHE_TTL_SECONDS
    ):
        _RULES_CACHE.move_to_end(resolved_root)
        return cached.rules

    rules = load_ignore_rules(resolved_root)
    _RULES_CACHE[resolved_root] = _CachedRules(rules=rules, root_mtime_ns=root_mtime_ns, loaded_at=now)
    _RULES_CACHE.move_to_end(resolved_root)
    while len(_RULES_CACHE) > IGNORE_CACHE_MAX:
        _RULES_CACHE.popitem(last=False)
    return rules
