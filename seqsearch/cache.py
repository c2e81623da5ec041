"""Time-bounded file content cache.

Entries expire purely by age. There is no check against file mtime or size,
so an edit made within the TTL window is not seen until the entry goes stale.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

CONTENT_CACHE_TTL_SECONDS = 5 * 60.0


class FileReader(Protocol):
    def read(self, path: Path) -> str: ...


@dataclass(frozen=True)
class CacheEntry:
    content: str
    timestamp: float


class ContentCache:
    """Read-through cache in front of a ``FileReader``.

    ``ReadError`` from the reader propagates and nothing is stored for it.
    """

    def __init__(
        self,
        reader: FileReader,
        ttl_seconds: float = CONTENT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.reader = reader
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: dict[Path, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, path: Path) -> str:
        now = self.clock()
        with self._lock:
            entry = self._entries.get(path)
        if entry is not None and now - entry.timestamp < self.ttl_seconds:
            return entry.content

        content = self.reader.read(path)
        with self._lock:
            self._entries[path] = CacheEntry(content=content, timestamp=self.clock())
        return content

    def invalidate(self, path: Path) -> None:
        with self._lock:
            self._entries.pop(path, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
