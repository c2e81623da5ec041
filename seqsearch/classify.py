"""Extension-based binary file classification for content searches."""

from __future__ import annotations

from pathlib import Path

BINARY_EXTENSIONS = frozenset(
    {
        # images
        ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".tif", ".tiff", ".webp",
        ".psd", ".heic", ".icns",
        # audio
        ".mp3", ".wav", ".ogg", ".flac", ".aac", ".m4a", ".wma",
        # video
        ".mp4", ".avi", ".mov", ".mkv", ".webm", ".wmv", ".flv", ".m4v",
        # archives
        ".zip", ".tar", ".gz", ".tgz", ".bz2", ".xz", ".7z", ".rar", ".jar", ".war",
        ".zst",
        # documents
        ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".odt", ".ods",
        ".odp",
        # executables and libraries
        ".exe", ".dll", ".so", ".dylib", ".bin", ".o", ".a", ".lib", ".obj",
        ".class", ".pyc", ".pyo", ".wasm",
        # fonts
        ".ttf", ".otf", ".woff", ".woff2", ".eot",
        # databases and misc
        ".db", ".sqlite", ".sqlite3", ".dat", ".pkl", ".npy", ".npz", ".parquet",
        ".iso", ".dmg",
    }
)


class FileClassifier:
    def __init__(self, extensions: frozenset[str] = BINARY_EXTENSIONS) -> None:
        self.extensions = frozenset(ext.lower() for ext in extensions)

    def is_binary(self, path: Path) -> bool:
        """Return whether ``path`` has a known binary extension (case-insensitive)."""
        return path.suffix.lower() in self.extensions
