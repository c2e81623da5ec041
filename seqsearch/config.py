"""Persistent JSON config helpers.

Stores search tuning knobs, workspace exclude globs, and listing preferences.
All access is defensive: malformed or missing config falls back safely.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path

from loguru import logger
from platformdirs import user_config_dir

APP_NAME = "seqsearch"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME

DEFAULT_EXCLUDE_PATTERNS = ("**/node_modules/**",)
DEFAULT_MAX_FILE_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True)
class SearchSettings:
    chunk_size: int = 100
    batch_size: int = 20
    cache_ttl_seconds: float = 300.0
    exclude_patterns: tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS
    show_hidden: bool = False
    skip_gitignored: bool = True
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except Exception as exc:
        logger.warning("ignoring unreadable config {}: {}", CONFIG_PATH, exc)
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON.

    Filesystem/serialization errors are logged and otherwise ignored.
    """
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except Exception as exc:
        logger.warning("could not write config {}: {}", CONFIG_PATH, exc)


def _coerce_positive_int(value: object, default: int) -> int:
    """Accept only real integers >= 1; booleans are rejected."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return default
    return value


def _coerce_positive_float(value: object, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return default
    return float(value)


def _coerce_bool(value: object, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _coerce_patterns(value: object, default: tuple[str, ...]) -> tuple[str, ...]:
    """Keep non-empty string globs; anything that is not a list falls back."""
    if not isinstance(value, list):
        return default
    return tuple(item.strip() for item in value if isinstance(item, str) and item.strip())


def load_settings() -> SearchSettings:
    """Build ``SearchSettings`` from config, validating each key on its own."""
    data = load_config()
    defaults = SearchSettings()
    return SearchSettings(
        chunk_size=_coerce_positive_int(data.get("chunk_size"), defaults.chunk_size),
        batch_size=_coerce_positive_int(data.get("batch_size"), defaults.batch_size),
        cache_ttl_seconds=_coerce_positive_float(data.get("cache_ttl_seconds"), defaults.cache_ttl_seconds),
        exclude_patterns=_coerce_patterns(data.get("exclude_patterns"), defaults.exclude_patterns),
        show_hidden=_coerce_bool(data.get("show_hidden"), defaults.show_hidden),
        skip_gitignored=_coerce_bool(data.get("skip_gitignored"), defaults.skip_gitignored),
        max_file_bytes=_coerce_positive_int(data.get("max_file_bytes"), defaults.max_file_bytes),
    )


def save_settings(settings: SearchSettings) -> None:
    """Persist every settings key, keeping unrelated config keys intact."""
    config = load_config()
    for item in fields(settings):
        value = getattr(settings, item.name)
        config[item.name] = list(value) if isinstance(value, tuple) else value
    save_config(config)
