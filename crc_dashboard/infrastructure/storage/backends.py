"""
Text key-value backends: the local storage the dashboard persists into.

Backends only move strings. Encoding and fallback handling live in
`KeyValueStore`.
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path

from crc_dashboard.utils.logger import get_logger

logger = get_logger()

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class MemoryBackend:
    """Dict-backed storage. Used for tests and single-process demos."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, text: str) -> None:
        self._data[key] = text

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data.keys())


class FileBackend:
    """
    One `<key>.json` file per storage key under a data directory.

    Writes go to a temp file first and are moved into place with `os.replace`,
    so readers see either the old text or the new text, never a partial write.
    There is no locking: concurrent writers race and the last replace wins.
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._root / f"{key}.json"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        if not path.is_file():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except UnicodeDecodeError as e:
            logger.warning("Corrupt stored value for %s, not valid UTF-8: %s", key, e)
            return None
        except OSError as e:
            logger.warning("Storage read failed for %s: %s", key, e)
            return None

    def set_item(self, key: str, text: str) -> None:
        path = self._path(key)
        # One temp file per call: tabs share this backend across threads.
        fd, tmp_name = tempfile.mkstemp(dir=self._root, prefix=f"{path.name}.", suffix=".tmp")
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp, path)
        finally:
            if tmp.exists():
                tmp.unlink()

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            pass

    def keys(self) -> list[str]:
        return sorted(p.stem for p in self._root.glob("*.json"))
