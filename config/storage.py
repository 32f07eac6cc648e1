"""
Key-value storage backends.

Provides the store singleton used to persist the catalog, the staged set
and the session settings. Values are JSON documents addressed by key.
"""

import json
import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)


class StoreError(Exception):
    """Base exception for storage errors."""
    pass


class KeyValueStore:
    """
    Minimal key-value interface.

    get() returns the raw JSON text (or None when the key is unset) so
    callers decide how to treat undecodable values.
    """

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def get_json(self, key: str) -> Any:
        """Get and decode a value. Raises ValueError on malformed JSON."""
        raw = self.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value, ensure_ascii=False))


class MemoryStore(KeyValueStore):
    """In-process store. Nothing survives a restart."""

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """
    One file per key under a directory.

    Writes go to a temp file in the same directory and are moved into
    place with os.replace, so a reader sees either the old or the new value.
    """

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error("store_read_failed", key=key, error=str(e))
            raise StoreError(f"Failed to read {key}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.directory, prefix=f".{key}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp_name, path)
        except OSError as e:
            logger.error("store_write_failed", key=key, error=str(e))
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreError(f"Failed to write {key}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass


@lru_cache()
def get_store() -> KeyValueStore:
    """
    Get cached store instance for the configured backend.

    Call get_store.cache_clear() to switch backends.
    """
    if settings.storage_backend == "memory":
        logger.info("store_initialized", backend="memory")
        return MemoryStore()

    logger.info("store_initialized", backend="file", directory=settings.storage_dir)
    return JsonFileStore(settings.storage_dir)
