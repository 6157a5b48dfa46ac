"""
Durable key-value storage for attempt snapshots and submitted payloads.

Values are JSON strings. Backends raise StorageError on I/O failure; callers
decide whether the failure matters (for the player it never does).

- JsonFileStorage: one ``<key>.json`` file per key under a directory
- SqliteStorage: a single ``kv`` table in an SQLite file
- MemoryStorage: process-local dict
"""

from __future__ import annotations

import os
import re
import sqlite3
from pathlib import Path
from typing import Protocol

from loguru import logger

from selfstudy.config import Settings, StorageBackend
from selfstudy.exceptions import StorageError

_SAFE_KEY = re.compile(r"[^A-Za-z0-9._-]")


class KeyValueStorage(Protocol):
    """Protocol for durable string storage."""

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryStorage:
    """Dict-backed storage. Nothing survives the process."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class JsonFileStorage:
    """
    Stores each key as ``{key}.json`` under ``directory``.

    Writes go to a temporary file first and are moved into place, so a crash
    mid-write leaves the previous value intact.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{_SAFE_KEY.sub('_', key)}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp.write_text(value, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e

    def remove(self, key: str) -> None:
        path = self._path(key)
        try:
            if path.exists():
                path.unlink()
        except OSError as e:
            raise StorageError(f"Failed to remove {path}: {e}") from e


class SqliteStorage:
    """SQLite-backed storage in a single ``kv`` table."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                self._conn = sqlite3.connect(str(self.db_path))
                self._conn.execute(
                    "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
                )
                self._conn.commit()
            except (OSError, sqlite3.Error) as e:
                self._conn = None
                raise StorageError(f"Cannot open {self.db_path}: {e}") from e
        return self._conn

    def get(self, key: str) -> str | None:
        try:
            row = self.conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read {key}: {e}") from e
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        try:
            self.conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to write {key}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self.conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            self.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to remove {key}: {e}") from e

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


def create_storage(settings: Settings) -> KeyValueStorage:
    """Build the storage backend selected in settings."""
    backend = settings.storage_backend
    if backend == StorageBackend.MEMORY:
        storage: KeyValueStorage = MemoryStorage()
    elif backend == StorageBackend.SQLITE:
        storage = SqliteStorage(settings.data_dir / "selfstudy.db")
    else:
        storage = JsonFileStorage(settings.data_dir / "storage")
    logger.debug("Using {} storage", backend.value)
    return storage
