"""
Unit tests for the key-value storage backends.
"""

import pytest

from selfstudy.config import Settings, StorageBackend
from selfstudy.exceptions import StorageError
from selfstudy.player.storage import (
    JsonFileStorage,
    MemoryStorage,
    SqliteStorage,
    create_storage,
)


@pytest.fixture(params=["memory", "json", "sqlite"])
def backend(request, tmp_path):
    if request.param == "memory":
        yield MemoryStorage()
    elif request.param == "json":
        yield JsonFileStorage(tmp_path / "storage")
    else:
        db = SqliteStorage(tmp_path / "selfstudy.db")
        yield db
        db.close()


class TestKeyValueStorage:
    """Behaviour shared by every backend."""

    def test_missing_key(self, backend):
        assert backend.get("nope") is None

    def test_set_and_get(self, backend):
        backend.set("selfstudy-attempt", '{"module_index": 1}')
        assert backend.get("selfstudy-attempt") == '{"module_index": 1}'

    def test_overwrite(self, backend):
        backend.set("k", "1")
        backend.set("k", "2")
        assert backend.get("k") == "2"

    def test_remove(self, backend):
        backend.set("k", "1")
        backend.remove("k")
        backend.remove("k")
        assert backend.get("k") is None


class TestJsonFileStorage:
    """JSON file backend specifics."""

    def test_one_file_per_key(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        storage.set("selfstudy-attempt", "{}")

        assert (tmp_path / "selfstudy-attempt.json").read_text() == "{}"

    def test_unsafe_key_characters_replaced(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        storage.set("../escape/key", "{}")

        assert storage.get("../escape/key") == "{}"
        assert (tmp_path / ".._escape_key.json").exists()
        assert not (tmp_path.parent / "escape").exists()

    def test_write_failure_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        storage = JsonFileStorage(blocker / "sub")

        with pytest.raises(StorageError):
            storage.set("k", "v")


class TestSqliteStorage:
    """SQLite backend specifics."""

    def test_survives_reopen(self, tmp_path):
        db_path = tmp_path / "selfstudy.db"
        first = SqliteStorage(db_path)
        first.set("k", "v")
        first.close()

        second = SqliteStorage(db_path)
        try:
            assert second.get("k") == "v"
        finally:
            second.close()


class TestCreateStorage:
    """Backend selection from settings."""

    def test_memory(self, tmp_path):
        settings = Settings(storage_backend=StorageBackend.MEMORY, data_dir=tmp_path)
        assert isinstance(create_storage(settings), MemoryStorage)

    def test_json(self, tmp_path):
        settings = Settings(storage_backend=StorageBackend.JSON, data_dir=tmp_path)
        storage = create_storage(settings)

        assert isinstance(storage, JsonFileStorage)
        assert storage.directory == tmp_path / "storage"

    def test_sqlite(self, tmp_path):
        settings = Settings(storage_backend=StorageBackend.SQLITE, data_dir=tmp_path)
        storage = create_storage(settings)

        assert isinstance(storage, SqliteStorage)
        assert storage.db_path == tmp_path / "selfstudy.db"
