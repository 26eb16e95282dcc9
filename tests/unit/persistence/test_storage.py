"""Unit tests for switchyard.persistence.storage module."""

import json
from pathlib import Path

import pytest

from switchyard.core.errors import StorageError
from switchyard.persistence.storage import JsonFileStorage, MemoryStorage, Storage


class TestJsonFileStorage:
    """Test the file backend."""

    async def test_missing_key_loads_none(self, tmp_path: Path) -> None:
        storage = JsonFileStorage(tmp_path)
        assert await storage.load("agents") is None

    async def test_save_writes_key_json_file(self, tmp_path: Path) -> None:
        """Values land in <key>.json and read back equal."""
        storage = JsonFileStorage(tmp_path / "data")
        value = [{"id": "agent-1", "currentLoad": 2}]

        await storage.save("agents", value)

        path = tmp_path / "data" / "agents.json"
        assert path.is_file()
        assert json.loads(path.read_text()) == value
        assert await storage.load("agents") == value
        assert not (tmp_path / "data" / "agents.tmp").exists()

    async def test_corrupt_file_raises_storage_error(self, tmp_path: Path) -> None:
        (tmp_path / "agents.json").write_text("{not json")
        storage = JsonFileStorage(tmp_path)

        with pytest.raises(StorageError) as exc_info:
            await storage.load("agents")
        assert exc_info.value.operation == "load"
        assert exc_info.value.kind == "IOError"

    async def test_unserializable_value_raises_storage_error(self, tmp_path: Path) -> None:
        storage = JsonFileStorage(tmp_path)

        with pytest.raises(StorageError) as exc_info:
            await storage.save("agents", {"bad": object()})
        assert exc_info.value.operation == "save"

    @pytest.mark.parametrize("key", ["../escape", "a/b", ""])
    def test_rejects_keys_outside_data_dir(self, tmp_path: Path, key: str) -> None:
        storage = JsonFileStorage(tmp_path)

        with pytest.raises(StorageError):
            storage.path_for(key)

    def test_satisfies_protocol(self, tmp_path: Path) -> None:
        assert isinstance(JsonFileStorage(tmp_path), Storage)
        assert isinstance(MemoryStorage(), Storage)


class TestMemoryStorage:
    """Test the in-memory backend."""

    async def test_values_are_copied(self) -> None:
        """Mutating a saved or loaded value does not change the stored one."""
        storage = MemoryStorage()
        value = {"items": [1, 2]}

        await storage.save("k", value)
        value["items"].append(3)
        loaded = await storage.load("k")
        loaded["items"].append(4)

        assert await storage.load("k") == {"items": [1, 2]}
        assert storage.keys() == ["k"]

    async def test_initial_data(self) -> None:
        storage = MemoryStorage({"agents": []})
        assert await storage.load("agents") == []
