"""Key-value storage backends.

Every collection Switchyard keeps (the agent registry and the work queue)
is one JSON value under a string key. Backends:

- JsonFileStorage: <key>.json under a data directory, atomic writes
- MemoryStorage: process-local dict, for tests and dry runs

Both satisfy the Storage protocol. Failures surface as StorageError.
"""

from __future__ import annotations

import asyncio
import copy
import json
import os
from pathlib import Path
import re
from typing import Any, Protocol, runtime_checkable

from switchyard.core.errors import StorageError
from switchyard.observability.logging import get_logger

log = get_logger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


@runtime_checkable
class Storage(Protocol):
    """Async key-value store holding JSON values."""

    async def load(self, key: str) -> Any | None:
        """Return the value under key, or None if absent."""
        ...

    async def save(self, key: str, value: Any) -> None:
        """Replace the value under key."""
        ...


class JsonFileStorage:
    """File-backed storage writing one pretty-printed JSON file per key.

    Writes go to a temp file which is fsynced and renamed over the target,
    so a crash mid-write leaves the previous snapshot intact.

    Example:
        storage = JsonFileStorage(Path("~/.switchyard/data").expanduser())
        await storage.save("agents", [...])
        agents = await storage.load("agents")
    """

    def __init__(self, data_dir: str | Path) -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, key: str) -> Path:
        """Return the file path for a key.

        Raises:
            StorageError: If the key would escape the data directory.
        """
        if not _KEY_PATTERN.match(key):
            raise StorageError(f"Invalid storage key: {key!r}", key=key, operation="path")
        return self._data_dir / f"{key}.json"

    async def load(self, key: str) -> Any | None:
        path = self.path_for(key)
        return await asyncio.to_thread(self._read, key, path)

    async def save(self, key: str, value: Any) -> None:
        path = self.path_for(key)
        await asyncio.to_thread(self._write, key, path, value)

    def _read(self, key: str, path: Path) -> Any | None:
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            log.error("storage.read.failed", key=key, path=str(path), error=str(e))
            raise StorageError(
                f"Failed to load {key}: {e}", key=key, operation="load"
            ) from e

        log.debug("storage.read", key=key, path=str(path))
        return data

    def _write(self, key: str, path: Path, value: Any) -> None:
        temp_path = path.with_suffix(".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(value, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            temp_path.replace(path)
        except (OSError, TypeError, ValueError) as e:
            log.error("storage.write.failed", key=key, path=str(path), error=str(e))
            raise StorageError(
                f"Failed to save {key}: {e}", key=key, operation="save"
            ) from e

        log.debug("storage.wrote", key=key, path=str(path))


class MemoryStorage:
    """In-memory storage. Values are deep-copied in and out."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    async def load(self, key: str) -> Any | None:
        value = self._data.get(key)
        return copy.deepcopy(value)

    async def save(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def keys(self) -> list[str]:
        return list(self._data)


__all__ = [
    "JsonFileStorage",
    "MemoryStorage",
    "Storage",
]
