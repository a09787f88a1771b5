"""Async key-value stores for persisting correction state."""
from __future__ import annotations

import asyncio
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol, Union, runtime_checkable

logger = logging.getLogger(__name__)

__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
]


@runtime_checkable
class KeyValueStore(Protocol):
    """Host-provided persistent storage with async get/set semantics."""

    async def get(self, key: str) -> Any:
        ...

    async def set(self, key: str, value: Any) -> None:
        ...

    async def set_many(self, items: Mapping[str, Any]) -> None:
        """Write several keys together; either all are stored or none."""
        ...


class MemoryStore:
    """Dict-backed store, useful for tests and short-lived sessions."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = dict(initial or {})

    async def get(self, key: str) -> Any:
        return self._data.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    async def set_many(self, items: Mapping[str, Any]) -> None:
        self._data.update(items)

    def snapshot(self) -> Dict[str, Any]:
        return dict(self._data)


class JsonFileStore:
    """Store every key in a single JSON document on disk.

    File I/O runs in a worker thread through :func:`asyncio.to_thread` so the
    event loop is never blocked. Writes go to a temporary sibling first and
    are then moved into place.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    async def get(self, key: str) -> Any:
        data = await asyncio.to_thread(self._read)
        return data.get(key)

    async def set(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._update, {key: value})

    async def set_many(self, items: Mapping[str, Any]) -> None:
        await asyncio.to_thread(self._update, dict(items))

    def _read(self) -> Dict[str, Any]:
        with self._lock:
            return self._read_unlocked()

    def _read_unlocked(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def _update(self, items: Dict[str, Any]) -> None:
        with self._lock:
            data = self._read_unlocked()
            data.update(items)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            temp_path.replace(self.path)
        logger.debug(f"Saved {', '.join(items)} to {self.path}")
