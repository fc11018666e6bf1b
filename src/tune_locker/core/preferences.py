"""
Durable preference storage (playlists, favorites).

Values are JSON-compatible documents addressed by key. Each key is written
whole; there are no partial updates.
"""

import asyncio
import copy
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Protocol

from loguru import logger

from tune_locker.core.exceptions import PersistenceError

PLAYLISTS_KEY = "playlists"
FAVORITES_KEY = "favorites"


class PreferenceStore(Protocol):
    """Durable key/value store for user preferences."""

    async def load(self, key: str) -> Optional[Any]: ...

    async def save(self, key: str, value: Any) -> None: ...


class MemoryPreferenceStore:
    """Preference store kept in process memory.

    Every save is appended to ``writes`` as ``(key, value)`` so callers can
    observe the sequence of persisted documents.
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._values: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self.writes: list[tuple[str, Any]] = []

    async def load(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._values.get(key))

    async def save(self, key: str, value: Any) -> None:
        snapshot = copy.deepcopy(value)
        self._values[key] = snapshot
        self.writes.append((key, snapshot))


class JsonPreferenceStore:
    """Preference store writing one ``<key>.json`` file per key."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _load_sync(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _save_sync(self, key: str, value: Any) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        # Write to a temp file then replace, so readers never see half a document
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f, indent=2)
            os.replace(tmp_name, self._path(key))
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    async def load(self, key: str) -> Optional[Any]:
        try:
            return await asyncio.to_thread(self._load_sync, key)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load preference '{key}': {e}")
            raise PersistenceError(f"Failed to load preference '{key}': {e}") from e

    async def save(self, key: str, value: Any) -> None:
        try:
            await asyncio.to_thread(self._save_sync, key, value)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save preference '{key}': {e}")
            raise PersistenceError(f"Failed to save preference '{key}': {e}") from e
