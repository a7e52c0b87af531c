"""Local key-value persistence for session identity, queue, and form snapshots.

One injected store is shared by the session manager and the offline
queue.  :class:`Namespace` gives each consumer a prefixed view so key
construction lives in one place.

Implementations:
  - MemoryStore: process-local dict (tests, ephemeral servers)
  - JsonFileStore: a single JSON document on disk, rewritten atomically
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path

from intake_forms.interfaces import KeyValueStore

logger = logging.getLogger(__name__)


class MemoryStore(KeyValueStore):
    """Dict-backed store; contents vanish with the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def multi_remove(self, keys: list[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    async def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStore(KeyValueStore):
    """All keys in one JSON object on disk.

    Every mutation rewrites the whole file (temp file + ``os.replace``), so
    a crash never leaves a half-written document behind.  The in-memory
    copy is re-read whenever the file on disk has changed since this
    instance last saw it, so a server and the retry CLI sharing one state
    file do not write back each other's stale lists.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._data: dict[str, str] | None = None
        # (inode, mtime_ns, size) of the file the cache was read from or written to
        self._seen: tuple[int, int, int] | None = None
        self._lock = asyncio.Lock()

    def _signature(self) -> tuple[int, int, int] | None:
        try:
            st = self._path.stat()
        except FileNotFoundError:
            return None
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    async def _load(self) -> dict[str, str]:
        signature = await asyncio.to_thread(self._signature)
        if self._data is None or signature != self._seen:
            if self._data is not None:
                logger.debug("%s changed on disk; reloading", self._path)
            self._data = await asyncio.to_thread(self._read)
            self._seen = signature
        return self._data

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        with self._path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
        if not isinstance(raw, dict):
            raise ValueError(f"State file is not a JSON object: {self._path}")
        return {str(k): str(v) for k, v in raw.items()}

    def _write(self, data: dict[str, str]) -> tuple[int, int, int] | None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self._path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        return self._signature()

    async def _flush(self, data: dict[str, str]) -> None:
        self._seen = await asyncio.to_thread(self._write, dict(data))

    async def get(self, key: str) -> str | None:
        data = await self._load()
        return data.get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            data = await self._load()
            data[key] = value
            await self._flush(data)

    async def remove(self, key: str) -> None:
        await self.multi_remove([key])

    async def multi_remove(self, keys: list[str]) -> None:
        async with self._lock:
            data = await self._load()
            removed = [k for k in keys if data.pop(k, None) is not None]
            if removed:
                await self._flush(data)
                logger.debug("Removed %d keys from %s", len(removed), self._path)

    async def keys(self) -> list[str]:
        data = await self._load()
        return list(data)


class Namespace(KeyValueStore):
    """Prefixed view over another store.

    ``Namespace(store, "offline_form_data_").get("bdi")`` reads the
    underlying ``offline_form_data_bdi`` key.
    """

    def __init__(self, store: KeyValueStore, prefix: str) -> None:
        self._store = store
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> str | None:
        return await self._store.get(self._key(key))

    async def set(self, key: str, value: str) -> None:
        await self._store.set(self._key(key), value)

    async def remove(self, key: str) -> None:
        await self._store.remove(self._key(key))

    async def multi_remove(self, keys: list[str]) -> None:
        await self._store.multi_remove([self._key(k) for k in keys])

    async def keys(self) -> list[str]:
        return [
            k[len(self._prefix):]
            for k in await self._store.keys()
            if k.startswith(self._prefix)
        ]
