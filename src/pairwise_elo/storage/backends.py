"""Durable storage backends for store snapshots.

A backend only moves bytes: ``load_snapshot`` returns the last written
snapshot (or ``None``) and ``write_snapshot`` replaces it. Encoding and
ordering are the persistence gateway's job.
"""

from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

from ..exceptions import PersistenceError

logger = logging.getLogger(__name__)


class BaseSnapshotBackend(ABC):
    """Abstract base class for snapshot storage.

    Supported backends:
    - JsonFileBackend: A JSON file on local disk, replaced atomically
    - MemoryBackend: In-process bytes, for tests and embedding
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the backend's name identifier."""
        ...

    @abstractmethod
    async def load_snapshot(self) -> bytes | None:
        """Return the stored snapshot, or ``None`` if nothing was stored.

        Unreadable storage is reported as ``None`` so the caller can start
        from an empty store.
        """
        ...

    @abstractmethod
    async def write_snapshot(self, data: bytes) -> None:
        """Replace the stored snapshot with ``data``.

        Raises:
            PersistenceError: If the snapshot could not be written.
        """
        ...


class JsonFileBackend(BaseSnapshotBackend):
    """Stores the snapshot in a single JSON file.

    Writes go to a sibling temp file first and are moved into place with
    ``os.replace``, so a crash mid-write never leaves a truncated snapshot.

    Example:
        ```python
        backend = JsonFileBackend("~/.pairwise-elo/data.json")
        await backend.write_snapshot(store.serialize())
        ```
    """

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    @property
    def name(self) -> str:
        return "json-file"

    async def load_snapshot(self) -> bytes | None:
        return await asyncio.to_thread(self._read)

    async def write_snapshot(self, data: bytes) -> None:
        await asyncio.to_thread(self._write, data)

    def _read(self) -> bytes | None:
        if not self.path.exists():
            return None
        try:
            return self.path.read_bytes()
        except OSError as e:
            logger.warning(f"Could not read snapshot {self.path}: {e}")
            return None

    def _write(self, data: bytes) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(data)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PersistenceError(str(e), path=str(self.path)) from e


class MemoryBackend(BaseSnapshotBackend):
    """Keeps snapshots in memory.

    Useful for:
    - Unit testing write ordering and coalescing
    - Embedding the engine where the host owns durability

    Example:
        ```python
        backend = MemoryBackend(delay=0.01, fail_writes=1)
        # The first write raises PersistenceError, later writes succeed
        ```
    """

    def __init__(
        self,
        data: bytes | None = None,
        delay: float = 0.0,
        fail_writes: int = 0,
    ):
        """Initialize the backend.

        Args:
            data: Snapshot returned by the first load.
            delay: Seconds each write takes, to simulate slow storage.
            fail_writes: Number of upcoming writes that raise PersistenceError.
        """
        self.data = data
        self.delay = delay
        self.fail_writes = fail_writes
        self.writes: list[bytes] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def name(self) -> str:
        return "memory"

    async def load_snapshot(self) -> bytes | None:
        return self.data

    async def write_snapshot(self, data: bytes) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.fail_writes > 0:
                self.fail_writes -= 1
                raise PersistenceError("simulated write failure", path="memory")
            self.data = data
            self.writes.append(data)
        finally:
            self.in_flight -= 1
