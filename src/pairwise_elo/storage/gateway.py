"""Coalesced, strictly ordered persistence of the rating store.

The gateway is a small state machine:

    IDLE --schedule_save()--> PENDING --timer fires--> WRITING --> IDLE
    PENDING --schedule_save()--> PENDING (deadline refreshed)
    any --flush_now()--> WRITING --> IDLE

A burst of ``schedule_save`` calls produces exactly one write once the burst
has been quiet for the debounce window. Every write passes through a single
lane, so writes never overlap and land in the order they were started. The
snapshot is encoded when a write begins, inside the lane, so it reflects one
point in time.

A failed write, whether encoding or storage failed, is logged and counted;
in-memory state stays the source of truth and the next scheduled save tries
again.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .backends import BaseSnapshotBackend
    from .store import RatingStore

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3


class SaveState(str, Enum):
    """Persistence state."""

    IDLE = "idle"
    PENDING = "pending"
    WRITING = "writing"


class PersistenceGateway:
    """Debounces and serializes writes of a RatingStore snapshot.

    Must be used from inside a running asyncio event loop.

    Example:
        ```python
        gateway = PersistenceGateway(store, JsonFileBackend("data.json"))
        await gateway.load()

        store.apply_match(key, "a", "b", MatchOutcome.DRAW)
        gateway.schedule_save()  # written ~300 ms after the last call

        await gateway.flush_now()  # on shutdown
        ```
    """

    def __init__(
        self,
        store: RatingStore,
        backend: BaseSnapshotBackend,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        """Initialize the gateway.

        Args:
            store: Store whose snapshot is persisted.
            backend: Durable storage for the encoded snapshot.
            debounce_seconds: Quiet period before a scheduled write fires.
        """
        self._store = store
        self._backend = backend
        self.debounce_seconds = debounce_seconds

        self._timer: asyncio.TimerHandle | None = None
        self._lane = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()

        self.write_count = 0
        self.failure_count = 0
        self.last_error: str | None = None

    @property
    def state(self) -> SaveState:
        if self._lane.locked():
            return SaveState.WRITING
        if self._timer is not None:
            return SaveState.PENDING
        return SaveState.IDLE

    async def load(self) -> None:
        """Load the stored snapshot into the store.

        A missing, malformed or incomplete snapshot leaves the store empty
        (with default settings) and a fresh baseline is written immediately.
        """
        data = await self._backend.load_snapshot()
        needs_baseline = self._store.restore(data)
        if needs_baseline:
            logger.info(f"Writing fresh baseline snapshot via {self._backend.name}")
            await self.flush_now()

    def schedule_save(self) -> None:
        """Request a write after the debounce window.

        Calling again while a write is pending pushes its deadline back
        instead of adding another write.
        """
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self.debounce_seconds, self._on_timer)

    async def flush_now(self) -> None:
        """Cancel any pending debounce and write immediately.

        Waits for writes already in the lane before its own write runs.
        """
        self._cancel_timer()
        await self._write()

    async def close(self) -> None:
        """Flush a pending save and wait for in-flight writes to finish."""
        if self._timer is not None:
            await self.flush_now()
        if self._tasks:
            await asyncio.gather(*self._tasks)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self._write())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _write(self) -> None:
        async with self._lane:
            try:
                data = self._store.serialize()
                await self._backend.write_snapshot(data)
            except Exception as e:
                self.failure_count += 1
                self.last_error = str(e)
                logger.error(f"Snapshot write failed via {self._backend.name}: {e}")
                return

            self.write_count += 1
            self.last_error = None
            logger.debug(f"Snapshot written via {self._backend.name} ({len(data)} bytes)")
