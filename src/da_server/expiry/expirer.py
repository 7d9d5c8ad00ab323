"""
Expiry service that bounds storage growth.

The Retention Problem
---------------------
Blobs only need to stay available for a fixed window. After that, the
chain no longer needs them and they just consume disk. The expirer removes
blobs whose age (time since last modification) exceeds the configured TTL.

How It Works
------------
1. Wait for the next tick (one hour) or a stop request
2. Reconcile the expiry index with a directory scan (every tick by default)
3. Pop index entries recorded before the cutoff
4. Re-read each file's real mtime; delete it if still older than the TTL
5. Repeat until stopped

The store records every write in the index, so blobs written through it
expire even on ticks that skip the scan. The scan catches files the store
never saw: blobs left from a previous run, files copied in by hand, and
files whose mtime was changed after they were written.

Failures never abort the service:

- A failed delete is logged and the blob is retried next tick.
- A failed scan is logged and the tick ends; the scan is retried next tick.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Final

from da_server.errors import NotFoundError, StorageError
from da_server.metrics import blobs_expired, expiry_sweep_time
from da_server.storage import ExpiryIndex, FileBlobStore

logger = logging.getLogger(__name__)

SWEEP_INTERVAL: Final = 3600.0
"""Seconds between sweeps."""

SECONDS_PER_HOUR: Final = 3600
"""Conversion factor for the TTL."""

RESCAN_EVERY: Final = 1
"""Sweeps per reconciling directory scan."""


class ExpirerState(Enum):
    """Lifecycle of the expiry service."""

    IDLE = "idle"
    """TTL disabled or not started yet."""

    RUNNING = "running"
    """Sweep loop active."""

    STOPPED = "stopped"
    """Sweep loop has exited."""


@dataclass(slots=True)
class Expirer:
    """Periodically deletes blobs older than the retention window."""

    store: FileBlobStore
    """Store whose blobs are expired."""

    index: ExpiryIndex
    """Index of blob modification times, fed by the store."""

    ttl_hours: int
    """Retention window in hours. Zero disables expiry."""

    interval: float = SWEEP_INTERVAL
    """Seconds between sweeps (injectable for tests)."""

    rescan_every: int = RESCAN_EVERY
    """Sweeps per reconciling directory scan. One scans on every sweep."""

    time_fn: Callable[[], float] = field(default=time.time)
    """Wall-clock source (injectable for deterministic testing)."""

    _state: ExpirerState = field(default=ExpirerState.IDLE, init=False)
    """Current lifecycle state."""

    _stop: asyncio.Event | None = field(default=None, init=False)
    """Set to request the loop to exit."""

    _task: asyncio.Task[None] | None = field(default=None, init=False)
    """The sweep loop task."""

    _until_scan: int = field(default=0, init=False)
    """Sweeps left before the next reconciling scan."""

    @property
    def state(self) -> ExpirerState:
        """Current lifecycle state."""
        return self._state

    def start(self) -> None:
        """Start the sweep loop. Does nothing when the TTL is disabled."""
        if self.ttl_hours <= 0:
            logger.info("Blob expiry disabled")
            return
        if self._state is ExpirerState.RUNNING:
            return

        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="expirer")
        self._state = ExpirerState.RUNNING
        logger.info(
            "Blob expiry enabled: ttl=%dh, sweep every %.0fs", self.ttl_hours, self.interval
        )

    async def stop(self) -> None:
        """
        Stop the sweep loop and wait for it to exit.

        No sweep runs after this returns.
        """
        if self._task is None or self._stop is None:
            return

        self._stop.set()
        await self._task
        self._task = None
        self._state = ExpirerState.STOPPED
        logger.info("Blob expiry stopped")

    async def _run(self) -> None:
        """Tick until stopped."""
        assert self._stop is not None
        while not self._stop.is_set():
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except TimeoutError:
                await self.tick()

    async def tick(self) -> int:
        """Run one sweep off the event loop."""
        return await asyncio.to_thread(self.sweep)

    def sweep(self) -> int:
        """
        Delete every blob older than the TTL.

        Returns:
            Number of blobs deleted.
        """
        start = time.perf_counter()

        # Files the store never recorded are only known from disk.
        if self._until_scan <= 0:
            try:
                refreshed = self.index.seed(self.store.scan())
            except StorageError as e:
                logger.error("Expiry scan failed, retrying next tick: %s", e)
                return 0
            self._until_scan = self.rescan_every
            logger.debug("Reconciled expiry index with disk: %d blob(s) refreshed", refreshed)
        self._until_scan -= 1

        cutoff = self.time_fn() - self.ttl_hours * SECONDS_PER_HOUR
        removed = 0

        for key, _ in self.index.pop_expired(cutoff):
            # The index may lag behind the disk; the real mtime decides.
            try:
                mtime = self.store.modified_at(key)
            except NotFoundError:
                continue
            except StorageError as e:
                logger.warning("Failed to stat blob %s: %s", key.hex(), e)
                self.index.record(key, cutoff)
                continue

            if mtime >= cutoff:
                self.index.record(key, mtime)
                continue

            try:
                self.store.delete(key)
            except StorageError as e:
                logger.warning("Failed to delete expired blob %s: %s", key.hex(), e)
                self.index.record(key, mtime)
                continue

            removed += 1
            logger.debug("Expired blob %s", key.hex())

        blobs_expired.inc(removed)
        expiry_sweep_time.observe(time.perf_counter() - start)
        if removed:
            logger.info("Expiry sweep removed %d blob(s)", removed)
        return removed
