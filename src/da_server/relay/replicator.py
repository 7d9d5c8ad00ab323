"""
Background replication of stored blobs to relay peers.

A PUT is acknowledged as soon as the blob is on local disk. Copies on the
relay peers are best-effort and happen afterwards.

Work is bounded:

- A fixed number of worker tasks push blobs, so a burst of PUTs cannot
  spawn an unbounded number of concurrent uploads.
- The queue in front of them has a fixed capacity. When it is full,
  `submit` waits for space, which holds back the PUT response. This is the
  backpressure signal to the sequencer.

On shutdown the queue gets a grace period to drain. Whatever is left after
that is abandoned and logged.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from da_server.errors import ReplicationError
from da_server.keys import encode_key
from da_server.metrics import (
    replication_queue_depth,
    replications_failed,
    replications_succeeded,
)

from .client import RelayClient

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Replicator:
    """Bounded worker pool that pushes blobs to every relay target."""

    relay: RelayClient
    """Client used for the pushes."""

    workers: int = 4
    """Number of concurrent replication tasks."""

    queue_size: int = 256
    """Maximum number of blobs waiting for a worker."""

    _queue: asyncio.Queue[tuple[bytes, bytes]] | None = field(default=None, init=False)
    """Pending (key, blob) pairs. Created on start, inside the running loop."""

    _tasks: list[asyncio.Task[None]] = field(default_factory=list, init=False)
    """Worker tasks."""

    _running: bool = field(default=False, init=False)
    """Whether new work is accepted."""

    @property
    def is_running(self) -> bool:
        """Whether the pool accepts new work."""
        return self._running

    @property
    def pending(self) -> int:
        """Number of blobs waiting for a worker."""
        return self._queue.qsize() if self._queue is not None else 0

    async def start(self) -> None:
        """Create the queue and spawn the workers."""
        if self._running:
            return

        self._queue = asyncio.Queue(maxsize=self.queue_size)
        self._tasks = [
            asyncio.create_task(self._worker(), name=f"replicator-{i}")
            for i in range(self.workers)
        ]
        self._running = True
        logger.info(
            "Replicator started: %d worker(s), queue size %d, %d target(s)",
            self.workers,
            self.queue_size,
            len(self.relay.config.targets),
        )

    async def submit(self, key: bytes, blob: bytes) -> bool:
        """
        Queue a blob for replication, waiting while the queue is full.

        Returns:
            True if queued, False if the replicator is not running.
        """
        if not self._running or self._queue is None:
            logger.warning("Replicator not running, dropping %s", encode_key(key))
            return False

        await self._queue.put((key, blob))
        replication_queue_depth.set(self._queue.qsize())
        return True

    async def replicate(self, key: bytes, blob: bytes) -> bool:
        """
        Push one blob to every configured target.

        Failures are logged and counted per target. They never propagate.

        Returns:
            True if every target accepted the blob.
        """
        ok = True
        for index in range(len(self.relay.config.targets)):
            try:
                await self.relay.sync_blob(key, blob, index)
            except ReplicationError:
                # sync_blob already logged the exhausted attempts.
                replications_failed.inc()
                ok = False
            else:
                replications_succeeded.inc()
        return ok

    async def _worker(self) -> None:
        """Take blobs off the queue until cancelled."""
        assert self._queue is not None
        while True:
            key, blob = await self._queue.get()
            try:
                await self.replicate(key, blob)
            except Exception as e:
                logger.error("Unexpected error replicating %s: %s", encode_key(key), e)
            finally:
                self._queue.task_done()
                replication_queue_depth.set(self._queue.qsize())

    async def stop(self, drain_timeout: float = 10.0) -> None:
        """
        Stop accepting work, drain the queue, then cancel the workers.

        Args:
            drain_timeout: Seconds to wait for queued blobs to be pushed.
        """
        if not self._running or self._queue is None:
            return
        self._running = False

        try:
            await asyncio.wait_for(self._queue.join(), timeout=drain_timeout)
        except TimeoutError:
            logger.warning(
                "Replication drain timed out, abandoning %d queued blob(s)",
                self._queue.qsize(),
            )

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        replication_queue_depth.set(0)
        logger.info("Replicator stopped")
