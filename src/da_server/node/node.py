"""
DA server orchestrator.

Wires the blob store, the HTTP API, replication and expiry into one
process with a single start/stop lifecycle.

Shutdown order matters:

1. Stop the HTTP listener so no new PUTs arrive.
2. Stop the expirer so no sweep races the final state of the store.
3. Drain the replication queue for a bounded grace period.
4. Close the relay connection pool.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx
from aiohttp import web

from da_server.api import create_app
from da_server.config import ServerConfig
from da_server.expiry import Expirer
from da_server.relay import RelayClient, Replicator
from da_server.storage import ExpiryIndex, FileBlobStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DAServer:
    """
    The running DA server.

    Construction only validates and opens the store directory.
    Sockets and background tasks are created by `start()`.
    """

    config: ServerConfig
    """Server configuration."""

    time_fn: Callable[[], float] = field(default=time.time)
    """Wall-clock source for expiry (injectable for deterministic testing)."""

    relay_transport: httpx.AsyncBaseTransport | None = None
    """Optional httpx transport for the relay client (tests inject a mock here)."""

    drain_timeout: float = 10.0
    """Seconds the replication queue gets to drain on shutdown."""

    store: FileBlobStore = field(init=False)
    """Content-addressed blob store."""

    index: ExpiryIndex | None = field(default=None, init=False)
    """Modification-time index shared by the store and the expirer. None when expiry is off."""

    relay: RelayClient | None = field(default=None, init=False)
    """Relay client, present only when relay targets are configured."""

    replicator: Replicator | None = field(default=None, init=False)
    """Replication pool, present only when relay targets are configured."""

    expirer: Expirer = field(init=False)
    """Blob expiry service."""

    _runner: web.AppRunner | None = field(default=None, init=False)
    """The aiohttp application runner."""

    _site: web.TCPSite | None = field(default=None, init=False)
    """The TCP site for the server."""

    _shutdown: asyncio.Event = field(default_factory=asyncio.Event, init=False)
    """Event signaling shutdown request."""

    _stopped: bool = field(default=False, init=False)
    """Whether `stop()` already ran."""

    def __post_init__(self) -> None:
        # With expiry off nothing ever drains the index, so the store keeps none.
        index = ExpiryIndex()
        if self.config.expire_hours > 0:
            self.index = index
        self.store = FileBlobStore(self.config.store_path, index=self.index)

        if self.config.relay_targets:
            self.relay = RelayClient(self.config.relay_config(), transport=self.relay_transport)
            self.replicator = Replicator(
                relay=self.relay,
                workers=self.config.replication_workers,
                queue_size=self.config.replication_queue_size,
            )

        self.expirer = Expirer(
            store=self.store,
            index=index,
            ttl_hours=self.config.expire_hours,
            time_fn=self.time_fn,
        )

    @property
    def bound_port(self) -> int | None:
        """Port the listener is bound to, or None before start."""
        if self._runner is None or not self._runner.addresses:
            return None
        return self._runner.addresses[0][1]

    @property
    def is_running(self) -> bool:
        """Check if the server is currently serving requests."""
        return self._runner is not None and not self._shutdown.is_set()

    async def start(self) -> None:
        """
        Start background services, then the HTTP listener.

        Raises:
            ValueError: If the listen address cannot be parsed.
            OSError: If the address cannot be bound.
        """
        host, port = self.config.listen_host_port()

        if self.replicator is not None:
            await self.replicator.start()
        self.expirer.start()

        app = create_app(self.store, self.config.sequencer_ip, self.replicator)
        self._runner = web.AppRunner(app)
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, host, port)
        await self._site.start()

        logger.info(
            "DA server listening on %s:%s, store=%s, relays=%d",
            host,
            self.bound_port,
            self.store.directory,
            len(self.config.relay_targets),
        )

    async def stop(self) -> None:
        """
        Gracefully stop every service.

        Safe to call more than once.
        """
        if self._stopped:
            return
        self._stopped = True
        self._shutdown.set()

        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            self._site = None

        await self.expirer.stop()

        if self.replicator is not None:
            await self.replicator.stop(drain_timeout=self.drain_timeout)
        if self.relay is not None:
            await self.relay.aclose()

        logger.info("DA server stopped")

    async def run(self, *, install_signal_handlers: bool = True) -> None:
        """
        Serve until shutdown is requested, then stop cleanly.

        Args:
            install_signal_handlers: Whether to handle SIGINT/SIGTERM.
                Disable for testing or non-main threads.
        """
        if install_signal_handlers:
            self._install_signal_handlers()

        try:
            await self.start()
            await self._shutdown.wait()
        finally:
            await self.stop()

    def request_shutdown(self) -> None:
        """Ask `run()` to return after a graceful stop."""
        self._shutdown.set()

    def _install_signal_handlers(self) -> None:
        """
        Install signal handlers for graceful shutdown.

        Silently ignores errors if handlers cannot be installed.
        This happens in non-main threads or embedded contexts.
        """
        try:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, self._shutdown.set)
        except (ValueError, RuntimeError, NotImplementedError):
            # Cannot add handlers outside main thread.
            pass
