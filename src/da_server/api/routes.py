"""API route definitions."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from aiohttp import web

from da_server.relay import Replicator
from da_server.storage import BlobStore

from .endpoints import blobs, health, metrics
from .state import REPLICATOR, SEQUENCER_IP, STORE

Handler = Callable[[web.Request], Awaitable[web.Response]]

ROUTES: list[tuple[str, str, Handler]] = [
    ("POST", "/put/{key}", blobs.handle_put),
    ("GET", "/get/{key}", blobs.handle_get),
    ("GET", "/health", health.handle),
    ("GET", "/metrics", metrics.handle),
]
"""All API routes as (method, path, handler)."""


def create_app(
    store: BlobStore,
    sequencer_ip: str,
    replicator: Replicator | None = None,
) -> web.Application:
    """
    Build the aiohttp application.

    Args:
        store: Blob store backing the put and get endpoints.
        sequencer_ip: Address prefix allowed to write.
        replicator: Replication pool, or None to disable replication.

    Returns:
        An application ready to be served by an AppRunner.
    """
    app = web.Application()
    app[STORE] = store
    app[SEQUENCER_IP] = sequencer_ip
    if replicator is not None:
        app[REPLICATOR] = replicator

    app.add_routes([web.route(method, path, handler) for method, path, handler in ROUTES])
    return app
