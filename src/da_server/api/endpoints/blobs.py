"""Blob put and get endpoint handlers."""

from __future__ import annotations

import asyncio
import logging

from aiohttp import web
from aiohttp.http_exceptions import HttpProcessingError

from da_server.errors import NotFoundError, StorageError, ValidationError
from da_server.keys import decode_key, encode_key
from da_server.metrics import blobs_not_found, blobs_served, blobs_stored, puts_rejected

from ..state import REPLICATOR, SEQUENCER_IP, STORE

logger = logging.getLogger(__name__)


async def handle_put(request: web.Request) -> web.Response:
    """
    Handle a blob write from the sequencer.

    The caller's address must start with the configured sequencer prefix.
    This is a plain string comparison, not a subnet match.

    Request: raw blob bytes (application/octet-stream) at /put/{key}.

    Response: the 32 raw key bytes.

    Status Codes:
        200 OK: Blob stored.
        400 Bad Request: Malformed key or unreadable body.
        403 Forbidden: Caller is not the sequencer.
        500 Internal Server Error: Storage write failed.
    """
    remote = request.remote or ""
    if not remote.startswith(request.app[SEQUENCER_IP]):
        puts_rejected.inc()
        logger.warning("Rejected put from %s", remote)
        raise web.HTTPForbidden(reason="Caller is not the sequencer")

    try:
        body = await request.read()
    except (HttpProcessingError, OSError) as e:
        raise web.HTTPBadRequest(reason="Unreadable body") from e

    try:
        key = decode_key(request.match_info["key"])
    except ValidationError as e:
        raise web.HTTPBadRequest(reason="Malformed key") from e

    try:
        await asyncio.to_thread(request.app[STORE].put, key, body)
    except StorageError as e:
        logger.error("store.put %s failed: %s", encode_key(key), e)
        raise web.HTTPInternalServerError(reason="Storage failure") from e

    blobs_stored.inc()

    # Replication outcome never changes this response.
    replicator = request.app.get(REPLICATOR)
    if replicator is not None:
        await replicator.submit(key, body)

    return web.Response(body=bytes(key), content_type="application/octet-stream")


async def handle_get(request: web.Request) -> web.Response:
    """
    Handle a blob read.

    Bytes are returned verbatim. The server does not check that they match
    the key's commitment.

    Response: raw blob bytes (application/octet-stream).

    Status Codes:
        200 OK: Blob returned.
        400 Bad Request: Malformed key.
        404 Not Found: No blob stored under the key.
        500 Internal Server Error: Storage read failed.
    """
    try:
        key = decode_key(request.match_info["key"])
    except ValidationError as e:
        raise web.HTTPBadRequest(reason="Malformed key") from e

    try:
        blob = await asyncio.to_thread(request.app[STORE].get, key)
    except NotFoundError as e:
        blobs_not_found.inc()
        raise web.HTTPNotFound(reason="Blob not found") from e
    except StorageError as e:
        logger.error("store.get %s failed: %s", encode_key(key), e)
        raise web.HTTPInternalServerError(reason="Storage failure") from e

    blobs_served.inc()
    return web.Response(body=blob, content_type="application/octet-stream")
