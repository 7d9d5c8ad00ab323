"""Test helpers shared across da_server test modules."""

from __future__ import annotations

import asyncio
import hashlib
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager

import httpx
from aiohttp import web

from da_server.kzg import BLOB_SIZE, kzg_to_versioned_hash
from da_server.types import Bytes32, Bytes48


class FakeCommitter:
    """
    Commitment scheme that needs no trusted setup.

    Commits to a blob with two SHA-256 digests truncated to 48 bytes.
    Distinct blobs get distinct commitments, which is all the relay
    client relies on.
    """

    def __init__(self) -> None:
        self.calls = 0

    def blob_to_commitment(self, blob: bytes) -> Bytes48:
        """Return a deterministic 48-byte commitment."""
        self.calls += 1
        head = hashlib.sha256(blob).digest()
        tail = hashlib.sha256(b"commitment" + blob).digest()
        return Bytes48(head + tail[:16])


def make_blob(seed: int = 0) -> bytes:
    """Build a canonical-size blob whose content depends on `seed`."""
    pattern = seed.to_bytes(4, "big") * 8
    return (pattern * (BLOB_SIZE // len(pattern) + 1))[:BLOB_SIZE]


def commitment_for(blob: bytes) -> Bytes48:
    """Commitment of `blob` under the fake scheme."""
    return FakeCommitter().blob_to_commitment(blob)


def key_for(blob: bytes) -> Bytes32:
    """Storage key of `blob` under the fake scheme."""
    return kzg_to_versioned_hash(commitment_for(blob))


class FakeRelay:
    """
    In-memory relay peer behind an httpx mock transport.

    Stores blobs posted to `/put/{key}` and serves them from `/get/{key}`.
    Can fail the first N requests, fail every request, or answer slowly.
    """

    def __init__(
        self,
        fail_first: int = 0,
        fail_always: bool = False,
        fail_status: int = 500,
        delay: float = 0.0,
    ) -> None:
        self.fail_first = fail_first
        self.fail_always = fail_always
        self.fail_status = fail_status
        self.delay = delay
        self.blobs: dict[str, bytes] = {}
        self.requests: list[httpx.Request] = []

    @property
    def puts(self) -> list[httpx.Request]:
        """Every write request received, including failed ones."""
        return [r for r in self.requests if r.method == "POST"]

    async def handle(self, request: httpx.Request) -> httpx.Response:
        """Answer one request."""
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_always or len(self.requests) <= self.fail_first:
            return httpx.Response(self.fail_status)

        kind, _, key = request.url.path.lstrip("/").partition("/")
        if request.method == "POST" and kind == "put":
            self.blobs[key] = request.content
            return httpx.Response(200, content=bytes.fromhex(key.removeprefix("0x")))
        if request.method == "GET" and kind == "get":
            blob = self.blobs.get(key)
            if blob is None:
                return httpx.Response(404)
            return httpx.Response(200, content=blob)
        return httpx.Response(404)


def relay_transport(relays: Mapping[str, FakeRelay]) -> httpx.MockTransport:
    """Route requests to fake relays by host name."""

    async def handler(request: httpx.Request) -> httpx.Response:
        return await relays[request.url.host].handle(request)

    return httpx.MockTransport(handler)


@asynccontextmanager
async def serve_app(app: web.Application) -> AsyncIterator[str]:
    """Serve `app` on an ephemeral local port and yield its base URL."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    try:
        port = runner.addresses[0][1]
        yield f"http://127.0.0.1:{port}"
    finally:
        await runner.cleanup()


__all__ = [
    "FakeCommitter",
    "FakeRelay",
    "commitment_for",
    "key_for",
    "make_blob",
    "relay_transport",
    "serve_app",
]
