"""Tests for the blob put and get endpoints."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from da_server.api import create_app
from da_server.errors import StorageError
from da_server.keys import encode_key
from da_server.metrics import puts_rejected
from da_server.relay import RelayClient, RelayConfig, Replicator
from da_server.storage import FileBlobStore
from da_server.types import Bytes32
from tests.da_server.helpers import FakeRelay, make_blob, relay_transport, serve_app

KEY = Bytes32(b"\x5a" * 32)

LOCAL = "127.0.0.1"
"""Address the test client connects from."""


class TestPut:
    """Tests for POST /put/{key}."""

    @pytest.mark.anyio
    async def test_put_then_get_round_trip(self, store: FileBlobStore) -> None:
        """A stored blob is served back byte for byte."""
        blob = make_blob(1)
        async with serve_app(create_app(store, LOCAL)) as url, httpx.AsyncClient() as client:
            put = await client.post(f"{url}/put/{encode_key(KEY)}", content=blob)
            assert put.status_code == 200
            assert put.content == bytes(KEY)

            get = await client.get(f"{url}/get/{encode_key(KEY)}")
            assert get.status_code == 200
            assert get.content == blob
            assert get.headers["content-type"] == "application/octet-stream"

    @pytest.mark.anyio
    async def test_overwrite_last_write_wins(self, store: FileBlobStore) -> None:
        """A second PUT under the same key replaces the blob."""
        async with serve_app(create_app(store, LOCAL)) as url, httpx.AsyncClient() as client:
            await client.post(f"{url}/put/{encode_key(KEY)}", content=b"first")
            await client.post(f"{url}/put/{encode_key(KEY)}", content=b"second")

            get = await client.get(f"{url}/get/{encode_key(KEY)}")
            assert get.content == b"second"

    @pytest.mark.anyio
    async def test_non_sequencer_forbidden(self, store: FileBlobStore) -> None:
        """Writes from outside the sequencer prefix get 403 and change nothing."""
        store.put(KEY, b"original")
        rejected_before = puts_rejected._value.get()

        async with serve_app(create_app(store, "10.0.0.")) as url, httpx.AsyncClient() as client:
            put = await client.post(f"{url}/put/{encode_key(KEY)}", content=b"forged")
            assert put.status_code == 403

            get = await client.get(f"{url}/get/{encode_key(KEY)}")
            assert get.content == b"original"

        assert store.get(KEY) == b"original"
        assert puts_rejected._value.get() == rejected_before + 1

    @pytest.mark.anyio
    async def test_prefix_match_is_string_based(self, store: FileBlobStore) -> None:
        """Any address starting with the configured prefix may write."""
        async with serve_app(create_app(store, "127.")) as url, httpx.AsyncClient() as client:
            put = await client.post(f"{url}/put/{encode_key(KEY)}", content=b"blob")
            assert put.status_code == 200

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        "key",
        ["nothex", "0x1234", "0x" + "zz" * 32, "ab" * 32, "0x0x" + "ab" * 31],
    )
    async def test_malformed_key_is_bad_request(self, store: FileBlobStore, key: str) -> None:
        """Keys that are not 0x plus 64 hex digits get 400 and store nothing."""
        async with serve_app(create_app(store, LOCAL)) as url, httpx.AsyncClient() as client:
            put = await client.post(f"{url}/put/{key}", content=b"blob")
            assert put.status_code == 400

        assert store.keys() == []

    @pytest.mark.anyio
    async def test_storage_failure_is_server_error(
        self, store: FileBlobStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A failed write answers 500."""

        def broken_put(key: bytes, value: bytes) -> None:
            raise StorageError("disk full")

        monkeypatch.setattr(store, "put", broken_put)

        async with serve_app(create_app(store, LOCAL)) as url, httpx.AsyncClient() as client:
            put = await client.post(f"{url}/put/{encode_key(KEY)}", content=b"blob")
            assert put.status_code == 500

    @pytest.mark.anyio
    async def test_get_on_put_route_not_allowed(self, store: FileBlobStore) -> None:
        """The write route only accepts POST."""
        async with serve_app(create_app(store, LOCAL)) as url, httpx.AsyncClient() as client:
            response = await client.get(f"{url}/put/{encode_key(KEY)}")
            assert response.status_code == 405


class TestGet:
    """Tests for GET /get/{key}."""

    @pytest.mark.anyio
    async def test_missing_key_is_not_found(self, store: FileBlobStore) -> None:
        """Absent keys answer 404."""
        async with serve_app(create_app(store, LOCAL)) as url, httpx.AsyncClient() as client:
            response = await client.get(f"{url}/get/{encode_key(KEY)}")
            assert response.status_code == 404

    @pytest.mark.anyio
    async def test_malformed_key_is_bad_request(self, store: FileBlobStore) -> None:
        """Malformed keys answer 400, not 404."""
        async with serve_app(create_app(store, LOCAL)) as url, httpx.AsyncClient() as client:
            response = await client.get(f"{url}/get/0x1234")
            assert response.status_code == 400

    @pytest.mark.anyio
    async def test_uppercase_key_finds_blob(self, store: FileBlobStore) -> None:
        """Key hex is case-insensitive."""
        store.put(KEY, b"blob")
        async with serve_app(create_app(store, LOCAL)) as url, httpx.AsyncClient() as client:
            response = await client.get(f"{url}/get/0x{KEY.hex().upper()}")
            assert response.content == b"blob"

    @pytest.mark.anyio
    async def test_read_failure_is_server_error(
        self, store: FileBlobStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A failed read answers 500."""

        def broken_get(key: bytes) -> bytes:
            raise StorageError("io error")

        monkeypatch.setattr(store, "get", broken_get)

        async with serve_app(create_app(store, LOCAL)) as url, httpx.AsyncClient() as client:
            response = await client.get(f"{url}/get/{encode_key(KEY)}")
            assert response.status_code == 500


class TestReplication:
    """Tests for the PUT handler handing blobs to the replicator."""

    @pytest.mark.anyio
    async def test_stored_blob_is_replicated(self, store: FileBlobStore) -> None:
        """After a PUT, the blob reaches the relay peer."""
        peer = FakeRelay()
        relay = RelayClient(
            RelayConfig(targets=("http://relay-a",)),
            transport=relay_transport({"relay-a": peer}),
        )
        replicator = Replicator(relay=relay)
        await replicator.start()

        try:
            app = create_app(store, LOCAL, replicator)
            async with serve_app(app) as url, httpx.AsyncClient() as client:
                put = await client.post(f"{url}/put/{encode_key(KEY)}", content=b"blob")
                assert put.status_code == 200
        finally:
            await replicator.stop()
            await relay.aclose()

        assert peer.blobs == {encode_key(KEY): b"blob"}

    @pytest.mark.anyio
    async def test_failing_peer_does_not_change_response(self, store: FileBlobStore) -> None:
        """The PUT succeeds even when every replication attempt fails."""
        peer = FakeRelay(fail_always=True)
        relay = RelayClient(
            RelayConfig(targets=("http://relay-a",), retries=2),
            transport=relay_transport({"relay-a": peer}),
        )
        replicator = Replicator(relay=relay)
        await replicator.start()

        try:
            app = create_app(store, LOCAL, replicator)
            async with serve_app(app) as url, httpx.AsyncClient() as client:
                put = await client.post(f"{url}/put/{encode_key(KEY)}", content=b"blob")
                assert put.status_code == 200
                assert put.content == bytes(KEY)

            for _ in range(100):
                if len(peer.puts) == 2:
                    break
                await asyncio.sleep(0.01)
        finally:
            await replicator.stop()
            await relay.aclose()

        assert store.get(KEY) == b"blob"
        assert len(peer.puts) == 2
