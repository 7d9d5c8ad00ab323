"""
Relay client for replicating blobs to peers and fetching them back.

Used in two places:

- By the server, to push freshly stored blobs to every relay peer.
- By sequencers and verifiers, to upload a payload's blobs and to fetch
  blobs with commitment verification.

Trust model:

- Relay peers store bytes verbatim and never check commitments.
- A reader that cares about integrity recomputes the commitment from the
  returned bytes and compares its versioned hash with the requested key.
- A mismatch aborts the whole fetch. There is no silent fallback to
  another peer; the caller picks a different target explicitly.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from types import TracebackType

import httpx

from da_server.errors import (
    NotFoundError,
    RelayError,
    ReplicationError,
    ValidationError,
    VerificationError,
)
from da_server.keys import encode_key
from da_server.kzg import BLOB_SIZE, Committer, KZGCommitter, kzg_to_versioned_hash
from da_server.types import Bytes32, Bytes48

from .bundle import BlobsBundle
from .config import RelayConfig

logger = logging.getLogger(__name__)

PUT_ENDPOINT = "/put/"
"""Path prefix for storing a blob on a peer."""

GET_ENDPOINT = "/get/"
"""Path prefix for fetching a blob from a peer."""


class RelayClient:
    """
    HTTP client for a fixed, ordered list of relay peers.

    Each instance owns one connection pool. Close it with `aclose()` or use
    the client as an async context manager.
    """

    def __init__(
        self,
        config: RelayConfig,
        committer: Committer | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: Relay targets, retry budget and timeouts.
            committer: Commitment scheme for verifying fetched blobs.
                Defaults to KZG loaded from `config.trusted_setup_path`.
            transport: Optional httpx transport (tests inject a mock here).
        """
        self.config = config
        self._committer = committer
        self._client = httpx.AsyncClient(timeout=config.timeout, transport=transport)

    async def __aenter__(self) -> RelayClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    @property
    def committer(self) -> Committer:
        """
        Commitment scheme used for read-side verification.

        Raises:
            VerificationError: If neither a committer nor a trusted setup
                was configured.
        """
        if self._committer is None:
            if self.config.trusted_setup_path is None:
                raise VerificationError("No trusted setup configured for blob verification")
            self._committer = KZGCommitter(self.config.trusted_setup_path)
        return self._committer

    def _target(self, index: int) -> str:
        """Return the base URL of a configured target."""
        if not 0 <= index < len(self.config.targets):
            raise ValidationError(
                f"Relay target index {index} out of range "
                f"({len(self.config.targets)} target(s) configured)"
            )
        return self.config.targets[index].rstrip("/")

    # -------------------------------------------------------------------------
    # Write Path
    # -------------------------------------------------------------------------

    async def _post_blob(self, target: str, key: bytes, blob: bytes) -> None:
        """Send one blob to one target with a bounded single attempt."""
        url = f"{target}{PUT_ENDPOINT}{encode_key(key)}"
        async with asyncio.timeout(self.config.timeout):
            response = await self._client.post(
                url,
                content=blob,
                headers={"Content-Type": "application/octet-stream"},
            )
        if response.status_code != httpx.codes.OK:
            raise RelayError(f"Relay {target} refused blob: HTTP {response.status_code}")

    async def sync_blob(self, key: bytes, blob: bytes, target_index: int = 0) -> None:
        """
        Push one blob to one relay target.

        Attempts run back to back with no delay. Each attempt is bounded by
        the configured timeout.

        Args:
            key: Versioned hash the blob is stored under.
            blob: Blob bytes.
            target_index: Which configured target to push to.

        Raises:
            ReplicationError: If every attempt fails.
        """
        target = self._target(target_index)
        attempts = self.config.max_attempts
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            try:
                await self._post_blob(target, key, blob)
                logger.debug("Synced %s to %s (attempt %d)", encode_key(key), target, attempt)
                return
            except (httpx.HTTPError, RelayError, TimeoutError) as e:
                last_error = e
                logger.debug(
                    "Sync of %s to %s failed (attempt %d/%d): %s",
                    encode_key(key),
                    target,
                    attempt,
                    attempts,
                    e,
                )

        logger.error(
            "Giving up syncing %s to %s after %d attempts: %s",
            encode_key(key),
            target,
            attempts,
            last_error,
        )
        raise ReplicationError(
            f"Failed to sync {encode_key(key)} to {target} after {attempts} attempts"
        ) from last_error

    async def upload_blobs(
        self,
        commitments: Sequence[bytes | str],
        blobs: Sequence[bytes],
    ) -> list[Bytes32]:
        """
        Upload a batch of blobs to every relay target.

        All validation happens before any request is sent. Targets are
        uploaded to concurrently and all of them must succeed. The first
        failing target cancels the uploads still running for the others.

        Args:
            commitments: KZG commitment for each blob.
            blobs: Blob bytes, each exactly `BLOB_SIZE` long.

        Returns:
            The keys the blobs were stored under, in input order.

        Raises:
            ValidationError: On count or size mismatch, or a malformed commitment.
            ReplicationError: If any target fails.
        """
        if len(commitments) != len(blobs):
            raise ValidationError(
                f"Commitment count {len(commitments)} does not match blob count {len(blobs)}"
            )

        for i, blob in enumerate(blobs):
            if len(blob) != BLOB_SIZE:
                raise ValidationError(f"Invalid blob size {len(blob)} at index {i}")

        try:
            keys = [kzg_to_versioned_hash(Bytes48(c)) for c in commitments]
        except ValueError as e:
            raise ValidationError(f"Malformed commitment: {e}") from e

        if not self.config.targets:
            raise ValidationError("No relay targets configured")

        pairs = list(zip(keys, blobs, strict=True))

        # One task per target. TaskGroup cancels the siblings on first failure.
        try:
            async with asyncio.TaskGroup() as tg:
                for index in range(len(self.config.targets)):
                    tg.create_task(self._upload_to(index, pairs))
        except ExceptionGroup as eg:
            first = eg.exceptions[0]
            raise ReplicationError(f"Blob upload failed: {first}") from eg

        logger.info(
            "Uploaded %d blob(s) to %d relay target(s)", len(pairs), len(self.config.targets)
        )
        return keys

    async def _upload_to(self, target_index: int, pairs: list[tuple[Bytes32, bytes]]) -> None:
        """Upload every pair to one target, in order."""
        target = self._target(target_index)
        for key, blob in pairs:
            try:
                await self._post_blob(target, key, blob)
            except (httpx.HTTPError, TimeoutError) as e:
                raise RelayError(f"Upload of {encode_key(key)} to {target} failed: {e!r}") from e

    async def upload_bundle(self, bundle: BlobsBundle) -> list[Bytes32]:
        """Upload every blob of a block-production blobs bundle."""
        return await self.upload_blobs(bundle.commitments, bundle.blobs)

    # -------------------------------------------------------------------------
    # Read Path
    # -------------------------------------------------------------------------

    async def get_blobs(self, keys: Sequence[bytes | str]) -> list[bytes]:
        """Fetch and verify blobs from the first relay target."""
        return await self.get_blobs_from(keys, 0)

    async def get_blobs_from(self, keys: Sequence[bytes | str], target_index: int) -> list[bytes]:
        """
        Fetch and verify blobs from one relay target.

        Keys are fetched one after another. Any failure aborts the call and
        no partial result is returned.

        Args:
            keys: Versioned hashes, as raw bytes or 0x-prefixed hex.
            target_index: Which configured target to read from.

        Returns:
            Blob bytes in request order.

        Raises:
            ValidationError: On a malformed key, a bad target index or a
                blob of the wrong size.
            NotFoundError: If the target does not hold one of the keys.
            RelayError: On transport errors or unexpected status codes.
            VerificationError: If a blob does not match its key.
        """
        target = self._target(target_index)

        try:
            wanted = [Bytes32(key) for key in keys]
        except ValueError as e:
            raise ValidationError(f"Malformed key: {e}") from e

        # Loading the trusted setup is slow file I/O; fail before any fetch.
        committer = await asyncio.to_thread(lambda: self.committer)

        blobs: list[bytes] = []
        for i, key in enumerate(wanted):
            url = f"{target}{GET_ENDPOINT}{encode_key(key)}"
            try:
                async with asyncio.timeout(self.config.timeout):
                    response = await self._client.get(url)
            except (httpx.HTTPError, TimeoutError) as e:
                raise RelayError(f"Failed to fetch {encode_key(key)} from {target}: {e!r}") from e

            if response.status_code == httpx.codes.NOT_FOUND:
                raise NotFoundError(f"Blob not found for {encode_key(key)}")
            if response.status_code != httpx.codes.OK:
                raise RelayError(
                    f"Failed to fetch {encode_key(key)} from {target}: "
                    f"HTTP {response.status_code}"
                )

            blob = response.content
            if len(blob) != BLOB_SIZE:
                raise ValidationError(f"Invalid blob size {len(blob)} at index {i}")

            # Commitment computation is CPU-bound; keep it off the event loop.
            try:
                commitment = await asyncio.to_thread(committer.blob_to_commitment, blob)
            except (ValueError, RuntimeError) as e:
                raise VerificationError(
                    f"Cannot compute commitment for {encode_key(key)}: {e}"
                ) from e
            if kzg_to_versioned_hash(commitment) != key:
                raise VerificationError(f"Invalid blob for {encode_key(key)}")

            blobs.append(blob)

        return blobs
