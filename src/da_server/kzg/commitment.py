"""
Blob commitments and versioned hashes.

Every blob is addressed by the versioned hash of its KZG commitment:

    versioned_hash = VERSION_BYTE || sha256(commitment)[1:]

The upload path already knows each commitment (it comes from the block
producer's blobs bundle), so deriving the key is a single SHA-256.

The read path only has the blob bytes. Recomputing the commitment requires
the KZG trusted setup and is delegated to a `Committer`. Production code
uses `KZGCommitter`, backed by the c-kzg-4844 bindings.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any, Final, Protocol

import ckzg

from da_server.types import Bytes32, Bytes48

BLOB_SIZE: Final = 131072
"""Canonical blob size in bytes (4096 field elements of 32 bytes)."""

VERSIONED_HASH_VERSION_KZG: Final = 0x01
"""Version byte that prefixes KZG versioned hashes."""


def kzg_to_versioned_hash(commitment: Bytes48) -> Bytes32:
    """
    Derive the versioned hash used as the blob's storage key.

    Args:
        commitment: 48-byte KZG commitment.

    Returns:
        32-byte versioned hash.
    """
    digest = hashlib.sha256(bytes(commitment)).digest()
    return Bytes32(bytes([VERSIONED_HASH_VERSION_KZG]) + digest[1:])


class Committer(Protocol):
    """Computes the commitment for a blob."""

    def blob_to_commitment(self, blob: bytes) -> Bytes48:
        """Return the 48-byte commitment to `blob`."""
        ...


def blob_to_versioned_hash(committer: Committer, blob: bytes) -> Bytes32:
    """Recompute a blob's storage key from its bytes."""
    return kzg_to_versioned_hash(committer.blob_to_commitment(blob))


class KZGCommitter:
    """
    KZG committer backed by `ckzg`.

    Loading the trusted setup is expensive, so one instance should be
    shared by every verification a client performs.
    """

    def __init__(self, trusted_setup_path: Path | str, precompute: int = 0) -> None:
        """
        Load the trusted setup.

        Args:
            trusted_setup_path: Path to the ceremony output in text format.
            precompute: Table precomputation level (0 disables it).
        """
        self._settings: Any = ckzg.load_trusted_setup(str(trusted_setup_path), precompute)

    def blob_to_commitment(self, blob: bytes) -> Bytes48:
        """Compute the KZG commitment of a canonical-size blob."""
        return Bytes48(ckzg.blob_to_kzg_commitment(bytes(blob), self._settings))
