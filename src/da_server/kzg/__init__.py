"""KZG commitment helpers for blob keys."""

from .commitment import (
    BLOB_SIZE,
    VERSIONED_HASH_VERSION_KZG,
    Committer,
    KZGCommitter,
    blob_to_versioned_hash,
    kzg_to_versioned_hash,
)

__all__ = [
    "BLOB_SIZE",
    "VERSIONED_HASH_VERSION_KZG",
    "Committer",
    "KZGCommitter",
    "blob_to_versioned_hash",
    "kzg_to_versioned_hash",
]
