"""
Abstract blob store interface.

Defines the Protocol that all blob store implementations must follow.
Uses structural subtyping for flexibility.
"""

from __future__ import annotations

from typing import Protocol


class BlobStore(Protocol):
    """
    Protocol for content-addressed blob storage.

    Keys are raw commitment-hash bytes. Values are opaque blob bytes.
    The store never checks that a value actually hashes to its key.
    """

    def put(self, key: bytes, value: bytes) -> None:
        """
        Store a blob, replacing any previous value under the same key.

        Raises:
            StorageError: On I/O failure.
        """
        ...

    def get(self, key: bytes) -> bytes:
        """
        Retrieve a blob.

        Raises:
            NotFoundError: If no blob is stored under `key`.
            StorageError: On any other I/O failure.
        """
        ...

    def exist(self, key: bytes) -> bool:
        """
        Check whether a blob is stored under `key`.

        Raises:
            StorageError: On I/O failure other than absence.
        """
        ...

    def delete(self, key: bytes) -> bool:
        """
        Remove a blob.

        Returns:
            True if a blob was removed, False if none existed.

        Raises:
            StorageError: On I/O failure other than absence.
        """
        ...
