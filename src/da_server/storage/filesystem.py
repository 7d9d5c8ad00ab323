"""
Filesystem implementation of the blob store.

Layout: one file per blob, named by the lowercase hex of the raw key bytes,
directly inside the storage directory. There is no sharding and no sidecar
metadata. A blob's age is its file modification time.

Writes go to a temporary file in the same directory and are moved into
place with `os.replace`. Readers therefore see either the previous blob or
the new one, never a partially written file.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from da_server.errors import NotFoundError, StorageError

from .index import ExpiryIndex

logger = logging.getLogger(__name__)

_TEMP_PREFIX = "."
"""Temporary files start with a dot so scans and readers skip them."""

_KEY_HEX_LENGTH = 64
"""Filename length of a stored blob (32 key bytes as hex)."""


class FileBlobStore:
    """
    Content-addressed blob store backed by a flat directory.

    Safe for concurrent use from multiple threads on distinct keys.
    Concurrent writes to the same key are last-writer-wins.
    """

    def __init__(self, directory: Path | str, index: ExpiryIndex | None = None) -> None:
        """
        Initialize the store, creating the directory and its parents.

        Args:
            directory: Storage root.
            index: Optional expiry index updated on every write.

        Raises:
            StorageError: If the directory cannot be created.
        """
        self._directory = Path(directory)
        self._index = index
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create directory {self._directory}: {e}") from e

    @property
    def directory(self) -> Path:
        """Storage root."""
        return self._directory

    @property
    def index(self) -> ExpiryIndex | None:
        """Expiry index attached to this store, if any."""
        return self._index

    def path_for(self, key: bytes) -> Path:
        """Return the file path used for `key`."""
        return self._directory / bytes(key).hex()

    # -------------------------------------------------------------------------
    # Blob Operations
    # -------------------------------------------------------------------------

    def put(self, key: bytes, value: bytes) -> None:
        """Store a blob, replacing any previous value under the same key."""
        path = self.path_for(key)
        fd, tmp_name = -1, ""
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f"{_TEMP_PREFIX}{path.name}.", suffix=".tmp", dir=self._directory
            )
            with os.fdopen(fd, "wb") as f:
                fd = -1
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
            tmp_name = ""
            mtime = path.stat().st_mtime
        except OSError as e:
            logger.error("Failed to write blob %s: %s", path.name, e)
            raise StorageError(f"Failed to write blob {path.name}: {e}") from e
        finally:
            if fd >= 0:
                os.close(fd)
            if tmp_name:
                Path(tmp_name).unlink(missing_ok=True)

        if self._index is not None:
            self._index.record(key, mtime)

    def get(self, key: bytes) -> bytes:
        """Retrieve a blob by key."""
        path = self.path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"Blob {path.name} not found") from e
        except OSError as e:
            raise StorageError(f"Failed to read blob {path.name}: {e}") from e

    def exist(self, key: bytes) -> bool:
        """Check whether a blob is stored under `key`."""
        try:
            self.path_for(key).stat()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to stat blob {bytes(key).hex()}: {e}") from e
        return True

    def delete(self, key: bytes) -> bool:
        """Remove a blob. Absence is not an error."""
        path = self.path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete blob {path.name}: {e}") from e
        finally:
            if self._index is not None:
                self._index.forget(key)
        return True

    def modified_at(self, key: bytes) -> float:
        """
        Return the modification time of a stored blob.

        Raises:
            NotFoundError: If no blob is stored under `key`.
            StorageError: On any other I/O failure.
        """
        path = self.path_for(key)
        try:
            return path.stat().st_mtime
        except FileNotFoundError as e:
            raise NotFoundError(f"Blob {path.name} not found") from e
        except OSError as e:
            raise StorageError(f"Failed to stat blob {path.name}: {e}") from e

    # -------------------------------------------------------------------------
    # Enumeration
    # -------------------------------------------------------------------------

    def scan(self) -> list[tuple[bytes, float]]:
        """
        List every stored blob with its modification time.

        Temporary files and names that are not a 64-digit hex key are ignored.
        Blobs removed while the scan runs are skipped.

        Raises:
            StorageError: If the directory cannot be listed.
        """
        entries: list[tuple[bytes, float]] = []
        try:
            with os.scandir(self._directory) as it:
                for entry in it:
                    key = _parse_filename(entry.name)
                    if key is None:
                        continue
                    try:
                        if not entry.is_file():
                            continue
                        entries.append((key, entry.stat().st_mtime))
                    except FileNotFoundError:
                        continue
        except OSError as e:
            raise StorageError(f"Failed to scan {self._directory}: {e}") from e
        return entries

    def keys(self) -> list[bytes]:
        """List every stored key."""
        return [key for key, _ in self.scan()]


def _parse_filename(name: str) -> bytes | None:
    """Map a filename back to its key, or None for foreign files."""
    if len(name) != _KEY_HEX_LENGTH or name.startswith(_TEMP_PREFIX):
        return None
    try:
        return bytes.fromhex(name)
    except ValueError:
        return None
