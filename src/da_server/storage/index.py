"""
Expiry index for stored blobs.

Walking the whole storage directory every sweep costs O(total blobs).
Instead, the store records each write's modification time here and the
expirer only looks at the oldest entries.

The index is a min-heap of (mtime, key) plus a map holding the latest
recorded mtime for each key. Overwriting a key pushes a fresh entry and
leaves the old one behind as stale. Stale entries are recognised and
discarded when they reach the top of the heap, and the heap is rebuilt
from the map once stale entries outnumber live ones.

The index is advisory. The expirer always re-reads the real file mtime
before deleting anything, so an out-of-date entry can delay an expiry
but never cause a premature one.
"""

from __future__ import annotations

import heapq
import threading
from collections.abc import Iterable
from typing import Final

COMPACT_MIN_HEAP: Final = 1024
"""Heap size below which stale entries are left for `pop_expired` to discard."""


class ExpiryIndex:
    """
    Thread-safe min-heap of blob modification times.

    Writes happen on worker threads (the HTTP handlers offload file I/O),
    so every access is guarded by a lock.
    """

    def __init__(self) -> None:
        self._heap: list[tuple[float, bytes]] = []
        self._latest: dict[bytes, float] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        """Number of distinct keys tracked."""
        with self._lock:
            return len(self._latest)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._latest

    @property
    def heap_size(self) -> int:
        """Number of heap entries, stale ones included."""
        with self._lock:
            return len(self._heap)

    def record(self, key: bytes, mtime: float) -> None:
        """Track `key` as last modified at `mtime`, superseding older records."""
        with self._lock:
            self._set(bytes(key), mtime)

    def seed(self, entries: Iterable[tuple[bytes, float]]) -> int:
        """
        Reconcile the index with entries discovered by a directory scan.

        A scanned mtime replaces any recorded one that differs, in either
        direction. Files touched or placed behind the store's back are picked
        up this way. A write racing the scan may be replaced by an older
        scanned time, which only makes the expirer re-check that blob early.

        Returns:
            Number of keys added or refreshed.
        """
        added = 0
        with self._lock:
            for key, mtime in entries:
                if self._set(bytes(key), mtime):
                    added += 1
        return added

    def forget(self, key: bytes) -> None:
        """Stop tracking `key`. Its heap entries become stale."""
        with self._lock:
            self._latest.pop(bytes(key), None)

    def pop_expired(self, cutoff: float) -> list[tuple[bytes, float]]:
        """
        Remove and return every live entry recorded strictly before `cutoff`.

        Popped keys are no longer tracked. Callers that decide to keep a key
        must `record` it again.
        """
        expired: list[tuple[bytes, float]] = []
        with self._lock:
            while self._heap and self._heap[0][0] < cutoff:
                mtime, key = heapq.heappop(self._heap)

                # Skip entries superseded by a later write or already forgotten.
                if self._latest.get(key) != mtime:
                    continue

                del self._latest[key]
                expired.append((key, mtime))
        return expired

    def _set(self, key: bytes, mtime: float) -> bool:
        """Record `mtime` for `key` unless it is already current. Caller holds the lock."""
        if self._latest.get(key) == mtime:
            return False
        self._latest[key] = mtime
        heapq.heappush(self._heap, (mtime, key))
        self._compact()
        return True

    def _compact(self) -> None:
        """Rebuild the heap from live records once stale entries dominate."""
        if len(self._heap) < COMPACT_MIN_HEAP or len(self._heap) <= 2 * len(self._latest):
            return
        self._heap = [(mtime, key) for key, mtime in self._latest.items()]
        heapq.heapify(self._heap)
