"""
Per-path lock registry.

Every read-modify-write cycle on a table runs under the lock of its path, so two
concurrent operations on the same file never interleave their tmp-and-rename
sequences. Operations on different paths use different locks and never contend.

Notes
- Locks are created on demand and kept for the lifetime of the registry; the number of
  locks is bounded by the number of distinct paths seen.
- Locks are re-entrant so a store operation may call another on the same path.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

__all__ = ["PathLocks"]


class PathLocks:
    """Registry mapping a normalized path to its RLock."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def lock_for(self, path: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(path)
            if lock is None:
                lock = self._locks[path] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, path: str) -> Iterator[None]:
        """Hold the lock for `path` for the duration of the block."""
        with self.lock_for(path):
            yield

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
