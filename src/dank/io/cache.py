"""
Bounded, thread-safe LRU cache of decoded tables.

Contract
- Keys are normalized table paths; values are whole Tables (schema and lines together,
  so the two never go stale relative to each other).
- Capacity is a count of tables, not bytes. Inserting past capacity evicts the least
  recently used entry; both reads (get) and writes (put) count as access. Ties cannot
  occur: recency is a strict order kept in an OrderedDict.
- Each cache owns the PathLocks registry its stores take per-path locks from, so
  stores sharing a cache also share one lock per path.
- A single lock serializes every mutation of the recency order. get_or_load runs its
  loader outside the lock so a slow disk read never blocks other tables.

Notes
- The cache is trusted as authoritative once populated: out-of-band file changes are
  not detected. Call invalidate() (or TableStore.invalidate()) after editing a file
  by other means.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from loguru import logger

from dank.core.constants import DEFAULT_CACHE_CAPACITY
from dank.core.schema import Table

from .errors import IoConfigError
from .locks import PathLocks

__all__ = ["CacheEntry", "TableCache"]


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class CacheEntry:
    """
    One cached table.

    Attributes:
        table (Table): Decoded table snapshot.
        last_modified (datetime): UTC time the entry was stored.
    """

    table: Table
    last_modified: datetime = field(default_factory=_utc_now)


class TableCache:
    """
    Fixed-capacity LRU mapping of table path -> CacheEntry.

    Examples:
        >>> cache = TableCache(capacity=2)
        >>> len(cache), cache.capacity
        (0, 2)
    """

    def __init__(self, capacity: int = DEFAULT_CACHE_CAPACITY) -> None:
        if not isinstance(capacity, int) or capacity < 1:
            raise IoConfigError(f"cache capacity must be >= 1, got {capacity!r}")
        self._capacity = capacity
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self.locks = PathLocks()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        """Membership test; does not change recency."""
        with self._lock:
            return key in self._entries

    def keys(self) -> list[str]:
        """Return cached keys from least to most recently used."""
        with self._lock:
            return list(self._entries)

    def get_entry(self, key: str) -> CacheEntry | None:
        """Return the entry for `key` and mark it most recently used, or None on a miss."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("Cache miss: {}", key)
                return None
            self._entries.move_to_end(key)
        logger.debug("Cache hit: {}", key)
        return entry

    def get(self, key: str) -> Table | None:
        """Return the cached table for `key` and mark it most recently used, or None."""
        entry = self.get_entry(key)
        return None if entry is None else entry.table

    def put(self, key: str, table: Table) -> None:
        """Insert or replace `key`, mark it most recently used, and evict past capacity."""
        evicted: list[str] = []
        with self._lock:
            self._entries[key] = CacheEntry(table)
            self._entries.move_to_end(key)
            while len(self._entries) > self._capacity:
                old_key, _ = self._entries.popitem(last=False)
                evicted.append(old_key)
        for old_key in evicted:
            logger.debug("Cache evict: {}", old_key)

    def get_or_load(self, key: str, loader: Callable[[str], Table]) -> Table:
        """
        Return the cached table, or load it with `loader(key)` and cache the result.

        Notes:
            Errors raised by the loader propagate and nothing is cached.
        """
        table = self.get(key)
        if table is not None:
            return table
        table = loader(key)
        self.put(key, table)
        return table

    def refresh(self, key: str) -> bool:
        """Mark `key` most recently used without reading it. Returns False on a miss."""
        with self._lock:
            if key not in self._entries:
                return False
            self._entries.move_to_end(key)
            return True

    def invalidate(self, key: str) -> bool:
        """Remove `key`. Returns True if an entry was dropped."""
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug("Cache invalidate: {}", key)
        return removed

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()
        logger.debug("Cache cleared")
