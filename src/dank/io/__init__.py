"""
dank.io — File layer for Dank tables.

## Responsibilities
- Parse and render the line-oriented table format with version checks (format).
- Replace table files atomically: tmp write → fsync → os.replace (fs).
- Hold decoded tables in a bounded, thread-safe LRU cache (cache).
- Serialize rewrites per path (locks) and expose CRUD operations (store).

## Public API
- StoreSettings — Configuration (env > TOML > defaults).
- TableCache — LRU cache of decoded tables; pass one to several stores to share it.
- TableStore — CRUD engine over table files.

## Import DAG discipline
- Depends on stdlib, loguru, polars (frame export), and dank.core.*.

## Examples
```python
from dank.io import StoreSettings, TableStore

store = TableStore(StoreSettings(cache_capacity=10))  # doctest: +SKIP
store.create_database("people.dank", ["id", "name"], "id")  # doctest: +SKIP
store.add_line("people.dank", {"id": 1, "name": "a"})  # doctest: +SKIP
store.get_data("people.dank", 1, "name")  # 'a'  # doctest: +SKIP
```
"""

from __future__ import annotations

from .cache import CacheEntry, TableCache
from .config import StoreSettings
from .errors import IoConfigError, IoError, IoFormatError, IoReadError, IoWriteError
from .store import TableStore

__all__ = [
    "StoreSettings",
    "TableCache",
    "CacheEntry",
    "TableStore",
    "IoError",
    "IoConfigError",
    "IoReadError",
    "IoWriteError",
    "IoFormatError",
]
