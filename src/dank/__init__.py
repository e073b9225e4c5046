"""
dank — minimal flat-file tabular data store.

A table file holds a settings line, a row-name line, and one line per record whose
cells are base64-wrapped canonical JSON. A TableStore performs CRUD operations on such
files through a bounded LRU cache of decoded tables.

## Packages
- dank.core — values, codec, schema, versioning, errors (zero-IO).
- dank.io — file format, atomic writes, cache, per-path locks, TableStore.

## Examples
```python
from dank import TableStore

store = TableStore()  # doctest: +SKIP
store.create_database("t.dank", ["id", "name"], "id")  # doctest: +SKIP
store.add_line("t.dank", {"name": "a"})  # 1 (generated key)  # doctest: +SKIP
```
"""

from __future__ import annotations

from loguru import logger

from .core import (
    ABSENT,
    DecodeFailure,
    EncodeFailure,
    InvalidSchema,
    LineNotFound,
    Table,
    TableSchema,
    UnsupportedVersion,
)
from .io import IoError, StoreSettings, TableCache, TableStore

logger.disable("dank")

__all__ = [
    "ABSENT",
    "Table",
    "TableSchema",
    "TableStore",
    "TableCache",
    "StoreSettings",
    "InvalidSchema",
    "UnsupportedVersion",
    "DecodeFailure",
    "EncodeFailure",
    "LineNotFound",
    "IoError",
]
