"""
Core contracts for Dank tables (values, codec, schema, versioning, errors).

## Contracts (single source of truth)
- Values — ABSENT marker, Unreadable cells, typed conversion of decoded JSON values.
- Codec — one cell value <-> one base64-wrapped canonical JSON token.
- Schema — TableSchema, row-name rule, in-memory Table model and key matching.
- Versioning — FORMAT_V written by this library, SUPPORTED_VERSIONS it can read.
- Errors — InvalidSchema, UnsupportedVersion, DecodeFailure, EncodeFailure, LineNotFound.

## Notes
- Zero-IO policy: stdlib + pydantic only; no file or network IO.
- dank.io builds the file layout, the cache and the CRUD engine on top of these.

## Examples
```python
from dank.core.codec import decode, encode
from dank.core.values import ABSENT

decode(encode({"name": "a"}))  # {'name': 'a'}
decode(encode(ABSENT)) is ABSENT  # True
```
"""

from __future__ import annotations

from .errors import DecodeFailure, EncodeFailure, InvalidSchema, LineNotFound, UnsupportedVersion
from .schema import Table, TableSchema
from .values import ABSENT, Unreadable
from .versioning import FORMAT_V, SUPPORTED_VERSIONS

__all__ = [
    "ABSENT",
    "Unreadable",
    "Table",
    "TableSchema",
    "FORMAT_V",
    "SUPPORTED_VERSIONS",
    "InvalidSchema",
    "UnsupportedVersion",
    "DecodeFailure",
    "EncodeFailure",
    "LineNotFound",
]
