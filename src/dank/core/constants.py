"""
Dank core format defaults.

Defines the reserved absent-marker text, the default delimiter, the default cache
capacity, and the row-name pattern shared by table creation and row additions. This
module is zero-IO and uses only the Python standard library.

Notes:
    - ABSENT_TOKEN is written through the cell codec like any other value; format
      detection is table-driven, not special-cased at the wire level.
    - ROW_NAME_PATTERN is the single identifier rule; create_database and add_row
      must both validate against it.
"""

from __future__ import annotations

import re
from typing import Final

__all__ = [
    "ABSENT_TOKEN",
    "DEFAULT_SEPARATOR",
    "DEFAULT_CACHE_CAPACITY",
    "ROW_NAME_PATTERN",
    "RESERVED_SEPARATORS",
    "BASE64_ALPHABET",
]

# Literal sentinel meaning "not a member / no value" (before base64 wrapping).
ABSENT_TOKEN: Final[str] = "/NaM/"

# Delimiter stamped into new tables when none is configured.
DEFAULT_SEPARATOR: Final[str] = "|"

# Number of decoded tables held by a TableCache (count, not bytes).
DEFAULT_CACHE_CAPACITY: Final[int] = 100

# Row names: ASCII letters, digits and underscore; must not start with a digit.
ROW_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

# Characters that are structural in the settings line or the line layout.
RESERVED_SEPARATORS: Final[frozenset[str]] = frozenset({";", ":", "\r", "\n", "_"})

# Characters a base64 token may contain; a separator must never be one of them.
BASE64_ALPHABET: Final[frozenset[str]] = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/="
)
