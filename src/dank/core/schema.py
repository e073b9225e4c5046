"""
Table schema, row definition rules, and the in-memory Table model.

Contracts
- TableSchema: key_row, separator, format_version. Frozen; validated on construction.
- Row definition: ordered, unique row names matching ROW_NAME_PATTERN. The same rule
  applies at creation and on every later row addition.
- Table: schema + row definition + ordered lines. Every line carries a cell for every
  row (ABSENT when no value was supplied); partial lines are never persisted.

Key matching
- Lines are addressed by the "key text" of their key-row cell: strings as-is, other
  values as canonical JSON. `1` and `"1"` therefore address the same line.

Notes:
    - Zero-IO; rendering and parsing of the file layout live in dank.io.format.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from pydantic_core import PydanticSerializationError, to_jsonable_python

from .codec import json_dumps_canonical
from .constants import BASE64_ALPHABET, DEFAULT_SEPARATOR, RESERVED_SEPARATORS, ROW_NAME_PATTERN
from .errors import EncodeFailure, InvalidSchema
from .values import Absent, Line, Unreadable
from .versioning import FORMAT_V

__all__ = [
    "TableSchema",
    "Table",
    "is_valid_row_name",
    "validate_row_name",
    "validate_rows",
    "validate_separator",
    "key_text",
]


def is_valid_row_name(name: Any) -> bool:
    """Return True if `name` is a str matching ROW_NAME_PATTERN."""
    return isinstance(name, str) and ROW_NAME_PATTERN.fullmatch(name) is not None


def validate_row_name(name: Any) -> str:
    """
    Validate a single row name.

    Raises:
        InvalidSchema: If the name is not a valid identifier.
    """
    if not is_valid_row_name(name):
        raise InvalidSchema(
            f"row name {name!r} is invalid; use ASCII letters, digits and underscore, "
            "not starting with a digit"
        )
    return name


def validate_rows(rows: Iterable[str], key_row: str | None = None) -> list[str]:
    """
    Validate an ordered row definition.

    Args:
        rows (Iterable[str]): Row names in on-disk column order.
        key_row (str | None): If given, must be one of the rows.

    Returns:
        list[str]: The row names as a new list.

    Raises:
        InvalidSchema: On an invalid or duplicate name, an empty definition, or a
            key row that is not a member.
    """
    out: list[str] = []
    seen: set[str] = set()
    for name in rows:
        validate_row_name(name)
        if name in seen:
            raise InvalidSchema(f"row {name!r} is defined more than once")
        seen.add(name)
        out.append(name)
    if not out:
        raise InvalidSchema("a table needs at least one row")
    if key_row is not None and key_row not in seen:
        raise InvalidSchema(f"key row {key_row!r} is not one of the rows {out!r}")
    return out


def validate_separator(separator: Any) -> str:
    """
    Validate a separator character.

    Raises:
        InvalidSchema: If it is not a single character, or could collide with base64
            tokens, row names, or the settings line syntax.
    """
    if not isinstance(separator, str) or len(separator) != 1:
        raise InvalidSchema(f"separator must be a single character, got {separator!r}")
    if separator in BASE64_ALPHABET or separator in RESERVED_SEPARATORS:
        raise InvalidSchema(f"separator {separator!r} is reserved")
    return separator


def key_text(cell: Any) -> str | None:
    """
    External string form used to match a key value.

    Returns:
        str | None: The string itself for values whose JSON form is a string (str,
        datetime, UUID, ...), canonical JSON otherwise; None for ABSENT and Unreadable
        cells (they never match).

    Raises:
        EncodeFailure: If the value has no JSON representation.

    Examples:
        >>> key_text(1), key_text("1"), key_text(True)
        ('1', '1', 'true')
    """
    if isinstance(cell, (Absent, Unreadable)):
        return None
    if isinstance(cell, str):
        return cell
    try:
        value = to_jsonable_python(cell)
        return value if isinstance(value, str) else json_dumps_canonical(value)
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        raise EncodeFailure(f"cannot use {type(cell).__name__} value as a key: {exc}") from exc


@dataclass(frozen=True)
class TableSchema:
    """
    Settings-line contents of a table.

    Attributes:
        key_row (str): Row acting as the primary identifier.
        separator (str): Single delimiter character (default "|").
        format_version (str): Version stamped in the file (default: running FORMAT_V).

    Raises:
        InvalidSchema: If the key row name or separator is invalid.

    Examples:
        >>> TableSchema(key_row="id").separator
        '|'
    """

    key_row: str
    separator: str = DEFAULT_SEPARATOR
    format_version: str = str(FORMAT_V)

    def __post_init__(self) -> None:
        validate_row_name(self.key_row)
        validate_separator(self.separator)


@dataclass
class Table:
    """
    Fully decoded table held by the cache and mutated by the store.

    Attributes:
        schema (TableSchema): Key row, separator, and stamped version.
        rows (list[str]): Row definition; order is the on-disk column order.
        lines (list[Line]): Stored records; each maps every row name to a Cell.

    Notes:
        - Construction validates the row definition against the schema.
        - Callers outside the store must work on `copy()` results, not shared instances.
    """

    schema: TableSchema
    rows: list[str]
    lines: list[Line] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.rows = validate_rows(self.rows, self.schema.key_row)

    @property
    def key_row(self) -> str:
        return self.schema.key_row

    def copy(self) -> Table:
        """Return an independent deep copy (cells are copied too)."""
        return Table(self.schema, list(self.rows), copy.deepcopy(self.lines))

    def keys(self) -> Iterator[str | None]:
        """Yield the key text of every line in order."""
        for line in self.lines:
            yield key_text(line[self.key_row])

    def find(self, key: Any) -> int | None:
        """Return the index of the first line whose key matches `key`, or None."""
        target = key_text(key)
        if target is None:
            return None
        for i, text in enumerate(self.keys()):
            if text == target:
                return i
        return None

    def __len__(self) -> int:
        return len(self.lines)
