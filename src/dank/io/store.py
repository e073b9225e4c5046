"""
TableStore: CRUD engine over Dank table files.

Every operation follows the same cycle under the lock of its path:
cache lookup → (on miss) read_table and cache → mutate a copy → write_table → cache put.
A failure at any step propagates and leaves both the file and the cached table as they
were before the call. Cached tables are never mutated in place and never handed to
callers; reads return copies of cell values.

Source of truth
- Row-name rule, key matching and the Table model: dank.core.schema
- Cell encoding and the ABSENT marker: dank.core.codec / dank.core.values
- File layout and version checks: dank.io.format

Notes
- Values are normalized through the codec (encode then decode) before they enter a
  table, so a cache hit returns exactly what a cold read from disk would.
- Key comparison uses the key's external string form (see dank.core.schema.key_text).
- Single process; the cache does not see edits made to a file by other means. Call
  invalidate() after such edits.
"""

from __future__ import annotations

import copy
import os
import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeVar

import polars as pl
from loguru import logger

from dank.core.codec import decode, decode_strict, encode
from dank.core.errors import InvalidSchema, LineNotFound
from dank.core.schema import Table, TableSchema, key_text, validate_row_name
from dank.core.values import ABSENT, Cell, Unreadable, convert, is_value

from .cache import TableCache
from .config import StoreSettings
from .errors import IoWriteError
from .format import read_table, stamped, write_table
from .fs import exists as _exists
from .fs import remove

__all__ = ["TableStore"]

T = TypeVar("T")

_INTEGER = re.compile(r"^-?\d+$")


def _normalize(value: Any) -> Cell:
    """Pass a value through the codec so in-memory cells equal their on-disk form."""
    if value is ABSENT:
        return ABSENT
    return decode(encode(value))


def _plain(cell: Cell) -> Any:
    """Cell → caller-facing value: a copy of the value, None for ABSENT/Unreadable."""
    return copy.deepcopy(cell) if is_value(cell) else None


def _as_int(cell: Cell) -> int | None:
    if isinstance(cell, bool):
        return None
    if isinstance(cell, int):
        return cell
    if isinstance(cell, str) and _INTEGER.match(cell.strip()):
        return int(cell)
    return None


def _names(names: Iterable[str], what: str) -> list[str]:
    if isinstance(names, str):
        raise InvalidSchema(f"{what} must be a sequence of row names, not a single string")
    return list(names)


class TableStore:
    """
    CRUD facade over Dank table files with an explicit, shared TableCache.

    Examples:
        >>> store = TableStore()  # doctest: +SKIP
        >>> store.create_database("people.dank", ["id", "name"], "id")  # doctest: +SKIP
        >>> store.add_line("people.dank", {"id": 1, "name": "a"})  # doctest: +SKIP
        1
        >>> store.get_data("people.dank", 1, "name")  # doctest: +SKIP
        'a'
    """

    def __init__(self, settings: StoreSettings | None = None, cache: TableCache | None = None) -> None:
        """
        Initialize a store.

        Args:
            settings (StoreSettings | None): IO configuration (defaults when None).
            cache (TableCache | None): Cache to use; a private one sized by
                settings.cache_capacity is created when None. Pass the same cache to
                several stores to share decoded tables and per-path locks between them.

        Notes:
            This does not perform any I/O at construction time.
        """
        self.settings = settings or StoreSettings()
        self.cache = cache if cache is not None else TableCache(self.settings.cache_capacity)

    # ---------------------------------------------------------------------
    # Internals
    # ---------------------------------------------------------------------
    @staticmethod
    def _key(path: str | os.PathLike[str]) -> str:
        return os.path.abspath(os.fspath(path))

    def _load(self, key: str) -> Table:
        """Cached table for `key`, loading it on a miss. Caller holds the path lock."""
        return self.cache.get_or_load(key, read_table)

    def _commit(self, key: str, table: Table) -> None:
        """Write `table` and make it the cached state. Caller holds the path lock."""
        stamped(table)
        write_table(key, table, self.settings)
        self.cache.put(key, table)

    def _apply(self, path: str | os.PathLike[str], mutate: Callable[[Table], T]) -> T:
        key = self._key(path)
        with self.cache.locks.hold(key):
            work = self._load(key).copy()
            result = mutate(work)
            self._commit(key, work)
            return result

    def _read(self, path: str | os.PathLike[str]) -> Table:
        key = self._key(path)
        with self.cache.locks.hold(key):
            return self._load(key)

    @staticmethod
    def _require_row(table: Table, row: str) -> None:
        if row not in table.rows:
            raise InvalidSchema(f"row {row!r} does not exist; rows are {table.rows!r}")

    # ---------------------------------------------------------------------
    # Tables
    # ---------------------------------------------------------------------
    def create_database(
        self,
        path: str | os.PathLike[str],
        rows: Iterable[str],
        key_row: str,
        *,
        separator: str | None = None,
    ) -> None:
        """
        Write a fresh, empty table, replacing any existing file at `path`.

        Args:
            path: Table file path.
            rows (Iterable[str]): Row names in column order.
            key_row (str): Row whose value identifies a line; must be in `rows`.
            separator (str | None): Delimiter (defaults to settings.separator).

        Raises:
            InvalidSchema: Invalid/duplicate row names, key row not in rows, or a
                reserved separator.
            IoWriteError: The file could not be written.
        """
        names = _names(rows, "rows")
        if separator is None:
            separator = self.settings.separator
        schema = TableSchema(key_row=key_row, separator=separator)
        table = Table(schema, names)
        key = self._key(path)
        with self.cache.locks.hold(key):
            self._commit(key, table)
        logger.info("Created table {} with rows {} (key row {!r})", key, names, key_row)

    def exists(self, path: str | os.PathLike[str]) -> bool:
        """Return True if a table file exists at `path`."""
        return _exists(self._key(path))

    def drop_database(self, path: str | os.PathLike[str]) -> bool:
        """
        Delete a table file and forget its cached copy.

        Returns:
            bool: True if a file was deleted.

        Raises:
            IoWriteError: The file exists but could not be deleted.
        """
        key = self._key(path)
        with self.cache.locks.hold(key):
            self.cache.invalidate(key)
            try:
                removed = remove(key)
            except OSError as exc:
                raise IoWriteError(f"failed to delete table {key!r}: {exc}") from exc
        if removed:
            logger.info("Dropped table {}", key)
        return removed

    def invalidate(self, path: str | os.PathLike[str]) -> bool:
        """Forget the cached copy of a table (e.g. after editing the file by other means)."""
        key = self._key(path)
        with self.cache.locks.hold(key):
            return self.cache.invalidate(key)

    def schema(self, path: str | os.PathLike[str]) -> TableSchema:
        """Return the table's schema (key row, separator, stamped version)."""
        return self._read(path).schema

    def rows(self, path: str | os.PathLike[str]) -> list[str]:
        """Return the row definition in column order."""
        return list(self._read(path).rows)

    def count_lines(self, path: str | os.PathLike[str]) -> int:
        """Return the number of stored lines."""
        return len(self._read(path))

    # ---------------------------------------------------------------------
    # Rows (schema columns)
    # ---------------------------------------------------------------------
    def add_row(self, path: str | os.PathLike[str], name: str) -> None:
        """
        Append a row to the definition; existing lines get ABSENT for it.

        Raises:
            InvalidSchema: The name is invalid or already present.
        """
        validate_row_name(name)

        def mutate(table: Table) -> None:
            if name in table.rows:
                raise InvalidSchema(f"row {name!r} already exists")
            table.rows.append(name)
            for line in table.lines:
                line[name] = ABSENT

        self._apply(path, mutate)
        logger.debug("Added row {!r} to {}", name, self._key(path))

    def add_rows(self, path: str | os.PathLike[str], names: Iterable[str]) -> None:
        """
        Add rows one at a time.

        Notes:
            Not atomic across the batch: a failure leaves earlier additions committed.
        """
        for name in _names(names, "names"):
            self.add_row(path, name)

    def remove_row(self, path: str | os.PathLike[str], name: str) -> None:
        """
        Remove a row and its cell from every line.

        Raises:
            InvalidSchema: The row is the key row or does not exist.
        """

        def mutate(table: Table) -> None:
            if name == table.key_row:
                raise InvalidSchema(f"key row {name!r} cannot be removed")
            self._require_row(table, name)
            table.rows.remove(name)
            for line in table.lines:
                del line[name]

        self._apply(path, mutate)
        logger.debug("Removed row {!r} from {}", name, self._key(path))

    def remove_rows(self, path: str | os.PathLike[str], names: Iterable[str]) -> None:
        """Remove rows one at a time (not atomic across the batch)."""
        for name in _names(names, "names"):
            self.remove_row(path, name)

    # ---------------------------------------------------------------------
    # Lines (records)
    # ---------------------------------------------------------------------
    @staticmethod
    def _next_key(table: Table) -> int:
        highest = 0
        for line in table.lines:
            cell = line[table.key_row]
            value = _as_int(cell)
            if value is None:
                raise InvalidSchema(
                    f"cannot generate a key for {table.key_row!r}: existing key {cell!r} is "
                    "not an integer; supply the key explicitly"
                )
            highest = max(highest, value)
        return highest + 1

    def next_key(self, path: str | os.PathLike[str]) -> int:
        """
        Return the key add_line would generate: the highest integer key + 1 (1 if empty).

        Raises:
            InvalidSchema: Some existing key is not an integer (or digit string).
        """
        return self._next_key(self._read(path))

    def add_line(self, path: str | os.PathLike[str], data: Mapping[str, Any]) -> Any:
        """
        Append a line.

        Args:
            path: Table file path.
            data (Mapping[str, Any]): Row name → value. Rows left out are stored as
                ABSENT. When the key row is left out (or None), the next integer key
                is generated.

        Returns:
            Any: The key value of the new line.

        Raises:
            InvalidSchema: `data` names an unknown row, or a key cannot be generated.
            EncodeFailure: A value cannot be encoded.
        """
        cells = {row: _normalize(value) for row, value in data.items()}

        def mutate(table: Table) -> Any:
            unknown = [row for row in cells if row not in table.rows]
            if unknown:
                raise InvalidSchema(f"rows {unknown!r} do not exist; rows are {table.rows!r}")
            key = cells.get(table.key_row)
            if key is None or key is ABSENT:
                key = self._next_key(table)
            line = {row: cells.get(row, ABSENT) for row in table.rows}
            line[table.key_row] = key
            table.lines.append(line)
            return key

        key = self._apply(path, mutate)
        logger.debug("Added line {!r} to {}", key, self._key(path))
        return copy.deepcopy(key)

    def remove_line(self, path: str | os.PathLike[str], key: Any) -> bool:
        """
        Remove every line whose key matches `key`.

        Returns:
            bool: True if lines were removed; False (and no rewrite) if none matched.
        """
        target = key_text(key)
        file_key = self._key(path)
        with self.cache.locks.hold(file_key):
            table = self._load(file_key)
            kr = table.key_row
            if target is None or all(key_text(line[kr]) != target for line in table.lines):
                logger.debug("Remove line {!r} from {}: no match", key, file_key)
                return False
            work = table.copy()
            work.lines = [line for line in work.lines if key_text(line[kr]) != target]
            self._commit(file_key, work)
        logger.debug("Removed line {!r} from {}", key, file_key)
        return True

    def edit_data(self, path: str | os.PathLike[str], key: Any, row: str, value: Any) -> None:
        """
        Replace one cell of the first line matching `key`.

        Args:
            value (Any): New value; ABSENT clears the cell (not allowed on the key row).

        Raises:
            InvalidSchema: Unknown row, or clearing the key row.
            LineNotFound: No line matches `key`.
            EncodeFailure: The value cannot be encoded.
        """
        cell = _normalize(value)

        def mutate(table: Table) -> None:
            self._require_row(table, row)
            if row == table.key_row and cell is ABSENT:
                raise InvalidSchema(f"key row {row!r} cannot be cleared")
            index = table.find(key)
            if index is None:
                raise LineNotFound(f"no line with {table.key_row}={key!r}")
            table.lines[index][row] = cell

        self._apply(path, mutate)
        logger.debug("Edited {!r}.{} in {}", key, row, self._key(path))

    # ---------------------------------------------------------------------
    # Reads
    # ---------------------------------------------------------------------
    def get_data(
        self,
        path: str | os.PathLike[str],
        key: Any,
        row: str,
        as_type: type[T] | None = None,
        default: Any = None,
    ) -> Any:
        """
        Read one cell.

        Args:
            key (Any): Key value of the line.
            row (str): Row name.
            as_type (type | None): Convert the value to this type (pydantic validation),
                e.g. int, list[str], datetime. None returns the decoded JSON value.
            default (Any): Returned when no line matches or the cell is ABSENT.

        Raises:
            InvalidSchema: Unknown row.
            DecodeFailure: The stored cell is unreadable, or does not convert to `as_type`.
        """
        table = self._read(path)
        self._require_row(table, row)
        index = table.find(key)
        if index is None:
            return default
        cell = table.lines[index][row]
        if cell is ABSENT:
            return default
        if isinstance(cell, Unreadable):
            cell = decode_strict(cell.token)
        value = copy.deepcopy(cell)
        return value if as_type is None else convert(value, as_type)

    def get_line(self, path: str | os.PathLike[str], key: Any) -> dict[str, Any]:
        """
        Read every cell of the first line matching `key`.

        Returns:
            dict[str, Any]: Row name → value in column order; ABSENT and unreadable
            cells are None.

        Raises:
            LineNotFound: No line matches `key`.
        """
        table = self._read(path)
        index = table.find(key)
        if index is None:
            raise LineNotFound(f"no line with {table.key_row}={key!r}")
        line = table.lines[index]
        return {row: _plain(line[row]) for row in table.rows}

    def get_all_data(self, path: str | os.PathLike[str]) -> dict[str, dict[str, Any]]:
        """
        Read every line keyed by the key text of its key-row value.

        Notes:
            Lines sharing a key overwrite each other (the later line wins); lines whose
            key cell is unreadable are skipped.
        """
        table = self._read(path)
        out: dict[str, dict[str, Any]] = {}
        for line in table.lines:
            text = key_text(line[table.key_row])
            if text is None:
                logger.warning("Skipping line with unreadable key in {}", self._key(path))
                continue
            out[text] = {row: _plain(line[row]) for row in table.rows}
        return out

    def read_frame(self, path: str | os.PathLike[str]) -> pl.DataFrame:
        """
        Export the table as a Polars DataFrame (one column per row, in order).

        Notes:
            ABSENT and unreadable cells become nulls. Mixed-type columns are cast
            non-strictly by Polars.
        """
        table = self._read(path)
        columns = {row: [_plain(line[row]) for line in table.lines] for row in table.rows}
        return pl.DataFrame(columns, strict=False)
