"""
Parser and writer for the Dank line-oriented table format.

Layout (UTF-8, "\\n" or "\\r\\n" line endings)
- line 1: "KeyRow:<name>;Separator:<char>;DankVersion:<major.minor>;"
- line 2: <row1><sep><row2><sep>...<rowN>
- line 3..: <cell1><sep><cell2><sep>...<cellN>   (one per stored record)

Parsing
- The settings line is split on ";" then on the first ":"; KeyRow, Separator and
  DankVersion are recognized, other keys are ignored.
- A missing or unsupported DankVersion raises UnsupportedVersion before anything else
  is interpreted.
- Row names are validated with the same rule as table creation (InvalidSchema).
- A data line whose cell count differs from the row count raises IoFormatError; it is
  never padded. Individual cells that fail to decode become Unreadable cells.

Writing
- The settings line is always stamped with the running FORMAT_V (older files are
  upgraded on their next rewrite). Unknown settings keys are not carried over.
- The whole file is rendered first, then swapped in via tmp → fsync → os.replace.
"""

from __future__ import annotations

from dataclasses import replace

from loguru import logger

from dank.core.codec import decode, encode
from dank.core.errors import InvalidSchema
from dank.core.schema import Table, TableSchema
from dank.core.values import Line, Unreadable
from dank.core.versioning import FORMAT_V, require_supported

from .config import StoreSettings
from .errors import IoFormatError, IoReadError, IoWriteError
from .fs import read_text, write_bytes_atomic

__all__ = [
    "parse_settings",
    "render_settings",
    "parse_table",
    "render_table",
    "stamped",
    "read_table",
    "write_table",
]

_KEY_ROW = "KeyRow"
_SEPARATOR = "Separator"
_VERSION = "DankVersion"


def parse_settings(line: str) -> dict[str, str]:
    """
    Split a settings line into key/value pairs.

    Examples:
        >>> parse_settings("KeyRow:id;Separator:|;DankVersion:1.0;Owner:me;")
        {'KeyRow': 'id', 'Separator': '|', 'DankVersion': '1.0', 'Owner': 'me'}
    """
    out: dict[str, str] = {}
    for part in line.split(";"):
        key, sep, value = part.partition(":")
        if sep and key:
            out[key.strip()] = value
    return out


def render_settings(schema: TableSchema) -> str:
    """Render the settings line for a schema, stamped with the running FORMAT_V."""
    return f"{_KEY_ROW}:{schema.key_row};{_SEPARATOR}:{schema.separator};{_VERSION}:{FORMAT_V};"


def _split_lines(text: str) -> list[str]:
    lines = [ln[:-1] if ln.endswith("\r") else ln for ln in text.split("\n")]
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def _parse_line(raw: str, table: Table, line_number: int) -> Line:
    tokens = raw.split(table.schema.separator)
    if len(tokens) != len(table.rows):
        raise IoFormatError(
            f"expected {len(table.rows)} cells, found {len(tokens)}", line_number=line_number
        )
    line: Line = {}
    for row, token in zip(table.rows, tokens):
        cell = decode(token)
        if isinstance(cell, Unreadable):
            logger.warning(
                "Unreadable cell at line {} row {!r}: {}", line_number, row, cell.reason
            )
        line[row] = cell
    return line


def parse_table(text: str) -> Table:
    """
    Parse the full text of a table file.

    Args:
        text (str): File contents.

    Returns:
        Table: Decoded table; schema.format_version holds the version read from disk.

    Raises:
        UnsupportedVersion: DankVersion missing or not supported.
        InvalidSchema: Missing KeyRow/Separator, invalid or duplicate row names, or a
            key row that is not one of the rows.
        IoFormatError: Missing header lines or a data line with the wrong cell count.
    """
    lines = _split_lines(text)
    if not lines:
        raise IoFormatError("empty table file: settings line missing", line_number=1)

    settings = parse_settings(lines[0])
    version = require_supported(settings.get(_VERSION))
    if _KEY_ROW not in settings:
        raise InvalidSchema(f"settings line has no {_KEY_ROW}")
    if _SEPARATOR not in settings:
        raise InvalidSchema(f"settings line has no {_SEPARATOR}")
    schema = TableSchema(
        key_row=settings[_KEY_ROW],
        separator=settings[_SEPARATOR],
        format_version=str(version),
    )

    if len(lines) < 2:
        raise IoFormatError("row definition line missing", line_number=2)
    table = Table(schema, lines[1].split(schema.separator))

    for line_number, raw in enumerate(lines[2:], start=3):
        if not raw:
            continue
        table.lines.append(_parse_line(raw, table, line_number))
    return table


def render_table(table: Table) -> str:
    """
    Render a table to file text (settings, rows, one line per record, trailing newline).

    Raises:
        EncodeFailure: If a cell value cannot be encoded.
        IoFormatError: If a line is missing a cell for some row.
    """
    sep = table.schema.separator
    out = [render_settings(table.schema), sep.join(table.rows)]
    for index, line in enumerate(table.lines):
        missing = [row for row in table.rows if row not in line]
        if missing:
            raise IoFormatError(f"record {index} has no cell for rows {missing!r}")
        out.append(sep.join(encode(line[row]) for row in table.rows))
    return "\n".join(out) + "\n"


def stamped(table: Table) -> Table:
    """Return `table` with its schema's format_version set to the running FORMAT_V."""
    if table.schema.format_version != str(FORMAT_V):
        table.schema = replace(table.schema, format_version=str(FORMAT_V))
    return table


def read_table(path: str) -> Table:
    """
    Load and validate a table file.

    Raises:
        IoReadError: The file is missing or unreadable.
        UnsupportedVersion | InvalidSchema | IoFormatError: See parse_table.
    """
    try:
        text = read_text(path)
    except (OSError, UnicodeDecodeError) as exc:
        raise IoReadError(f"failed to read table {path!r}: {exc}") from exc
    table = parse_table(text)
    logger.debug("Loaded table {} ({} rows, {} lines)", path, len(table.rows), len(table))
    return table


def write_table(path: str, table: Table, settings: StoreSettings) -> None:
    """
    Replace a table file with the rendered contents of `table`.

    The full text is rendered before any filesystem work, so encode failures leave the
    file untouched; the write itself is tmp → fsync → os.replace.

    Raises:
        EncodeFailure: If a cell value cannot be encoded.
        IoWriteError: If the atomic write path fails.
    """
    payload = render_table(table).encode("utf-8")
    try:
        write_bytes_atomic(path, payload, fsync=settings.fsync)
    except OSError as exc:
        raise IoWriteError(f"failed to write table {path!r}: {exc}") from exc
    logger.debug("Wrote table {} ({} lines, {} bytes)", path, len(table), len(payload))
