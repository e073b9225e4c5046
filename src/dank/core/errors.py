"""
Core exception types raised by schema checks, version guards, and the cell codec.

Provides typed exceptions for core-domain failures:
- InvalidSchema for bad row names, a key row missing from the row list, or a row
  that already exists / does not exist.
- UnsupportedVersion for a stamped DankVersion outside SUPPORTED_VERSIONS.
- DecodeFailure when a stored cell cannot be reversed to a value where a value is
  required (typed reads), or a value cannot be converted to the requested shape.
- EncodeFailure when a value has no JSON representation.
- LineNotFound when an operation addresses a key that matches no line.

Notes:
    - This module uses only the Python standard library and has no side effects.
    - Filesystem failures live in dank.io.errors (IoError and subclasses).

Examples:
    Catch a version mismatch and inspect the diagnostics.

    >>> from dank.core.errors import UnsupportedVersion
    >>> err = UnsupportedVersion("9.0", "1.0", ("1.0",))
    >>> err.file_version, err.supported
    ('9.0', ('1.0',))
"""

from __future__ import annotations

from collections.abc import Iterable

__all__ = [
    "InvalidSchema",
    "UnsupportedVersion",
    "DecodeFailure",
    "EncodeFailure",
    "LineNotFound",
]


class InvalidSchema(ValueError):
    """Schema-level validation failure (row names, key row, row membership)."""


class UnsupportedVersion(RuntimeError):
    """
    A table file is stamped with a format version this library cannot read.

    Attributes:
        file_version (str | None): Version found in the file (None if missing).
        library_version (str): Version written by the running library.
        supported (tuple[str, ...]): Versions the running library can read.
    """

    def __init__(
        self, file_version: str | None, library_version: str, supported: Iterable[str]
    ) -> None:
        self.file_version = file_version
        self.library_version = library_version
        self.supported = tuple(supported)
        found = "missing" if file_version is None else repr(file_version)
        super().__init__(
            f"unsupported DankVersion {found}; library writes {library_version!r}, "
            f"reads {', '.join(self.supported)}"
        )


class DecodeFailure(ValueError):
    """A stored cell could not be decoded, or converted to the requested type."""


class EncodeFailure(ValueError):
    """A value could not be serialized to a cell token."""


class LineNotFound(LookupError):
    """No line in the table carries the requested key value."""
