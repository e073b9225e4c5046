"""
Custom exceptions for the dank.io module.

Purpose
- Provide IO-layer specific error types that map cleanly to responsibilities in dank.io.
- Keep dank.core as the source of truth for schema/version/codec errors (see dank.core.errors).

Source of truth and boundaries
- dank.core.errors.InvalidSchema and UnsupportedVersion are raised while validating a
  table's header; DecodeFailure/EncodeFailure by the cell codec and typed reads.
- dank.io raises Io* errors for filesystem/format/configuration concerns:
  - IoConfigError: invalid or unsupported configuration.
  - IoReadError: a table file could not be read (missing, permissions, bad encoding).
  - IoWriteError: atomic write path failed (tmp write/fsync/rename).
  - IoFormatError: a table file is structurally corrupt (missing header, cell count).

Notes
- These exceptions do not perform any IO and are stdlib-only.
- No IO error is retried inside dank.io; callers needing retries wrap the TableStore.
"""

from __future__ import annotations


class IoError(Exception):
    """
    Base class for IO-related errors in dank.io.

    Notes:
        Use this as a catch-all for IO-layer failures, distinct from dank.core errors.
    """


class IoConfigError(IoError):
    """
    Raised when IO configuration is invalid or unsupported.

    Examples:
        - Cache capacity < 1
        - Separator that collides with the token alphabet
    """


class IoReadError(IoError):
    """
    Raised when a table file cannot be read from disk.

    Notes:
        Wraps the underlying OSError/UnicodeDecodeError as __cause__.
    """


class IoWriteError(IoError):
    """
    Raised when a table rewrite fails to complete atomically.

    Notes:
        The write path is tmp file → fsync → os.replace(tmp, final). Failures at any step
        surface as IoWriteError (with best-effort cleanup of tmp files). The original file
        is left untouched.
    """


class IoFormatError(IoError):
    """
    Raised when a table file does not follow the line layout.

    Attributes:
        line_number (int | None): 1-based line number of the offending line, if known.

    Notes:
        A data line with a cell count different from the row definition is corruption;
        it is never padded or truncated.
    """

    def __init__(self, message: str, line_number: int | None = None) -> None:
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
