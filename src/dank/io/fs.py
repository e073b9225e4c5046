"""
Filesystem helpers for dank.io (file protocol baseline).

Responsibilities
- Provide a minimal stdlib-only abstraction for the filesystem operations used by dank.io:
  existence checks, reads, deletes, safe write handles, fsync, and atomic renames.
- Establish clear semantics for the atomic write path: tmp write → fsync → atomic rename.

Notes
- Atomicity via os.replace is guaranteed only when src and dst reside on the same filesystem;
  temporary files are therefore created next to their destination.
- All helpers are synchronous; dank.io.locks serializes rewrites of the same path.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import BinaryIO


def exists(path: str) -> bool:
    """
    Check whether a path exists.

    Args:
        path (str): Filesystem path.

    Returns:
        bool: True if the path exists, False otherwise.
    """
    return os.path.exists(path)


def makedirs(path: str, exist_ok: bool = True) -> None:
    """
    Create directories recursively.

    Args:
        path (str): Directory path to create. An empty string is a no-op (cwd).
        exist_ok (bool): Do not error if the directory already exists.
    """
    if path:
        os.makedirs(path, exist_ok=exist_ok)


def remove(path: str) -> bool:
    """
    Delete a file.

    Returns:
        bool: True if a file was removed, False if it did not exist.
    """
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    return True


def read_text(path: str, encoding: str = "utf-8") -> str:
    """
    Read a whole file as text.

    Notes:
        Newlines are returned untranslated so that callers can tolerate both
        "\\n" and "\\r\\n" explicitly.
    """
    with open(path, encoding=encoding, newline="") as fh:
        return fh.read()


def tmp_path_for(path: str) -> str:
    """
    Build a unique temporary path in the same directory as `path`.

    Returns:
        str: "<path>.<uuid>.tmp"
    """
    return f"{path}.{uuid.uuid4().hex}.tmp"


@contextmanager
def open_write(path: str) -> Iterator[BinaryIO]:
    """
    Open a file for binary write as a context manager.

    Args:
        path (str): Destination path to open in write-binary mode.

    Yields:
        BinaryIO: A writable handle supporting .flush() and .fileno().

    Notes:
        Caller is responsible for the atomic os.replace of the temporary file.
    """
    fh = open(path, "wb")
    try:
        yield fh
    finally:
        fh.close()


def fsync_file(fh: BinaryIO) -> None:
    """
    Flush and fsync an open file handle.

    Notes:
        Ensures file contents reach the storage device (subject to OS/filesystem semantics).
    """
    fh.flush()
    os.fsync(fh.fileno())


def rename_atomic(src: str, dst: str) -> None:
    """
    Atomically rename src -> dst on the same filesystem.

    Notes:
        Uses os.replace, which is atomic only if src and dst reside on the same filesystem.
    """
    os.replace(src, dst)


def write_bytes_atomic(path: str, payload: bytes, *, fsync: bool = True) -> None:
    """
    Replace the contents of `path` with `payload` without exposing a partial file.

    The write path is: write "<path>.<uuid>.tmp" → flush/fsync → os.replace onto `path`.
    The temporary file is removed if any step fails, and the original error propagates.

    Args:
        path (str): Final destination.
        payload (bytes): Complete new file contents.
        fsync (bool): fsync the temporary file before the rename.

    Raises:
        OSError: If any filesystem step fails (callers wrap in IoWriteError).
    """
    makedirs(os.path.dirname(path), exist_ok=True)
    tmp_path = tmp_path_for(path)
    try:
        with open_write(tmp_path) as fh:
            fh.write(payload)
            if fsync:
                fsync_file(fh)
        rename_atomic(tmp_path, path)
    except BaseException:
        remove(tmp_path)
        raise
