"""
Format version metadata and helpers for Dank table files.

Exposes the format version stamped by the running library (FORMAT_V), the statically
known set of readable versions (SUPPORTED_VERSIONS), and a guard used by the parser.
This module is zero-IO.

Notes:
    - Writers always stamp FORMAT_V, so rewriting an older supported file upgrades it.
    - Readers reject anything outside SUPPORTED_VERSIONS with UnsupportedVersion.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import UnsupportedVersion

__all__ = [
    "FormatVersion",
    "FORMAT_V",
    "SUPPORTED_VERSIONS",
    "parse_version",
    "is_supported",
    "require_supported",
]


@dataclass(frozen=True, order=True)
class FormatVersion:
    """
    Immutable "major.minor" version of the on-disk layout.

    Attributes:
        major (int): Non-negative major component signalling layout breaks.
        minor (int): Non-negative minor component for additive changes.

    Raises:
        ValueError: If any component is negative.
    """

    major: int
    minor: int

    def __post_init__(self) -> None:
        if self.major < 0:
            raise ValueError(f"FormatVersion major must be non-negative, got {self.major}")
        if self.minor < 0:
            raise ValueError(f"FormatVersion minor must be non-negative, got {self.minor}")

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


FORMAT_V = FormatVersion(1, 0)
SUPPORTED_VERSIONS: frozenset[FormatVersion] = frozenset({FORMAT_V})


def parse_version(text: str) -> FormatVersion:
    """
    Parse a "major.minor" string.

    Raises:
        ValueError: If the text is not two dot-separated non-negative integers.

    Examples:
        >>> parse_version("1.0")
        FormatVersion(major=1, minor=0)
    """
    major, sep, minor = text.strip().partition(".")
    if not sep or not major.isdigit() or not minor.isdigit():
        raise ValueError(f"version must look like 'major.minor', got {text!r}")
    return FormatVersion(int(major), int(minor))


def is_supported(text: str | None) -> bool:
    """Return True if a stamped version string is readable by this library."""
    if text is None:
        return False
    try:
        return parse_version(text) in SUPPORTED_VERSIONS
    except ValueError:
        return False


def require_supported(text: str | None) -> FormatVersion:
    """
    Validate a stamped version string and return it parsed.

    Raises:
        UnsupportedVersion: If the version is missing, malformed, or not supported.
    """
    if not is_supported(text):
        raise UnsupportedVersion(
            text, str(FORMAT_V), sorted(str(v) for v in SUPPORTED_VERSIONS)
        )
    return parse_version(text)  # type: ignore[arg-type]
