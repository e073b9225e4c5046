"""
Cell value variant: JSON values, the absent marker, and unreadable cells.

A Cell is closed over three shapes:
- a JSON value (None, bool, int, float, str, list, dict) produced by the codec,
- ABSENT, the reserved "no value" marker,
- Unreadable, a stored token the codec could not reverse.

Typed reads go through `convert`, which validates a JSON value against a requested
Python type with a pydantic TypeAdapter and fails explicitly on shape mismatch.

Notes:
    - Zero-IO; stdlib + pydantic only.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Final, TypeAlias, TypeVar

from pydantic import JsonValue, TypeAdapter, ValidationError

from .errors import DecodeFailure

__all__ = [
    "ABSENT",
    "Absent",
    "Unreadable",
    "JsonValue",
    "Cell",
    "Line",
    "is_value",
    "convert",
]

T = TypeVar("T")


class Absent:
    """Singleton type of the ABSENT marker. Falsy, never equal to a JSON value."""

    _instance: Absent | None = None

    def __new__(cls) -> Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> Absent:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> Absent:
        return self


ABSENT: Final[Absent] = Absent()


@dataclass(frozen=True, slots=True)
class Unreadable:
    """
    A cell whose stored token could not be decoded.

    Attributes:
        token (str): The raw token as found on disk; rewritten unchanged.
        reason (str): Short description of the decode failure.
    """

    token: str
    reason: str

    def __deepcopy__(self, memo: dict[int, Any]) -> Unreadable:
        return self


Cell: TypeAlias = "JsonValue | Absent | Unreadable"
Line: TypeAlias = "dict[str, Cell]"


def is_value(cell: Any) -> bool:
    """Return True if a cell holds a real value (not ABSENT, not Unreadable)."""
    return cell is not ABSENT and not isinstance(cell, Unreadable)


@lru_cache(maxsize=256)
def _adapter(tp: Any) -> TypeAdapter[Any]:
    return TypeAdapter(tp)


def convert(value: JsonValue, as_type: type[T]) -> T:
    """
    Convert a decoded JSON value to the requested Python type.

    Args:
        value (JsonValue): Decoded cell value.
        as_type (type[T]): Target type, e.g. int, list[str], datetime, a pydantic model.

    Returns:
        T: The validated value.

    Raises:
        DecodeFailure: If the value does not fit the requested shape.

    Examples:
        >>> convert("12", int)
        12
        >>> convert([1, 2], list[int])
        [1, 2]
    """
    try:
        return _adapter(as_type).validate_python(value)
    except ValidationError as exc:
        raise DecodeFailure(f"cannot convert {value!r} to {as_type!r}: {exc}") from exc
