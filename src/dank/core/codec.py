"""
Cell codec: one value <-> one sentinel-safe text token.

Encoding policy
- value -> JSON-compatible form (pydantic `to_jsonable_python`, so datetimes, UUIDs,
  Decimals, enums and pydantic models are accepted) -> canonical JSON -> UTF-8 -> base64.
- Canonical JSON: sort_keys=True, separators=(",", ":"), ensure_ascii=False,
  allow_nan=False.
- ABSENT is encoded as base64 of the literal ABSENT_TOKEN text.

Base64 output never contains the separator, ';', ':' or a newline, so a token can be
placed verbatim between separators on a data line.

Decoding policy
- A malformed token decodes to an Unreadable cell rather than raising, so one corrupt
  cell does not block reading the rest of a line.
- NaN and Infinity literals, and floats that overflow to infinity, decode as
  Unreadable, so every decoded value can be encoded again.
- Inner text equal to ABSENT_TOKEN, or a JSON string equal to it, decodes to ABSENT.
  A legitimate string value equal to "/NaM/" is therefore read back as ABSENT; this is
  an accepted limitation of the format.
- A bare, unwrapped ABSENT_TOKEN is accepted for files produced by older writers.

Notes:
    - Zero-IO; stdlib + pydantic only.
"""

from __future__ import annotations

import base64
import binascii
import json
import math
from typing import Any

from pydantic_core import PydanticSerializationError, to_jsonable_python

from .constants import ABSENT_TOKEN
from .errors import DecodeFailure, EncodeFailure
from .values import ABSENT, Absent, Cell, Unreadable

__all__ = [
    "json_dumps_canonical",
    "encode",
    "decode",
    "decode_strict",
]


def json_dumps_canonical(obj: Any) -> str:
    """
    Serialize a JSON-compatible object to a canonical JSON string.

    Raises:
        ValueError: For NaN/Infinity floats.
        TypeError: For objects json cannot serialize.
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False
    )


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-JSON constant {name}")


def _finite_float(text: str) -> float:
    value = float(text)
    if math.isinf(value):
        raise ValueError(f"float out of range: {text}")
    return value


def _wrap(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def encode(value: Any) -> str:
    """
    Encode a single cell value to a base64 token.

    Args:
        value (Any): ABSENT, an Unreadable cell (its raw token is kept), or any value
            pydantic can render as JSON.

    Returns:
        str: Token free of separators and newlines.

    Raises:
        EncodeFailure: If the value has no JSON representation (including NaN/Infinity).

    Examples:
        >>> encode(1)
        'MQ=='
        >>> decode(encode({"b": [1, 2], "a": None}))
        {'a': None, 'b': [1, 2]}
    """
    if isinstance(value, Absent):
        return _wrap(ABSENT_TOKEN)
    if isinstance(value, Unreadable):
        return value.token
    try:
        text = json_dumps_canonical(to_jsonable_python(value))
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        raise EncodeFailure(f"cannot encode {type(value).__name__} value: {exc}") from exc
    return _wrap(text)


def decode(token: str) -> Cell:
    """
    Decode a token back to a JSON value, ABSENT, or an Unreadable cell.

    Args:
        token (str): Token as stored between separators.

    Returns:
        Cell: Decoded value; never raises for malformed input.
    """
    if token == ABSENT_TOKEN:
        return ABSENT
    try:
        text = base64.b64decode(token.encode("ascii"), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError) as exc:
        return Unreadable(token, f"invalid base64 payload: {exc}")
    if text == ABSENT_TOKEN:
        return ABSENT
    try:
        value = json.loads(text, parse_constant=_reject_constant, parse_float=_finite_float)
    except ValueError as exc:
        return Unreadable(token, f"invalid JSON payload: {exc}")
    if value == ABSENT_TOKEN:
        return ABSENT
    return value


def decode_strict(token: str) -> Cell:
    """
    Decode a token, raising instead of returning an Unreadable cell.

    Raises:
        DecodeFailure: If the token is not valid base64-wrapped JSON.
    """
    cell = decode(token)
    if isinstance(cell, Unreadable):
        raise DecodeFailure(f"unreadable token {token!r}: {cell.reason}")
    return cell
