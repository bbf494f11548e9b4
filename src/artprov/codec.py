"""Reversible codec for confidential numeric values.

Placeholder for a real confidential-computation scheme: a token is the fixed
``FHE-`` tag followed by the base64 of the number's decimal text. Callers only
rely on ``encode``/``decode``, so a real scheme can replace this module
without touching the ledger or the disclosure gate.
"""

import base64
import binascii
import math
import re

from .errors import CodecError

TOKEN_PREFIX = "FHE-"

_INT_RE = re.compile(r"[+-]?\d+")
_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

# Integral floats below this are written without a fractional part ("1500", not "1500.0")
_EXACT_INT_LIMIT = 2**53


def _number_text(value: float) -> str:
    if isinstance(value, int):
        return str(value)
    if value.is_integer() and abs(value) < _EXACT_INT_LIMIT:
        return str(int(value))
    return repr(value)


def _parse_number(text: str) -> float:
    text = text.strip()
    if _INT_RE.fullmatch(text):
        return int(text)
    if not _NUMBER_RE.fullmatch(text):
        raise CodecError(f"Not a numeric value: {text[:40]!r}")
    number = float(text)
    if not math.isfinite(number):
        raise CodecError(f"Numeric value out of range: {text[:40]!r}")
    return number


def encode(value: float) -> str:
    """Encode a finite number into an opaque ``FHE-`` token."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise CodecError(f"Cannot encode non-numeric value of type {type(value).__name__}")
    if isinstance(value, float) and not math.isfinite(value):
        raise CodecError(f"Cannot encode non-finite value {value!r}")
    payload = base64.b64encode(_number_text(value).encode("ascii")).decode("ascii")
    return f"{TOKEN_PREFIX}{payload}"


def decode(token: str) -> float:
    """Decode a token produced by :func:`encode`.

    Untagged input is a legacy plain value and is parsed as a number.

    Raises:
        CodecError: If the token is neither correctly tagged nor numeric
    """
    if not isinstance(token, str):
        raise CodecError(f"Token must be a string, got {type(token).__name__}")
    if not token.startswith(TOKEN_PREFIX):
        return _parse_number(token)
    try:
        text = base64.b64decode(token[len(TOKEN_PREFIX):], validate=True).decode("ascii")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise CodecError(f"Malformed token payload: {e}") from e
    return _parse_number(text)


def is_encoded(token: str) -> bool:
    return isinstance(token, str) and token.startswith(TOKEN_PREFIX)


def try_decode(token: str) -> float | None:
    """Decode, mapping a malformed token to ``None`` (no value available)."""
    try:
        return decode(token)
    except CodecError:
        return None
