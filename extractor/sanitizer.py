"""Coercion of extracted JSON scalars to sample values"""
import math
from typing import Any, Optional

from .base import ParseError, ValueTypeError


_QUOTES = ('"', "'", "`")


def unquote(text: str) -> str:
    """Drop one pair of surrounding quotes, if present"""
    if len(text) >= 2 and text[0] == text[-1] and text[0] in _QUOTES:
        return text[1:-1]
    return text


def sanitize_value(value: Any, path: Optional[str] = None) -> float:
    """Convert a decoded JSON scalar to a float.

    Numbers keep their value, strings are unquoted and parsed, null becomes
    NaN and booleans become 1.0 or 0.0. Objects and arrays are rejected.
    """
    # bool is a subclass of int, check it first
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if value is None:
        return math.nan
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError as e:
            raise ParseError(f"failed to parse value as float; value: {value!r}; err: {e}", path) from e
    if isinstance(value, str):
        text = unquote(value)
        try:
            return float(text)
        except (ValueError, OverflowError) as e:
            raise ParseError(f"failed to parse value as float; value: {text!r}; err: {e}", path) from e
    raise ValueTypeError(
        f"error while sanitizing value: unsupported type {type(value).__name__}", path
    )
