"""Normalization helpers.

Centralizes numeric parsing of raw field values.  Unlike a lenient
``safe_float`` these raise :class:`NumericParseError`, because a bad value
for a recognized field has to be reported, not silently turned into ``None``.

Only plain ASCII decimal notation is accepted: Python's own ``float``/``int``
also take ``_`` separators and non-ASCII digits, which nodes never send.
"""

from __future__ import annotations

import math
import re

from pyvinenode.exceptions import NumericParseError

_DECIMAL_RE = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?", re.ASCII)
_INTEGER_RE = re.compile(r"[+-]?\d+", re.ASCII)


def _reject(code: str, raw_value: object, what: str) -> NumericParseError:
    return NumericParseError(f"{code}: {raw_value!r} is not {what}", code=code, raw_value=str(raw_value))


def parse_decimal(code: str, raw_value: str) -> float:
    """Parse an ASCII decimal string into a finite float."""
    if not isinstance(raw_value, str) or _DECIMAL_RE.fullmatch(raw_value) is None:
        raise _reject(code, raw_value, "a number")
    result = float(raw_value)
    if not math.isfinite(result):
        raise _reject(code, raw_value, "a finite number")
    return result


def parse_integer(code: str, raw_value: str) -> int:
    """Parse an ASCII base-10 integer string; fractional values are rejected."""
    if not isinstance(raw_value, str) or _INTEGER_RE.fullmatch(raw_value) is None:
        raise _reject(code, raw_value, "an integer")
    return int(raw_value, 10)
