"""Uplink message decoder.

Messages are flat ``CODE:value`` pairs joined by commas, e.g.
``"AT:2500,AH:6200,WD:90"``.  Decoding is tolerant: a malformed token is
dropped on its own and never affects its siblings.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pyvinenode._constants import FIELD_SEPARATOR, KEY_VALUE_SEPARATOR
from pyvinenode._redact import redact_for_log
from pyvinenode.exceptions import FormatError

_logger = logging.getLogger(__name__)


def _as_text(raw: Any) -> str | None:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        try:
            return bytes(raw).decode("utf-8")
        except UnicodeDecodeError:
            return None
    return None


def split_token(token: str) -> tuple[str, str]:
    """Split one ``CODE:value`` token, raising :class:`FormatError` if malformed."""
    parts = token.split(KEY_VALUE_SEPARATOR)
    if len(parts) != 2:
        raise FormatError(f"expected exactly one {KEY_VALUE_SEPARATOR!r} in {token!r}", token=token)
    key, value = parts[0].strip(), parts[1].strip()
    if not key:
        raise FormatError(f"empty field code in {token!r}", token=token)
    return key, value


def parse_message(
    raw: Any,
    *,
    on_error: Callable[[FormatError], None] | None = None,
) -> dict[str, str]:
    """Decode *raw* into ``{field_code: raw_value}``.

    Later occurrences of a code overwrite earlier ones.  An empty result is
    valid and means "nothing to update".
    """
    text = _as_text(raw)
    if text is None:
        _logger.debug("Ignoring non-text message: %s", redact_for_log(raw, max_string=64))
        return {}
    if not text.strip():
        return {}

    decoded: dict[str, str] = {}
    for token in text.split(FIELD_SEPARATOR):
        if not token.strip():
            continue
        try:
            key, value = split_token(token)
        except FormatError as exc:
            _logger.debug("Discarding malformed token %s", redact_for_log(token, max_string=64))
            if on_error is not None:
                on_error(exc)
            continue
        decoded[key] = value
    return decoded
