"""Log-safe rendering of uplink payloads and message fragments.

Uplink payloads carry the encoded message next to API keys and the base64
frame it was decoded from.  Credentials and frames are masked and long text
is cut before anything reaches the logs.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_MASKED_KEYS: frozenset[str] = frozenset(
    {
        "api_key",
        "apikey",
        "app_key",
        "access_token",
        "authorization",
        "password",
        "token",
        "frm_payload",
        "raw_payload",
    }
)


def _clip(text: str, max_string: int) -> str:
    return text if len(text) <= max_string else f"{text[:max_string]}…<truncated>"


def _uplink_field(key: str, value: Any, max_string: int) -> Any:
    if key.lower() in _MASKED_KEYS:
        return "<redacted>"
    if isinstance(value, str):
        return _clip(value, max_string)
    if isinstance(value, Mapping):
        # Uplink envelopes nest the frame one level down (e.g. "uplink_message").
        return {str(k): _uplink_field(str(k), v, max_string) for k, v in value.items()}
    if value is None or isinstance(value, (int, float, bool)):
        return value
    return f"<{type(value).__name__}>"


def redact_for_log(value: Any, *, max_string: int = 256) -> Any:
    """Return a copy of a message or uplink payload that is safe to log."""
    if isinstance(value, str):
        return _clip(value, max_string)
    if isinstance(value, Mapping):
        return {str(k): _uplink_field(str(k), v, max_string) for k, v in value.items()}
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    return f"<{type(value).__name__}>"
