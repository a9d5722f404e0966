"""Custom exception hierarchy for pyvinenode."""

from __future__ import annotations


class VineNodeError(Exception):
    """Base exception for all pyvinenode errors."""


class VineNodeConfigError(VineNodeError):
    """Invalid or missing configuration."""


class FetchError(VineNodeError):
    """The telemetry source failed or returned no usable message.

    Covers transport failures, timeouts, and uplinks that arrive without a
    (non-empty) message field.  Aborts the whole refresh cycle.
    """

    def __init__(self, message: str, *, node_id: str = "") -> None:
        self.node_id = node_id
        super().__init__(message)


class FormatError(VineNodeError):
    """A message token did not split into exactly one key and one value."""

    def __init__(self, message: str, *, token: str = "") -> None:
        self.token = token
        super().__init__(message)


class NumericParseError(VineNodeError):
    """A recognized field carried a value that is not a usable number.

    Only that field is skipped; the rest of the message is still applied.
    """

    def __init__(self, message: str, *, code: str = "", raw_value: str = "") -> None:
        self.code = code
        self.raw_value = raw_value
        super().__init__(message)
