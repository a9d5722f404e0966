"""Refresh error policy.

Each error class maps to exactly one action: abort the whole cycle, or
drop only the offending token/field and carry on.  Reporting goes to the
log and must never raise into the pipeline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from pyvinenode.exceptions import FetchError, FormatError, NumericParseError


class ErrorAction(StrEnum):
    ABORT_CYCLE = "abort_cycle"
    DISCARD_TOKEN = "discard_token"
    SKIP_FIELD = "skip_field"


@dataclass(frozen=True, slots=True)
class ErrorPolicy:
    action: ErrorAction
    log_level: int


ERROR_POLICY: dict[type[Exception], ErrorPolicy] = {
    FetchError: ErrorPolicy(ErrorAction.ABORT_CYCLE, logging.WARNING),
    FormatError: ErrorPolicy(ErrorAction.DISCARD_TOKEN, logging.DEBUG),
    NumericParseError: ErrorPolicy(ErrorAction.SKIP_FIELD, logging.WARNING),
}

# Anything outside the taxonomy is a bug in the pipeline: abort the cycle, keep the store.
_UNEXPECTED = ErrorPolicy(ErrorAction.ABORT_CYCLE, logging.ERROR)


def policy_for(exc: BaseException) -> ErrorPolicy:
    for cls in type(exc).__mro__:
        policy = ERROR_POLICY.get(cls)
        if policy is not None:
            return policy
    return _UNEXPECTED


def is_cycle_fatal(exc: BaseException) -> bool:
    return policy_for(exc).action == ErrorAction.ABORT_CYCLE


def report_error(logger: logging.Logger, exc: BaseException, *, node_id: str = "") -> ErrorPolicy:
    """Log *exc* according to its policy and return that policy."""
    policy = policy_for(exc)
    # Handler failures are routed to Handler.handleError by logging itself.
    logger.log(
        policy.log_level,
        "%s [%s] %s: %s",
        node_id or "-",
        policy.action.value,
        type(exc).__name__,
        exc,
        exc_info=exc if policy is _UNEXPECTED else None,
    )
    return policy
