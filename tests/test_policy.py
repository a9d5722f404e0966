from __future__ import annotations

import logging

import pytest

from pyvinenode.exceptions import FetchError, FormatError, NumericParseError
from pyvinenode.state.policy import ErrorAction, is_cycle_fatal, policy_for, report_error


def test_policy_table_actions() -> None:
    assert policy_for(FetchError("down")).action == ErrorAction.ABORT_CYCLE
    assert policy_for(FormatError("bad token")).action == ErrorAction.DISCARD_TOKEN
    assert policy_for(NumericParseError("bad value")).action == ErrorAction.SKIP_FIELD


def test_unexpected_errors_abort_the_cycle() -> None:
    assert is_cycle_fatal(RuntimeError("boom"))
    assert not is_cycle_fatal(NumericParseError("bad value"))


def test_report_error_logs_at_policy_level(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("pyvinenode.test")
    caplog.set_level(logging.DEBUG, logger="pyvinenode.test")

    report_error(logger, FetchError("timeout"), node_id="node-1")
    report_error(logger, FormatError("garbage"), node_id="node-1")

    levels = [record.levelno for record in caplog.records]
    assert levels == [logging.WARNING, logging.DEBUG]
    assert "node-1" in caplog.records[0].getMessage()
    assert "abort_cycle" in caplog.records[0].getMessage()
