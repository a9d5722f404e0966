"""Periodic refresh ingestion.

This module owns the "fetch + decode + merge" loop for one node.  The
telemetry source lives behind :class:`pyvinenode.source.TelemetrySource`
and merging is delegated to :class:`pyvinenode.state.store.ReadingStore`.

Cycles run on the event loop of the caller.  Only the fetch awaits;
decoding, conversion and merging complete on a single loop turn, so at
most one cycle can touch the store at any time.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from enum import StrEnum

from pyvinenode.config import NodeConfig
from pyvinenode.exceptions import FetchError, VineNodeError
from pyvinenode.ingestion.apply import convert_message, merge_converted
from pyvinenode.source import TelemetrySource, fetch_message
from pyvinenode.state.events import CycleStatus, RefreshOutcome
from pyvinenode.state.policy import report_error
from pyvinenode.state.store import ReadingStore

_logger = logging.getLogger(__name__)


class SchedulerState(StrEnum):
    IDLE = "idle"
    FETCHING = "fetching"
    DECODING = "decoding"
    MERGING = "merging"
    STOPPED = "stopped"


class RefreshScheduler:
    """Run refresh cycles immediately on start and then at a fixed rate.

    Ticks that fire while a cycle is still in flight are skipped rather
    than queued.
    """

    def __init__(
        self,
        config: NodeConfig,
        source: TelemetrySource,
        store: ReadingStore,
        *,
        on_outcome: Callable[[RefreshOutcome], None] | None = None,
    ) -> None:
        self._config = config
        self._source = source
        self._store = store
        self._on_outcome = on_outcome
        self._state = SchedulerState.IDLE
        self._in_flight = False
        self._ticker: asyncio.Task[None] | None = None
        self._cycle: asyncio.Task[RefreshOutcome] | None = None
        self._last_outcome: RefreshOutcome | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._ticker is not None and self._state != SchedulerState.STOPPED

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def last_outcome(self) -> RefreshOutcome | None:
        return self._last_outcome

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Kick off one cycle now and schedule the rest.

        Must be called from a running event loop.
        """
        if self._state == SchedulerState.STOPPED:
            raise VineNodeError("Scheduler has been stopped; create a new one to restart")
        if self._ticker is not None:
            return
        loop = asyncio.get_running_loop()
        self._trigger()
        self._ticker = loop.create_task(self._tick_loop(), name=f"pyvinenode-refresh-{self._config.node_id}")

    def stop(self) -> None:
        """Prevent further cycles.  An in-flight cycle may still finish."""
        if self._state == SchedulerState.STOPPED:
            return
        self._state = SchedulerState.STOPPED
        ticker = self._ticker
        self._ticker = None
        if ticker is not None and not ticker.done():
            ticker.cancel()

    async def aclose(self) -> None:
        """Stop and abandon any in-flight cycle."""
        self.stop()
        cycle = self._cycle
        self._cycle = None
        if cycle is not None and not cycle.done():
            cycle.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await cycle

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    async def _tick_loop(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self._config.refresh_interval
        next_tick = loop.time() + interval
        while self._state != SchedulerState.STOPPED:
            delay = next_tick - loop.time()
            if delay < 0:
                # The loop fell behind; drop the missed ticks instead of bursting.
                missed = int(-delay // interval) + 1
                _logger.debug("%s: %d refresh tick(s) missed", self._config.node_id, missed)
                next_tick += missed * interval
                delay = next_tick - loop.time()
            await asyncio.sleep(delay)
            if self._state == SchedulerState.STOPPED:
                return
            self._trigger()
            next_tick += interval

    def _trigger(self) -> None:
        if self._cycle is not None and not self._cycle.done():
            _logger.debug("%s: previous refresh still in flight; skipping tick", self._config.node_id)
            self._emit(self._skipped("previous cycle still in flight"))
            return
        self._cycle = asyncio.get_running_loop().create_task(self.refresh())

    async def refresh(self) -> RefreshOutcome:
        """Run one fetch-decode-merge cycle.

        Never raises for data or transport problems; the result is
        described by the returned outcome.
        """
        if self._state == SchedulerState.STOPPED:
            return self._skipped("scheduler stopped")
        if self._in_flight:
            return self._emit(self._skipped("previous cycle still in flight"))

        node_id = self._config.node_id
        self._in_flight = True
        try:
            self._set_state(SchedulerState.FETCHING)
            try:
                raw = await fetch_message(self._source, self._config)
            except FetchError as exc:
                report_error(_logger, exc, node_id=node_id)
                return self._emit(RefreshOutcome(node_id=node_id, status=CycleStatus.FETCH_FAILED, error=str(exc)))

            try:
                self._set_state(SchedulerState.DECODING)
                converted = convert_message(raw, node_id=node_id)
                self._set_state(SchedulerState.MERGING)
                outcome = merge_converted(self._store, converted, node_id=node_id)
            except Exception as exc:
                report_error(_logger, exc, node_id=node_id)
                return self._emit(RefreshOutcome(node_id=node_id, status=CycleStatus.ERROR, error=repr(exc)))
            return self._emit(outcome)
        finally:
            self._in_flight = False
            self._set_state(SchedulerState.IDLE)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _set_state(self, state: SchedulerState) -> None:
        # Stopped is terminal, even for a cycle that was already running.
        if self._state != SchedulerState.STOPPED:
            self._state = state

    def _skipped(self, reason: str) -> RefreshOutcome:
        return RefreshOutcome(node_id=self._config.node_id, status=CycleStatus.SKIPPED, error=reason)

    def _emit(self, outcome: RefreshOutcome) -> RefreshOutcome:
        self._last_outcome = outcome
        if self._on_outcome is None or self._state == SchedulerState.STOPPED:
            return outcome
        try:
            self._on_outcome(outcome)
        except Exception:
            _logger.warning("%s: refresh outcome callback failed", self._config.node_id, exc_info=True)
        return outcome
