"""High-level async monitor for one sensor node."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pyvinenode.config import NodeConfig
from pyvinenode.ingestion.refresh import RefreshScheduler, SchedulerState
from pyvinenode.models.reading import Measurement, ReadingSnapshot
from pyvinenode.source import TelemetrySource
from pyvinenode.state.events import RefreshOutcome
from pyvinenode.state.store import ReadingStore

_logger = logging.getLogger(__name__)


class NodeMonitor:
    """Keeps the latest readings of a node up to date.

    Usage::

        async with NodeMonitor(NodeConfig(), source) as monitor:
            ...
            print(monitor.get_display())

    The monitor owns a :class:`ReadingStore` and a :class:`RefreshScheduler`.
    Consumers only ever read snapshots; refresh failures degrade to stale
    values and are reported through logging and ``on_outcome``.
    """

    def __init__(
        self,
        config: NodeConfig,
        source: TelemetrySource,
        *,
        store: ReadingStore | None = None,
        on_snapshot: Callable[[ReadingSnapshot], None] | None = None,
        on_outcome: Callable[[RefreshOutcome], None] | None = None,
    ) -> None:
        self._config = config
        self._store = store if store is not None else ReadingStore()
        self._on_snapshot = on_snapshot
        self._on_outcome_cb = on_outcome
        self._scheduler = RefreshScheduler(config, source, self._store, on_outcome=self._on_outcome)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> NodeMonitor:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    def start(self) -> None:
        _logger.debug("Starting refresh for %s every %ss", self._config.node_id, self._config.refresh_interval)
        self._scheduler.start()

    def stop(self) -> None:
        self._scheduler.stop()

    async def aclose(self) -> None:
        await self._scheduler.aclose()

    # ------------------------------------------------------------------
    # Consumer API
    # ------------------------------------------------------------------

    @property
    def config(self) -> NodeConfig:
        return self._config

    @property
    def store(self) -> ReadingStore:
        return self._store

    @property
    def state(self) -> SchedulerState:
        return self._scheduler.state

    @property
    def last_outcome(self) -> RefreshOutcome | None:
        return self._scheduler.last_outcome

    async def refresh(self) -> RefreshOutcome:
        """Run a cycle now, outside the regular schedule."""
        return await self._scheduler.refresh()

    def get_snapshot(self) -> ReadingSnapshot:
        return self._store.snapshot()

    def get_display(self) -> dict[Measurement, str]:
        return self._store.snapshot().display(self._config.placeholder)

    def _on_outcome(self, outcome: RefreshOutcome) -> None:
        # Exceptions from either callback are logged by the scheduler.
        if self._on_outcome_cb is not None:
            self._on_outcome_cb(outcome)
        if self._on_snapshot is not None and outcome.store_changed:
            self._on_snapshot(self._store.snapshot())
