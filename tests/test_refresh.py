from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import pytest

from pyvinenode.config import NodeConfig
from pyvinenode.exceptions import VineNodeError
from pyvinenode.ingestion.refresh import RefreshScheduler, SchedulerState
from pyvinenode.models.reading import Measurement, MeasurementReading
from pyvinenode.state.events import CycleStatus, RefreshOutcome
from pyvinenode.state.store import ReadingStore


@dataclass
class FakeSource:
    """Replays queued responses; exceptions in the queue are raised."""

    responses: list[Any] = field(default_factory=lambda: [{"message": "AT:2500,AH:6200"}])
    calls: list[tuple[str, tuple[str, ...]]] = field(default_factory=list)
    gate: asyncio.Event | None = None
    delay: float = 0.0

    async def fetch(self, node_id: str, field_selectors: Sequence[str]) -> Any:
        self.calls.append((node_id, tuple(field_selectors)))
        index = min(len(self.calls), len(self.responses)) - 1
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        item = self.responses[index]
        if isinstance(item, BaseException):
            raise item
        return item


def _scheduler(
    source: FakeSource,
    *,
    store: ReadingStore | None = None,
    outcomes: list[RefreshOutcome] | None = None,
    **config: Any,
) -> tuple[RefreshScheduler, ReadingStore]:
    store = store if store is not None else ReadingStore()
    on_outcome = outcomes.append if outcomes is not None else None
    scheduler = RefreshScheduler(NodeConfig(**config), source, store, on_outcome=on_outcome)
    return scheduler, store


def _seeded_store() -> ReadingStore:
    store = ReadingStore()
    store.merge({m: MeasurementReading(value=1.0, unit="x") for m in Measurement})
    return store


async def _wait_for(predicate: Any, timeout: float = 1.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout)


@pytest.mark.asyncio
async def test_refresh_merges_decoded_fields() -> None:
    source = FakeSource(responses=[{"message": "AT:2500,WS:320"}])
    scheduler, store = _scheduler(source, node_id="node-a", field_selectors=("message", "rssi"))

    outcome = await scheduler.refresh()

    assert outcome.status == CycleStatus.UPDATED
    assert outcome.applied == (Measurement.TEMPERATURE, Measurement.WIND_SPEED)
    assert store.snapshot().display()[Measurement.TEMPERATURE] == "25.0°C"
    assert source.calls == [("node-a", ("message", "rssi"))]
    assert scheduler.state == SchedulerState.IDLE


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        ConnectionError("network down"),
        {"message": ""},
        {"other": "AT:2500"},
        {"message": None},
        {"message": 42},
        None,
    ],
)
async def test_fetch_failure_leaves_store_unchanged(response: Any) -> None:
    source = FakeSource(responses=[response])
    scheduler, store = _scheduler(source, store=_seeded_store())
    before = store.snapshot()

    outcome = await scheduler.refresh()

    assert outcome.status == CycleStatus.FETCH_FAILED
    assert outcome.error
    assert store.snapshot() == before


@pytest.mark.asyncio
async def test_fetch_timeout_is_a_fetch_failure() -> None:
    source = FakeSource(delay=1.0)
    scheduler, store = _scheduler(source, store=_seeded_store(), fetch_timeout=0.01)
    before = store.snapshot()

    outcome = await scheduler.refresh()

    assert outcome.status == CycleStatus.FETCH_FAILED
    assert "timed out" in (outcome.error or "")
    assert store.snapshot() == before


@pytest.mark.asyncio
async def test_message_without_usable_fields_is_no_data() -> None:
    source = FakeSource(responses=["garbage,,still garbage"])
    scheduler, store = _scheduler(source, store=_seeded_store())
    before = store.snapshot()

    outcome = await scheduler.refresh()

    assert outcome.status == CycleStatus.NO_DATA
    assert store.snapshot() == before


@pytest.mark.asyncio
async def test_bad_field_value_only_skips_that_field() -> None:
    source = FakeSource(responses=[{"message": "AT:abc,AH:5000,XX:1"}])
    scheduler, store = _scheduler(source, store=_seeded_store())

    outcome = await scheduler.refresh()

    assert outcome.status == CycleStatus.UPDATED
    assert outcome.applied == (Measurement.HUMIDITY,)
    assert outcome.ignored_codes == ("XX",)
    assert len(outcome.field_errors) == 1
    snapshot = store.snapshot()
    assert snapshot[Measurement.TEMPERATURE].value == 1.0
    assert snapshot[Measurement.HUMIDITY].display() == "50.0%"


@pytest.mark.asyncio
async def test_concurrent_refresh_is_skipped() -> None:
    gate = asyncio.Event()
    source = FakeSource(gate=gate)
    scheduler, _store = _scheduler(source)

    first = asyncio.create_task(scheduler.refresh())
    await _wait_for(lambda: scheduler.in_flight)
    assert scheduler.state == SchedulerState.FETCHING

    second = await scheduler.refresh()
    assert second.status == CycleStatus.SKIPPED

    gate.set()
    assert (await first).status == CycleStatus.UPDATED
    assert len(source.calls) == 1


@pytest.mark.asyncio
async def test_start_runs_one_cycle_immediately() -> None:
    outcomes: list[RefreshOutcome] = []
    source = FakeSource()
    scheduler, store = _scheduler(source, outcomes=outcomes, refresh_interval=60.0)

    scheduler.start()
    try:
        await _wait_for(lambda: outcomes)
        assert outcomes[0].status == CycleStatus.UPDATED
        assert store.snapshot()[Measurement.HUMIDITY].display() == "62.0%"
        assert scheduler.is_running
    finally:
        await scheduler.aclose()


@pytest.mark.asyncio
async def test_cycles_repeat_on_interval() -> None:
    source = FakeSource()
    scheduler, _store = _scheduler(source, refresh_interval=0.01)

    scheduler.start()
    try:
        await _wait_for(lambda: len(source.calls) >= 3)
    finally:
        await scheduler.aclose()


@pytest.mark.asyncio
async def test_ticks_during_in_flight_cycle_are_skipped() -> None:
    outcomes: list[RefreshOutcome] = []
    gate = asyncio.Event()
    source = FakeSource(gate=gate)
    scheduler, _store = _scheduler(source, outcomes=outcomes, refresh_interval=0.01)

    scheduler.start()
    try:
        await _wait_for(lambda: any(o.status == CycleStatus.SKIPPED for o in outcomes))
        assert len(source.calls) == 1
        gate.set()
        await _wait_for(lambda: any(o.status == CycleStatus.UPDATED for o in outcomes))
    finally:
        await scheduler.aclose()


@pytest.mark.asyncio
async def test_stop_prevents_further_cycles() -> None:
    outcomes: list[RefreshOutcome] = []
    source = FakeSource()
    scheduler, _store = _scheduler(source, outcomes=outcomes, refresh_interval=0.01)

    scheduler.start()
    await _wait_for(lambda: outcomes)
    scheduler.stop()
    calls_at_stop = len(source.calls)
    await asyncio.sleep(0.05)

    assert len(source.calls) == calls_at_stop
    assert scheduler.state == SchedulerState.STOPPED
    assert not scheduler.is_running
    assert (await scheduler.refresh()).status == CycleStatus.SKIPPED
    with pytest.raises(VineNodeError):
        scheduler.start()
    scheduler.stop()


@pytest.mark.asyncio
async def test_in_flight_cycle_finishes_quietly_after_stop() -> None:
    outcomes: list[RefreshOutcome] = []
    gate = asyncio.Event()
    source = FakeSource(gate=gate)
    scheduler, store = _scheduler(source, outcomes=outcomes)

    cycle = asyncio.create_task(scheduler.refresh())
    await _wait_for(lambda: scheduler.in_flight)
    scheduler.stop()
    gate.set()
    outcome = await cycle

    assert outcome.status == CycleStatus.UPDATED
    assert store.snapshot()[Measurement.TEMPERATURE].is_set
    assert scheduler.state == SchedulerState.STOPPED
    assert outcomes == []


@pytest.mark.asyncio
async def test_aclose_abandons_in_flight_cycle() -> None:
    gate = asyncio.Event()
    source = FakeSource(gate=gate)
    scheduler, store = _scheduler(source, refresh_interval=60.0)
    before = store.snapshot()

    scheduler.start()
    await _wait_for(lambda: scheduler.in_flight)
    await scheduler.aclose()

    assert not scheduler.in_flight
    assert scheduler.state == SchedulerState.STOPPED
    assert store.snapshot() == before


@pytest.mark.asyncio
async def test_failing_outcome_callback_does_not_break_cycle() -> None:
    def _explode(outcome: RefreshOutcome) -> None:
        raise RuntimeError("consumer bug")

    source = FakeSource()
    scheduler = RefreshScheduler(NodeConfig(), source, ReadingStore(), on_outcome=_explode)

    outcome = await scheduler.refresh()

    assert outcome.status == CycleStatus.UPDATED
    assert scheduler.last_outcome == outcome


class _BrokenStore(ReadingStore):
    """Store whose merge fails a fixed number of times."""

    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures

    def merge(self, updates: Any) -> None:
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("disk on fire")
        super().merge(updates)


@pytest.mark.asyncio
async def test_unexpected_error_is_isolated_to_one_cycle(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="pyvinenode")
    store = _BrokenStore(failures=1)
    scheduler, _store = _scheduler(FakeSource(), store=store)
    before = store.snapshot()

    outcome = await scheduler.refresh()

    assert outcome.status == CycleStatus.ERROR
    assert "disk on fire" in (outcome.error or "")
    assert store.snapshot() == before
    assert scheduler.state == SchedulerState.IDLE
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert errors[0].exc_info is not None
    assert errors[0].exc_info[0] is RuntimeError

    again = await scheduler.refresh()

    assert again.status == CycleStatus.UPDATED
    assert store.snapshot()[Measurement.TEMPERATURE].display() == "25.0°C"


@pytest.mark.asyncio
async def test_missed_ticks_are_dropped_after_a_stall(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="pyvinenode.ingestion.refresh")
    stalls = [0.05, 0.05, 0.05]

    def _stall(outcome: RefreshOutcome) -> None:
        if stalls:
            # Blocks the event loop so the ticker falls behind.
            time.sleep(stalls.pop())

    source = FakeSource()
    scheduler = RefreshScheduler(NodeConfig(refresh_interval=0.01), source, ReadingStore(), on_outcome=_stall)

    scheduler.start()
    try:
        await _wait_for(lambda: any("missed" in r.getMessage() for r in caplog.records))
        calls = len(source.calls)
        await _wait_for(lambda: len(source.calls) > calls)
    finally:
        await scheduler.aclose()
