"""pyvinenode - Async telemetry decoder and reading store for vineyard sensor nodes."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyvinenode")
except PackageNotFoundError:
    __version__ = "0+local"
from pyvinenode.client import NodeMonitor
from pyvinenode.config import NodeConfig
from pyvinenode.exceptions import (
    FetchError,
    FormatError,
    NumericParseError,
    VineNodeConfigError,
    VineNodeError,
)
from pyvinenode.ingestion.decode import parse_message
from pyvinenode.ingestion.refresh import RefreshScheduler, SchedulerState
from pyvinenode.ingestion.transform import FIELD_RULES, FieldRule, convert
from pyvinenode.models import UNSET, Measurement, MeasurementReading, ReadingSnapshot
from pyvinenode.source import TelemetrySource
from pyvinenode.state.events import CycleStatus, RefreshOutcome
from pyvinenode.state.store import ReadingStore

__all__ = [
    "__version__",
    "FIELD_RULES",
    "UNSET",
    "CycleStatus",
    "FetchError",
    "FieldRule",
    "FormatError",
    "Measurement",
    "MeasurementReading",
    "NodeConfig",
    "NodeMonitor",
    "NumericParseError",
    "ReadingSnapshot",
    "ReadingStore",
    "RefreshOutcome",
    "RefreshScheduler",
    "SchedulerState",
    "TelemetrySource",
    "VineNodeConfigError",
    "VineNodeError",
    "convert",
    "parse_message",
]
