"""Monitor configuration for pyvinenode."""

from __future__ import annotations

import dataclasses
import math
import os
from typing import Any

from pyvinenode._constants import DEFAULT_MESSAGE_FIELD, DEFAULT_NODE_ID, DEFAULT_REFRESH_INTERVAL, PLACEHOLDER
from pyvinenode.exceptions import VineNodeConfigError


def _env_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise VineNodeConfigError(f"{name} must be a number, got {value!r}") from exc


def _env_list(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclasses.dataclass(frozen=True)
class NodeConfig:
    """Monitor configuration.

    Parameters
    ----------
    node_id : str
        Identifier of the sensor node passed to the telemetry source.
    field_selectors : tuple of str
        Uplink fields requested from the telemetry source.
    message_field : str
        Key of the encoded telemetry string inside the fetched payload.
    refresh_interval : float
        Seconds between two scheduled refresh cycles.  One additional
        cycle always runs immediately on start.
    fetch_timeout : float or None
        Upper bound in seconds for a single fetch.  ``None`` leaves the
        timeout to the telemetry source.
    placeholder : str
        Text shown for measurements that have not been decoded yet.
    """

    node_id: str = DEFAULT_NODE_ID
    field_selectors: tuple[str, ...] = (DEFAULT_MESSAGE_FIELD,)
    message_field: str = DEFAULT_MESSAGE_FIELD
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    fetch_timeout: float | None = None
    placeholder: str = PLACEHOLDER

    def __post_init__(self) -> None:
        if not self.node_id.strip():
            raise VineNodeConfigError("node_id must be non-empty")
        if not self.message_field:
            raise VineNodeConfigError("message_field must be non-empty")
        if not math.isfinite(self.refresh_interval) or self.refresh_interval <= 0:
            raise VineNodeConfigError(f"refresh_interval must be positive, got {self.refresh_interval}")
        if self.fetch_timeout is not None and self.fetch_timeout <= 0:
            raise VineNodeConfigError(f"fetch_timeout must be positive, got {self.fetch_timeout}")
        # Accept any iterable of selectors but store an immutable tuple.
        object.__setattr__(self, "field_selectors", tuple(self.field_selectors))

    @classmethod
    def from_env(cls, **overrides: Any) -> NodeConfig:
        """Create configuration from environment variables.

        Reads optional ``VINENODE_*`` variables.  Explicit keyword
        arguments override environment values.

        Returns
        -------
        NodeConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "VINENODE_NODE_ID": "node_id",
            "VINENODE_MESSAGE_FIELD": "message_field",
            "VINENODE_PLACEHOLDER": "placeholder",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        selectors_env = env.get("VINENODE_FIELD_SELECTORS")
        if selectors_env is not None and "field_selectors" not in overrides:
            config_kwargs["field_selectors"] = _env_list(selectors_env)

        interval_env = env.get("VINENODE_REFRESH_INTERVAL")
        if interval_env is not None and "refresh_interval" not in overrides:
            config_kwargs["refresh_interval"] = _env_float("VINENODE_REFRESH_INTERVAL", interval_env)

        timeout_env = env.get("VINENODE_FETCH_TIMEOUT")
        if timeout_env is not None and "fetch_timeout" not in overrides:
            # Empty value means "no timeout".
            config_kwargs["fetch_timeout"] = (
                _env_float("VINENODE_FETCH_TIMEOUT", timeout_env) if timeout_env.strip() else None
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
