"""Telemetry source boundary.

The library does not talk to any network itself.  Whatever yields the
latest uplink (an HTTP API client, an MQTT subscriber, a file replay) is
plugged in through the :class:`TelemetrySource` protocol.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from pyvinenode._redact import redact_for_log
from pyvinenode.config import NodeConfig
from pyvinenode.exceptions import FetchError

_logger = logging.getLogger(__name__)


class TelemetrySource(Protocol):
    """Structural interface for uplink providers.

    ``fetch`` returns either the encoded message itself or a payload
    mapping that carries it under the configured message field.  It may
    raise anything; the caller treats every failure as a fetch failure.
    """

    async def fetch(self, node_id: str, field_selectors: Sequence[str]) -> Mapping[str, Any] | str: ...


def extract_message(payload: Any, *, message_field: str, node_id: str = "") -> str:
    """Pull the encoded message out of a fetched payload.

    Raises :class:`FetchError` when the message is absent, empty or not text.
    """
    if isinstance(payload, str):
        message: Any = payload
    elif isinstance(payload, Mapping):
        message = payload.get(message_field)
    else:
        raise FetchError(f"Unexpected payload type {type(payload).__name__}", node_id=node_id)

    if message is None:
        _logger.debug("Payload without %r: %s", message_field, redact_for_log(payload))
        raise FetchError(f"Payload has no {message_field!r} field", node_id=node_id)
    if not isinstance(message, str):
        raise FetchError(f"{message_field!r} is {type(message).__name__}, expected str", node_id=node_id)
    if not message.strip():
        raise FetchError(f"{message_field!r} is empty", node_id=node_id)
    return message


async def fetch_message(source: TelemetrySource, config: NodeConfig) -> str:
    """Fetch the latest message for ``config.node_id``.

    Every failure mode, including timeouts, surfaces as :class:`FetchError`.
    """
    node_id = config.node_id
    try:
        if config.fetch_timeout is None:
            payload = await source.fetch(node_id, config.field_selectors)
        else:
            payload = await asyncio.wait_for(source.fetch(node_id, config.field_selectors), config.fetch_timeout)
    except FetchError:
        raise
    except TimeoutError as exc:
        raise FetchError(f"Fetch for {node_id} timed out after {config.fetch_timeout}s", node_id=node_id) from exc
    except Exception as exc:
        raise FetchError(f"Fetch for {node_id} failed: {exc!r}", node_id=node_id) from exc

    return extract_message(payload, message_field=config.message_field, node_id=node_id)
