"""Ingestion layer.

This package turns raw uplink messages into typed readings (decode,
transform) and owns the periodic refresh loop that feeds the store.
"""

__all__: list[str] = []
