"""Ingestion layer.

Adapters that receive simulation data (broker frames, REST polling) and
turn it into typed snapshots for the state store.
"""

__all__: list[str] = []
