from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import pytest


def _state_payload(simulation_time: str = "2025-01-02T08:00:00", **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "timestamp": "2025-06-01T10:00:00",
        "simulationTime": simulation_time,
        "vehicles": [
            {
                "id": "TA01",
                "type": "TA",
                "status": "AVAILABLE",
                "currentPosition": {"x": 12, "y": 8},
                "currentGlpM3": 25.0,
                "glpCapacityM3": 25.0,
            }
        ],
        "pendingOrders": [
            {
                "id": 101,
                "position": {"x": 30, "y": 40},
                "arrivalTime": "2025-01-02T06:00:00",
                "deadlineTime": "2025-01-02T18:00:00",
                "glpRequestM3": 7.5,
            }
        ],
        "activeBlockages": [
            {
                "id": "B1",
                "startTime": "2025-01-02T00:31:00",
                "endTime": "2025-01-02T21:35:00",
                "lines": [{"x": 15, "y": 10}, {"x": 30, "y": 10}],
            }
        ],
        "mainDepot": {"id": "CENTRAL", "position": {"x": 12, "y": 8}, "canRefuel": True},
        "auxDepots": [{"id": "NORTE", "position": {"x": 42, "y": 42}, "glpCapacityM3": 160}],
        "pendingOrdersCount": 1,
        "deliveredOrdersCount": 4,
        "overdueOrdersCount": 0,
        "availableVehiclesCount": 1,
    }
    payload.update(extra)
    return payload


def _info_payload(simulation_id: str = "sim-1", status: str = "RUNNING", **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": simulation_id,
        "type": "DAILY_OPERATIONS",
        "status": status,
        "simulatedCurrentTime": "2025-01-02T08:00:00",
    }
    payload.update(extra)
    return payload


@pytest.fixture
def state_body() -> Callable[..., str]:
    """JSON text of a state frame; keyword arguments override top-level keys."""

    def _make(simulation_time: str = "2025-01-02T08:00:00", **extra: Any) -> str:
        return json.dumps(_state_payload(simulation_time, **extra))

    return _make


@pytest.fixture
def info_body() -> Callable[..., str]:
    def _make(simulation_id: str = "sim-1", status: str = "RUNNING", **extra: Any) -> str:
        return json.dumps(_info_payload(simulation_id, status, **extra))

    return _make
