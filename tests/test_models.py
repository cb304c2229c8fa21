"""Tests for pydantic model parsing with SimBaseModel + SimEnum."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime
from typing import Any

import pytest
from pydantic import ValidationError

from simsync.models.blockage import BlockageRecord, GridPoint, ReferenceAnchor
from simsync.models.simulation import SimulationInfo, SimulationStatus
from simsync.models.state import SimulationState

# ------------------------------------------------------------------
# SimEnum
# ------------------------------------------------------------------


class TestSimEnum:
    def test_unknown_value_falls_back(self) -> None:
        assert SimulationStatus("EXPLODED") == SimulationStatus.UNKNOWN

    def test_case_insensitive(self) -> None:
        assert SimulationStatus("paused") == SimulationStatus.PAUSED


# ------------------------------------------------------------------
# SimulationInfo
# ------------------------------------------------------------------


class TestSimulationInfo:
    def test_parses_camel_case(self) -> None:
        info = SimulationInfo.model_validate(
            {"id": 12, "type": "WEEKLY", "status": "RUNNING", "simulatedCurrentTime": "2025-01-03T10:15:00"}
        )
        assert info.id == "12"
        assert info.simulated_current_time == datetime(2025, 1, 3, 10, 15)
        assert info.is_active

    def test_epoch_milliseconds(self) -> None:
        info = SimulationInfo.model_validate({"id": "a", "status": "FINISHED", "currentTime": 1735689600000})
        assert info.simulated_current_time == datetime(2025, 1, 1)
        assert not info.is_active

    def test_blank_values_use_defaults(self) -> None:
        info = SimulationInfo.model_validate({"id": "a", "status": "CREATED", "type": "  "})
        assert info.type is None

    def test_missing_status_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SimulationInfo.model_validate({"id": "a"})

    def test_blank_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SimulationInfo.model_validate({"id": "   ", "status": "RUNNING"})

    def test_frozen(self) -> None:
        info = SimulationInfo.model_validate({"id": "a", "status": "RUNNING"})
        with pytest.raises(ValidationError):
            info.status = SimulationStatus.PAUSED  # type: ignore[misc]


# ------------------------------------------------------------------
# SimulationState
# ------------------------------------------------------------------


class TestSimulationState:
    def test_full_payload(self, state_body: Callable[..., str]) -> None:
        state = SimulationState.model_validate(json.loads(state_body()))

        assert state.simulation_time == datetime(2025, 1, 2, 8, 0)
        vehicle = state.vehicle("TA01")
        assert vehicle is not None
        assert vehicle.position is not None
        assert (vehicle.position.x, vehicle.position.y) == (12, 8)
        assert vehicle.glp_capacity_m3 == 25.0
        assert state.vehicle("nope") is None

        order = state.pending_orders[0]
        assert order.id == "101"
        assert order.deadline_time == datetime(2025, 1, 2, 18, 0)
        assert order.glp_request_m3 == 7.5

        assert len(state.active_blockages[0].positions) == 2
        assert state.pending_orders_count == 1
        assert state.delivered_orders_count == 4

    def test_main_and_aux_depots_are_merged(self, state_body: Callable[..., str]) -> None:
        state = SimulationState.model_validate(json.loads(state_body()))

        assert [d.id for d in state.depots] == ["CENTRAL", "NORTE"]
        assert state.depots[0].is_main
        assert state.depots[0].can_refuel is True
        assert not state.depots[1].is_main
        assert state.depots[1].glp_capacity_m3 == 160

    def test_current_time_alias(self) -> None:
        state = SimulationState.model_validate({"currentTime": "2025-01-02T08:00:00"})
        assert state.simulation_time == datetime(2025, 1, 2, 8, 0)
        assert state.vehicles == ()

    def test_simulation_time_required(self) -> None:
        with pytest.raises(ValidationError):
            SimulationState.model_validate({"vehicles": []})

    def test_negative_counts_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SimulationState.model_validate({"simulationTime": "2025-01-02T08:00:00", "pendingOrdersCount": -1})


# ------------------------------------------------------------------
# Blockage records
# ------------------------------------------------------------------


class TestBlockageRecord:
    def _record(self, **overrides: Any) -> BlockageRecord:
        values: dict[str, Any] = {
            "start_time": datetime(2025, 1, 2, 0, 31),
            "end_time": datetime(2025, 1, 2, 21, 35),
            "positions": (GridPoint(x=15, y=10), GridPoint(x=30, y=10)),
        }
        values.update(overrides)
        return BlockageRecord(**values)

    def test_payload_is_camel_case(self) -> None:
        assert self._record().to_payload() == {
            "startTime": "2025-01-02T00:31:00",
            "endTime": "2025-01-02T21:35:00",
            "positions": [{"x": 15, "y": 10}, {"x": 30, "y": 10}],
        }

    def test_requires_two_points(self) -> None:
        with pytest.raises(ValidationError):
            self._record(positions=(GridPoint(x=1, y=1),))

    def test_requires_increasing_window(self) -> None:
        with pytest.raises(ValidationError):
            self._record(end_time=datetime(2025, 1, 1))

    def test_negative_coordinates_rejected(self) -> None:
        with pytest.raises(ValidationError):
            GridPoint(x=-1, y=0)


class TestReferenceAnchor:
    def test_origin(self) -> None:
        assert ReferenceAnchor(year=2025, month=2).origin == datetime(2025, 2, 1)

    @pytest.mark.parametrize("month", [0, 13])
    def test_month_range(self, month: int) -> None:
        with pytest.raises(ValidationError):
            ReferenceAnchor(year=2025, month=month)
