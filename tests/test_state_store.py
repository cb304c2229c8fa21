from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from simsync.models.simulation import SimulationInfo, SimulationStatus
from simsync.models.state import SimulationState
from simsync.state.events import FrameSource, SnapshotKind, SnapshotUpdate
from simsync.state.store import SnapshotStore


def _dt() -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC)


def _info(sim_id: str, status: str = "RUNNING") -> SimulationInfo:
    return SimulationInfo.model_validate({"id": sim_id, "status": status})


def _state(hour: int) -> SimulationState:
    return SimulationState.model_validate({"simulationTime": f"2025-01-02T{hour:02d}:00:00"})


def test_info_replaced_wholesale() -> None:
    store = SnapshotStore()
    store.activate("A")

    store.apply(SnapshotUpdate(kind=SnapshotKind.INFO, simulation_id="A", info=_info("A"), observed_at=_dt()))
    store.apply(SnapshotUpdate(kind=SnapshotKind.INFO, simulation_id="A", info=_info("A", "PAUSED")))

    assert store.info is not None
    assert store.info.status == SimulationStatus.PAUSED


def test_update_for_other_simulation_rejected() -> None:
    store = SnapshotStore()
    store.activate("A")

    accepted = store.apply(SnapshotUpdate(kind=SnapshotKind.STATE, simulation_id="B", state=_state(8)))

    assert not accepted
    assert store.state is None
    assert store.observed_at(SnapshotKind.STATE) is None


def test_activate_new_simulation_clears_slots_but_same_id_keeps_them() -> None:
    store = SnapshotStore()
    store.activate("A")
    store.apply(SnapshotUpdate(kind=SnapshotKind.STATE, simulation_id="A", state=_state(8), observed_at=_dt()))

    store.activate("A")
    assert store.state is not None
    assert store.observed_at(SnapshotKind.STATE) == _dt()

    store.activate("B")
    assert store.state is None
    assert store.observed_at(SnapshotKind.STATE) is None


def test_available_survives_clear() -> None:
    store = SnapshotStore()
    store.apply(SnapshotUpdate(kind=SnapshotKind.AVAILABLE, available={"A": _info("A")}, source=FrameSource.POLL))

    store.clear()

    assert list(store.available) == ["A"]
    assert store.active_simulation_id is None


def test_available_copy_is_detached() -> None:
    store = SnapshotStore()
    store.apply(SnapshotUpdate(kind=SnapshotKind.AVAILABLE, available={"A": _info("A")}))

    store.available.clear()

    assert list(store.available) == ["A"]


def test_update_requires_matching_payload() -> None:
    with pytest.raises(ValidationError):
        SnapshotUpdate(kind=SnapshotKind.INFO, simulation_id="A")
    with pytest.raises(ValidationError):
        SnapshotUpdate(kind=SnapshotKind.STATE, simulation_id="A", info=_info("A"))
    with pytest.raises(ValidationError):
        SnapshotUpdate(kind=SnapshotKind.STATE, state=_state(1))
