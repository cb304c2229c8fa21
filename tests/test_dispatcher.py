from __future__ import annotations

import logging
from collections.abc import Callable

import pytest

from simsync.dispatcher import StateDispatcher
from simsync.exceptions import FrameDecodeError
from simsync.ingestion.frames import (
    decode_available_simulations,
    decode_simulation_info,
    decode_simulation_state,
    load_body,
)
from simsync.models.simulation import SimulationStatus
from simsync.state.events import FrameSource, SnapshotKind, SnapshotUpdate
from simsync.state.store import SnapshotStore


@pytest.fixture
def store() -> SnapshotStore:
    store = SnapshotStore()
    store.activate("sim-1")
    return store


# ------------------------------------------------------------------
# Body decoding
# ------------------------------------------------------------------


@pytest.mark.parametrize("body", [None, "", "   ", b"\xff\xfe", "{oops", "[1, 2"])
def test_load_body_rejects_unusable_bodies(body: str | bytes | None) -> None:
    with pytest.raises(FrameDecodeError):
        load_body(body, topic="/topic/x")


def test_load_body_passes_through_decoded_values() -> None:
    assert load_body({"a": 1}) == {"a": 1}
    assert load_body(b'{"a": 1}') == {"a": 1}


def test_decode_state_requires_object(state_body: Callable[..., str]) -> None:
    with pytest.raises(FrameDecodeError, match="JSON object"):
        decode_simulation_state("[]")
    with pytest.raises(FrameDecodeError, match="invalid simulation state") as excinfo:
        decode_simulation_state('{"vehicles": []}', topic="/topic/simulation/1/state")
    assert excinfo.value.topic == "/topic/simulation/1/state"


def test_decode_info_maps_unknown_status(info_body: Callable[..., str]) -> None:
    info = decode_simulation_info(info_body(status="exploded"))
    assert info.status == SimulationStatus.UNKNOWN


def test_decode_available_accepts_map_and_list() -> None:
    by_map = decode_available_simulations('{"7": {"status": "running", "type": "WEEKLY"}}')
    assert by_map["7"].id == "7"
    assert by_map["7"].status == SimulationStatus.RUNNING

    by_list = decode_available_simulations('[{"id": 8, "status": "PAUSED"}]')
    assert list(by_list) == ["8"]

    with pytest.raises(FrameDecodeError):
        decode_available_simulations('"nope"')
    with pytest.raises(FrameDecodeError):
        decode_available_simulations('{"7": 3}')


# ------------------------------------------------------------------
# Dispatch
# ------------------------------------------------------------------


def test_state_frames_replace_snapshot_wholesale(store: SnapshotStore, state_body: Callable[..., str]) -> None:
    dispatcher = StateDispatcher(store)

    assert dispatcher.dispatch_state("sim-1", state_body())
    first = store.state
    assert first is not None
    assert len(first.vehicles) == 1

    assert dispatcher.dispatch_state("sim-1", state_body("2025-01-02T09:00:00", vehicles=[]))
    second = store.state
    assert second is not None
    assert second.vehicles == ()
    assert second.simulation_time.hour == 9
    assert first.vehicles[0].id == "TA01"


def test_decode_failure_is_logged_and_dropped(
    store: SnapshotStore,
    state_body: Callable[..., str],
    caplog: pytest.LogCaptureFixture,
) -> None:
    dispatcher = StateDispatcher(store)
    dispatcher.dispatch_state("sim-1", state_body())
    good = store.state

    with caplog.at_level(logging.WARNING, logger="simsync.dispatcher"):
        assert not dispatcher.dispatch_state("sim-1", "{truncated", topic="/topic/simulation/sim-1/state")

    assert store.state is good
    assert dispatcher.decode_failures == 1
    assert "Dropping state frame" in caplog.text

    assert dispatcher.dispatch_state("sim-1", state_body("2025-01-02T10:00:00"))
    assert store.state is not good


def test_updates_for_inactive_simulation_are_dropped(
    store: SnapshotStore,
    info_body: Callable[..., str],
) -> None:
    dispatcher = StateDispatcher(store)

    assert not dispatcher.dispatch_info("sim-2", info_body("sim-2"))
    assert store.info is None
    assert dispatcher.decode_failures == 0


def test_available_map_is_independent_of_active_simulation() -> None:
    store = SnapshotStore()
    dispatcher = StateDispatcher(store)

    assert dispatcher.dispatch_available('{"1": {"status": "CREATED"}}')
    assert list(store.available) == ["1"]


def test_listeners_receive_tagged_updates(store: SnapshotStore, info_body: Callable[..., str]) -> None:
    updates: list[SnapshotUpdate] = []
    remove = store.add_listener(updates.append)
    dispatcher = StateDispatcher(store)

    dispatcher.dispatch_info("sim-1", info_body(), source=FrameSource.POLL)
    remove()
    dispatcher.dispatch_info("sim-1", info_body())

    assert len(updates) == 1
    assert updates[0].kind == SnapshotKind.INFO
    assert updates[0].source == FrameSource.POLL
    assert updates[0].info is not None
    assert updates[0].info.type == "DAILY_OPERATIONS"


def test_failing_listener_does_not_block_store(store: SnapshotStore, info_body: Callable[..., str]) -> None:
    def _broken(update: SnapshotUpdate) -> None:
        raise RuntimeError("consumer bug")

    store.add_listener(_broken)
    dispatcher = StateDispatcher(store)

    assert dispatcher.dispatch_info("sim-1", info_body())
    assert store.info is not None
