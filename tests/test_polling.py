from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any

import pytest

from simsync._api.blockages import BULK_ENDPOINT, build_bulk_payload, submit_blockages
from simsync.dispatcher import StateDispatcher
from simsync.exceptions import HttpTransportError
from simsync.ingestion.polling import SnapshotPoller
from simsync.schedule.codec import decode_blockage_line
from simsync.state.events import FrameSource, SnapshotUpdate
from simsync.state.store import SnapshotStore


class FakeHttp:
    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses = responses or {}
        self.gets: list[str] = []
        self.posts: list[tuple[str, Any]] = []

    async def get_json(self, endpoint: str) -> Any:
        self.gets.append(endpoint)
        response = self.responses.get(endpoint)
        if isinstance(response, Exception):
            raise response
        return response

    async def post_json(self, endpoint: str, payload: Any) -> Any:
        self.posts.append((endpoint, payload))
        return {"created": len(payload)}


@pytest.fixture
def store() -> SnapshotStore:
    store = SnapshotStore()
    store.activate("7")
    return store


@pytest.mark.asyncio
async def test_poll_once_feeds_dispatcher(
    store: SnapshotStore,
    state_body: Callable[..., str],
    info_body: Callable[..., str],
) -> None:
    http = FakeHttp(
        {
            "simulation/7": json.loads(info_body("7")),
            "simulation/7/state": json.loads(state_body()),
        }
    )
    updates: list[SnapshotUpdate] = []
    store.add_listener(updates.append)
    poller = SnapshotPoller(http, StateDispatcher(store))

    assert await poller.poll_once("7")

    assert http.gets == ["simulation/7", "simulation/7/state"]
    assert store.info is not None
    assert store.state is not None
    assert {u.source for u in updates} == {FrameSource.POLL}


@pytest.mark.asyncio
async def test_poll_failure_is_isolated(store: SnapshotStore, info_body: Callable[..., str]) -> None:
    http = FakeHttp(
        {
            "simulation/7": json.loads(info_body("7")),
            "simulation/7/state": HttpTransportError("HTTP 503", status_code=503, endpoint="simulation/7/state"),
        }
    )
    poller = SnapshotPoller(http, StateDispatcher(store))

    assert not await poller.poll_once("7")
    assert store.info is not None
    assert store.state is None


@pytest.mark.asyncio
async def test_poller_loop_start_and_stop(store: SnapshotStore, state_body: Callable[..., str]) -> None:
    http = FakeHttp({"simulation/7/state": json.loads(state_body())})
    poller = SnapshotPoller(http, StateDispatcher(store), interval=0.01)

    poller.start("7")
    assert poller.is_running
    assert poller.simulation_id == "7"
    await asyncio.sleep(0.05)
    await poller.stop()

    assert not poller.is_running
    assert http.gets.count("simulation/7/state") >= 2
    assert store.state is not None

    # Stopping twice is fine.
    await poller.stop()


@pytest.mark.asyncio
async def test_unexpected_poll_errors_are_logged_as_warnings(
    store: SnapshotStore,
    caplog: pytest.LogCaptureFixture,
) -> None:
    http = FakeHttp({"simulation/7": RuntimeError("proxy returned garbage")})
    poller = SnapshotPoller(http, StateDispatcher(store), interval=0.01)

    with caplog.at_level(logging.WARNING, logger="simsync.ingestion.polling"):
        poller.start("7")
        await asyncio.sleep(0.05)
        await poller.stop()

    failures = [r for r in caplog.records if "failed unexpectedly" in r.getMessage()]
    assert failures
    assert failures[0].levelno == logging.WARNING
    assert failures[0].exc_info is not None


@pytest.mark.asyncio
async def test_submit_blockages_posts_camel_case_batch() -> None:
    records = [
        decode_blockage_line("01d00h31m-01d21h35m:15,10,30,10,30,18", 2025, 1),
        decode_blockage_line("02d00h00m-02d01h00m:0,0,0,5", 2025, 1),
    ]
    http = FakeHttp()

    response = await submit_blockages(http, records)

    assert response == {"created": 2}
    endpoint, payload = http.posts[0]
    assert endpoint == BULK_ENDPOINT
    assert payload[0]["startTime"] == "2025-01-02T00:31:00"
    assert payload[0]["positions"][2] == {"x": 30, "y": 18}
    assert payload == build_bulk_payload(records)


@pytest.mark.asyncio
async def test_submit_empty_batch_sends_nothing() -> None:
    http = FakeHttp()
    assert await submit_blockages(http, []) is None
    assert http.posts == []
