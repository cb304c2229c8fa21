"""REST polling ingestion.

Used while the broker connection is down: the same snapshots are fetched
over HTTP and fed through the dispatcher, so consumers see one store no
matter which input path produced an update.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from simsync._http import JsonTransport
from simsync.dispatcher import StateDispatcher
from simsync.exceptions import HttpTransportError
from simsync.state.events import FrameSource

_logger = logging.getLogger(__name__)


def info_endpoint(simulation_id: str) -> str:
    return f"simulation/{simulation_id}"


def state_endpoint(simulation_id: str) -> str:
    return f"simulation/{simulation_id}/state"


class SnapshotPoller:
    """Periodically fetch info and state of one simulation.

    Parameters
    ----------
    http
        JSON transport rooted at the REST base URL.
    dispatcher
        Receives every fetched body tagged with :attr:`FrameSource.POLL`.
    interval
        Seconds between two polls.
    """

    def __init__(
        self,
        http: JsonTransport,
        dispatcher: StateDispatcher,
        *,
        interval: float = 2.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._http = http
        self._dispatcher = dispatcher
        self._interval = interval
        self._logger = logger or _logger
        self._task: asyncio.Task[None] | None = None
        self._simulation_id: str | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def simulation_id(self) -> str | None:
        return self._simulation_id

    def start(self, simulation_id: str) -> None:
        """Poll *simulation_id* in the background, replacing any running loop."""
        if self.is_running and simulation_id == self._simulation_id:
            return
        self._cancel()
        self._simulation_id = simulation_id
        self._task = asyncio.create_task(self._run(simulation_id), name=f"simsync-poll-{simulation_id}")
        self._logger.info("Polling fallback started for simulation %s", simulation_id)

    def _cancel(self) -> asyncio.Task[None] | None:
        task = self._task
        self._task = None
        self._simulation_id = None
        if task is not None:
            task.cancel()
        return task

    async def stop(self) -> None:
        task = self._cancel()
        if task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await task
        self._logger.info("Polling fallback stopped")

    async def poll_once(self, simulation_id: str) -> bool:
        """Fetch and dispatch one info and one state snapshot.

        Returns True when both were fetched and accepted.
        """
        accepted = True
        for endpoint, dispatch in (
            (info_endpoint(simulation_id), self._dispatcher.dispatch_info),
            (state_endpoint(simulation_id), self._dispatcher.dispatch_state),
        ):
            try:
                body = await self._http.get_json(endpoint)
            except HttpTransportError as exc:
                self._logger.warning("Poll of %s failed: %s", endpoint, exc)
                accepted = False
                continue
            accepted = dispatch(simulation_id, body, source=FrameSource.POLL, topic=endpoint) and accepted
        return accepted

    async def _run(self, simulation_id: str) -> None:
        while True:
            try:
                await self.poll_once(simulation_id)
            except asyncio.CancelledError:
                raise
            except Exception:
                self._logger.warning("Poll of simulation %s failed unexpectedly", simulation_id, exc_info=True)
            await asyncio.sleep(self._interval)
