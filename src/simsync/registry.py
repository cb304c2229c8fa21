"""Subscription registry: at most one observed simulation at a time.

The registry owns every topic handle's lifetime. Switching simulations
is always unsubscribe-then-subscribe, serialized by a lock, so frames
of two simulations can never be interleaved into the same snapshot
slot. After a reconnect the registry, not the transport, re-issues the
subscriptions that are still wanted.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from functools import partial

from stomp.utils import Frame

from simsync._transport import Transport
from simsync.dispatcher import StateDispatcher
from simsync.exceptions import NotConnectedError, SubscriptionConflictError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TopicScheme:
    """Renders broker destinations.

    ``"path"`` style yields ``/topic/simulation/<id>/state`` (Spring
    simple broker); ``"dotted"`` yields ``topic.simulation.<id>.state``.
    """

    style: str = "path"

    def _join(self, *parts: str) -> str:
        if self.style == "dotted":
            return ".".join(parts)
        return "/" + "/".join(parts)

    @property
    def simulations_topic(self) -> str:
        return self._join("topic", "simulations")

    @property
    def refresh_destination(self) -> str:
        return self._join("app", "simulations")

    def info_topic(self, simulation_id: str) -> str:
        return self._join("topic", "simulation", simulation_id)

    def state_topic(self, simulation_id: str) -> str:
        return self._join("topic", "simulation", simulation_id, "state")


@dataclass(frozen=True)
class SubscriptionRecord:
    simulation_id: str
    info_handle: str
    state_handle: str

    @property
    def handles(self) -> tuple[str, str]:
        return (self.info_handle, self.state_handle)


class SubscriptionRegistry:
    """Tracks the observed simulation and its two topic handles."""

    def __init__(
        self,
        transport: Transport,
        dispatcher: StateDispatcher,
        *,
        topics: TopicScheme | None = None,
        watch_broadcast: bool = True,
        logger: logging.Logger | None = None,
    ) -> None:
        self._transport = transport
        self._dispatcher = dispatcher
        self._topics = topics or TopicScheme()
        self._watch_broadcast = watch_broadcast
        self._logger = logger or _logger

        # Survives connection drops so the simulation can be resubscribed.
        self._simulation_id: str | None = None
        self._record: SubscriptionRecord | None = None
        self._broadcast_handle: str | None = None
        self._switch_lock = asyncio.Lock()

        transport.add_connect_listener(self._on_connected)
        transport.add_disconnect_listener(self._on_disconnected)

    @property
    def topics(self) -> TopicScheme:
        return self._topics

    @property
    def current_simulation_id(self) -> str | None:
        return self._simulation_id

    @property
    def record(self) -> SubscriptionRecord | None:
        """The live subscription, ``None`` when nothing is subscribed or the connection dropped."""
        return self._record

    @property
    def live_handles(self) -> tuple[str, ...]:
        handles: list[str] = []
        if self._broadcast_handle is not None:
            handles.append(self._broadcast_handle)
        if self._record is not None:
            handles.extend(self._record.handles)
        return tuple(handles)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def subscribe(self, simulation_id: str) -> None:
        """Observe *simulation_id*, switching away from any other simulation first.

        Raises :class:`NotConnectedError` when the transport is not
        connected; nothing is queued.
        """
        sim_id = simulation_id.strip()
        if not sim_id:
            raise ValueError("simulation_id must be non-empty")
        if not self._transport.is_connected:
            raise NotConnectedError("Cannot subscribe while the broker is not connected")

        async with self._switch_lock:
            if self._record is not None and self._record.simulation_id == sim_id:
                return
            if self._simulation_id is not None:
                self._logger.info("Switching simulation %s -> %s", self._simulation_id, sim_id)
                await self._unsubscribe_locked()
            if self._record is not None:
                raise SubscriptionConflictError(
                    f"Simulation {self._record.simulation_id} still subscribed while opening {sim_id}"
                )
            await self._open(sim_id)

    async def unsubscribe(self) -> None:
        """Stop observing the current simulation. Idempotent."""
        async with self._switch_lock:
            await self._unsubscribe_locked()

    async def request_refresh(self) -> None:
        """Ask the server to re-broadcast the available simulations."""
        await self._transport.send(self._topics.refresh_destination, "")

    def release(self) -> None:
        """Forget every record and handle without talking to the broker.

        Used on shutdown, right before the transport closes the socket.
        The registry also stops listening to the transport, so a new
        registry can take over the same transport later.
        """
        self._transport.remove_connect_listener(self._on_connected)
        self._transport.remove_disconnect_listener(self._on_disconnected)
        self._record = None
        self._simulation_id = None
        self._broadcast_handle = None
        self._dispatcher.store.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _open(self, sim_id: str) -> None:
        # Set before the SUBSCRIBEs go out; frames may arrive between them.
        self._simulation_id = sim_id
        self._dispatcher.store.activate(sim_id)
        info_handle: str | None = None
        try:
            info_handle = await self._transport.subscribe(
                self._topics.info_topic(sim_id),
                partial(self._on_info_frame, sim_id),
            )
            state_handle = await self._transport.subscribe(
                self._topics.state_topic(sim_id),
                partial(self._on_state_frame, sim_id),
            )
        except BaseException:
            if info_handle is not None:
                with contextlib.suppress(Exception):
                    await self._transport.unsubscribe(info_handle)
            self._simulation_id = None
            self._dispatcher.store.clear()
            raise

        self._record = SubscriptionRecord(simulation_id=sim_id, info_handle=info_handle, state_handle=state_handle)
        self._logger.debug("Subscribed simulation=%s handles=%s", sim_id, self._record.handles)

    async def _unsubscribe_locked(self) -> None:
        record = self._record
        self._record = None
        previous = self._simulation_id
        self._simulation_id = None
        self._dispatcher.store.clear()
        if record is None:
            if previous is not None:
                self._logger.debug("Dropped pending resubscription of %s", previous)
            return
        for handle in record.handles:
            await self._transport.unsubscribe(handle)
        self._logger.debug("Unsubscribed simulation=%s", record.simulation_id)

    async def _on_connected(self) -> None:
        async with self._switch_lock:
            if self._watch_broadcast:
                self._broadcast_handle = await self._transport.subscribe(
                    self._topics.simulations_topic,
                    self._on_broadcast_frame,
                )
                await self.request_refresh()

            sim_id = self._simulation_id
            if sim_id is not None and self._record is None:
                self._logger.info("Resubscribing simulation %s after reconnect", sim_id)
                await self._open(sim_id)

    def _on_disconnected(self, _error: BaseException | None) -> None:
        # Server-side subscriptions died with the socket; keep the wanted
        # simulation id and the last snapshots for display.
        self._record = None
        self._broadcast_handle = None

    def _on_info_frame(self, sim_id: str, frame: Frame) -> None:
        if sim_id != self._simulation_id:
            return
        self._dispatcher.dispatch_info(sim_id, frame.body, topic=frame.headers.get("destination", ""))

    def _on_state_frame(self, sim_id: str, frame: Frame) -> None:
        if sim_id != self._simulation_id:
            return
        self._dispatcher.dispatch_state(sim_id, frame.body, topic=frame.headers.get("destination", ""))

    def _on_broadcast_frame(self, frame: Frame) -> None:
        self._dispatcher.dispatch_available(frame.body, topic=frame.headers.get("destination", ""))
