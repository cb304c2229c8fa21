"""High-level async client for live simulation synchronization."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any

import aiohttp

from simsync._api import blockages as _blockages_api
from simsync._http import HttpTransport, JsonTransport
from simsync._transport import FrameTransport
from simsync.config import SimSyncConfig
from simsync.dispatcher import StateDispatcher
from simsync.exceptions import SimSyncError
from simsync.ingestion.polling import SnapshotPoller
from simsync.models.blockage import BlockageRecord
from simsync.models.simulation import SimulationInfo
from simsync.models.state import SimulationState
from simsync.registry import SubscriptionRegistry, TopicScheme
from simsync.state.store import SnapshotListener, SnapshotStore

_logger = logging.getLogger(__name__)


class SimulationSyncClient:
    """Async client that keeps a live view of one simulation.

    Usage::

        async with SimulationSyncClient(SimSyncConfig.from_env()) as client:
            await client.wait_until_connected(timeout=10)
            await client.subscribe_to_simulation("sim-1")
            print(client.simulation_state)

    The client owns one broker transport, one subscription registry, one
    dispatcher and one snapshot store. With ``polling_fallback`` enabled
    it also polls the REST API while the broker connection is down.
    """

    def __init__(
        self,
        config: SimSyncConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: FrameTransport | None = None,
        http: JsonTransport | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config or SimSyncConfig()
        self._http_session = session
        self._owns_session = False
        self._logger = logger or _logger
        self._injected_transport = transport
        self._injected_http = http

        self._store = SnapshotStore()
        self._dispatcher = StateDispatcher(self._store, logger=self._logger)
        self._http: JsonTransport | None = None
        self._transport: FrameTransport | None = None
        self._registry: SubscriptionRegistry | None = None
        self._poller: SnapshotPoller | None = None
        self._connected = asyncio.Event()

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SimulationSyncClient:
        if self._registry is not None:
            raise SimSyncError("Client is already open")

        if self._injected_http is not None:
            self._http = self._injected_http
        else:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
                self._owns_session = True
            self._http = HttpTransport(self._config, self._http_session)

        transport = self._injected_transport or FrameTransport(self._config, logger=self._logger)
        self._transport = transport
        self._registry = SubscriptionRegistry(
            transport,
            self._dispatcher,
            topics=TopicScheme(self._config.topic_style),
        )
        if self._config.polling_fallback:
            self._poller = SnapshotPoller(self._http, self._dispatcher, interval=self._config.poll_interval)
        # Registered after the registry so resubscription is done when this fires.
        transport.add_connect_listener(self._on_connected)
        transport.add_disconnect_listener(self._on_disconnected)

        await transport.activate()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        transport = self._transport
        if self._registry is not None:
            self._registry.release()
        if transport is not None:
            transport.remove_connect_listener(self._on_connected)
            transport.remove_disconnect_listener(self._on_disconnected)
        if self._poller is not None:
            await self._poller.stop()
        if transport is not None:
            await transport.deactivate()
        if self._owns_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._owns_session = False
        self._connected.clear()
        self._http = None
        self._transport = None
        self._registry = None
        self._poller = None

    def _require_registry(self) -> SubscriptionRegistry:
        if self._registry is None:
            raise SimSyncError("Client is not open; use 'async with SimulationSyncClient(...)'")
        return self._registry

    def _require_http(self) -> JsonTransport:
        if self._http is None:
            raise SimSyncError("Client is not open; use 'async with SimulationSyncClient(...)'")
        return self._http

    # ------------------------------------------------------------------
    # Connection events
    # ------------------------------------------------------------------

    async def _on_connected(self) -> None:
        self._connected.set()
        if self._poller is not None:
            await self._poller.stop()

    def _on_disconnected(self, error: BaseException | None) -> None:
        self._connected.clear()
        if self._poller is None or self._registry is None:
            return
        sim_id = self._registry.current_simulation_id
        if sim_id is not None:
            self._poller.start(sim_id)

    async def wait_until_connected(self, timeout: float | None = None) -> None:
        """Block until the broker is connected and subscriptions are restored."""
        await asyncio.wait_for(self._connected.wait(), timeout)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def config(self) -> SimSyncConfig:
        return self._config

    @property
    def is_connected(self) -> bool:
        return self._transport is not None and self._transport.is_connected

    @property
    def error(self) -> str | None:
        """Last connection error while disconnected; ``None`` once connected."""
        if self._transport is None or self._transport.is_connected:
            return None
        return self._transport.last_error

    @property
    def current_simulation_id(self) -> str | None:
        if self._registry is None:
            return None
        return self._registry.current_simulation_id

    @property
    def simulation_info(self) -> SimulationInfo | None:
        return self._store.info

    @property
    def simulation_state(self) -> SimulationState | None:
        return self._store.state

    @property
    def available_simulations(self) -> dict[str, SimulationInfo]:
        return self._store.available

    @property
    def decode_failures(self) -> int:
        return self._dispatcher.decode_failures

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Call *listener* after every snapshot replacement; returns a remover."""
        return self._store.add_listener(listener)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    async def subscribe_to_simulation(self, simulation_id: str) -> None:
        await self._require_registry().subscribe(simulation_id)

    async def unsubscribe_from_simulation(self) -> None:
        if self._poller is not None:
            await self._poller.stop()
        await self._require_registry().unsubscribe()

    async def request_simulations_refresh(self) -> None:
        """Ask the server to broadcast the simulation list now."""
        await self._require_registry().request_refresh()

    # ------------------------------------------------------------------
    # Blockages
    # ------------------------------------------------------------------

    async def submit_blockages(self, records: Iterable[BlockageRecord]) -> Any:
        return await _blockages_api.submit_blockages(self._require_http(), records)
