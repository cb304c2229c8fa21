"""In-memory snapshot store.

This is the only component allowed to replace snapshots. Every slot is
replaced wholesale; no field of an older snapshot survives a newer one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from simsync.models.simulation import SimulationInfo
from simsync.models.state import SimulationState
from simsync.state.events import SnapshotKind, SnapshotUpdate

_logger = logging.getLogger(__name__)

SnapshotListener = Callable[[SnapshotUpdate], None]


class SnapshotStore:
    """Current snapshots for the one observed simulation plus the broadcast map.

    ``active_simulation_id`` is the single cell that decides which
    simulation's info/state updates are accepted. Updates for any other
    simulation are dropped, so frames that were already in flight when a
    switch-over happened can never land in the new simulation's slots.
    """

    def __init__(self) -> None:
        self._active_simulation_id: str | None = None
        self._info: SimulationInfo | None = None
        self._state: SimulationState | None = None
        self._available: dict[str, SimulationInfo] = {}
        self._observed_at: dict[SnapshotKind, datetime] = {}
        self._listeners: list[SnapshotListener] = []

    @property
    def active_simulation_id(self) -> str | None:
        return self._active_simulation_id

    @property
    def info(self) -> SimulationInfo | None:
        return self._info

    @property
    def state(self) -> SimulationState | None:
        return self._state

    @property
    def available(self) -> dict[str, SimulationInfo]:
        return dict(self._available)

    def observed_at(self, kind: SnapshotKind) -> datetime | None:
        """When the slot for *kind* was last replaced."""
        return self._observed_at.get(kind)

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that removes it."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def activate(self, simulation_id: str) -> None:
        """Make *simulation_id* the observed simulation, clearing stale slots."""
        if simulation_id == self._active_simulation_id:
            return
        self._active_simulation_id = simulation_id
        self._clear_simulation_slots()

    def clear(self) -> None:
        """Forget the observed simulation and its cached snapshots."""
        self._active_simulation_id = None
        self._clear_simulation_slots()

    def _clear_simulation_slots(self) -> None:
        self._info = None
        self._state = None
        self._observed_at.pop(SnapshotKind.INFO, None)
        self._observed_at.pop(SnapshotKind.STATE, None)

    def apply(self, update: SnapshotUpdate) -> bool:
        """Replace the slot addressed by *update*; returns whether it was accepted."""
        if update.kind == SnapshotKind.AVAILABLE:
            self._available = dict(update.available or {})
        else:
            if update.simulation_id != self._active_simulation_id:
                _logger.debug(
                    "Dropping %s update for inactive simulation %s (active=%s)",
                    update.kind,
                    update.simulation_id,
                    self._active_simulation_id,
                )
                return False
            if update.kind == SnapshotKind.INFO:
                self._info = update.info
            else:
                self._state = update.state

        self._observed_at[update.kind] = update.observed_at
        for listener in list(self._listeners):
            try:
                listener(update)
            except Exception:
                _logger.exception("Snapshot listener failed")
        return True
