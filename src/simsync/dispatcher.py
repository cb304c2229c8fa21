"""Routes decoded frame bodies into the snapshot store.

Bad frames are logged and dropped: one malformed body never stops the
stream or touches the last good snapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from simsync.exceptions import FrameDecodeError
from simsync.ingestion.frames import (
    Body,
    decode_available_simulations,
    decode_simulation_info,
    decode_simulation_state,
)
from simsync.state.events import FrameSource, SnapshotKind, SnapshotUpdate
from simsync.state.store import SnapshotStore

_logger = logging.getLogger(__name__)


class StateDispatcher:
    """Decode info/state/broadcast bodies and replace the matching store slot."""

    def __init__(self, store: SnapshotStore, *, logger: logging.Logger | None = None) -> None:
        self._store = store
        self._logger = logger or _logger
        self._decode_failures = 0

    @property
    def store(self) -> SnapshotStore:
        return self._store

    @property
    def decode_failures(self) -> int:
        """Number of frames dropped because they could not be decoded."""
        return self._decode_failures

    def _decode(self, decoder: Callable[..., Any], body: Body, kind: SnapshotKind, topic: str) -> Any | None:
        try:
            return decoder(body, topic=topic)
        except FrameDecodeError as exc:
            self._decode_failures += 1
            self._logger.warning("Dropping %s frame topic=%s: %s", kind, topic or "-", exc)
            return None

    def dispatch_info(
        self,
        simulation_id: str,
        body: Body,
        *,
        source: FrameSource = FrameSource.PUSH,
        topic: str = "",
    ) -> bool:
        """Replace the metadata snapshot of *simulation_id*; False if dropped."""
        info = self._decode(decode_simulation_info, body, SnapshotKind.INFO, topic)
        if info is None:
            return False
        if info.id != simulation_id:
            self._logger.debug("Info frame id=%s arrived on %s's topic", info.id, simulation_id)
        return self._store.apply(
            SnapshotUpdate(kind=SnapshotKind.INFO, source=source, simulation_id=simulation_id, info=info)
        )

    def dispatch_state(
        self,
        simulation_id: str,
        body: Body,
        *,
        source: FrameSource = FrameSource.PUSH,
        topic: str = "",
    ) -> bool:
        """Replace the state snapshot of *simulation_id* wholesale; False if dropped."""
        state = self._decode(decode_simulation_state, body, SnapshotKind.STATE, topic)
        if state is None:
            return False
        return self._store.apply(
            SnapshotUpdate(kind=SnapshotKind.STATE, source=source, simulation_id=simulation_id, state=state)
        )

    def dispatch_available(
        self,
        body: Body,
        *,
        source: FrameSource = FrameSource.PUSH,
        topic: str = "",
    ) -> bool:
        """Replace the available-simulations map wholesale; False if dropped."""
        available = self._decode(decode_available_simulations, body, SnapshotKind.AVAILABLE, topic)
        if available is None:
            return False
        return self._store.apply(SnapshotUpdate(kind=SnapshotKind.AVAILABLE, source=source, available=available))
