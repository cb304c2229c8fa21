"""Simulation metadata snapshot model."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import AliasChoices, BeforeValidator, Field

from simsync.models._base import SimBaseModel, SimEnum, SimTimestamp


def _coerce_id(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return value


SimId = Annotated[str, BeforeValidator(_coerce_id), Field(min_length=1)]
"""Identifier that accepts numeric ids and strips surrounding whitespace."""


class SimulationStatus(SimEnum):
    """Lifecycle status of a server-side simulation."""

    CREATED = "CREATED"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    FINISHED = "FINISHED"
    UNKNOWN = "UNKNOWN"


class SimulationInfo(SimBaseModel):
    """Simulation metadata snapshot.

    Produced on each metadata frame and superseded in place; no
    history is kept.

    Parameters
    ----------
    id : str
        Simulation identifier.
    type : str or None
        Simulation kind reported by the server (``DAILY_OPERATIONS``,
        ``WEEKLY``, ...).
    status : SimulationStatus
        Lifecycle status. Values without a mapped member decode to
        ``UNKNOWN``.
    simulated_current_time : datetime or None
        Current time inside the simulation clock.
    """

    id: SimId
    type: str | None = None
    status: SimulationStatus
    simulated_current_time: SimTimestamp = Field(
        default=None,
        validation_alias=AliasChoices(
            "simulatedCurrentTime",
            "simulated_current_time",
            "currentTime",
            "simulationTime",
        ),
    )

    @property
    def is_active(self) -> bool:
        """Whether the simulation clock is still advancing or can resume."""
        return self.status in (SimulationStatus.RUNNING, SimulationStatus.PAUSED)
