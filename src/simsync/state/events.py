"""Snapshot updates.

Every input path (broker push, REST polling) turns its payloads into
these updates. Only the snapshot store is allowed to apply them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from simsync.models.simulation import SimulationInfo
from simsync.models.state import SimulationState


class FrameSource(StrEnum):
    PUSH = "push"
    POLL = "poll"


class SnapshotKind(StrEnum):
    INFO = "info"
    STATE = "state"
    AVAILABLE = "available"


class SnapshotUpdate(BaseModel):
    """A decoded snapshot ready to replace one store slot."""

    model_config = ConfigDict(frozen=True)

    kind: SnapshotKind
    source: FrameSource = FrameSource.PUSH
    simulation_id: str | None = Field(default=None, description="Owning simulation; None for the broadcast map")
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    info: SimulationInfo | None = None
    state: SimulationState | None = None
    available: dict[str, SimulationInfo] | None = None

    @model_validator(mode="after")
    def _check_payload(self) -> SnapshotUpdate:
        payload = {
            SnapshotKind.INFO: self.info,
            SnapshotKind.STATE: self.state,
            SnapshotKind.AVAILABLE: self.available,
        }[self.kind]
        if payload is None:
            raise ValueError(f"{self.kind} update carries no {self.kind} snapshot")
        if self.kind != SnapshotKind.AVAILABLE and not self.simulation_id:
            raise ValueError(f"{self.kind} update needs a simulation_id")
        return self
