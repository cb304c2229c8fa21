"""Data models for simulation snapshots and blockage schedules."""

from simsync.models._base import SimBaseModel, SimEnum, SimTimestamp, parse_sim_timestamp
from simsync.models.blockage import BlockageRecord, GridPoint, ReferenceAnchor
from simsync.models.simulation import SimId, SimulationInfo, SimulationStatus
from simsync.models.state import (
    BlockageSnapshot,
    DepotSnapshot,
    OrderSnapshot,
    Position,
    SimulationState,
    VehicleSnapshot,
)

__all__ = [
    "BlockageRecord",
    "BlockageSnapshot",
    "DepotSnapshot",
    "GridPoint",
    "OrderSnapshot",
    "Position",
    "ReferenceAnchor",
    "SimBaseModel",
    "SimEnum",
    "SimId",
    "SimTimestamp",
    "SimulationInfo",
    "SimulationState",
    "SimulationStatus",
    "VehicleSnapshot",
    "parse_sim_timestamp",
]
