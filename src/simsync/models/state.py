"""Simulation state snapshot models.

A :class:`SimulationState` is always a complete picture of the
simulation at one instant. It is replaced wholesale on every state
frame; nothing here supports field-level merging.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, NonNegativeInt, model_validator

from simsync.models._base import SimBaseModel, SimTimestamp
from simsync.models.simulation import SimId


class Position(SimBaseModel):
    """Point on the simulation map grid."""

    x: float
    y: float


class VehicleSnapshot(SimBaseModel):
    """Vehicle as reported in a state frame."""

    id: SimId
    type: str | None = None
    status: str | None = None
    position: Position | None = Field(
        default=None,
        validation_alias=AliasChoices("currentPosition", "position"),
    )
    current_fuel_gal: float | None = None
    fuel_capacity_gal: float | None = None
    current_glp_m3: float | None = None
    glp_capacity_m3: float | None = None
    speed: float | None = None


class OrderSnapshot(SimBaseModel):
    """Pending order as reported in a state frame."""

    id: SimId
    position: Position | None = None
    arrival_time: SimTimestamp = Field(
        default=None,
        validation_alias=AliasChoices("arrivalTime", "arriveTime", "arrival_time"),
    )
    deadline_time: SimTimestamp = Field(
        default=None,
        validation_alias=AliasChoices("deadlineTime", "dueTime", "deadline_time"),
    )
    glp_request_m3: float | None = None
    remaining_glp_m3: float | None = None
    delivered: bool = False
    is_overdue: bool = False


class BlockageSnapshot(SimBaseModel):
    """Road closure active in the simulation."""

    id: SimId | None = None
    start_time: SimTimestamp = None
    end_time: SimTimestamp = None
    positions: tuple[Position, ...] = Field(
        default=(),
        validation_alias=AliasChoices("lines", "positions"),
    )


class DepotSnapshot(SimBaseModel):
    """Main or auxiliary depot."""

    id: SimId | None = None
    type: str | None = None
    position: Position | None = None
    is_main: bool = False
    can_refuel: bool | None = None
    glp_capacity_m3: float | None = None
    current_glp_m3: float | None = None


class SimulationState(SimBaseModel):
    """Full simulation state snapshot.

    ``simulation_time`` is required; a frame without it is rejected as
    malformed. ``depots`` accepts either a flat ``depots`` list or the
    ``mainDepot`` + ``auxDepots`` pair some server versions send.
    """

    timestamp: SimTimestamp = None
    simulation_time: SimTimestamp = Field(
        validation_alias=AliasChoices("simulationTime", "currentTime", "simulation_time"),
    )
    vehicles: tuple[VehicleSnapshot, ...] = ()
    pending_orders: tuple[OrderSnapshot, ...] = ()
    active_blockages: tuple[BlockageSnapshot, ...] = ()
    depots: tuple[DepotSnapshot, ...] = ()
    pending_orders_count: NonNegativeInt = 0
    delivered_orders_count: NonNegativeInt = 0
    overdue_orders_count: NonNegativeInt = 0
    available_vehicles_count: NonNegativeInt = 0

    @model_validator(mode="before")
    @classmethod
    def _collect_depots(cls, values: Any) -> Any:
        if not isinstance(values, dict) or values.get("depots") is not None:
            return values
        main = values.get("mainDepot")
        aux = values.get("auxDepots")
        if main is None and aux is None:
            return values
        depots: list[Any] = []
        if isinstance(main, dict):
            depots.append({**main, "isMain": True})
        if isinstance(aux, list):
            depots.extend(aux)
        merged = {k: v for k, v in values.items() if k not in ("mainDepot", "auxDepots")}
        merged["depots"] = depots
        return merged

    def vehicle(self, vehicle_id: str) -> VehicleSnapshot | None:
        """Look up a vehicle by id."""
        for candidate in self.vehicles:
            if candidate.id == vehicle_id:
                return candidate
        return None
