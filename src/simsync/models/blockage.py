"""Blockage schedule records produced by the schedule codec."""

from __future__ import annotations

from datetime import datetime

from pydantic import ConfigDict, NonNegativeInt, field_validator, model_validator

from simsync.models._base import SimBaseModel


class GridPoint(SimBaseModel):
    """Integer map coordinate used by blockage polylines."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
    )

    x: NonNegativeInt
    y: NonNegativeInt

    def as_tuple(self) -> tuple[int, int]:
        return (self.x, self.y)


class ReferenceAnchor(SimBaseModel):
    """Year/month every relative offset of a batch resolves against."""

    year: int
    month: int

    @field_validator("year")
    @classmethod
    def _check_year(cls, value: int) -> int:
        if not 1 <= value <= 9999:
            raise ValueError(f"year must be between 1 and 9999, got {value}")
        return value

    @field_validator("month")
    @classmethod
    def _check_month(cls, value: int) -> int:
        if not 1 <= value <= 12:
            raise ValueError(f"month must be between 1 and 12, got {value}")
        return value

    @property
    def origin(self) -> datetime:
        """Midnight of day 1 of the anchor month."""
        return datetime(self.year, self.month, 1)


class BlockageRecord(SimBaseModel):
    """Road closure with an absolute time window.

    Parameters
    ----------
    start_time : datetime
        Naive instant the closure starts.
    end_time : datetime
        Naive instant the closure ends; strictly after ``start_time``.
    positions : tuple of GridPoint
        Ordered polyline, at least two points.
    """

    start_time: datetime
    end_time: datetime
    positions: tuple[GridPoint, ...]

    @field_validator("positions")
    @classmethod
    def _check_positions(cls, value: tuple[GridPoint, ...]) -> tuple[GridPoint, ...]:
        if len(value) < 2:
            raise ValueError("a blockage polyline needs at least 2 points")
        return value

    @model_validator(mode="after")
    def _check_window(self) -> BlockageRecord:
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self

    @property
    def points(self) -> list[tuple[int, int]]:
        return [point.as_tuple() for point in self.positions]

    def to_payload(self) -> dict[str, object]:
        """JSON-ready body for the bulk creation endpoint."""
        return self.model_dump(mode="json", by_alias=True)
