"""Base model and enum for simulation payloads.

Every snapshot model inherits from :class:`SimBaseModel` which
provides:

* ``alias_generator=to_camel`` so camelCase broker keys map
  automatically to snake_case fields.
* A ``model_validator(mode="before")`` that drops ``None`` and empty
  strings so the field default is used.
* Frozen instances, so a snapshot handed to a consumer can never be
  mutated behind another consumer's back.

Status enums inherit from :class:`SimEnum` which adds an ``UNKNOWN``
member and a ``_missing_`` hook that returns ``UNKNOWN`` for any value
without a mapped member.
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def parse_sim_timestamp(value: Any) -> Any:
    """Coerce epoch numbers (seconds **or** milliseconds) to naive UTC datetimes.

    Strings and datetimes are passed through for pydantic's own parsing.
    """
    if value is None or isinstance(value, (datetime, str)):
        return value
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        ts = float(value)
        if ts >= _MS_THRESHOLD:
            ts /= 1000.0
        return datetime.fromtimestamp(ts, tz=UTC).replace(tzinfo=None)
    return value


SimTimestamp = Annotated[datetime | None, BeforeValidator(parse_sim_timestamp)]
"""Annotated type accepting ISO strings or epoch numbers."""


class SimEnum(enum.StrEnum):
    """Base for broker status enums.

    Every subclass **must** define ``UNKNOWN``.
    """

    @classmethod
    def _missing_(cls, value: object) -> SimEnum:
        if isinstance(value, str):
            upper = value.strip().upper()
            for member in cls:
                if member.value == upper:
                    return member
        unknown: SimEnum = cls["UNKNOWN"]
        return unknown


class SimBaseModel(BaseModel):
    """Base for simulation snapshot models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_empty_values(cls, values: Any) -> Any:
        """Drop ``None``/blank values so field defaults apply."""
        if not isinstance(values, dict):
            return values
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            cleaned[key] = value
        return cleaned
