"""Frame body decoding.

Translates JSON bodies (from broker frames or REST responses) into
typed snapshots. Every failure is reported as :class:`FrameDecodeError`
so callers have exactly one exception to drop-and-log.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from simsync.exceptions import FrameDecodeError
from simsync.models.simulation import SimulationInfo
from simsync.models.state import SimulationState

Body = str | bytes | bytearray | Mapping[str, Any] | list[Any] | None


def load_body(body: Body, *, topic: str = "") -> Any:
    """Parse *body* as JSON unless it is already decoded."""
    if body is None:
        raise FrameDecodeError("empty frame body", topic=topic)
    if isinstance(body, (Mapping, list)):
        return body
    try:
        text = body.decode("utf-8") if isinstance(body, (bytes, bytearray)) else body
    except UnicodeDecodeError as exc:
        raise FrameDecodeError(f"frame body is not UTF-8: {exc}", topic=topic) from exc
    if not text.strip():
        raise FrameDecodeError("empty frame body", topic=topic)
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise FrameDecodeError(f"frame body is not JSON: {exc.msg} at {exc.pos}", topic=topic) from exc


def _require_object(data: Any, what: str, topic: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise FrameDecodeError(f"{what} body must be a JSON object, got {type(data).__name__}", topic=topic)
    return data


def decode_simulation_info(body: Body, *, topic: str = "") -> SimulationInfo:
    data = _require_object(load_body(body, topic=topic), "simulation info", topic)
    try:
        return SimulationInfo.model_validate(data)
    except ValidationError as exc:
        raise FrameDecodeError(f"invalid simulation info: {exc.error_count()} error(s): {exc}", topic=topic) from exc


def decode_simulation_state(body: Body, *, topic: str = "") -> SimulationState:
    data = _require_object(load_body(body, topic=topic), "simulation state", topic)
    try:
        return SimulationState.model_validate(data)
    except ValidationError as exc:
        raise FrameDecodeError(f"invalid simulation state: {exc.error_count()} error(s): {exc}", topic=topic) from exc


def decode_available_simulations(body: Body, *, topic: str = "") -> dict[str, SimulationInfo]:
    """Decode the broadcast map of every simulation known to the server.

    The server sends an object keyed by simulation id; a plain list of
    simulations is accepted too and keyed by each entry's ``id``.
    """
    data = load_body(body, topic=topic)
    entries: list[tuple[str | None, Any]]
    if isinstance(data, Mapping):
        entries = [(str(key), value) for key, value in data.items()]
    elif isinstance(data, list):
        entries = [(None, value) for value in data]
    else:
        raise FrameDecodeError(f"simulations body must be an object or list, got {type(data).__name__}", topic=topic)

    result: dict[str, SimulationInfo] = {}
    for key, value in entries:
        if not isinstance(value, Mapping):
            raise FrameDecodeError(f"simulation entry {key!r} is not an object", topic=topic)
        payload = dict(value)
        if key is not None:
            payload.setdefault("id", key)
        try:
            info = SimulationInfo.model_validate(payload)
        except ValidationError as exc:
            raise FrameDecodeError(f"invalid simulation entry {key!r}: {exc}", topic=topic) from exc
        result[key if key is not None else info.id] = info
    return result
