"""Temporal offset codec for blockage schedules.

Schedules express instants as ``DDdHHhMMm`` tokens relative to a
reference year/month: day ``DD`` is counted from day 1 of the anchor
month at midnight, then the clock is set to ``HH:MM``. Day offsets may
run past the end of the anchor month and roll into the next one.

A schedule line pairs two tokens with a polyline::

    01d00h31m-01d21h35m:15,10,30,10,30,18

All functions here are pure: nothing reads the wall clock.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta

from pydantic import ValidationError

from simsync._constants import MAX_DAY_OFFSET
from simsync.exceptions import MalformedLineError, MalformedTokenError
from simsync.models.blockage import BlockageRecord, GridPoint

_TOKEN_RE = re.compile(r"([0-9]{2})d([0-9]{2})h([0-9]{2})m")
_COORD_RE = re.compile(r"[0-9]+")


def _origin(year: int, month: int) -> datetime:
    return datetime(year, month, 1)


def decode_offset(token: str, year: int, month: int) -> datetime:
    """Resolve an offset token against the ``(year, month)`` anchor.

    Raises :class:`MalformedTokenError` for anything that is not exactly
    two digits of day, hour and minute, or whose hour/minute is out of
    the clock range.
    """
    if not isinstance(token, str):
        raise MalformedTokenError(f"offset token must be a string, got {type(token).__name__}", token=repr(token))
    match = _TOKEN_RE.fullmatch(token)
    if match is None:
        raise MalformedTokenError(f"offset token {token!r} does not match DDdHHhMMm", token=token)

    days, hours, minutes = (int(part) for part in match.groups())
    if hours > 23 or minutes > 59:
        raise MalformedTokenError(f"offset token {token!r} has an out-of-range clock time", token=token)

    try:
        return (_origin(year, month) + timedelta(days=days)).replace(
            hour=hours,
            minute=minutes,
            second=0,
            microsecond=0,
        )
    except OverflowError as exc:
        raise MalformedTokenError(f"offset token {token!r} overflows the calendar", token=token) from exc


def encode_offset(instant: datetime, year: int, month: int) -> str:
    """Render *instant* as an offset token against the ``(year, month)`` anchor.

    Inverse of :func:`decode_offset`. Only naive, minute-aligned instants
    between day 0 and day 99 of the anchor are representable.
    """
    if instant.tzinfo is not None:
        raise ValueError("offset tokens encode naive instants only")
    if instant.second or instant.microsecond:
        raise ValueError(f"{instant.isoformat()} is not aligned to a whole minute")

    days = (instant.date() - _origin(year, month).date()).days
    if not 0 <= days <= MAX_DAY_OFFSET:
        raise ValueError(
            f"{instant.isoformat()} is {days} days from {year:04d}-{month:02d}-01; "
            f"offsets must be within 0..{MAX_DAY_OFFSET}"
        )
    return f"{days:02d}d{instant.hour:02d}h{instant.minute:02d}m"


def _parse_coordinates(text: str, line: str) -> tuple[GridPoint, ...]:
    values: list[int] = []
    for raw in text.split(","):
        item = raw.strip()
        if not _COORD_RE.fullmatch(item):
            raise MalformedLineError(f"coordinate {item!r} is not a non-negative integer", line=line)
        values.append(int(item))

    if len(values) % 2:
        raise MalformedLineError(f"odd number of coordinates ({len(values)})", line=line)
    points = tuple(GridPoint(x=values[i], y=values[i + 1]) for i in range(0, len(values), 2))
    if len(points) < 2:
        raise MalformedLineError(f"polyline needs at least 2 points, got {len(points)}", line=line)
    return points


def decode_blockage_line(line: str, year: int, month: int) -> BlockageRecord:
    """Decode ``<start>-<end>:x1,y1,...,xn,yn`` into a :class:`BlockageRecord`.

    Comment and blank lines must be filtered out by the caller.
    """
    text = line.strip()
    window, sep, coords = text.partition(":")
    if not sep:
        raise MalformedLineError("missing ':' between time window and coordinates", line=line)

    tokens = window.split("-")
    if len(tokens) != 2:
        raise MalformedLineError(f"time window {window!r} must be '<start>-<end>'", line=line)

    try:
        start = decode_offset(tokens[0].strip(), year, month)
        end = decode_offset(tokens[1].strip(), year, month)
    except MalformedTokenError as exc:
        raise MalformedLineError(str(exc), line=line) from exc

    if start >= end:
        raise MalformedLineError(
            f"start {start.isoformat()} is not before end {end.isoformat()}",
            line=line,
        )

    positions = _parse_coordinates(coords, line)
    try:
        return BlockageRecord(start_time=start, end_time=end, positions=positions)
    except ValidationError as exc:
        raise MalformedLineError(str(exc), line=line) from exc


def encode_blockage_line(record: BlockageRecord, year: int, month: int) -> str:
    """Render a record back into schedule line form."""
    start = encode_offset(record.start_time, year, month)
    end = encode_offset(record.end_time, year, month)
    coords = ",".join(f"{point.x},{point.y}" for point in record.positions)
    return f"{start}-{end}:{coords}"
