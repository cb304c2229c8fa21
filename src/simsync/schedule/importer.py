"""Bulk import of blockage schedule files.

A file is accepted or rejected as a whole: the first malformed line
aborts the batch so nothing is handed to the (non-transactional)
creation endpoint half-done.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from simsync._constants import BLOCKAGE_FILE_SUFFIX, COMMENT_MARKER, MAP_X_MAX, MAP_Y_MAX
from simsync.exceptions import MalformedLineError, ScheduleError
from simsync.models.blockage import BlockageRecord, ReferenceAnchor
from simsync.schedule.codec import decode_blockage_line, encode_blockage_line

_logger = logging.getLogger(__name__)

_FILENAME_RE = re.compile(r"([0-9]{4})([0-9]{2})" + re.escape(BLOCKAGE_FILE_SUFFIX))


@dataclass(frozen=True)
class MapBounds:
    """Inclusive coordinate bounds of the map grid."""

    x_max: int = MAP_X_MAX
    y_max: int = MAP_Y_MAX

    def contains(self, record: BlockageRecord) -> bool:
        return all(point.x <= self.x_max and point.y <= self.y_max for point in record.positions)


def is_skippable(line: str) -> bool:
    """Blank lines and ``#`` comments carry no record."""
    stripped = line.strip()
    return not stripped or stripped.startswith(COMMENT_MARKER)


def anchor_from_filename(name: str | Path) -> ReferenceAnchor:
    """Derive the anchor from an ``aaaamm.bloqueadas`` file name.

    >>> anchor_from_filename("202501.bloqueadas")
    ReferenceAnchor(year=2025, month=1)
    """
    base = Path(name).name
    match = _FILENAME_RE.fullmatch(base)
    if match is None:
        raise ScheduleError(f"file name {base!r} must look like aaaamm{BLOCKAGE_FILE_SUFFIX} (e.g. 202501{BLOCKAGE_FILE_SUFFIX})")
    try:
        return ReferenceAnchor(year=int(match.group(1)), month=int(match.group(2)))
    except ValueError as exc:
        raise ScheduleError(f"file name {base!r} does not encode a valid year/month") from exc


def parse_blockage_schedule(
    lines: Iterable[str],
    anchor: ReferenceAnchor,
    *,
    bounds: MapBounds | None = None,
) -> list[BlockageRecord]:
    """Decode every non-comment, non-blank line against one anchor.

    Raises :class:`MalformedLineError` (with ``line_number`` set) on the
    first line that fails to decode or falls outside *bounds*, and
    :class:`ScheduleError` when no line carries a record.
    """
    records: list[BlockageRecord] = []
    for line_number, line in enumerate(lines, start=1):
        if is_skippable(line):
            continue
        try:
            record = decode_blockage_line(line, anchor.year, anchor.month)
        except MalformedLineError as exc:
            raise exc.with_line_number(line_number) from exc.__cause__
        if bounds is not None and not bounds.contains(record):
            raise MalformedLineError(
                f"line {line_number}: polyline leaves the map (0..{bounds.x_max} x 0..{bounds.y_max})",
                line=line,
                line_number=line_number,
            )
        records.append(record)

    if not records:
        raise ScheduleError("no blockage records found; every line is blank or a comment")

    _logger.debug("Decoded %d blockage records anchored at %04d-%02d", len(records), anchor.year, anchor.month)
    return records


def read_blockage_file(
    path: str | Path,
    anchor: ReferenceAnchor | None = None,
    *,
    bounds: MapBounds | None = None,
    encoding: str = "utf-8",
) -> list[BlockageRecord]:
    """Read and decode a blockage file.

    When *anchor* is omitted it is taken from the file name.
    """
    file_path = Path(path)
    resolved = anchor if anchor is not None else anchor_from_filename(file_path)
    text = file_path.read_text(encoding=encoding)
    return parse_blockage_schedule(text.splitlines(), resolved, bounds=bounds)


def format_blockage_schedule(
    records: Iterable[BlockageRecord],
    anchor: ReferenceAnchor,
    *,
    header: str | None = None,
) -> str:
    """Render records as a schedule file (one line per record)."""
    out: list[str] = []
    if header:
        out.extend(f"{COMMENT_MARKER} {row}" for row in header.splitlines())
    out.extend(encode_blockage_line(record, anchor.year, anchor.month) for record in records)
    return "\n".join(out) + "\n"


TEMPLATE_EXAMPLES: tuple[str, ...] = (
    "01d00h31m-01d21h35m:15,10,30,10,30,18",
    "01d01h13m-01d20h38m:08,03,08,23,20,23",
    "01d02h40m-01d22h32m:57,30,57,45",
)


def template_blockage_schedule(examples: Iterable[str] = TEMPLATE_EXAMPLES) -> str:
    """Blank schedule file with format instructions and commented examples.

    The template holds no record, so importing it unchanged fails with
    :class:`ScheduleError`.
    """
    rows = [
        "BLOCKAGE SCHEDULE TEMPLATE",
        "",
        "Add one blockage per line below this header, using the format:",
        "DDdHHhMMm-DDdHHhMMm:x1,y1,x2,y2,...,xn,yn",
        "",
        "Where:",
        "- DDdHHhMMm = start/end day, hour and minute (e.g. 01d08h30m)",
        "- x1,y1,x2,y2,... = grid points of the blocked polyline",
        "",
        "Examples:",
        *examples,
        "",
        "ADD BLOCKAGES BELOW:",
    ]
    return "\n".join(f"{COMMENT_MARKER} {row}".rstrip() for row in rows) + "\n"
