"""Blockage schedule codec and bulk importer."""

from simsync.schedule.codec import decode_blockage_line, decode_offset, encode_blockage_line, encode_offset
from simsync.schedule.importer import (
    MapBounds,
    anchor_from_filename,
    format_blockage_schedule,
    is_skippable,
    parse_blockage_schedule,
    read_blockage_file,
    template_blockage_schedule,
)

__all__ = [
    "MapBounds",
    "anchor_from_filename",
    "decode_blockage_line",
    "decode_offset",
    "encode_blockage_line",
    "encode_offset",
    "format_blockage_schedule",
    "is_skippable",
    "parse_blockage_schedule",
    "read_blockage_file",
    "template_blockage_schedule",
]
