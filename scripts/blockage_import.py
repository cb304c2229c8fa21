#!/usr/bin/env python3
"""Validate, convert and submit blockage schedule files.

A blockage file holds one ``<start>-<end>:x1,y1,...`` line per record,
with offsets relative to the month named by the file (``aaaamm.bloqueadas``).

Usage
-----
::

    python scripts/blockage_import.py 202501.bloqueadas
    python scripts/blockage_import.py 202501.bloqueadas --json
    python scripts/blockage_import.py data.txt --year 2025 --month 1 --submit
    python scripts/blockage_import.py --template plantilla_bloqueos.txt

Options::

    --year/--month    Anchor when the file name does not carry one
    --json            Print the decoded records as JSON
    --no-bounds       Skip the 70x50 map bounds check
    --submit          POST the batch to the bulk endpoint
    --output FILE     Re-encode the records into FILE (normalized form)
    --template        Write an empty schedule template to PATH (stdout if omitted)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

import aiohttp  # noqa: E402

from simsync import SimSyncConfig  # noqa: E402
from simsync._api.blockages import submit_blockages  # noqa: E402
from simsync._http import HttpTransport  # noqa: E402
from simsync.exceptions import HttpTransportError  # noqa: E402
from simsync.models.blockage import BlockageRecord, ReferenceAnchor  # noqa: E402
from simsync.schedule.importer import (  # noqa: E402
    MapBounds,
    anchor_from_filename,
    format_blockage_schedule,
    read_blockage_file,
    template_blockage_schedule,
)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import a blockage schedule file.")
    parser.add_argument("path", type=Path, nargs="?", help="Blockage file to read.")
    parser.add_argument("--year", type=int, help="Anchor year (default: from file name).")
    parser.add_argument("--month", type=int, help="Anchor month (default: from file name).")
    parser.add_argument("--json", dest="json_mode", action="store_true", help="Print records as JSON.")
    parser.add_argument("--no-bounds", action="store_true", help="Do not check map bounds.")
    parser.add_argument("--submit", action="store_true", help="Submit the batch to the REST API.")
    parser.add_argument("--output", type=Path, help="Write the normalized schedule to this file.")
    parser.add_argument("--template", action="store_true", help="Write a blank schedule template and exit.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logs.")
    args = parser.parse_args()
    if args.path is None and not args.template:
        parser.error("path is required unless --template is given")
    return args


def _resolve_anchor(args: argparse.Namespace) -> ReferenceAnchor:
    if args.year is None and args.month is None:
        return anchor_from_filename(args.path.name)
    if args.year is None or args.month is None:
        raise SystemExit("--year and --month must be given together")
    return ReferenceAnchor(year=args.year, month=args.month)


async def _submit(records: list[BlockageRecord]) -> None:
    config = SimSyncConfig.from_env()
    async with aiohttp.ClientSession() as session:
        response = await submit_blockages(HttpTransport(config, session), records)
    print(f"Submitted {len(records)} blockage(s) to {config.api_base_url}")
    if response is not None:
        print(json.dumps(response, indent=2, default=str, ensure_ascii=False))


def _write_template(path: Path | None) -> int:
    text = template_blockage_schedule()
    if path is None:
        sys.stdout.write(text)
        return 0
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        print(f"{path}: {exc}", file=sys.stderr)
        return 1
    print(f"Template written to {path}")
    return 0


def main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.template:
        return _write_template(args.path)

    try:
        anchor = _resolve_anchor(args)
        bounds = None if args.no_bounds else MapBounds()
        records = read_blockage_file(args.path, anchor, bounds=bounds)
    except (OSError, ValueError) as exc:
        print(f"{args.path}: {exc}", file=sys.stderr)
        return 1

    if args.json_mode:
        print(json.dumps([r.to_payload() for r in records], indent=2, ensure_ascii=False))
    else:
        print(f"{args.path}: {len(records)} blockage(s) anchored at {anchor.year:04d}-{anchor.month:02d}")

    if args.output:
        args.output.write_text(format_blockage_schedule(records, anchor), encoding="utf-8")
        print(f"Normalized schedule written to {args.output}")

    if args.submit:
        try:
            asyncio.run(_submit(records))
        except HttpTransportError as exc:
            print(f"Submit failed: {exc}", file=sys.stderr)
            return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
