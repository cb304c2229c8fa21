#!/usr/bin/env python3
"""Watch a running simulation over the broker connection.

Connects, subscribes to one simulation and prints a one-line summary for
every snapshot that replaces the store. Reconnection is automatic; the
summary line shows when the connection is down.

Usage
-----
::

    export SIMSYNC_BROKER_URL="ws://localhost:8080/ws"
    python scripts/watch_simulation.py SIM_ID
    python scripts/watch_simulation.py --list

Options::

    --list            Print the simulations the server broadcasts and exit
    --duration N      Stop after N seconds (0 = until Ctrl+C)
    --poll            Enable the REST polling fallback while disconnected
    --verbose, -v     Debug logs (includes frame traffic)
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import sys
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from simsync import SimSyncConfig, SimulationSyncClient  # noqa: E402
from simsync.exceptions import SimSyncError  # noqa: E402
from simsync.state.events import SnapshotKind, SnapshotUpdate  # noqa: E402


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Watch live simulation snapshots.")
    parser.add_argument("simulation_id", nargs="?", help="Simulation to observe.")
    parser.add_argument("--list", action="store_true", help="List broadcast simulations and exit.")
    parser.add_argument(
        "--duration",
        type=float,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument("--poll", action="store_true", help="Poll the REST API while disconnected.")
    parser.add_argument("--connect-timeout", type=float, default=15.0, help="Seconds to wait for the broker.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logs.")
    args = parser.parse_args()
    if not args.list and not args.simulation_id:
        parser.error("simulation_id is required unless --list is given")
    return args


def _print_update(update: SnapshotUpdate) -> None:
    if update.kind == SnapshotKind.STATE and update.state is not None:
        state = update.state
        print(
            f"[{update.source}] t={state.simulation_time} vehicles={len(state.vehicles)} "
            f"pending={state.pending_orders_count} delivered={state.delivered_orders_count} "
            f"overdue={state.overdue_orders_count} blockages={len(state.active_blockages)}"
        )
    elif update.kind == SnapshotKind.INFO and update.info is not None:
        info = update.info
        print(f"[{update.source}] simulation {info.id} {info.type or '-'} status={info.status}")


async def _list(client: SimulationSyncClient) -> None:
    await client.request_simulations_refresh()
    await asyncio.sleep(1.0)
    available = client.available_simulations
    if not available:
        print("No simulations broadcast.")
        return
    for sim_id, info in sorted(available.items()):
        print(f"{sim_id:<20} {info.type or '-':<20} {info.status}")


async def _watch(client: SimulationSyncClient, simulation_id: str, duration: float) -> None:
    client.add_listener(_print_update)
    await client.subscribe_to_simulation(simulation_id)
    elapsed = 0.0
    was_connected = True
    while duration <= 0 or elapsed < duration:
        await asyncio.sleep(1.0)
        elapsed += 1.0
        if client.is_connected != was_connected:
            was_connected = client.is_connected
            if was_connected:
                print("[watch] reconnected")
            else:
                print(f"[watch] disconnected: {client.error or 'connection closed'}")


async def main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides = {"polling_fallback": True} if args.poll else {}
    config = SimSyncConfig.from_env(**overrides)

    async with SimulationSyncClient(config) as client:
        try:
            await client.wait_until_connected(timeout=args.connect_timeout)
        except TimeoutError:
            print(f"Broker not reachable at {config.broker_url}: {client.error}", file=sys.stderr)
            return 2
        try:
            if args.list:
                await _list(client)
            else:
                await _watch(client, args.simulation_id, args.duration)
        except SimSyncError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    with contextlib.suppress(KeyboardInterrupt):
        sys.exit(asyncio.run(main()))
