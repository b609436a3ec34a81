#!/usr/bin/env python3
"""
================================================================================
formfill_bridge/cli.py - Command Line Entry Point
================================================================================

COMMANDS:
    formfill-bridge smoke [--endpoint URI] [--json]
        Run the add / read back / remove scenario against a backing context
        and print one row per step.
    formfill-bridge serve --socket PATH
        Run an in-memory backing context on a unix socket.
    formfill-bridge events [--tail N]
        Print the most recent telemetry events.

Settings not given on the command line come from FORMFILL_* variables
(see BridgeConfig.from_env).

================================================================================
"""

import argparse
import asyncio
import contextlib
import json
import logging
import os
import sys
from typing import List, Optional, Tuple

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import telemetry
from .config import BridgeConfig
from .errors import BridgeError
from .harness import FormFillHarness
from .parent import ParentScript
from .records import VALID_ADDRESS_FIELDS, records_match
from .storage import MemoryAddressStore
from .transports.unix_socket import serve_unix_channel


console = Console()

# Each smoke step has to answer within this many seconds
SMOKE_STEP_TIMEOUT = 5.0


def placeholder_address() -> dict:
    """An address with every known field set to a distinct value."""
    return {field: f"smoke-{field}" for field in VALID_ADDRESS_FIELDS}


async def run_smoke(config: BridgeConfig) -> List[Tuple[str, bool, str]]:
    """Run the smoke scenario and return (step, passed, detail) rows."""
    steps: List[Tuple[str, bool, str]] = []
    address = placeholder_address()

    async with FormFillHarness(config) as harness:
        bridge = harness.bridge

        changed = harness.wait_for_storage_change("add")
        await asyncio.wait_for(bridge.add_address(address), SMOKE_STEP_TIMEOUT)
        steps.append(("add address", True, "AddressAdded received"))

        change = await asyncio.wait_for(changed, SMOKE_STEP_TIMEOUT)
        steps.append(("storage changed", True, change))

        stored = await asyncio.wait_for(bridge.get_addresses(), SMOKE_STEP_TIMEOUT)
        matches = [r for r in stored if records_match(r, address)]
        steps.append(("read back", bool(matches), f"{len(stored)} stored, {len(matches)} matching"))

        if matches:
            await asyncio.wait_for(bridge.remove_address(matches[0]["guid"]), SMOKE_STEP_TIMEOUT)
            remaining = await asyncio.wait_for(bridge.get_addresses(), SMOKE_STEP_TIMEOUT)
            gone = not any(r.get("guid") == matches[0]["guid"] for r in remaining)
            steps.append(("remove address", gone, f"{len(remaining)} remaining"))

    return steps


def _print_steps(steps: List[Tuple[str, bool, str]]) -> None:
    table = Table(box=box.MINIMAL, show_header=True, header_style="bold magenta")
    table.add_column("Step", style="cyan", width=20)
    table.add_column("Result", justify="center")
    table.add_column("Detail", style="white")
    for name, passed, detail in steps:
        result = "[green]PASS[/green]" if passed else "[red]FAIL[/red]"
        table.add_row(name, result, detail)
    console.print(table)


def cmd_smoke(args, config: BridgeConfig) -> int:
    try:
        steps = asyncio.run(run_smoke(config))
    except asyncio.TimeoutError:
        console.print("[red]Backing context did not answer in time[/red]")
        return 1
    except (BridgeError, ConnectionError) as e:
        console.print(f"[red]Smoke run failed: {escape(str(e))}[/red]")
        return 1

    if args.json:
        print(json.dumps([{"step": s, "passed": p, "detail": d} for s, p, d in steps], indent=2))
    else:
        _print_steps(steps)
    return 0 if all(p for _, p, _ in steps) else 1


async def serve(path: str, config: BridgeConfig) -> None:
    """Serve one shared in-memory store to every client on `path`."""
    store = MemoryAddressStore()
    server = await serve_unix_channel(
        path, lambda channel: ParentScript(channel, store), config.max_frame_bytes
    )
    async with server:
        await server.serve_forever()


def cmd_serve(args, config: BridgeConfig) -> int:
    if os.path.exists(args.socket):
        console.print(f"[red]Socket path already exists: {args.socket}[/red]")
        return 1
    console.print(f"Serving address store on [cyan]{args.socket}[/cyan] (Ctrl+C to stop)")
    try:
        asyncio.run(serve(args.socket, config))
    except KeyboardInterrupt:
        pass
    finally:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(args.socket)
    return 0


def cmd_events(args, config: BridgeConfig) -> int:
    events = telemetry.read_events(limit=args.tail)
    if not events:
        console.print(f"[yellow]No events in {telemetry.get_events_path()}[/yellow]")
        return 0

    table = Table(box=box.MINIMAL, show_header=True, header_style="bold magenta")
    table.add_column("Time", style="dim")
    table.add_column("Component", style="cyan")
    table.add_column("Data", style="white")
    for event in events:
        table.add_row(event.get("ts", ""), event.get("component", ""), escape(json.dumps(event.get("data", {}))))
    console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="formfill-bridge")
    parser.add_argument("--log-level", help="Logging level (default from FORMFILL_LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command")

    smoke_parser = subparsers.add_parser("smoke", help="Run an end-to-end bridge check")
    smoke_parser.add_argument("--endpoint", help="memory:// or unix:///path")
    smoke_parser.add_argument("--json", action="store_true", help="JSON output")

    serve_parser = subparsers.add_parser("serve", help="Serve an address store on a unix socket")
    serve_parser.add_argument("--socket", required=True, help="Socket path")

    events_parser = subparsers.add_parser("events", help="Show recent telemetry events")
    events_parser.add_argument("--tail", type=int, default=20, help="Number of events")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = BridgeConfig.from_env()
        overrides = {}
        if getattr(args, "endpoint", None):
            overrides["endpoint"] = args.endpoint
        if args.log_level:
            overrides["log_level"] = args.log_level
        if overrides:
            config = BridgeConfig(**{**config.model_dump(), **overrides})
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        return 2

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    telemetry.configure(config.telemetry_enabled, config.data_dir)

    if args.command == "smoke":
        return cmd_smoke(args, config)
    elif args.command == "serve":
        return cmd_serve(args, config)
    elif args.command == "events":
        return cmd_events(args, config)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
