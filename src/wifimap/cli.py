"""Command line entry point.

Usage
-----
Record a scan at a known position::

    wifimap -f office.json record --position "1 2 0.5" --interface wlan0

Options left out are prompted for: ``--position`` and ``--notes`` on every
run, ``--name`` and ``--map-notes`` when the map is created.  Show what a
map holds::

    wifimap -f office.json info

Exit codes
----------
0 success, 2 usage or configuration error, 3 invalid position,
4 corrupt map, 5 unsupported schema, 6 map locked, 7 write failure,
8 scan failure.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from wifimap import __version__
from wifimap.config import MapperConfig
from wifimap.engine import IntegrationEngine, PositionSource, ScanSource
from wifimap.exceptions import (
    CorruptMapError,
    InvalidPositionError,
    MapLockedError,
    PersistenceError,
    ScanError,
    UnsupportedSchemaError,
    WifiMapConfigError,
    WifiMapError,
)
from wifimap.position import PromptPositionSource, StaticPositionSource
from wifimap.scanner import JsonScanSource, NmcliScanner
from wifimap.store.map_store import load_scan_map

_logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_CODES: dict[type[WifiMapError], int] = {
    WifiMapConfigError: EXIT_USAGE,
    InvalidPositionError: 3,
    CorruptMapError: 4,
    UnsupportedSchemaError: 5,
    MapLockedError: 6,
    PersistenceError: 7,
    ScanError: 8,
}


def exit_code_for(exc: WifiMapError) -> int:
    for cls in type(exc).__mro__:
        code = EXIT_CODES.get(cls)  # type: ignore[arg-type]
        if code is not None:
            return code
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wifimap", description="Map wireless networks")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-f",
        "--map-file",
        help="File to save the scan map (default: $WIFIMAP_MAP_FILE)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--lock-timeout", type=float, help="Seconds to wait for a busy map")

    subparsers = parser.add_subparsers(dest="command", required=True)

    record = subparsers.add_parser("record", help="Record a new scan to the map")
    record.add_argument("--position", "-p", help='Current position as "x y z" (prompted when omitted)')
    record.add_argument("--interface", "-i", help="Wireless interface to scan (default: $WIFIMAP_INTERFACE or wlan0)")
    record.add_argument("--scan-file", help="Replay a scan saved as a JSON list instead of scanning")
    record.add_argument("--notes", help="Notes stored on the new node (prompted when omitted)")
    record.add_argument("--name", help="Map title, used when the map is created (prompted when omitted)")
    record.add_argument("--map-notes", help="Map description, used when the map is created (prompted when omitted)")

    info = subparsers.add_parser("info", help="Print an overview of the map")
    info.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")

    return parser


def prompt_text(input_func: Callable[[str], str], label: str, *, required: bool = False) -> str:
    """Ask for a free-text answer; with *required*, repeat until non-empty."""
    while True:
        answer = input_func(f"{label}: ").strip()
        if answer or not required:
            return answer
        print(f"{label} cannot be empty")


def _position_source(args: argparse.Namespace, input_func: Callable[[str], str]) -> PositionSource:
    if args.position is not None:
        return StaticPositionSource.from_text(args.position)
    return PromptPositionSource(input_func=input_func)


def _scan_source(args: argparse.Namespace, config: MapperConfig) -> ScanSource:
    if args.scan_file is not None:
        return JsonScanSource(args.scan_file)
    return NmcliScanner(timeout=config.scan_timeout)


def _cmd_record(
    args: argparse.Namespace, config: MapperConfig, map_file: str, input_func: Callable[[str], str]
) -> int:
    position_source = _position_source(args, input_func)
    map_name, map_notes = args.name, args.map_notes
    # Map metadata is only asked for when the map does not exist yet.
    if not Path(map_file).exists():
        if map_name is None:
            map_name = prompt_text(input_func, "name", required=True)
        if map_notes is None:
            map_notes = prompt_text(input_func, "notes")

    position = position_source.current_position()
    notes = args.notes if args.notes is not None else prompt_text(input_func, "notes")

    engine = IntegrationEngine(config)
    result = engine.capture(
        _scan_source(args, config),
        StaticPositionSource(position),
        notes=notes,
        map_name=map_name,
        map_notes=map_notes,
    )
    x, y, z = result.node.position.as_tuple()
    verb = "created" if result.created else "updated"
    print(
        f"{verb} {result.path}: added node at ({x:g}, {y:g}, {z:g}) "
        f"with {len(result.node.observations)} network(s); {result.node_count} node(s) total"
    )
    return EXIT_OK


def _cmd_info(args: argparse.Namespace, map_file: str) -> int:
    # Saves publish by rename, so an unlocked read sees a complete file.
    scan_map = load_scan_map(map_file)
    overview = scan_map.overview()
    if args.json_mode:
        print(json.dumps(overview, indent=2, ensure_ascii=False))
    else:
        for key, value in overview.items():
            print(f"{key}: {value}")
    return EXIT_OK


def main(argv: Sequence[str] | None = None, *, input_func: Callable[[str], str] = input) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        config = MapperConfig.from_env(
            map_file=args.map_file,
            interface=getattr(args, "interface", None),
            lock_timeout=args.lock_timeout,
        )
        if config.map_file is None:
            parser.error("the map file is required (-f/--map-file or WIFIMAP_MAP_FILE)")

        if args.command == "record":
            return _cmd_record(args, config, config.map_file, input_func)
        return _cmd_info(args, config.map_file)
    except WifiMapError as exc:
        _logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return exit_code_for(exc)
    except (EOFError, KeyboardInterrupt):
        print("aborted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
