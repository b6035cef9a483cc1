#!/usr/bin/env python3
"""Find who drew something on r/place and which of their tiles survived.

Workflow:
    1. Load search areas and dataset settings from a TOML config
       (config.toml by default, or the path given as first argument).
    2. Scan the canvas history for users whose edits touched every required
       search area, optionally dropping anyone who also edited elsewhere.
    3. Let the operator pick one of the remaining users.
    4. Replay the history for that user and list the tiles still theirs at
       the whiteout checkpoint and at the end of the log.

Example config.toml:

    csv_location = "2022_place_canvas_history.csv"
    era = "2022"
    checkpoint_time = "2022-04-04 21:32:37.541 UTC"

    [[search_areas]]
    start = { x = 1349, y = 1718 }
    end = { x = 1424, y = 1752 }

    [[search_areas]]
    bounds = [20, 20, 30, 30]
    colors = ["#FFFFFF"]
    optional = true

Usage:
    python trace_author.py [config.toml] [--user ID] [--select N] [--report out.json]
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from place_trace.config import load_settings
from place_trace.errors import AmbiguousCandidateError, ConfigError, LogFileError, SelectionError
from place_trace.logfile import CanvasLog
from place_trace.models import Settings
from place_trace.parser import Era, RecordParser
from place_trace.services.reconstruct import Reconstruction, TileReconstructor
from place_trace.services.render import render_snapshot
from place_trace.services.report import build_report, write_report
from place_trace.services.resolver import resolve_candidate, select_candidate
from place_trace.services.scanner import CandidateScanner, ScanResult


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Trace a user's surviving tiles in an r/place canvas history.")
    parser.add_argument("config", nargs="?", type=Path, default=None, help="TOML settings file (default: config.toml).")
    parser.add_argument("--csv", type=Path, default=None, help="Canvas history CSV. Overrides csv_location.")
    parser.add_argument("--era", choices=[era.value for era in Era], default=None, help="Dataset era of the CSV.")
    parser.add_argument("--user", type=str, default=None, help="Trace this user id and skip the area search.")
    parser.add_argument("--workers", type=int, default=None, help="Scanner threads (default: 2x CPU count).")
    parser.add_argument("--checkpoint-line", type=int, default=None, help="Whiteout line number (after the header).")
    parser.add_argument("--select", type=str, default=None, help="Zero based index of the user to pick without prompting.")
    parser.add_argument("--report", type=Path, default=None, help="Write a JSON report to this path.")
    parser.add_argument("--render", type=Path, default=None, help="Save the checkpoint tiles as a PNG.")
    parser.add_argument("--render-scale", type=int, default=4, help="Pixels per tile in --render output (default: %(default)s).")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level), format="%(asctime)s [%(levelname)s] %(message)s")


def prompt_selection(candidates: List[str]) -> str:
    print("Select user by giving index: ", end="", flush=True)
    while True:
        try:
            raw = input()
        except EOFError as exc:
            raise AmbiguousCandidateError(candidates) from exc
        try:
            return select_candidate(candidates, raw)
        except SelectionError as exc:
            print(exc, file=sys.stderr)


def choose_user(scan: ScanResult, select: Optional[str]) -> Optional[str]:
    if not scan.candidates:
        print("Did not find any users.")
        return None

    print("Found users:")
    for index, user in enumerate(scan.candidates):
        print(f"{index}: {user}")

    try:
        return resolve_candidate(scan.candidates, select)
    except AmbiguousCandidateError:
        if not sys.stdin.isatty():
            raise
        return prompt_selection(scan.candidates)


def print_tiles(result: Reconstruction) -> None:
    print(f"User {result.user_id} placed {result.placements} time(s).")

    for tile, color in sorted(result.checkpoint_tiles.items(), key=lambda item: (item[0].y, item[0].x)):
        print(f"Remaining {color} tile: {tile.x},{tile.y}")
    if not result.checkpoint_tiles:
        print("No tiles remaining")

    for tile, timestamp in sorted(result.final_tiles.items(), key=lambda item: (item[0].y, item[0].x)):
        print(f"Last placed tile at {tile.x},{tile.y} ({timestamp})")
    if not result.final_tiles:
        print("No tiles remaining at end of log")


def run(settings: Settings, args: argparse.Namespace) -> int:
    parser = RecordParser(settings.era)
    log = CanvasLog(settings.csv_location)

    scan: Optional[ScanResult] = None
    user = settings.target_user
    if user is None:
        scanner = CandidateScanner(
            settings.areas(),
            parser,
            workers=settings.workers,
            batch_size=settings.batch_size,
        )
        scan = scanner.scan(log, no_edits_outside=settings.no_edits_outside)
        user = choose_user(scan, args.select)
        if user is None:
            return 0

    reconstructor = TileReconstructor(
        parser,
        checkpoint_line=settings.checkpoint_line,
        checkpoint_time=settings.checkpoint_moment(),
    )
    result = reconstructor.run(log, user)
    print_tiles(result)

    if args.report:
        write_report(build_report(settings, result, scan), args.report)
    if args.render:
        if result.checkpoint_tiles:
            render_snapshot(result.checkpoint_tiles, args.render, scale=max(1, args.render_scale))
        else:
            logging.warning("Nothing to render; no tiles survived to the checkpoint.")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    overrides = {
        "csv_location": args.csv,
        "era": args.era,
        "target_user": args.user,
        "workers": args.workers,
        "checkpoint_line": args.checkpoint_line,
    }
    try:
        settings = load_settings(args.config, overrides)
        return run(settings, args)
    except ConfigError as exc:
        details = exc.context.get("errors") or exc.context.get("error")
        print(f"error: {exc}", file=sys.stderr)
        if details:
            print(f"  {details}", file=sys.stderr)
        return 2
    except LogFileError as exc:
        print(f"error: {exc} {exc.context.get('error', '')}".rstrip(), file=sys.stderr)
        return 1
    except AmbiguousCandidateError as exc:
        print(f"error: {exc} Pass --select.", file=sys.stderr)
        return 3
    except SelectionError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logging.warning("Trace aborted by user.")
        sys.exit(130)
