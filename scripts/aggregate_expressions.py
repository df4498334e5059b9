#!/usr/bin/env python3
"""CLI for aggregating expression batches into per-second scores and persisting them."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List

from vyscore.errors import ProfileError, StoreError
from vyscore.ingest.fragments import (
    DEFAULT_MAX_IN_FLIGHT,
    DEFAULT_TIMEOUT_S,
    ExpressionBatch,
    Fragment,
    TqdmProgress,
    plan_fragment_batches,
)
from vyscore.io_utils import dump_json, load_config, load_json, resolve_option, setup_logging
from vyscore.session import ScoreSession
from vyscore.types import DEFAULT_BOX_THRESHOLD

LOGGER = logging.getLogger("scripts.aggregate_expressions")

DEFAULT_STORE_DIR = Path("data/stores")


def parse_args(argv: List[str] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Aggregate expression rows into per-second scores")
    parser.add_argument("store_name", help="Name of the score store to write")
    parser.add_argument(
        "--batch",
        nargs=2,
        action="append",
        default=[],
        metavar=("SOURCE", "OFFSET"),
        help="Expressions JSON (URL or path) and the time offset in seconds; repeatable",
    )
    parser.add_argument(
        "--fragments",
        type=Path,
        default=None,
        help="JSON list of HLS fragments ({url, duration, init_url}) to derive batches from",
    )
    parser.add_argument("--profile", type=Path, default=None, help="Profile YAML/JSON with emotion weights")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("configs/aggregate.yaml"),
        help="Aggregation configuration YAML",
    )
    parser.add_argument("--store-dir", type=Path, default=None, help="Directory holding score stores")
    parser.add_argument("--box-threshold", type=float, default=None, help="Overlap ratio for same-box matching")
    parser.add_argument("--max-in-flight", type=int, default=None, help="Concurrent batch fetches")
    parser.add_argument("--timeout", type=float, default=None, help="HTTP timeout per batch (seconds)")
    parser.add_argument(
        "--append",
        action="store_true",
        help="Restore the existing store first and add the new batches to it",
    )
    parser.add_argument("--report", type=Path, default=None, help="Optional JSON load report path")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _fragments_from_json(path: Path) -> List[Fragment]:
    raw = load_json(path)
    return [
        Fragment(
            url=str(entry.get("url", "")),
            duration=float(entry.get("duration", 0.0)),
            init_url=entry.get("init_url"),
        )
        for entry in raw
    ]


def build_batches(args: argparse.Namespace) -> List[ExpressionBatch]:
    batches = [ExpressionBatch(source=source, time_offset=float(offset)) for source, offset in args.batch]
    if args.fragments is not None:
        batches.extend(plan_fragment_batches(_fragments_from_json(args.fragments)))
    return batches


def main(argv: List[str] = None) -> int:
    args = parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    cfg: Dict[str, Any] = load_config(args.config)
    store_dir = resolve_option(args.store_dir, cfg, "store_dir", DEFAULT_STORE_DIR, cast=Path)
    threshold = resolve_option(args.box_threshold, cfg, "box_threshold", DEFAULT_BOX_THRESHOLD)
    max_in_flight = resolve_option(args.max_in_flight, cfg, "max_in_flight", DEFAULT_MAX_IN_FLIGHT, cast=int)
    timeout = resolve_option(args.timeout, cfg, "request_timeout_s", DEFAULT_TIMEOUT_S)

    batches = build_batches(args)
    if not batches:
        LOGGER.error("Nothing to aggregate: pass --batch and/or --fragments")
        return 2

    session = ScoreSession(store_dir, threshold=threshold, timeout=timeout)
    try:
        if args.profile is not None:
            session.load_profile(args.profile)
        if args.append:
            session.load(args.store_name)
        with TqdmProgress() as progress:
            report = session.load_batches(batches, max_in_flight=max_in_flight, progress=progress)
        written = session.persist(args.store_name)
    except (ProfileError, StoreError) as exc:
        LOGGER.error("%s", exc)
        return 1

    if args.report is not None:
        dump_json(args.report, {"store": args.store_name, "seconds": written, "load": report})
        LOGGER.info("Wrote load report to %s", args.report)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
