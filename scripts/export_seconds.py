#!/usr/bin/env python3
"""CLI for exporting a persisted score store into CSV or parquet."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List

from vyscore.aggregation.seconds import seconds_to_frame
from vyscore.errors import StoreError
from vyscore.io_utils import load_config, resolve_option, setup_logging
from vyscore.storage.score_store import load_seconds

LOGGER = logging.getLogger("scripts.export_seconds")

DEFAULT_STORE_DIR = Path("data/stores")


def parse_args(argv: List[str] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export per-second scores from a score store")
    parser.add_argument("store_name", help="Name of the score store to read")
    parser.add_argument("--store-dir", type=Path, default=None, help="Directory holding score stores")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("configs/aggregate.yaml"),
        help="Aggregation configuration YAML",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output path (defaults to <store_name>-SECONDS.<format>)",
    )
    parser.add_argument("--format", choices=("csv", "parquet"), default="csv")
    return parser.parse_args(argv)


def main(argv: List[str] = None) -> int:
    args = parse_args(argv)
    setup_logging()

    cfg = load_config(args.config)
    store_dir = resolve_option(args.store_dir, cfg, "store_dir", DEFAULT_STORE_DIR, cast=Path)
    try:
        state = load_seconds(store_dir, args.store_name)
    except StoreError as exc:
        LOGGER.error("%s", exc)
        return 1
    if state is None:
        LOGGER.error("No score store named %s under %s", args.store_name, store_dir)
        return 1

    df = seconds_to_frame(state)
    output_path = args.output or Path(f"{args.store_name}-SECONDS.{args.format}")
    if args.format == "parquet":
        df.to_parquet(output_path, index=False)
    else:
        df.to_csv(output_path, index=False)
    LOGGER.info("Exported %d seconds to %s", len(df), output_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
