"""Batched, bounded-concurrency fetching of detection rows for video fragments."""

from __future__ import annotations

import logging
import math
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import requests
from tqdm import tqdm

from vyscore.errors import FetchError
from vyscore.io_utils import load_json
from vyscore.types import iter_batches

LOGGER = logging.getLogger("vyscore.ingest.fragments")

DEFAULT_MAX_IN_FLIGHT = 6
DEFAULT_TIMEOUT_S = 30.0

RowPayloads = List[Dict[str, Any]]
FetchFn = Callable[[str], RowPayloads]
ProgressFn = Callable[[int], None]

_INIT_SUFFIX = re.compile(r"-\w+-init\.mp4$")


@dataclass
class Fragment:
    """Subset of an HLS fragment needed to locate its expression batch."""

    url: str
    duration: float
    init_url: Optional[str] = None


@dataclass
class ExpressionBatch:
    source: str
    time_offset: float


@dataclass
class LoadReport:
    batches: int = 0
    failed_batches: int = 0
    rows_ingested: int = 0
    rows_rejected: int = 0


def expressions_url(init_url: str) -> str:
    """Derive the expressions JSON location from a playback init segment URL."""
    return _INIT_SUFFIX.sub(".json", init_url.replace("playback-", "expressions-", 1))


def plan_fragment_batches(fragments: Iterable[Fragment]) -> List[ExpressionBatch]:
    """One batch per init segment change.

    The offset is the running duration including the batch's first fragment.
    """
    batches: List[ExpressionBatch] = []
    time_offset = 0.0
    current_init: Optional[str] = None
    for fragment in fragments:
        time_offset += fragment.duration
        if fragment.init_url and fragment.init_url != current_init:
            current_init = fragment.init_url
            batches.append(ExpressionBatch(expressions_url(current_init), time_offset))
    return batches


def fetch_rows(source: str, timeout: float = DEFAULT_TIMEOUT_S) -> RowPayloads:
    """Fetch a JSON list of detection rows from a URL or a local path."""
    if source.startswith(("http://", "https://")):
        try:
            response = requests.get(source, timeout=timeout)
        except requests.RequestException as exc:
            raise FetchError(source, str(exc)) from exc
        if not response.ok:
            raise FetchError(source, f"HTTP {response.status_code} {response.reason}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(source, f"invalid JSON: {exc}") from exc
    else:
        path = Path(source)
        if not path.is_file():
            raise FetchError(source, "file not found")
        try:
            payload = load_json(path)
        except ValueError as exc:
            raise FetchError(source, f"invalid JSON: {exc}") from exc
        except OSError as exc:
            raise FetchError(source, str(exc)) from exc

    if not isinstance(payload, list):
        raise FetchError(source, f"expected a list of rows, got {type(payload).__name__}")
    return payload


def _fetch_or_empty(fetch: FetchFn, batch: ExpressionBatch) -> Optional[RowPayloads]:
    try:
        return fetch(batch.source)
    except FetchError as exc:
        LOGGER.error("Error loading expressions: %s", exc)
        return None


def load_batches(
    batches: Sequence[ExpressionBatch],
    handle_rows: Callable[[RowPayloads, float], LoadReport],
    fetch: Optional[FetchFn] = None,
    max_in_flight: int = DEFAULT_MAX_IN_FLIGHT,
    progress: Optional[ProgressFn] = None,
) -> LoadReport:
    """Fetch batches in groups of `max_in_flight` and hand their rows over in order.

    Fetches run on worker threads; `handle_rows` always runs on the calling
    thread. A failed fetch contributes no rows and does not stop the load.
    """
    if max_in_flight < 1:
        raise ValueError(f"max_in_flight must be >= 1, got {max_in_flight}")
    fetch = fetch or fetch_rows
    report = LoadReport(batches=len(batches))
    total = len(batches)
    done = 0

    with ThreadPoolExecutor(max_workers=max_in_flight, thread_name_prefix="expressions") as executor:
        for group in iter_batches(batches, max_in_flight):
            futures = [executor.submit(_fetch_or_empty, fetch, batch) for batch in group]
            for batch, future in zip(group, futures):
                rows = future.result()
                if rows is None:
                    report.failed_batches += 1
                    continue
                handled = handle_rows(rows, batch.time_offset)
                report.rows_ingested += handled.rows_ingested
                report.rows_rejected += handled.rows_rejected
            done += len(group)
            if progress is not None:
                progress(math.floor(done / total * 100))

    if progress is not None and total == 0:
        progress(100)
    LOGGER.info(
        "Loaded %d batches (%d failed): %d rows ingested, %d rejected",
        report.batches,
        report.failed_batches,
        report.rows_ingested,
        report.rows_rejected,
    )
    return report


class TqdmProgress:
    """Terminal progress reporter driven by integer percentages."""

    def __init__(self, message: str = "Loading expressions") -> None:
        self._bar = tqdm(total=100, desc=message, unit="%")
        self._last = 0

    def __call__(self, pct: int) -> None:
        pct = max(0, min(100, int(pct)))
        if pct > self._last:
            self._bar.update(pct - self._last)
            self._last = pct

    def close(self) -> None:
        self._bar.close()

    def __enter__(self) -> "TqdmProgress":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
