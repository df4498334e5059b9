"""Aggregation session tying profile weighting, aggregation and persistence together."""

from __future__ import annotations

import logging
from functools import partial
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from vyscore.aggregation.seconds import SecondAggregator
from vyscore.errors import MalformedRowError
from vyscore.ingest.fragments import (
    DEFAULT_MAX_IN_FLIGHT,
    DEFAULT_TIMEOUT_S,
    ExpressionBatch,
    FetchFn,
    Fragment,
    LoadReport,
    ProgressFn,
    fetch_rows,
    load_batches,
    plan_fragment_batches,
)
from vyscore.scoring.profile import Profile, load_profile, parse_detection_row, score_row
from vyscore.storage.score_store import clear_seconds, load_seconds, persist_seconds
from vyscore.types import DEFAULT_BOX_THRESHOLD, AggregateState

LOGGER = logging.getLogger("vyscore.session")


class ScoreSession:
    """Owns one aggregate state and the profile used to weight incoming rows."""

    def __init__(
        self,
        store_root: Path,
        profile: Optional[Profile] = None,
        threshold: float = DEFAULT_BOX_THRESHOLD,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self.store_root = store_root
        self.profile = profile
        self.aggregator = SecondAggregator(threshold=threshold)
        self.timeout = timeout

    @property
    def seconds(self) -> AggregateState:
        return self.aggregator.seconds

    def load_profile(self, path: Path) -> Profile:
        self.profile = load_profile(path)
        return self.profile

    def ingest_rows(self, payloads: Iterable[Mapping[str, Any]], time_offset: float = 0.0) -> LoadReport:
        """Parse, weight and aggregate raw rows; malformed rows are skipped."""
        report = LoadReport(batches=1)
        for idx, payload in enumerate(payloads):
            try:
                row = score_row(parse_detection_row(payload), self.profile, time_offset)
                self.aggregator.ingest(row)
            except MalformedRowError as exc:
                LOGGER.warning("Rejected row %d: %s", idx, exc)
                report.rows_rejected += 1
                continue
            report.rows_ingested += 1
        return report

    def _fetch(self) -> FetchFn:
        return partial(fetch_rows, timeout=self.timeout)

    def load_expressions(self, source: str, time_offset: float = 0.0, fetch: Optional[FetchFn] = None) -> LoadReport:
        """Fetch one batch of rows and aggregate it."""
        batch = ExpressionBatch(source=source, time_offset=time_offset)
        return load_batches([batch], self.ingest_rows, fetch=fetch or self._fetch(), max_in_flight=1)

    def load_batches(
        self,
        batches: Iterable[ExpressionBatch],
        fetch: Optional[FetchFn] = None,
        max_in_flight: int = DEFAULT_MAX_IN_FLIGHT,
        progress: Optional[ProgressFn] = None,
    ) -> LoadReport:
        return load_batches(
            list(batches),
            self.ingest_rows,
            fetch=fetch or self._fetch(),
            max_in_flight=max_in_flight,
            progress=progress,
        )

    def load_fragments(
        self,
        fragments: Iterable[Fragment],
        fetch: Optional[FetchFn] = None,
        max_in_flight: int = DEFAULT_MAX_IN_FLIGHT,
        progress: Optional[ProgressFn] = None,
    ) -> LoadReport:
        """Aggregate the expression batches belonging to a list of HLS fragments."""
        return self.load_batches(
            plan_fragment_batches(fragments),
            fetch=fetch,
            max_in_flight=max_in_flight,
            progress=progress,
        )

    def persist(self, name: str) -> int:
        return persist_seconds(self.seconds, self.store_root, name)

    def load(self, name: str) -> Optional[int]:
        """Replace the current state from the store; None when the store is absent."""
        state = load_seconds(self.store_root, name)
        if state is None:
            return None
        self.aggregator.replace(state)
        return len(state)

    def clear(self, name: str) -> None:
        clear_seconds(self.store_root, name)
