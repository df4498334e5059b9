"""Aggregation of scored rows into one-second buckets with box de-duplication."""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Set

import pandas as pd

from vyscore.errors import MalformedRowError
from vyscore.taxonomy import Core, emotions_to_cores
from vyscore.types import (
    DEFAULT_BOX_THRESHOLD,
    AggregateState,
    SecondBucket,
    TrackedBox,
    WeightedRow,
    boxes_are_same,
)

LOGGER = logging.getLogger("vyscore.aggregation.seconds")


class SecondAggregator:
    """Accumulates scored rows into per-second buckets.

    Rows are expected in non-decreasing time order: a matched box takes the
    position of the newest observation. Not thread-safe; one aggregator per
    session.
    """

    def __init__(self, threshold: float = DEFAULT_BOX_THRESHOLD) -> None:
        self.threshold = threshold
        self.seconds: AggregateState = {}
        self.unknown_labels: Set[str] = set()

    def bucket(self, second: int) -> SecondBucket:
        """Return the bucket for `second`, creating an empty one on first touch."""
        if second not in self.seconds:
            self.seconds[second] = SecondBucket()
        return self.seconds[second]

    def ingest(self, row: WeightedRow) -> None:
        second = math.floor(row.time)
        if second < 0:
            raise MalformedRowError(f"row time {row.time:.3f} falls before second 0")

        unknown: Set[str] = set()
        cores = emotions_to_cores(row.emotions, unknown)
        for label in sorted(unknown - self.unknown_labels):
            LOGGER.warning("Ignoring unknown emotion label %r for core scores", label)
        self.unknown_labels |= unknown
        bucket = self.bucket(second)
        bucket.score += row.vy_score
        bucket.count += 1
        bucket.cores.add(cores)

        observed = TrackedBox(
            x=math.floor(row.box.x),
            y=math.floor(row.box.y),
            w=math.floor(row.box.w),
            h=math.floor(row.box.h),
            score=row.vy_score,
            count=1,
        )
        target = self._match(bucket.boxes, observed)
        if target is not None:
            target.absorb(observed)
        else:
            bucket.boxes.append(observed)

    def _match(self, boxes: List[TrackedBox], observed: TrackedBox) -> Optional[TrackedBox]:
        # First match in insertion order wins, even if a later box overlaps more.
        for box in boxes:
            if boxes_are_same(box.xywh, observed.xywh, self.threshold):
                return box
        return None

    def replace(self, state: AggregateState) -> None:
        """Swap in a restored state; prior content is discarded."""
        self.seconds = dict(state)
        LOGGER.debug("Aggregate state replaced with %d seconds", len(self.seconds))


CORE_COLUMNS = [core.name.lower() for core in Core]


def seconds_to_frame(state: AggregateState) -> pd.DataFrame:
    """Create a per-second table with score sums, averages and core sums."""
    columns = ["second", "score", "count", "avg_score", "box_count"] + CORE_COLUMNS
    if not state:
        return pd.DataFrame(columns=columns)

    rows: List[Dict] = []
    for second in sorted(state):
        bucket = state[second]
        row = {
            "second": second,
            "score": bucket.score,
            "count": bucket.count,
            "avg_score": bucket.average,
            "box_count": len(bucket.boxes),
        }
        row.update(zip(CORE_COLUMNS, bucket.cores.to_list()))
        rows.append(row)
    return pd.DataFrame(rows, columns=columns)
