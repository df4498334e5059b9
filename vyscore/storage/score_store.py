"""SQLite-backed score store and conversion between buckets and records."""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Iterable, List, Optional

from vyscore.errors import StoreError
from vyscore.io_utils import ensure_dir
from vyscore.types import (
    AggregateState,
    CoreVector,
    PersistedRecord,
    SecondBucket,
    TrackedBox,
)

LOGGER = logging.getLogger("vyscore.storage")

STORE_SUFFIX = ".sqlite3"
TABLE = "scores"

_SCHEMA = (
    f"CREATE TABLE IF NOT EXISTS {TABLE} ("
    " time INTEGER PRIMARY KEY,"
    " score REAL NOT NULL,"
    " count INTEGER NOT NULL,"
    " cores TEXT NOT NULL,"
    " boxes TEXT NOT NULL)",
    f"CREATE UNIQUE INDEX IF NOT EXISTS timeIndex ON {TABLE} (time)",
    f"CREATE INDEX IF NOT EXISTS scoreIndex ON {TABLE} (score)",
)


def store_path(root: Path, name: str) -> Path:
    return root / f"{name}{STORE_SUFFIX}"


class ScoreStore:
    """One named store of per-second records.

    Use as a context manager so the connection is released on every exit path.
    """

    def __init__(self, root: Path, name: str) -> None:
        self.root = root
        self.name = name
        self.path = store_path(root, name)
        self._conn: Optional[sqlite3.Connection] = None

    @staticmethod
    def exists(root: Path, name: str) -> bool:
        return store_path(root, name).is_file()

    def open(self) -> "ScoreStore":
        if self._conn is not None:
            return self
        try:
            ensure_dir(self.root)
            conn = sqlite3.connect(str(self.path))
            try:
                with conn:
                    for statement in _SCHEMA:
                        conn.execute(statement)
            except sqlite3.Error:
                conn.close()
                raise
        except (sqlite3.Error, OSError) as exc:
            raise StoreError(f"Failed to open store {self.path}: {exc}") from exc
        self._conn = conn
        return self

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "ScoreStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreError(f"Store {self.name} is not open")
        return self._conn

    def clear(self) -> None:
        try:
            with self.conn:
                self.conn.execute(f"DELETE FROM {TABLE}")
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to clear store {self.name}: {exc}") from exc

    def put_many(self, records: Iterable[PersistedRecord]) -> int:
        try:
            with self.conn:
                return self._insert(records)
        except (sqlite3.Error, OverflowError) as exc:
            raise StoreError(f"Failed to write store {self.name}: {exc}") from exc

    def replace_all(self, records: Iterable[PersistedRecord]) -> int:
        """Clear and write in a single transaction; on failure nothing changes."""
        try:
            with self.conn:
                self.conn.execute(f"DELETE FROM {TABLE}")
                return self._insert(records)
        except (sqlite3.Error, OverflowError) as exc:
            raise StoreError(f"Failed to replace store {self.name}: {exc}") from exc

    def _insert(self, records: Iterable[PersistedRecord]) -> int:
        rows = [
            (
                record.time,
                float(record.score),
                record.count,
                json.dumps(list(record.cores)),
                json.dumps([list(box) for box in record.boxes]),
            )
            for record in records
        ]
        self.conn.executemany(
            f"INSERT INTO {TABLE} (time, score, count, cores, boxes) VALUES (?, ?, ?, ?, ?)",
            rows,
        )
        return len(rows)

    def get_all(self) -> List[PersistedRecord]:
        try:
            cursor = self.conn.execute(
                f"SELECT time, score, count, cores, boxes FROM {TABLE} ORDER BY time"
            )
            fetched = cursor.fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to read store {self.name}: {exc}") from exc
        try:
            return [
                PersistedRecord(
                    time=int(time),
                    score=score,
                    count=int(count),
                    cores=[int(v) for v in json.loads(cores)],
                    boxes=[[int(v) for v in box] for box in json.loads(boxes)],
                )
                for time, score, count, cores, boxes in fetched
            ]
        except (TypeError, ValueError) as exc:
            raise StoreError(f"Corrupt record in store {self.name}: {exc}") from exc


def seconds_to_records(state: AggregateState) -> List[PersistedRecord]:
    """Flatten buckets into storage records (score stays a sum)."""
    return [
        PersistedRecord(
            time=int(second),
            score=bucket.score,
            count=bucket.count,
            cores=bucket.cores.to_list(),
            boxes=[box.to_list() for box in bucket.boxes],
        )
        for second, bucket in state.items()
    ]


def records_to_seconds(records: Iterable[PersistedRecord]) -> AggregateState:
    """Inverse of `seconds_to_records`."""
    state: AggregateState = {}
    for record in records:
        try:
            state[int(record.time)] = SecondBucket(
                score=record.score,
                count=record.count,
                cores=CoreVector.from_list(record.cores),
                boxes=[TrackedBox.from_list(box) for box in record.boxes],
            )
        except ValueError as exc:
            raise StoreError(f"Corrupt record for second {record.time}: {exc}") from exc
    return state


def persist_seconds(state: AggregateState, root: Path, name: str) -> int:
    """Replace the named store's content with `state`. Returns records written."""
    records = seconds_to_records(state)
    with ScoreStore(root, name) as store:
        written = store.replace_all(records)
    LOGGER.info("Persisted %d seconds of data to %s", written, name)
    return written


def load_seconds(root: Path, name: str) -> Optional[AggregateState]:
    """Restore the named store, or None when it was never created."""
    if not ScoreStore.exists(root, name):
        LOGGER.info("Store %s does not exist", name)
        return None
    with ScoreStore(root, name) as store:
        records = store.get_all()
    LOGGER.info("Loaded %d seconds of data from %s", len(records), name)
    return records_to_seconds(records)


def clear_seconds(root: Path, name: str) -> None:
    """Remove every record from the named store, if it exists."""
    if not ScoreStore.exists(root, name):
        LOGGER.debug("Store %s does not exist; nothing to clear", name)
        return
    with ScoreStore(root, name) as store:
        store.clear()
    LOGGER.info("Cleared store %s", name)
