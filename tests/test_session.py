import json

import pytest

from vyscore.ingest.fragments import Fragment
from vyscore.scoring.profile import Profile
from vyscore.session import ScoreSession


def raw_row(time: float, box=(10, 10, 40, 40), emotions=(("Joy", 0.5),)):
    x, y, w, h = box
    return {
        "time": time,
        "box": {"x": x, "y": y, "w": w, "h": h},
        "emotions": [{"name": name, "score": score, "confidence": 0.9} for name, score in emotions],
    }


def test_ingest_rows_applies_profile_and_offset(tmp_path):
    session = ScoreSession(tmp_path, profile=Profile(emotions={"Joy": 1.5}))
    report = session.ingest_rows([raw_row(0.25), raw_row(0.75)], time_offset=10.0)
    assert report.rows_ingested == 2
    bucket = session.seconds[10]
    assert bucket.score == 1500
    assert bucket.count == 2
    assert bucket.cores.happiness == 1500
    assert bucket.boxes[0].count == 2


def test_malformed_rows_are_skipped(tmp_path):
    session = ScoreSession(tmp_path)
    rows = [raw_row(1.0), {"time": 1.2, "emotions": []}, raw_row(-3.0), raw_row(1.5)]
    report = session.ingest_rows(rows)
    assert report.rows_ingested == 2
    assert report.rows_rejected == 2
    assert session.seconds[1].count == 2
    assert list(session.seconds) == [1]


def test_load_fragments_with_stub_fetch(tmp_path):
    fragments = [
        Fragment("f1", 2.0, "https://x/playback-a-hd-init.mp4"),
        Fragment("f2", 3.0, "https://x/playback-b-hd-init.mp4"),
    ]
    payloads = {
        "https://x/expressions-a.json": [raw_row(0.5)],
        "https://x/expressions-b.json": [raw_row(0.5, emotions=(("Anger", 0.25),))],
    }
    progress = []
    session = ScoreSession(tmp_path)
    report = session.load_fragments(fragments, fetch=payloads.__getitem__, progress=progress.append)
    assert report.rows_ingested == 2
    assert sorted(session.seconds) == [2, 5]
    assert session.seconds[5].cores.anger == 250
    assert progress == [100]


def test_load_expressions_from_file(tmp_path):
    path = tmp_path / "expressions-a.json"
    path.write_text(json.dumps([raw_row(0.1), raw_row(1.1)]), encoding="utf-8")
    session = ScoreSession(tmp_path)
    report = session.load_expressions(str(path), time_offset=4.0)
    assert report.rows_ingested == 2
    assert sorted(session.seconds) == [4, 5]


def test_failed_fetch_leaves_state_untouched(tmp_path):
    session = ScoreSession(tmp_path)
    report = session.load_expressions(str(tmp_path / "missing.json"))
    assert report.failed_batches == 1
    assert session.seconds == {}


def test_persist_and_load_round_trip(tmp_path):
    session = ScoreSession(tmp_path)
    session.ingest_rows([raw_row(3.2), raw_row(3.4, box=(200, 200, 30, 30)), raw_row(8.0)])
    assert session.persist("clip") == 2
    snapshot = dict(session.seconds)

    restored = ScoreSession(tmp_path)
    restored.ingest_rows([raw_row(42.0)])
    assert restored.load("clip") == 2
    assert restored.seconds == snapshot
    assert 42 not in restored.seconds


def test_load_missing_store_keeps_state(tmp_path):
    session = ScoreSession(tmp_path)
    session.ingest_rows([raw_row(1.0)])
    assert session.load("absent") is None
    assert list(session.seconds) == [1]


def test_clear_then_load_is_empty(tmp_path):
    session = ScoreSession(tmp_path)
    session.ingest_rows([raw_row(1.0)])
    session.persist("clip")
    session.clear("clip")
    assert session.load("clip") == 0
    assert session.seconds == {}


def test_load_profile(tmp_path):
    path = tmp_path / "viewer.json"
    path.write_text(json.dumps({"emotions": {"Joy": 2.0}}), encoding="utf-8")
    session = ScoreSession(tmp_path)
    session.load_profile(path)
    session.ingest_rows([raw_row(0.0, emotions=(("Joy", 0.25),))])
    assert session.seconds[0].score == pytest.approx(500)


def test_rows_with_extreme_values_are_skipped(tmp_path):
    session = ScoreSession(tmp_path)
    rows = [
        raw_row(1.0),
        raw_row(1.2, emotions=(("Joy", 1e306),)),
        raw_row(1e19),
        raw_row(1.4),
    ]
    report = session.ingest_rows(rows)
    assert report.rows_ingested == 2
    assert report.rows_rejected == 2
    assert session.seconds[1].score == 1000
    assert session.persist("extreme") == 1
