import json

import pytest

from vyscore.errors import MalformedRowError, ProfileError
from vyscore.scoring.profile import (
    Profile,
    load_profile,
    parse_detection_row,
    profile_from_dict,
    score_row,
)
from vyscore.types import DetectionRow, Emotion, FaceBox


def make_row(time: float, emotions) -> DetectionRow:
    return DetectionRow(
        time=time,
        box=FaceBox(0.0, 0.0, 10.0, 10.0),
        emotions=[Emotion(name, score, 0.9) for name, score in emotions],
    )


def test_single_emotion_without_profile():
    weighted = score_row(make_row(1.0, [("Joy", 0.5)]))
    assert weighted.score == pytest.approx(0.5)
    assert weighted.vy_score == 500
    assert weighted.emotions[0].score == pytest.approx(0.5)


def test_score_is_mean_of_weighted_emotions():
    profile = Profile(profile_id="p1", emotions={"Joy": 2.0})
    weighted = score_row(make_row(0.0, [("Joy", 0.25), ("Anger", 0.5)]), profile)
    assert [e.score for e in weighted.emotions] == [pytest.approx(0.5), pytest.approx(0.5)]
    assert weighted.score == pytest.approx(0.5)
    assert weighted.vy_score == 500


def test_score_is_order_independent():
    a = score_row(make_row(0.0, [("Joy", 0.25), ("Fear", 0.75), ("Pain", 0.5)]))
    b = score_row(make_row(0.0, [("Pain", 0.5), ("Joy", 0.25), ("Fear", 0.75)]))
    assert a.score == pytest.approx(b.score)
    assert a.vy_score == b.vy_score == 500


def test_time_offset_is_added():
    weighted = score_row(make_row(1.25, [("Joy", 0.5)]), time_offset=10.0)
    assert weighted.time == pytest.approx(11.25)


def test_raw_row_is_not_modified():
    row = make_row(0.0, [("Joy", 0.25)])
    score_row(row, Profile(emotions={"Joy": 3.0}))
    assert row.emotions[0].score == 0.25


def test_empty_emotions_rejected():
    with pytest.raises(MalformedRowError):
        score_row(DetectionRow(time=0.0, box=FaceBox(0, 0, 1, 1), emotions=[]))


def test_missing_profile_weight_defaults_to_one():
    assert Profile(emotions={"Joy": 1.5}).weight_for("Anger") == 1.0


def test_parse_detection_row():
    row = parse_detection_row(
        {
            "time": 3.5,
            "box": {"x": 1.5, "y": 2, "w": 30, "h": 40},
            "emotions": [{"name": "Joy", "score": 0.5, "confidence": 0.8}, {"name": "Awe", "score": 0.1}],
        }
    )
    assert row.time == 3.5
    assert row.box.as_xywh() == (1.5, 2.0, 30.0, 40.0)
    assert [e.name for e in row.emotions] == ["Joy", "Awe"]
    assert row.emotions[1].confidence == 0.0


@pytest.mark.parametrize(
    "payload",
    [
        {"box": {"x": 0, "y": 0, "w": 1, "h": 1}, "emotions": [{"name": "Joy", "score": 0.5}]},
        {"time": 1.0, "emotions": [{"name": "Joy", "score": 0.5}]},
        {"time": 1.0, "box": {"x": 0, "y": 0, "w": 1}, "emotions": [{"name": "Joy", "score": 0.5}]},
        {"time": 1.0, "box": {"x": 0, "y": 0, "w": 1, "h": 1}, "emotions": []},
        {"time": 1.0, "box": {"x": 0, "y": 0, "w": 1, "h": 1}, "emotions": [{"name": "Joy"}]},
        {"time": "soon", "box": {"x": 0, "y": 0, "w": 1, "h": 1}, "emotions": [{"name": "Joy", "score": 0.5}]},
        {"time": float("nan"), "box": {"x": 0, "y": 0, "w": 1, "h": 1}, "emotions": [{"name": "Joy", "score": 0.5}]},
    ],
)
def test_parse_rejects_malformed_rows(payload):
    with pytest.raises(MalformedRowError):
        parse_detection_row(payload)


def test_load_profile_json(tmp_path):
    path = tmp_path / "viewer.json"
    path.write_text(json.dumps({"id": "viewer-1", "emotions": {"Joy": 1.5, "Anger": 0.5}}), encoding="utf-8")
    profile = load_profile(path)
    assert profile.profile_id == "viewer-1"
    assert profile.weight_for("Joy") == 1.5


def test_load_profile_yaml_uses_stem_as_id(tmp_path):
    path = tmp_path / "viewer.yaml"
    path.write_text("emotions:\n  Joy: 2\n", encoding="utf-8")
    profile = load_profile(path)
    assert profile.profile_id == "viewer"
    assert profile.emotions == {"Joy": 2.0}


def test_load_profile_missing_file(tmp_path):
    with pytest.raises(ProfileError):
        load_profile(tmp_path / "absent.json")


@pytest.mark.parametrize("weight", [0, -1.0, "heavy", float("inf")])
def test_profile_rejects_bad_weights(weight):
    with pytest.raises(ProfileError):
        profile_from_dict({"emotions": {"Joy": weight}})


def test_unknown_label_still_counts_toward_mean():
    weighted = score_row(make_row(0.0, [("Joy", 0.5), ("Mystery", 0.25)]))
    assert weighted.score == pytest.approx(0.375)
    assert weighted.vy_score == 375


@pytest.mark.parametrize("score", [1e306, 1e308])
def test_out_of_range_scores_rejected(score):
    with pytest.raises(MalformedRowError):
        score_row(make_row(0.0, [("Joy", score)]))


def test_out_of_range_weighted_score_rejected():
    profile = Profile(emotions={"Joy": 1e306})
    with pytest.raises(MalformedRowError):
        score_row(make_row(0.0, [("Joy", 0.5)]), profile)


def test_time_far_beyond_session_rejected():
    payload = {"time": 1e19, "box": {"x": 0, "y": 0, "w": 1, "h": 1}, "emotions": [{"name": "Joy", "score": 0.5}]}
    with pytest.raises(MalformedRowError):
        parse_detection_row(payload)
    with pytest.raises(MalformedRowError):
        score_row(make_row(1.0, [("Joy", 0.5)]), time_offset=1e19)
