"""Profile weighting and per-row scoring of raw detection rows."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import numpy as np

from vyscore.errors import MalformedRowError, ProfileError
from vyscore.io_utils import load_document
from vyscore.taxonomy import scaled_score
from vyscore.types import DetectionRow, Emotion, FaceBox, WeightedRow

LOGGER = logging.getLogger("vyscore.scoring.profile")

# Row times (seconds) must fit a store key.
MAX_ROW_TIME_S = 1e9


@dataclass
class Profile:
    """Per-user multiplicative weights keyed by emotion name."""

    profile_id: Optional[str] = None
    emotions: Dict[str, float] = field(default_factory=dict)

    def weight_for(self, name: str) -> float:
        return self.emotions.get(name, 1.0)


def profile_from_dict(payload: Mapping[str, Any], profile_id: Optional[str] = None) -> Profile:
    """Build a Profile from a `{"id": ..., "emotions": {name: weight}}` document."""
    if not isinstance(payload, Mapping):
        raise ProfileError(f"Profile document must be a mapping, got {type(payload).__name__}")
    raw_weights = payload.get("emotions") or {}
    if not isinstance(raw_weights, Mapping):
        raise ProfileError("Profile 'emotions' must map emotion names to weights")

    weights: Dict[str, float] = {}
    for name, raw in raw_weights.items():
        try:
            weight = float(raw)
        except (TypeError, ValueError) as exc:
            raise ProfileError(f"Weight for {name!r} is not a number: {raw!r}") from exc
        if not math.isfinite(weight) or weight <= 0:
            raise ProfileError(f"Weight for {name!r} must be a positive finite number, got {raw!r}")
        weights[str(name)] = weight

    return Profile(profile_id=payload.get("id", profile_id), emotions=weights)


def load_profile(path: Path) -> Profile:
    """Load a profile document from YAML or JSON."""
    if not path.exists():
        raise ProfileError(f"No profile found at {path}")
    profile = profile_from_dict(load_document(path), profile_id=path.stem)
    LOGGER.info("Profile loaded: %s (%d weights)", profile.profile_id, len(profile.emotions))
    return profile


def _number(payload: Mapping[str, Any], key: str, context: str) -> float:
    if key not in payload:
        raise MalformedRowError(f"{context} is missing '{key}'")
    value = payload[key]
    if isinstance(value, bool):
        raise MalformedRowError(f"{context} '{key}' is not a number: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise MalformedRowError(f"{context} '{key}' is not a number: {value!r}") from exc
    if not math.isfinite(number):
        raise MalformedRowError(f"{context} '{key}' is not finite: {value!r}")
    return number


def parse_detection_row(payload: Mapping[str, Any]) -> DetectionRow:
    """Validate one raw JSON row into a DetectionRow."""
    if not isinstance(payload, Mapping):
        raise MalformedRowError(f"Row must be an object, got {type(payload).__name__}")

    time = _number(payload, "time", "row")
    if abs(time) > MAX_ROW_TIME_S:
        raise MalformedRowError(f"row time {time!r} is outside +/-{MAX_ROW_TIME_S:.0f}s")

    box = payload.get("box")
    if not isinstance(box, Mapping):
        raise MalformedRowError("row is missing 'box'")
    face_box = FaceBox(*(_number(box, key, "box") for key in ("x", "y", "w", "h")))

    raw_emotions = payload.get("emotions")
    if not raw_emotions or not isinstance(raw_emotions, list):
        raise MalformedRowError("row has no emotions")
    emotions = []
    for entry in raw_emotions:
        if not isinstance(entry, Mapping) or not entry.get("name"):
            raise MalformedRowError(f"emotion entry has no name: {entry!r}")
        emotions.append(
            Emotion(
                name=str(entry["name"]),
                score=_number(entry, "score", "emotion"),
                confidence=_number(entry, "confidence", "emotion") if entry.get("confidence") is not None else 0.0,
            )
        )
    return DetectionRow(time=time, box=face_box, emotions=emotions)


def score_row(
    row: DetectionRow,
    profile: Optional[Profile] = None,
    time_offset: float = 0.0,
) -> WeightedRow:
    """Apply profile weights and derive the row's mean score and vy-score."""
    if not row.emotions:
        raise MalformedRowError(f"row at t={row.time:.3f} has no emotions to score")

    weighted = [
        Emotion(
            name=emotion.name,
            score=emotion.score * (profile.weight_for(emotion.name) if profile else 1.0),
            confidence=emotion.confidence,
        )
        for emotion in row.emotions
    ]
    for emotion in weighted:
        if not math.isfinite(emotion.score * 1000):
            raise MalformedRowError(f"weighted score for {emotion.name!r} is out of range: {emotion.score!r}")
    score = float(np.mean([emotion.score for emotion in weighted]))
    if not math.isfinite(score * 1000):
        raise MalformedRowError(f"row at t={row.time:.3f} has an out-of-range mean score")

    time = row.time + time_offset
    if not math.isfinite(time) or abs(time) > MAX_ROW_TIME_S:
        raise MalformedRowError(f"row time {time!r} is outside +/-{MAX_ROW_TIME_S:.0f}s")
    return WeightedRow(
        time=time,
        box=row.box,
        emotions=weighted,
        score=score,
        vy_score=scaled_score(score),
    )
