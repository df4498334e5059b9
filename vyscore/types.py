"""Common dataclasses and type aliases used across the vyscore package."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Dict, Iterable, List, Sequence, Tuple

# Bounding box order: x, y, w, h (pixel coordinates, top-left origin)
Box4 = Tuple[float, float, float, float]

DEFAULT_BOX_THRESHOLD = 0.8


@dataclass
class Emotion:
    """One fine-grained emotion estimate attached to a detection."""

    name: str
    score: float
    confidence: float = 0.0


@dataclass
class FaceBox:
    x: float
    y: float
    w: float
    h: float

    def as_xywh(self) -> Box4:
        return self.x, self.y, self.w, self.h


@dataclass
class DetectionRow:
    """Raw per-frame detection as produced by the expression model."""

    time: float
    box: FaceBox
    emotions: List[Emotion] = field(default_factory=list)


@dataclass
class WeightedRow:
    """Detection row after profile weighting and scoring."""

    time: float
    box: FaceBox
    emotions: List[Emotion]
    score: float
    vy_score: int


@dataclass
class CoreVector:
    """Per-category values in fixed core order (see `vyscore.taxonomy.Core`)."""

    anger: int = 0
    disgust: int = 0
    fear: int = 0
    happiness: int = 0
    sadness: int = 0
    surprise: int = 0
    neutral: int = 0

    @classmethod
    def from_list(cls, values: Sequence[int]) -> "CoreVector":
        if len(values) != len(CORE_FIELDS):
            raise ValueError(
                f"Core vector needs {len(CORE_FIELDS)} values, got {len(values)}"
            )
        return cls(*(int(v) for v in values))

    def to_list(self) -> List[int]:
        return [getattr(self, name) for name in CORE_FIELDS]

    def add(self, other: "CoreVector") -> None:
        """Element-wise in-place sum."""
        for name in CORE_FIELDS:
            setattr(self, name, getattr(self, name) + getattr(other, name))


CORE_FIELDS: Tuple[str, ...] = tuple(f.name for f in fields(CoreVector))


@dataclass
class TrackedBox:
    """A de-duplicated face box within one second.

    Position reflects the latest observation; `score` and `count` accumulate.
    """

    x: int
    y: int
    w: int
    h: int
    score: int
    count: int = 1

    @property
    def xywh(self) -> Box4:
        return self.x, self.y, self.w, self.h

    def absorb(self, other: "TrackedBox") -> None:
        self.x, self.y, self.w, self.h = other.x, other.y, other.w, other.h
        self.score += other.score
        self.count += other.count

    @classmethod
    def from_list(cls, values: Sequence[int]) -> "TrackedBox":
        if len(values) != 6:
            raise ValueError(f"Tracked box needs 6 values, got {len(values)}")
        return cls(*(int(v) for v in values))

    def to_list(self) -> List[int]:
        return [self.x, self.y, self.w, self.h, self.score, self.count]


@dataclass
class SecondBucket:
    """Aggregated detections for one integer second."""

    score: float = 0
    count: int = 0
    cores: CoreVector = field(default_factory=CoreVector)
    boxes: List[TrackedBox] = field(default_factory=list)

    @property
    def average(self) -> float:
        """Mean vy-score of the second; `score` itself is always the sum."""
        if self.count <= 0:
            return 0.0
        return self.score / self.count


# Mapping of integer second -> bucket
AggregateState = Dict[int, SecondBucket]


@dataclass
class PersistedRecord:
    """Flat storage form of one SecondBucket."""

    time: int
    score: float
    count: int
    cores: List[int]
    boxes: List[List[int]] = field(default_factory=list)


def box_area(box: Box4) -> float:
    """Compute area of an (x, y, w, h) box."""
    _, _, w, h = box
    return w * h


def overlap_ratio(box_a: Box4, box_b: Box4) -> float:
    """Intersection area divided by the smaller of the two box areas."""
    ax, ay, aw, ah = box_a
    bx, by, bw, bh = box_b
    inter_x1 = max(ax, bx)
    inter_y1 = max(ay, by)
    inter_x2 = min(ax + aw, bx + bw)
    inter_y2 = min(ay + ah, by + bh)
    inter_w = max(0.0, inter_x2 - inter_x1)
    inter_h = max(0.0, inter_y2 - inter_y1)
    smaller = min(box_area(box_a), box_area(box_b))
    if smaller == 0:
        return 0.0
    return (inter_w * inter_h) / smaller


def boxes_are_same(box_a: Box4, box_b: Box4, threshold: float = DEFAULT_BOX_THRESHOLD) -> bool:
    """Return True when the two boxes overlap enough to be the same face.

    Degenerate (zero-area) boxes never match anything, themselves included.
    """
    if min(box_area(box_a), box_area(box_b)) == 0:
        return False
    return overlap_ratio(box_a, box_b) >= threshold


def iter_batches(iterable: Iterable, batch_size: int) -> Iterable[List]:
    """Yield successive batches from an iterable."""
    batch: List = []
    for item in iterable:
        batch.append(item)
        if len(batch) >= batch_size:
            yield batch
            batch = []
    if batch:
        yield batch
