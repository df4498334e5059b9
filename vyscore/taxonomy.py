"""Reduction of fine-grained emotion labels to the seven core categories."""

from __future__ import annotations

import math
from enum import IntEnum
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Set

from vyscore.errors import UnknownEmotionError
from vyscore.types import CoreVector, Emotion


class Core(IntEnum):
    ANGER = 0
    DISGUST = 1
    FEAR = 2
    HAPPINESS = 3
    SADNESS = 4
    SURPRISE = 5
    NEUTRAL = 6


EMOTION_CORE_MAP: Mapping[str, Core] = MappingProxyType(
    {
        "Anger": Core.ANGER,
        "Guilt": Core.DISGUST,
        "Annoyance": Core.DISGUST,
        "Contempt": Core.DISGUST,
        "Disapproval": Core.DISGUST,
        "Disgust": Core.DISGUST,
        "Shame": Core.DISGUST,
        "Anxiety": Core.FEAR,
        "Awkwardness": Core.FEAR,
        "Distress": Core.FEAR,
        "Doubt": Core.FEAR,
        "Envy": Core.FEAR,
        "Fear": Core.FEAR,
        "Horror": Core.FEAR,
        "Admiration": Core.HAPPINESS,
        "Adoration": Core.HAPPINESS,
        "Aesthetic Appreciation": Core.HAPPINESS,
        "Amusement": Core.HAPPINESS,
        "Contentment": Core.HAPPINESS,
        "Craving": Core.HAPPINESS,
        "Desire": Core.HAPPINESS,
        "Determination": Core.HAPPINESS,
        "Ecstasy": Core.HAPPINESS,
        "Enthusiasm": Core.HAPPINESS,
        "Entrancement": Core.HAPPINESS,
        "Excitement": Core.HAPPINESS,
        "Gratitude": Core.HAPPINESS,
        "Interest": Core.HAPPINESS,
        "Joy": Core.HAPPINESS,
        "Love": Core.HAPPINESS,
        "Nostalgia": Core.HAPPINESS,
        "Pride": Core.HAPPINESS,
        "Romance": Core.HAPPINESS,
        "Sarcasm": Core.HAPPINESS,
        "Satisfaction": Core.HAPPINESS,
        "Triumph": Core.HAPPINESS,
        "Concentration": Core.HAPPINESS,
        "Boredom": Core.NEUTRAL,
        "Calmness": Core.NEUTRAL,
        "Contemplation": Core.NEUTRAL,
        "Tiredness": Core.NEUTRAL,
        "Disappointment": Core.SADNESS,
        "Empathic Pain": Core.SADNESS,
        "Pain": Core.SADNESS,
        "Sadness": Core.SADNESS,
        "Sympathy": Core.SADNESS,
        "Awe": Core.SURPRISE,
        "Confusion": Core.SURPRISE,
        "Embarrassment": Core.SURPRISE,
        "Realization": Core.SURPRISE,
        "Relief": Core.SURPRISE,
        "Surprise (negative)": Core.SURPRISE,
        "Surprise (positive)": Core.SURPRISE,
    }
)


def map_to_core(name: str) -> Core:
    """Return the core category for a fine-grained emotion label."""
    try:
        return EMOTION_CORE_MAP[name]
    except KeyError:
        raise UnknownEmotionError(name) from None


def scaled_score(score: float) -> int:
    """Scale a probability-like score to the integer 0-1000 range."""
    return math.floor(score * 1000)


def emotions_to_cores(emotions: Iterable[Emotion], unknown: Optional[Set[str]] = None) -> CoreVector:
    """Average the scaled scores of one row's emotions per core category.

    Labels outside the taxonomy contribute nothing to any category. When
    `unknown` is given, their names are added to it.
    """
    totals: List[int] = [0] * len(Core)
    counts: List[int] = [0] * len(Core)
    for emotion in emotions:
        try:
            core = map_to_core(emotion.name)
        except UnknownEmotionError:
            if unknown is not None:
                unknown.add(emotion.name)
            continue
        totals[core] += scaled_score(emotion.score)
        counts[core] += 1

    # integer division truncating toward zero
    averaged = [int(total / count) if count else 0 for total, count in zip(totals, counts)]
    return CoreVector.from_list(averaged)
