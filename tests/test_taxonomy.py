import pytest

from vyscore.errors import UnknownEmotionError
from vyscore.taxonomy import EMOTION_CORE_MAP, Core, emotions_to_cores, map_to_core
from vyscore.types import CORE_FIELDS, Emotion


def test_every_label_maps_to_a_core_category():
    assert len(EMOTION_CORE_MAP) == 53
    for name in EMOTION_CORE_MAP:
        core = map_to_core(name)
        assert core in Core
        assert map_to_core(name) is core


def test_core_order_matches_vector_fields():
    assert [core.name.lower() for core in Core] == list(CORE_FIELDS)
    assert Core.ANGER == 0 and Core.NEUTRAL == 6


def test_notable_label_assignments():
    assert map_to_core("Joy") is Core.HAPPINESS
    assert map_to_core("Concentration") is Core.HAPPINESS
    assert map_to_core("Guilt") is Core.DISGUST
    assert map_to_core("Surprise (negative)") is Core.SURPRISE
    assert map_to_core("Tiredness") is Core.NEUTRAL


def test_map_is_read_only():
    with pytest.raises(TypeError):
        EMOTION_CORE_MAP["Joy"] = Core.SADNESS  # type: ignore[index]


def test_unknown_label_raises():
    with pytest.raises(UnknownEmotionError) as excinfo:
        map_to_core("Hunger")
    assert isinstance(excinfo.value, KeyError)
    assert excinfo.value.name == "Hunger"


def test_cores_average_within_category():
    emotions = [
        Emotion("Joy", 0.5),
        Emotion("Amusement", 0.25),
        Emotion("Anger", 0.75),
        Emotion("Calmness", 0.125),
    ]
    cores = emotions_to_cores(emotions)
    assert cores.happiness == 375
    assert cores.anger == 750
    assert cores.neutral == 125
    assert cores.sadness == 0
    assert cores.to_list() == [750, 0, 0, 375, 0, 0, 125]


def test_cores_truncate_integer_average():
    cores = emotions_to_cores([Emotion("Pain", 0.5), Emotion("Sadness", 0.25), Emotion("Sympathy", 0.25)])
    # (500 + 250 + 250) / 3 = 333.33
    assert cores.sadness == 333


def test_unknown_labels_contribute_nothing():
    cores = emotions_to_cores([Emotion("Joy", 0.5), Emotion("Mystery", 0.9)])
    assert cores.to_list() == [0, 0, 0, 500, 0, 0, 0]


def test_unknown_labels_are_collected_when_asked():
    unknown = set()
    emotions_to_cores([Emotion("Joy", 0.5), Emotion("Mystery", 0.9), Emotion("Hunger", 0.1)], unknown)
    assert unknown == {"Mystery", "Hunger"}
