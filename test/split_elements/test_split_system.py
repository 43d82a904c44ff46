import pytest

from splitarchitect.elements.split import Split, trivial_split
from splitarchitect.elements.split_system import (
    CompatibilityClass,
    SplitSystem,
    normalize_cycle,
    verify_splits,
)
from splitarchitect.exceptions import InvalidSplitError


def test_normalize_cycle():
    assert normalize_cycle((3, 1, 4, 2)) == (1, 3, 2, 4)
    assert normalize_cycle((1, 2, 3, 4)) == (1, 2, 3, 4)
    assert normalize_cycle((1, 4, 3, 2)) == (1, 2, 3, 4)
    assert normalize_cycle((2, 1)) == (1, 2)
    assert normalize_cycle(()) == ()


def test_new_system_is_unannotated():
    system = SplitSystem(4, [Split({2}, 4)])
    assert system.compatibility is CompatibilityClass.UNKNOWN
    assert system.cycle is None
    assert system.fit is None
    assert len(system) == 1


def test_set_cycle_normalizes_and_validates():
    system = SplitSystem(4)
    system.set_cycle((3, 1, 4, 2))
    assert system.cycle == (1, 3, 2, 4)

    system.set_cycle((3, 1, 4, 2), normalize=False)
    assert system.cycle == (3, 1, 4, 2)

    with pytest.raises(ValueError):
        system.set_cycle((1, 2, 3))
    with pytest.raises(ValueError):
        system.set_cycle((1, 2, 2, 4))


def test_listeners_are_notified():
    system = SplitSystem(3)
    events = []

    def listener(changed, field_name):
        events.append((changed is system, field_name))

    system.subscribe(listener)
    system.set_cycle((1, 2, 3))
    system.set_compatibility(CompatibilityClass.COMPATIBLE)
    system.set_fit(99.0)
    system.unsubscribe(listener)
    system.set_fit(50.0)

    assert events == [(True, "cycle"), (True, "compatibility"), (True, "fit")]


def test_index_and_set_operations():
    s1 = Split({2}, 4, 1.0)
    s2 = Split({3, 4}, 4, 2.0)
    duplicate = Split({1, 2}, 4, 5.0)
    system = SplitSystem(4, [s1, s2, duplicate])

    assert system.index_of(Split({3, 4}, 4)) == 2
    assert system.index_of(Split({4}, 4)) == -1
    assert system[0] is s1
    assert list(system) == [s1, s2, duplicate]

    unique = system.as_set()
    assert len(unique) == 2
    # The first occurrence is kept
    assert unique[1].weight == 2.0

    assert system.total_weight() == 8.0
    assert [s.weight for s in system.sorted_by_decreasing_weight()] == [5.0, 2.0, 1.0]


def test_sorted_by_decreasing_weight_is_stable():
    a = Split({2}, 4, 1.0)
    b = Split({3}, 4, 1.0)
    system = SplitSystem(4, [a, b])
    assert system.sorted_by_decreasing_weight() == [a, b]


def test_confidence_values():
    system = SplitSystem(3, [trivial_split(2, 3)])
    assert not system.has_confidence_values()
    system.splits.append(Split({3}, 3, 1.0, confidence=80.0))
    assert system.has_confidence_values()


def test_copy_and_to_dict():
    system = SplitSystem(
        3,
        [trivial_split(2, 3, 1.0)],
        cycle=(1, 3, 2),
        compatibility=CompatibilityClass.COMPATIBLE,
        fit=100.0,
    )
    copy = system.copy()
    copy.splits.append(trivial_split(3, 3))

    assert len(system) == 1
    assert copy.cycle == (1, 2, 3)
    assert system.to_dict() == {
        "n": 3,
        "splits": [{"n": 3, "side": [2], "weight": 1.0, "confidence": None}],
        "cycle": [1, 2, 3],
        "compatibility": "compatible",
        "fit": 100.0,
    }


def test_verify_splits():
    verify_splits([Split({2}, 4), Split({3}, 4)], 4)
    with pytest.raises(InvalidSplitError):
        verify_splits([Split({2}, 4), Split({1, 3, 4}, 4)], 4)
    with pytest.raises(InvalidSplitError):
        verify_splits([Split({2}, 3)], 4)
