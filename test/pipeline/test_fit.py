import numpy as np
import pytest

from splitarchitect.compatibility.classify import classify
from splitarchitect.elements.split import Split, trivial_split
from splitarchitect.elements.split_system import CompatibilityClass
from splitarchitect.fit import (
    compute_additive_fit,
    compute_fit,
    compute_stress,
    splits_to_distances,
)


def test_perfect_fit(quartet_tree_splits, quartet_tree_distances):
    assert compute_fit(quartet_tree_splits, quartet_tree_distances, 4) == 100.0
    assert compute_additive_fit(quartet_tree_splits, quartet_tree_distances, 4) == 100.0
    assert compute_stress(quartet_tree_splits, quartet_tree_distances, 4) == 0.0


def test_no_splits_gives_zero_fit(quartet_tree_distances):
    assert compute_fit([], quartet_tree_distances, 4) == 0.0
    assert compute_stress([], quartet_tree_distances, 4) is None


def test_fit_is_clamped_at_zero(quartet_tree_distances):
    heavy = [trivial_split(t, 4, 100.0) for t in range(1, 5)]
    assert compute_fit(heavy, quartet_tree_distances, 4) == 0.0
    assert compute_additive_fit(heavy, quartet_tree_distances, 4) == 0.0


def test_partial_fit():
    # Pairwise distances 2; one trivial split of weight 1 explains part of them
    d = np.full((3, 3), 2.0) - 2.0 * np.eye(3)
    splits = [trivial_split(1, 3, 1.0)]
    # Residuals: 1, 1, 2 against distances 2, 2, 2
    assert compute_fit(splits, d, 3) == pytest.approx(100.0 * (1 - 6.0 / 12.0))
    assert compute_additive_fit(splits, d, 3) == pytest.approx(100.0 * (1 - 4.0 / 6.0))
    assert compute_stress(splits, d, 3) == pytest.approx(np.sqrt(6.0 / 2.0))


def test_fit_is_undefined_for_small_or_zero_input():
    assert compute_fit([Split({2}, 2, 1.0)], [[0, 1], [1, 0]], 2) is None
    assert compute_fit([trivial_split(1, 3, 1.0)], np.zeros((3, 3)), 3) is None
    assert compute_additive_fit([], np.zeros((3, 3)), 3) is None


def test_splits_to_distances(quartet_tree_splits):
    d = splits_to_distances(quartet_tree_splits, 4)
    assert d[0, 1] == 2.0
    assert d[0, 2] == 3.0
    assert d[2, 3] == 2.0
    np.testing.assert_array_equal(d, d.T)


def test_star_splits_against_non_additive_distances():
    splits = [trivial_split(t, 4, 1.0) for t in range(1, 5)]
    assert classify(splits, 4) is CompatibilityClass.COMPATIBLE

    # The star predicts 2 for every pair
    star = np.full((4, 4), 2.0) - 2.0 * np.eye(4)
    assert compute_fit(splits, star, 4) == pytest.approx(100.0)

    d = np.array(
        [[0, 4, 1, 1], [4, 0, 1, 1], [1, 1, 0, 4], [1, 1, 4, 0]], dtype=float
    )
    # Residuals 2, 2 on pairs 12 and 34 and -1 on the other four pairs
    assert compute_fit(splits, d, 4) == pytest.approx(100.0 * (1 - 12.0 / 36.0))
    assert compute_fit(splits, d, 4) < 70.0
