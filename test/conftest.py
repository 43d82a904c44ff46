import logging

import numpy as np
import pytest

from splitarchitect.distances.matrix import from_splits
from splitarchitect.elements.split import Split, trivial_split


def pytest_configure(config):
    """Set up test environment before tests run."""
    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@pytest.fixture
def quartet_tree_splits():
    """Splits of the tree ((1,2),(3,4)) with all edge lengths 1."""
    n = 4
    return [Split({3, 4}, n, 1.0)] + [trivial_split(t, n, 1.0) for t in range(1, n + 1)]


@pytest.fixture
def quartet_tree_distances(quartet_tree_splits):
    return from_splits(quartet_tree_splits, 4)


@pytest.fixture
def quartet_splits():
    """The three quartet splits on 4 taxa; no circular ordering fits all of them."""
    n = 4
    return [Split({1, 2}, n, 1.0), Split({1, 3}, n, 1.0), Split({1, 4}, n, 1.0)]


@pytest.fixture
def random_distances():
    rng = np.random.default_rng(7)
    points = rng.random((8, 3))
    return np.sqrt(((points[:, None, :] - points[None, :, :]) ** 2).sum(axis=-1))
