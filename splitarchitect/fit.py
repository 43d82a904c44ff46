"""
Goodness of fit between a split system and the distances it was derived from.

All statistics compare, over pairs i < j, the input distance d(i,j) with the
split-induced distance s(i,j), the total weight of splits separating i and j.
"""

from typing import Iterable, Optional, Tuple, Union

import numpy as np
from numpy.typing import ArrayLike, NDArray

from splitarchitect.distances.matrix import DistanceMatrix, from_splits
from splitarchitect.elements.split import Split


def splits_to_distances(splits: Iterable[Split], n: int) -> NDArray[np.float64]:
    """n x n matrix of split-induced distances (0-based)."""
    return from_splits(splits, n, weighted=True)


def _pairs(
    splits: Iterable[Split], distances: Union[ArrayLike, DistanceMatrix], n: int
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    d = DistanceMatrix(distances, n).values
    s = splits_to_distances(splits, n)
    upper = np.triu_indices(n, k=1)
    return s[upper], d[upper]


def compute_fit(
    splits: Iterable[Split], distances: Union[ArrayLike, DistanceMatrix], n: int
) -> Optional[float]:
    """
    Least squares fit in percent: max(0, 100 * (1 - sum (s - d)^2 / sum d^2)).

    Returns None if n < 3 or all input distances are zero.
    """
    if n < 3:
        return None
    s, d = _pairs(splits, distances, n)
    total = float(np.sum(d * d))
    if total == 0:
        return None
    residual = float(np.sum((s - d) ** 2))
    return min(100.0, max(0.0, 100.0 * (1.0 - residual / total)))


def compute_additive_fit(
    splits: Iterable[Split], distances: Union[ArrayLike, DistanceMatrix], n: int
) -> Optional[float]:
    """Fit based on absolute residuals: max(0, 100 * (1 - sum |s - d| / sum d))."""
    if n < 3:
        return None
    s, d = _pairs(splits, distances, n)
    total = float(np.sum(d))
    if total == 0:
        return None
    return max(0.0, 100.0 * (1.0 - float(np.sum(np.abs(s - d))) / total))


def compute_stress(
    splits: Iterable[Split], distances: Union[ArrayLike, DistanceMatrix], n: int
) -> Optional[float]:
    """sqrt(sum (s - d)^2 / sum s^2); None if the splits induce no distances."""
    if n < 2:
        return None
    s, d = _pairs(splits, distances, n)
    total = float(np.sum(s * s))
    if total == 0:
        return None
    return float(np.sqrt(np.sum((s - d) ** 2) / total))
