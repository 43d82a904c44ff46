"""
Distance matrix handling for split decomposition.

Taxa are addressed 1..n in the public API and stored 0-based in a numpy array.
"""

import logging
from typing import Iterable, Union

import numpy as np
from numpy.typing import ArrayLike, NDArray

from splitarchitect.config import SYMMETRY_TOLERANCE
from splitarchitect.elements.split import Split
from splitarchitect.exceptions import (
    DegenerateInputError,
    SaturatedInputError,
    ShapeError,
)

logger = logging.getLogger(__name__)


def as_float_matrix(values: ArrayLike) -> NDArray[np.float64]:
    """Convert to a float array; ragged or non-numeric input raises ShapeError."""
    try:
        return np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ShapeError(f"Distances cannot be read as a numeric matrix: {e}") from e


def validate_distances(values: ArrayLike, n: int) -> NDArray[np.float64]:
    """
    Check shape and range of an n x n distance matrix and return it as a float array.

    Raises:
        DegenerateInputError: if n < 1
        ShapeError: if the matrix is not square or does not match n
        SaturatedInputError: if an entry is negative or not finite, or the
            diagonal is not zero
    """
    if n < 1:
        raise DegenerateInputError(f"At least one taxon is required, got n={n}")
    matrix = as_float_matrix(values)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ShapeError(f"Distance matrix must be square, got shape {matrix.shape}")
    if matrix.shape[0] != n:
        ShapeError.raise_mismatch(matrix.shape, n)
    if not np.all(np.isfinite(matrix)):
        raise SaturatedInputError(
            "Distance matrix contains infinite or NaN entries (saturated distances?)"
        )
    if np.any(matrix < 0):
        raise SaturatedInputError("Distance matrix contains negative entries")
    if np.any(np.diag(matrix) != 0):
        raise SaturatedInputError("Distance matrix has a non-zero diagonal")
    return matrix


def is_symmetric(matrix: NDArray[np.float64], tolerance: float = SYMMETRY_TOLERANCE) -> bool:
    return bool(np.all(np.abs(matrix - matrix.T) <= tolerance))


def symmetrize(
    values: ArrayLike, tolerance: float = SYMMETRY_TOLERANCE
) -> NDArray[np.float64]:
    """
    Average d(i,j) and d(j,i). Asymmetric input is reported as a warning, not an error.
    """
    matrix = np.asarray(values, dtype=np.float64)
    if not is_symmetric(matrix, tolerance):
        worst = float(np.max(np.abs(matrix - matrix.T)))
        logger.warning(
            f"Distance matrix is not symmetric (max |d(i,j) - d(j,i)| = {worst:g}); "
            f"averaging off-diagonal pairs"
        )
    return (matrix + matrix.T) / 2.0


def from_splits(
    splits: Iterable[Split], n: int, weighted: bool = True
) -> NDArray[np.float64]:
    """
    Distances induced by splits: for each pair of taxa, the sum of weights
    (or the number, if weighted is False) of splits separating them.
    """
    dist = np.zeros((n, n), dtype=np.float64)
    for split in splits:
        side = np.zeros(n, dtype=bool)
        side[[t - 1 for t in split.b]] = True
        separated = side[:, None] != side[None, :]
        dist[separated] += split.weight if weighted else 1.0
    return dist


class DistanceMatrix:
    """
    Symmetric, non-negative distance matrix on taxa 1..n with zero diagonal.

    Attributes:
        n: Number of taxa
        values: The underlying n x n float64 array (0-based)
    """

    __slots__ = ("n", "values")

    def __init__(
        self,
        values: Union[ArrayLike, "DistanceMatrix"],
        n: int = -1,
        symmetry_tolerance: float = SYMMETRY_TOLERANCE,
    ):
        if isinstance(values, DistanceMatrix):
            values = values.values
        array = as_float_matrix(values)
        if n < 0:
            n = array.shape[0] if array.ndim >= 1 else 0
        matrix = validate_distances(array, n).copy()
        if not is_symmetric(matrix, symmetry_tolerance):
            matrix = symmetrize(matrix, symmetry_tolerance)
        self.n: int = n
        self.values: NDArray[np.float64] = matrix
        self.values.setflags(write=False)

    def get(self, i: int, j: int) -> float:
        """Distance between taxa i and j (1-based)."""
        return float(self.values[i - 1, j - 1])

    def __len__(self) -> int:
        return self.n

    def __repr__(self) -> str:
        return f"DistanceMatrix(n={self.n})"
