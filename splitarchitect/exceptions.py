"""
Custom exceptions for split system construction and classification.
"""

from __future__ import annotations
from typing import NoReturn, Tuple


class SplitSystemError(Exception):
    """Base exception for split system errors."""

    pass


class ShapeError(SplitSystemError):
    """Raised when a distance matrix is not square or does not match the taxon count."""

    @staticmethod
    def raise_mismatch(shape: Tuple[int, ...], n: int) -> NoReturn:
        raise ShapeError(
            f"Distance matrix of shape {shape} does not match taxon count {n}; "
            f"expected ({n}, {n})."
        )


class SaturatedInputError(SplitSystemError):
    """Raised when distances are out of range (negative, infinite or NaN)."""

    pass


class DegenerateInputError(SplitSystemError):
    """Raised when fewer than one taxon is given."""

    pass


class Cancelled(SplitSystemError):
    """Raised when the caller's cancellation token fires during a long computation."""

    pass


class InvalidSplitError(SplitSystemError, ValueError):
    """Raised when a split is not a proper bipartition of the taxon set."""

    pass


class SplitNewickError(SplitSystemError, ValueError):
    """Raised when a Split-Newick string cannot be parsed."""

    pass
