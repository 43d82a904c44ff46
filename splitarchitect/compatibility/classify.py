"""
Compatibility classification of split systems.

A split system is reported with the strongest label that applies, tested in
the order compatible, cyclic, weakly compatible, incompatible.
"""

import logging
from itertools import combinations
from typing import List, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from splitarchitect.config import SplitSystemConfig
from splitarchitect.elements.split import Split
from splitarchitect.elements.split_system import CompatibilityClass, check_cycle
from splitarchitect.progress import Progress

logger = logging.getLogger(__name__)


def are_compatible(split1: Split, split2: Split) -> bool:
    """At least one of A1∩A2, A1∩B2, B1∩A2, B1∩B2 is empty."""
    return split1.is_compatible_with(split2)


def is_compatible(splits: Sequence[Split]) -> bool:
    """True if all pairs of splits are compatible."""
    for i in range(len(splits)):
        for j in range(i + 1, len(splits)):
            if not are_compatible(splits[i], splits[j]):
                return False
    return True


def is_compatible_with_all(split: Split, splits: Sequence[Split]) -> bool:
    return all(are_compatible(split, other) for other in splits)


def _intersects(a: int, b: int, c: int) -> bool:
    return (a & b & c) != 0


def are_weakly_compatible(split1: Split, split2: Split, split3: Split) -> bool:
    """
    Three splits are weakly compatible unless, for one choice of sides,
    A1∩A2∩A3, A1∩B2∩B3, B1∩A2∩B3 and B1∩B2∩A3 are all non-empty.
    """
    a1, b1 = split1.complement_bitmask, split1.bitmask
    a2, b2 = split2.complement_bitmask, split2.bitmask
    a3, b3 = split3.complement_bitmask, split3.bitmask

    return not (
        (
            _intersects(a1, a2, a3)
            and _intersects(a1, b2, b3)
            and _intersects(b1, a2, b3)
            and _intersects(b1, b2, a3)
        )
        or (
            _intersects(b1, b2, b3)
            and _intersects(b1, a2, a3)
            and _intersects(a1, b2, a3)
            and _intersects(a1, a2, b3)
        )
    )


def is_weakly_compatible(splits: Sequence[Split]) -> bool:
    return all(
        are_weakly_compatible(s1, s2, s3) for s1, s2, s3 in combinations(splits, 3)
    )


def is_circular(split: Split, cycle: Sequence[int]) -> bool:
    """
    Is the side of `split` that does not contain cycle[0] a contiguous run
    of the cycle?
    """
    part = split.part_bitmask_not_containing(cycle[0])
    prev = -1
    for pos, taxon in enumerate(cycle):
        if part >> taxon & 1:
            if prev != -1 and pos != prev + 1:
                return False
            prev = pos
    return True


def is_cyclic(splits: Sequence[Split], n: int, cycle: Sequence[int]) -> bool:
    """
    True if every split is contiguous under the circular ordering `cycle`
    (a permutation of 1..n).
    """
    inverse = [0] * (n + 1)
    for pos, taxon in enumerate(cycle, start=1):
        inverse[taxon] = pos
    for split in splits:
        part = split.part_not_containing(cycle[0])
        positions = [inverse[t] for t in part]
        if max(positions) - min(positions) + 1 != len(part):
            return False
    return True


def compatibility_matrix(splits: Sequence[Split]) -> NDArray[np.bool_]:
    """Symmetric boolean matrix; entry (i, j) is True if splits i and j are compatible."""
    size = len(splits)
    matrix = np.ones((size, size), dtype=bool)
    for i in range(size):
        for j in range(i + 1, size):
            matrix[i, j] = matrix[j, i] = are_compatible(splits[i], splits[j])
    return matrix


def classify(
    splits: Sequence[Split],
    n: int,
    cycle_hint: Optional[Sequence[int]] = None,
    config: Optional[SplitSystemConfig] = None,
    progress: Optional[Progress] = None,
) -> CompatibilityClass:
    """
    Determine the strongest compatibility class of a split system.

    Args:
        splits: The splits (not modified)
        n: Number of taxa
        cycle_hint: Circular ordering to test for cyclicity. If None, one is
            searched with the circular orderer before concluding non-cyclic.
        config: Weak compatibility cutoff and circular search budget
        progress: Cancellation for the circular search

    Returns:
        COMPATIBLE, CYCLIC, WEAKLY_COMPATIBLE or INCOMPATIBLE

    Raises:
        ValueError: if cycle_hint is not a permutation of 1..n
    """
    config = config or SplitSystemConfig()
    split_list: List[Split] = list(splits)
    if cycle_hint is not None:
        cycle_hint = check_cycle(cycle_hint, n, "Cycle hint")

    if is_compatible(split_list):
        result = CompatibilityClass.COMPATIBLE
    else:
        cycle = cycle_hint
        if cycle is None:
            from splitarchitect.leaforder.circular_ordering import find_cycle

            cycle = find_cycle(
                split_list,
                n,
                budget=config.search_budget,
                seed=config.seed,
                progress=progress,
            ).cycle
        if is_cyclic(split_list, n, cycle):
            result = CompatibilityClass.CYCLIC
        elif n < config.weak_compatibility_max_taxa and is_weakly_compatible(
            split_list
        ):
            result = CompatibilityClass.WEAKLY_COMPATIBLE
        else:
            result = CompatibilityClass.INCOMPATIBLE

    logger.info(f"Split system of {len(split_list)} splits on {n} taxa is {result.value}")
    return result
