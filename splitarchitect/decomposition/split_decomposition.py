"""
Split decomposition
-------------------
Bandelt-Dress split decomposition of a distance matrix. Taxa are added one
at a time; every generation of splits on taxa 1..t is built fresh from the
frozen generation on taxa 1..t-1.

H.-J. Bandelt and A.W.M. Dress. A canonical decomposition theory for metrics
on a finite set. Advances in Mathematics, 92:47-105, 1992.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import ArrayLike, NDArray

from splitarchitect.config import SplitSystemConfig
from splitarchitect.decomposition.trivial_splits import (
    complete_trivial,
    trivial_splits_for_small_taxa,
)
from splitarchitect.distances.matrix import DistanceMatrix
from splitarchitect.elements.split import Split, bitmask_to_taxa
from splitarchitect.elements.split_system import SplitSystem
from splitarchitect.progress import Progress, ensure_progress

logger = logging.getLogger(__name__)

# A split under construction: bitmask of the side containing the newest taxon, and its weight
PartialSplit = Tuple[int, float]


def quartet_isolation_index(
    d: NDArray[np.float64], i: int, j: int, k: int, m: int
) -> float:
    """
    Isolation index of the quartet split ij | km (taxa 1-based):
    0.5 * (max(d(i,k) + d(j,m), d(i,m) + d(j,k)) - d(i,j) - d(k,m))
    """
    i, j, k, m = i - 1, j - 1, k - 1, m - 1
    return 0.5 * (
        max(d[i, k] + d[j, m], d[i, m] + d[j, k]) - d[i, j] - d[k, m]
    )


def isolation_index(
    d: NDArray[np.float64],
    t: int,
    side_a: Sequence[int],
    side_b: Sequence[int],
    tolerance: float = 1e-7,
) -> float:
    """
    Isolation index of A vs B where t is the newest taxon and belongs to A.

    Minimum of the quartet index of (t, i | j, k) over i in A and j <= k in B.
    Returns 0 as soon as any quartet index is at or below `tolerance`.
    """
    b = np.asarray(side_b, dtype=np.intp) - 1
    rows, cols = np.triu_indices(len(b))
    bj, bk = b[rows], b[cols]
    tt = t - 1
    d_tj = d[tt, bj]
    d_tk = d[tt, bk]
    d_jk = d[bj, bk]

    best = np.inf
    for i in side_a:
        ii = i - 1
        values = 0.5 * (
            np.maximum(d_tj + d[ii, bk], d_tk + d[ii, bj]) - d[tt, ii] - d_jk
        )
        current = float(values.min())
        if current <= tolerance:
            return 0.0
        best = min(best, current)
    return float(best)


def _refine(
    d: NDArray[np.float64],
    t: int,
    previous: Sequence[PartialSplit],
    previous_taxa: int,
    tolerance: float,
) -> List[PartialSplit]:
    """Test A∪{t} | B and A | B∪{t} for every previous split A | B on taxa 1..t-1."""
    t_bit = 1 << t
    result: List[PartialSplit] = []
    for bitmask, weight in previous:
        a_mask = bitmask
        b_mask = previous_taxa ^ bitmask

        a_with_t = a_mask | t_bit
        wgt = min(
            weight,
            isolation_index(
                d, t, bitmask_to_taxa(a_with_t), bitmask_to_taxa(b_mask), tolerance
            ),
        )
        if wgt > 0:
            result.append((a_with_t, wgt))

        b_with_t = b_mask | t_bit
        wgt = min(
            weight,
            isolation_index(
                d, t, bitmask_to_taxa(b_with_t), bitmask_to_taxa(a_mask), tolerance
            ),
        )
        if wgt > 0:
            result.append((b_with_t, wgt))
    return result


def _chunks(items: Sequence[PartialSplit], count: int) -> List[Sequence[PartialSplit]]:
    size = max(1, -(-len(items) // count))
    return [items[start : start + size] for start in range(0, len(items), size)]


def next_generation(
    d: NDArray[np.float64],
    t: int,
    previous: Sequence[PartialSplit],
    previous_taxa: int,
    tolerance: float,
    executor: Optional[ThreadPoolExecutor] = None,
    workers: int = 1,
) -> List[PartialSplit]:
    """
    Build the splits on taxa 1..t from the frozen generation on taxa 1..t-1.

    With an executor, the previous generation is partitioned across workers;
    the partial results are concatenated in order, so the output does not
    depend on the number of workers.
    """
    generation: List[PartialSplit] = []

    wgt = isolation_index(d, t, (t,), bitmask_to_taxa(previous_taxa), tolerance)
    if wgt > 0:
        generation.append((1 << t, wgt))

    if executor is not None and workers > 1 and len(previous) > 1:
        parts = executor.map(
            lambda chunk: _refine(d, t, chunk, previous_taxa, tolerance),
            _chunks(previous, workers),
        )
        for part in parts:
            generation.extend(part)
    else:
        generation.extend(_refine(d, t, previous, previous_taxa, tolerance))
    return generation


def decompose(
    distances: Union[ArrayLike, DistanceMatrix],
    n: int,
    progress: Optional[Progress] = None,
    config: Optional[SplitSystemConfig] = None,
) -> SplitSystem:
    """
    Compute the split decomposition of a distance matrix.

    Args:
        distances: n x n distance matrix (symmetrized with a warning if needed)
        n: Number of taxa
        progress: Progress listener, polled for cancellation once per taxon
        config: Tolerances and worker count

    Returns:
        Unclassified SplitSystem (compatibility UNKNOWN, no cycle, no fit), in
        which every taxon has its trivial split.

    Raises:
        ShapeError, SaturatedInputError, DegenerateInputError: invalid input
        Cancelled: if the progress listener reports cancellation
    """
    config = config or SplitSystemConfig()
    progress = ensure_progress(progress)
    matrix = DistanceMatrix(distances, n, config.symmetry_tolerance)
    d = matrix.values

    if n < 4:
        logger.debug(f"Fewer than 4 taxa ({n}), returning trivial splits only")
        return SplitSystem(n, trivial_splits_for_small_taxa(d, n))

    progress.set_maximum(n)
    progress.set_progress(0)

    previous: List[PartialSplit] = []
    previous_taxa = 1 << 1

    executor = ThreadPoolExecutor(max_workers=config.workers) if config.workers > 1 else None
    try:
        for t in range(2, n + 1):
            progress.check_cancelled()
            previous = next_generation(
                d,
                t,
                previous,
                previous_taxa,
                config.isolation_tolerance,
                executor=executor,
                workers=config.workers,
            )
            previous_taxa |= 1 << t
            logger.debug(f"Taxon {t}: {len(previous)} splits in generation")
            progress.set_progress(t)
    finally:
        if executor is not None:
            executor.shutdown(wait=True)

    splits = [Split(bitmask, n, weight) for bitmask, weight in previous]
    added = complete_trivial(splits, n, config.trivial_default_weight)
    logger.info(
        f"Split decomposition of {n} taxa: {len(previous)} splits, "
        f"{len(added)} trivial splits completed"
    )
    return SplitSystem(n, splits)
