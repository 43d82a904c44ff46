from typing import List

import numpy as np
from numpy.typing import NDArray

from splitarchitect.elements.split import Split, trivial_split


def missing_trivial_taxa(splits: List[Split], n: int) -> List[int]:
    """Taxa in 1..n that have no trivial split in `splits`."""
    covered = set()
    for split in splits:
        if split.is_trivial():
            # For n == 2 both taxa are separated by the one split
            if split.n == 2:
                covered.update((1, 2))
            elif len(split.b) == 1:
                covered.add(split.b[0])
            else:
                covered.add(split.a[0])
    return [t for t in range(1, n + 1) if t not in covered]


def complete_trivial(
    splits: List[Split], n: int, default_weight: float = 0.0
) -> List[Split]:
    """
    Append a trivial split {t} | rest for every taxon t that has none.

    The list is modified in place; the appended splits are returned.
    Calling this twice in a row appends nothing the second time.
    """
    if n < 2:
        return []
    added = [trivial_split(t, n, default_weight) for t in missing_trivial_taxa(splits, n)]
    splits.extend(added)
    return added


def trivial_splits_for_small_taxa(distances: NDArray[np.float64], n: int) -> List[Split]:
    """
    Splits of the unique (star) tree on fewer than 4 taxa.

    For three taxa the pendant edge of taxon i has length
    (d(i,j) + d(i,k) - d(j,k)) / 2, clamped at zero.
    """
    if n < 2:
        return []
    if n == 2:
        return [trivial_split(2, 2, float(distances[0, 1]))]
    if n != 3:
        raise ValueError(f"Expected fewer than 4 taxa, got {n}")
    splits: List[Split] = []
    for i in range(3):
        j, k = [x for x in range(3) if x != i]
        weight = 0.5 * (distances[i, j] + distances[i, k] - distances[j, k])
        splits.append(trivial_split(i + 1, 3, max(0.0, float(weight))))
    return splits
