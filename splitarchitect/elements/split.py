# split.py
from typing import Tuple, Dict, Iterable, Iterator, List, Any, Optional, Sequence, Union
from functools import total_ordering

from splitarchitect.exceptions import InvalidSplitError


def taxa_to_bitmask(taxa: Iterable[int]) -> int:
    bitmask = 0
    for t in taxa:
        bitmask |= 1 << t
    return bitmask


def bitmask_to_taxa(bitmask: int) -> Tuple[int, ...]:
    taxa: List[int] = []
    t = 0
    while bitmask:
        if bitmask & 1:
            taxa.append(t)
        bitmask >>= 1
        t += 1
    return tuple(taxa)


def all_taxa_bitmask(n: int) -> int:
    """Bitmask with bits 1..n set."""
    return ((1 << (n + 1)) - 1) ^ 1


@total_ordering
class Split:
    __slots__ = ("n", "bitmask", "weight", "confidence", "_cached_side")

    def __init__(
        self,
        side: Union[Iterable[int], int],
        n: int,
        weight: float = 0.0,
        confidence: Optional[float] = None,
    ):
        """
        Split represents a bipartition of the taxa 1..n.

        side: either side of the bipartition, as an iterable of taxon ids or a
        bitmask (bit t set for taxon t). The split is stored by the side that
        does not contain taxon 1, so Split({1, 2}, 4) == Split({3, 4}, 4).
        """
        bitmask = side if isinstance(side, int) else taxa_to_bitmask(side)
        full = all_taxa_bitmask(n)
        if n < 2:
            raise InvalidSplitError(f"A split needs at least 2 taxa, got n={n}")
        if bitmask & ~full:
            raise InvalidSplitError(
                f"Split side {bitmask_to_taxa(bitmask)} is not contained in taxa 1..{n}"
            )
        if bitmask & 2:
            bitmask = full ^ bitmask
        if bitmask == 0 or bitmask == full:
            raise InvalidSplitError(f"Split is not proper: one side is empty (n={n})")
        if not weight >= 0:
            raise ValueError(f"Split weight must be non-negative, got {weight}")

        self.n: int = n
        self.bitmask: int = bitmask
        self.weight: float = float(weight)
        self.confidence: Optional[float] = confidence
        self._cached_side: Optional[Tuple[int, ...]] = None

    # ------------------------------------------------------------------------
    # Sides
    # ------------------------------------------------------------------------

    @property
    def b(self) -> Tuple[int, ...]:
        """Side not containing taxon 1 (the canonical side)."""
        if self._cached_side is None:
            self._cached_side = bitmask_to_taxa(self.bitmask)
        return self._cached_side

    @property
    def a(self) -> Tuple[int, ...]:
        """Side containing taxon 1."""
        return bitmask_to_taxa(self.complement_bitmask)

    @property
    def complement_bitmask(self) -> int:
        return all_taxa_bitmask(self.n) ^ self.bitmask

    def contains(self, taxon: int) -> bool:
        """Is taxon on the canonical side (the side without taxon 1)?"""
        return bool(self.bitmask >> taxon & 1)

    def side_containing(self, taxon: int) -> Tuple[int, ...]:
        return self.b if self.contains(taxon) else self.a

    def part_not_containing(self, taxon: int) -> Tuple[int, ...]:
        return self.a if self.contains(taxon) else self.b

    def part_bitmask_not_containing(self, taxon: int) -> int:
        return self.complement_bitmask if self.contains(taxon) else self.bitmask

    def separates(self, i: int, j: int) -> bool:
        return self.contains(i) != self.contains(j)

    def size(self) -> int:
        """Cardinality of the smaller side."""
        k = bin(self.bitmask).count("1")
        return min(k, self.n - k)

    def is_trivial(self) -> bool:
        return self.size() == 1

    def is_compatible_with(self, other: "Split") -> bool:
        """
        Two splits A|B and C|D are compatible if at least one of
        A∩C, A∩D, B∩C, B∩D is empty.
        """
        if self.n != other.n:
            raise ValueError("Cannot compare splits on different taxon counts")
        a1, b1 = self.complement_bitmask, self.bitmask
        a2, b2 = other.complement_bitmask, other.bitmask
        return not (a1 & a2) or not (a1 & b2) or not (b1 & a2) or not (b1 & b2)

    def with_weight(self, weight: float) -> "Split":
        return Split(self.bitmask, self.n, weight, self.confidence)

    # ------------------------------------------------------------------------
    # Equality & hashing
    # ------------------------------------------------------------------------

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Split):
            return self.n == other.n and self.bitmask == other.bitmask
        return NotImplemented

    def __lt__(self, other: Any) -> bool:
        if isinstance(other, Split):
            return (self.n, self.b) < (other.n, other.b)
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.n, self.bitmask))

    def same_as(self, other: "Split", tolerance: float = 1e-6) -> bool:
        """Same partition and weight within tolerance."""
        return self == other and abs(self.weight - other.weight) <= tolerance

    def __iter__(self) -> Iterator[int]:
        return iter(self.b)

    def __len__(self) -> int:
        return len(self.b)

    # ------------------------------------------------------------------------
    # Representation
    # ------------------------------------------------------------------------

    def bipartition(self, labels: Optional[Sequence[str]] = None) -> str:
        """
        Return a string representation of the bipartition (A | B).
        labels[t - 1] is used as the name of taxon t when given.
        """

        def name(t: int) -> str:
            return labels[t - 1] if labels is not None else str(t)

        left = ", ".join(name(t) for t in self.a)
        right = ", ".join(name(t) for t in self.b)
        return f"{left} | {right}"

    def __str__(self) -> str:
        return self.bipartition()

    def __repr__(self) -> str:
        return f"Split({list(self.b)}, n={self.n}, weight={self.weight:g})"

    def __json__(self) -> List[int]:
        return list(self.b)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n": self.n,
            "side": list(self.b),
            "weight": self.weight,
            "confidence": self.confidence,
        }

    def copy(self) -> "Split":
        return Split(self.bitmask, self.n, self.weight, self.confidence)


def trivial_split(taxon: int, n: int, weight: float = 0.0) -> Split:
    return Split((taxon,), n, weight)
