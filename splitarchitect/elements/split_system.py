from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
)

from splitarchitect.elements.split import Split
from splitarchitect.exceptions import InvalidSplitError


class CompatibilityClass(Enum):
    COMPATIBLE = "compatible"
    CYCLIC = "cyclic"
    WEAKLY_COMPATIBLE = "weakly_compatible"
    INCOMPATIBLE = "incompatible"
    UNKNOWN = "unknown"


SplitSystemListener = Callable[["SplitSystem", str], None]


def normalize_cycle(cycle: Sequence[int]) -> Tuple[int, ...]:
    """
    Rotate a circular ordering so that taxon 1 comes first and orient it so
    that the taxon after 1 is smaller than the taxon before 1.
    """
    cycle = tuple(cycle)
    if not cycle:
        return cycle
    pos = cycle.index(1)
    rotated = cycle[pos:] + cycle[:pos]
    if len(rotated) > 2 and rotated[1] > rotated[-1]:
        rotated = (rotated[0],) + tuple(reversed(rotated[1:]))
    return rotated


def check_cycle(cycle: Sequence[int], n: int, what: str = "Cycle") -> Tuple[int, ...]:
    """Return `cycle` as a tuple; raise ValueError unless it is a permutation of 1..n."""
    cycle = tuple(cycle)
    if sorted(cycle) != list(range(1, n + 1)):
        raise ValueError(f"{what} {cycle} is not a permutation of taxa 1..{n}")
    return cycle


def verify_splits(splits: Iterable[Split], n: int) -> None:
    """Raise InvalidSplitError on duplicate partitions or splits over other taxon counts."""
    seen: set[int] = set()
    for split in splits:
        if split.n != n:
            raise InvalidSplitError(
                f"Split {split.bipartition()} is on {split.n} taxa, expected {n}"
            )
        if split.bitmask in seen:
            raise InvalidSplitError(f"Split {split.bipartition()} occurs multiple times")
        seen.add(split.bitmask)


class SplitSystem:
    """
    An ordered collection of splits on the taxa 1..n together with the
    annotations written by the later stages of the pipeline.

    Attributes:
        n: Number of taxa
        splits: Splits in insertion order (order is used for tie-breaking and display)
        cycle: Circular ordering of the taxa (1-based), set after classification
        compatibility: Strongest compatibility class known for the splits
        fit: Least squares fit against the input distances, in percent
    """

    __slots__ = (
        "n",
        "splits",
        "_cycle",
        "_compatibility",
        "_fit",
        "_listeners",
    )

    def __init__(
        self,
        n: int,
        splits: Optional[Iterable[Split]] = None,
        cycle: Optional[Sequence[int]] = None,
        compatibility: CompatibilityClass = CompatibilityClass.UNKNOWN,
        fit: Optional[float] = None,
    ) -> None:
        self.n = n
        self.splits: List[Split] = list(splits) if splits is not None else []
        self._cycle: Optional[Tuple[int, ...]] = None
        self._compatibility = compatibility
        self._fit = fit
        self._listeners: List[SplitSystemListener] = []
        if cycle is not None:
            self.set_cycle(cycle)

    # ------------------------------------------------------------------------
    # Annotations
    # ------------------------------------------------------------------------

    @property
    def cycle(self) -> Optional[Tuple[int, ...]]:
        return self._cycle

    def set_cycle(self, cycle: Optional[Sequence[int]], normalize: bool = True) -> None:
        if cycle is not None:
            check_cycle(cycle, self.n)
            cycle = normalize_cycle(cycle) if normalize else tuple(cycle)
        self._cycle = cycle
        self._notify("cycle")

    @property
    def compatibility(self) -> CompatibilityClass:
        return self._compatibility

    def set_compatibility(self, compatibility: CompatibilityClass) -> None:
        self._compatibility = compatibility
        self._notify("compatibility")

    @property
    def fit(self) -> Optional[float]:
        return self._fit

    def set_fit(self, fit: Optional[float]) -> None:
        self._fit = fit
        self._notify("fit")

    def subscribe(self, listener: SplitSystemListener) -> None:
        """Register a callback invoked as listener(system, field_name) on annotation changes."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: SplitSystemListener) -> None:
        self._listeners.remove(listener)

    def _notify(self, field_name: str) -> None:
        for listener in list(self._listeners):
            listener(self, field_name)

    # ------------------------------------------------------------------------
    # Collection behaviour
    # ------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.splits)

    def __iter__(self) -> Iterator[Split]:
        return iter(self.splits)

    def __getitem__(self, index: int) -> Split:
        return self.splits[index]

    def index_of(self, split: Split) -> int:
        """1-based index of the first split with the same partition, or -1."""
        for i, other in enumerate(self.splits, start=1):
            if other == split:
                return i
        return -1

    def as_set(self) -> List[Split]:
        """Splits deduplicated by partition; the first occurrence is kept."""
        bitmask_to_split: Dict[int, Split] = {}
        for split in self.splits:
            bitmask_to_split.setdefault(split.bitmask, split)
        return list(bitmask_to_split.values())

    def has_confidence_values(self) -> bool:
        return any(split.confidence is not None for split in self.splits)

    def total_weight(self) -> float:
        return sum(split.weight for split in self.splits)

    def sorted_by_decreasing_weight(self) -> List[Split]:
        # sorted() is stable, so equal weights keep insertion order
        return sorted(self.splits, key=lambda s: -s.weight)

    def copy(self) -> "SplitSystem":
        return SplitSystem(
            self.n,
            [split.copy() for split in self.splits],
            cycle=self._cycle,
            compatibility=self._compatibility,
            fit=self._fit,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n": self.n,
            "splits": [split.to_dict() for split in self.splits],
            "cycle": list(self._cycle) if self._cycle is not None else None,
            "compatibility": self._compatibility.value,
            "fit": self._fit,
        }

    def __repr__(self) -> str:
        return (
            f"SplitSystem(n={self.n}, splits={len(self.splits)}, "
            f"compatibility={self._compatibility.value}, fit={self._fit})"
        )
