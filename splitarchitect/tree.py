from __future__ import annotations
from typing import Optional, Any, Dict, List, Sequence, Tuple

try:
    from typing import Self
except ImportError:
    from typing_extensions import Self

from splitarchitect.elements.split import Split, all_taxa_bitmask, bitmask_to_taxa


class Node:
    """
    Tree node used to represent a compatible split system.

    Each non-root node stands for the split separating its leaves from the
    rest; `length` is that split's weight, or None if the edge carries no split.
    """

    __slots__ = (
        "children",
        "parent",
        "name",
        "length",
        "taxon",
        "taxa",
    )

    children: List[Self]
    parent: Optional[Self]
    name: str
    length: Optional[float]
    taxon: Optional[int]
    taxa: int

    def __init__(
        self,
        children: Optional[List[Self]] = None,
        name: str = "",
        length: Optional[float] = None,
        taxon: Optional[int] = None,
    ):
        self.children = list(children) if children is not None else []
        for child in self.children:
            child.parent = self
        self.parent = None
        self.name = name
        self.length = length
        self.taxon = taxon
        # Bitmask of the taxa below this node, filled by update_taxa()
        self.taxa = 1 << taxon if taxon is not None else 0

    @property
    def leaves(self) -> List[Self]:
        if not self.children:
            return [self]
        result: List[Self] = []
        for child in self.children:
            result.extend(child.leaves)
        return result

    def append_child(self, node: Self) -> None:
        node.parent = self
        self.children.append(node)

    def is_leaf(self) -> bool:
        return len(self.children) == 0

    def is_internal(self) -> bool:
        return bool(self.children)

    def traverse(self) -> List[Self]:
        """Nodes in pre-order."""
        result: List[Self] = [self]
        for child in self.children:
            result.extend(child.traverse())
        return result

    def get_current_order(self) -> Tuple[int, ...]:
        """Taxa of the leaves, left to right."""
        return tuple(leaf.taxon for leaf in self.leaves if leaf.taxon is not None)

    def update_taxa(self) -> int:
        if self.children:
            self.taxa = 0
            for child in self.children:
                self.taxa |= child.update_taxa()
        return self.taxa

    def sort_children(self, rank: Dict[int, int]) -> None:
        """Order children, recursively, by the smallest rank of a taxon below them."""

        def key(node: "Node") -> int:
            return min(rank[t] for t in bitmask_to_taxa(node.taxa))

        for node in self.traverse():
            node.children.sort(key=key)

    # ------------------------------------------------------------------------
    # Splits
    # ------------------------------------------------------------------------

    @classmethod
    def from_compatible_splits(
        cls,
        splits: Sequence[Split],
        n: int,
        labels: Optional[Sequence[str]] = None,
    ) -> "Node":
        """
        Build the tree of a set of pairwise compatible splits on taxa 1..n.

        The tree is rooted at the node adjacent to taxon 1, so every split is
        represented by the subtree holding its side without taxon 1. Leaves
        without a trivial split get length None.
        """
        full = all_taxa_bitmask(n)
        trivial_of_first = full ^ (1 << 1)

        leaves: Dict[int, Node] = {
            t: cls(name=labels[t - 1] if labels else str(t), taxon=t)
            for t in range(1, n + 1)
        }
        clusters: Dict[int, Split] = {}
        for split in splits:
            if split.bitmask == trivial_of_first:
                leaves[1].length = split.weight
            elif split.b and len(split.b) == 1:
                leaves[split.b[0]].length = split.weight
            else:
                clusters.setdefault(split.bitmask, split)

        root = cls()
        root.taxa = full
        placed: List[Node] = [root]
        # Larger clusters first, so each cluster's parent is already placed
        for bitmask in sorted(clusters, key=lambda m: -bin(m).count("1")):
            node = cls(length=clusters[bitmask].weight)
            node.taxa = bitmask
            parent = min(
                (p for p in placed if p.taxa & bitmask == bitmask),
                key=lambda p: bin(p.taxa).count("1"),
            )
            parent.append_child(node)
            placed.append(node)

        for t, leaf in leaves.items():
            bit = 1 << t
            parent = min(
                (p for p in placed if p.taxa & bit),
                key=lambda p: bin(p.taxa).count("1"),
            )
            parent.append_child(leaf)

        root.sort_children({t: t for t in range(1, n + 1)})
        return root

    def to_splits(self, n: int) -> List[Split]:
        """
        One split per edge with a length, in pre-order. Edges that induce the
        same bipartition (the two edges at a bifurcating root) are merged by
        adding their lengths.
        """
        self.update_taxa()
        full = all_taxa_bitmask(n)
        merged: Dict[int, Split] = {}
        for node in self.traverse()[1:]:
            if node.length is None or node.taxa in (0, full):
                continue
            split = Split(node.taxa, n, node.length)
            if split.bitmask in merged:
                previous = merged[split.bitmask]
                merged[split.bitmask] = previous.with_weight(previous.weight + split.weight)
            else:
                merged[split.bitmask] = split
        return list(merged.values())

    # ------------------------------------------------------------------------
    # Newick
    # ------------------------------------------------------------------------

    def to_newick(
        self,
        lengths: bool = True,
        before: Optional[Dict[int, str]] = None,
        after: Optional[Dict[int, str]] = None,
    ) -> str:
        """
        Newick string of the tree. `before` and `after` map taxa to text
        placed directly around that leaf's label.
        """
        return self._to_newick(lengths, before or {}, after or {}) + ";"

    def _to_newick(
        self, lengths: bool, before: Dict[int, str], after: Dict[int, str]
    ) -> str:
        length_str = ""
        if lengths and self.length is not None:
            length_str = ":" + format_number(self.length)
        if self.children:
            child_str = ",".join(
                ch._to_newick(lengths, before, after) for ch in self.children
            )
            return f"({child_str}){self.name}{length_str}"
        prefix = before.get(self.taxon, "") if self.taxon is not None else ""
        suffix = after.get(self.taxon, "") if self.taxon is not None else ""
        return f"{prefix}{self.name}{suffix}{length_str}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "length": self.length,
            "taxa": list(bitmask_to_taxa(self.taxa)),
            "children": [child.to_dict() for child in self.children],
        }

    def __repr__(self) -> str:
        return f"Node('{self.name}')"


def format_number(value: float) -> str:
    """Up to 8 decimals, trailing zeros removed."""
    text = f"{value:.8f}".rstrip("0").rstrip(".")
    return text if text not in ("", "-0") else "0"
