"""
Split-Newick encoding of split systems.

A maximal set of compatible splits that are contiguous in a circular
ordering is written as an ordinary Newick tree whose branch lengths are the
split weights. Every other split k is written as markers around the runs of
leaves on its side: `<k|` before the first leaf of a run and `|k>` after its
last leaf; the final closing marker carries the weight and, if present, the
confidence: `|k:weight>` or `|k:weight:confidence>`.

Example (splits {2,3}, {3,4} and all trivial splits on 5 taxa):

    (1:0.1,(2:0.1,<1|3:0.1):0.5,4|1:0.2>:0.1,5:0.1);
"""

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple, Union

from splitarchitect.compatibility.classify import is_circular, is_compatible_with_all
from splitarchitect.elements.split import Split
from splitarchitect.elements.split_system import SplitSystem, normalize_cycle
from splitarchitect.exceptions import SplitNewickError
from splitarchitect.parser.newick_parser import parse_newick
from splitarchitect.tree import Node, format_number

logger = logging.getLogger(__name__)

_RESERVED = re.compile(r"[\s(),:;<>|\[\]']")


def default_labels(n: int) -> List[str]:
    return [str(t) for t in range(1, n + 1)]


def _check_labels(labels: Sequence[str], n: int) -> None:
    if len(labels) != n:
        raise SplitNewickError(f"Expected {n} labels, got {len(labels)}")
    if len(set(labels)) != n:
        raise SplitNewickError("Taxon labels must be unique")
    for label in labels:
        if not label or _RESERVED.search(label):
            raise SplitNewickError(f"Taxon label '{label}' contains reserved characters")


def _marker_suffix(split_id: int, split: Split, include_weights: bool) -> str:
    if not include_weights:
        return f"|{split_id}>"
    if split.confidence is None:
        return f"|{split_id}:{format_number(split.weight)}>"
    return (
        f"|{split_id}:{format_number(split.weight)}:{format_number(split.confidence)}>"
    )


def write_split_newick(
    splits: Union[SplitSystem, Sequence[Split]],
    n: Optional[int] = None,
    labels: Optional[Sequence[str]] = None,
    include_weights: bool = True,
    cycle: Optional[Sequence[int]] = None,
) -> str:
    """
    Encode splits in Split-Newick format.

    Args:
        splits: A SplitSystem or a list of splits (duplicates are written once)
        n: Number of taxa; taken from the SplitSystem if omitted
        labels: labels[t - 1] names taxon t; defaults to "1".."n"
        include_weights: Write weights and confidences
        cycle: Circular ordering used to lay out the leaves. Defaults to the
            system's cycle, or one found by the circular orderer. A good
            ordering gives fewer markers.

    Returns:
        The Split-Newick string, or "" for an empty split list.
    """
    if isinstance(splits, SplitSystem):
        n = splits.n if n is None else n
        cycle = cycle if cycle is not None else splits.cycle
        split_list = splits.as_set()
    else:
        split_list = list(SplitSystem(0, splits).as_set())
    if not split_list:
        return ""
    if n is None:
        n = split_list[0].n
    labels = list(labels) if labels is not None else default_labels(n)
    _check_labels(labels, n)

    if cycle is None:
        from splitarchitect.leaforder.circular_ordering import find_cycle

        cycle = find_cycle(split_list, n).cycle
    ordering = normalize_cycle(cycle)

    compatible: List[Split] = []
    additional: List[Split] = []
    for split in split_list:
        if (
            split.confidence is None
            and is_circular(split, ordering)
            and is_compatible_with_all(split, compatible)
        ):
            compatible.append(split)
        else:
            additional.append(split)

    tree = Node.from_compatible_splits(compatible, n, labels)
    tree.sort_children({taxon: rank for rank, taxon in enumerate(ordering)})
    leaf_order = tree.get_current_order()

    before: Dict[int, str] = {}
    after: Dict[int, str] = {}
    for split_id, split in enumerate(additional, start=1):
        side = split.part_bitmask_not_containing(leaf_order[0])
        remaining = bin(side).count("1")
        inside = False
        prev = 0
        for taxon in leaf_order:
            if side >> taxon & 1:
                if not inside:
                    inside = True
                    before[taxon] = before.get(taxon, "") + f"<{split_id}|"
                remaining -= 1
                if remaining == 0:
                    after[taxon] = after.get(taxon, "") + _marker_suffix(
                        split_id, split, include_weights
                    )
            elif inside:
                if remaining > 0:
                    after[prev] = after.get(prev, "") + f"|{split_id}>"
                inside = False
            prev = taxon

    logger.debug(
        f"Split-Newick: {len(compatible)} splits in tree, {len(additional)} as markers"
    )
    return tree.to_newick(lengths=include_weights, before=before, after=after)


def parse_split_newick(
    text: str, labels: Optional[Sequence[str]] = None
) -> Tuple[List[Split], List[str]]:
    """
    Decode a Split-Newick string.

    Args:
        text: The Split-Newick string
        labels: labels[t - 1] names taxon t. If omitted, labels "1".."n" are
            read as taxa 1..n; other labels are numbered in order of appearance.

    Returns:
        (splits, labels): tree-edge splits in pre-order followed by marker
        splits in order of their ids, and the labels used.

    Raises:
        SplitNewickError: on malformed input or unknown labels
    """
    if not text.strip():
        return [], list(labels) if labels is not None else []
    parsed = parse_newick(text)
    leaf_labels = parsed.leaf_labels
    if len(set(leaf_labels)) != len(leaf_labels):
        raise SplitNewickError("Duplicate leaf labels")

    if labels is None:
        n = len(leaf_labels)
        if sorted(leaf_labels) == sorted(default_labels(n)):
            labels = default_labels(n)
        else:
            labels = list(leaf_labels)
    else:
        labels = list(labels)
        if sorted(labels) != sorted(leaf_labels):
            raise SplitNewickError("Leaf labels do not match the given taxon labels")
    n = len(labels)
    taxon_of: Dict[str, int] = {label: t for t, label in enumerate(labels, start=1)}

    if n < 2:
        return [], labels

    for node in parsed.tree.traverse()[1:]:
        if node.is_leaf():
            if node.name not in taxon_of:
                raise SplitNewickError(f"Leaf without a known taxon label: '{node.name}'")
            node.taxon = taxon_of[node.name]
            node.taxa = 1 << node.taxon
        elif node.length is None:
            # Internal edges always carry a split
            node.length = 0.0
    splits = parsed.tree.to_splits(n)

    for split_id in sorted(parsed.marker_members):
        members = parsed.marker_members[split_id]
        weight, confidence = parsed.marker_values.get(split_id, (None, None))
        try:
            split = Split(
                [taxon_of[label] for label in members],
                n,
                weight if weight is not None else 0.0,
                confidence,
            )
        except ValueError as e:
            raise SplitNewickError(f"Split marker {split_id}: {e}") from e
        splits.append(split)
    return splits, labels
