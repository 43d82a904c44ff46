from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from splitarchitect.exceptions import SplitNewickError
from splitarchitect.tree import Node


@dataclass
class ParsedNewick:
    """Result of parsing a (Split-)Newick string."""

    tree: Node
    leaf_labels: List[str]
    """Leaf labels in order of appearance."""

    marker_members: Dict[int, List[str]] = field(default_factory=dict)
    """Leaf labels enclosed by each split marker id."""

    marker_values: Dict[int, Tuple[Optional[float], Optional[float]]] = field(
        default_factory=dict
    )
    """(weight, confidence) given on the closing marker of each id."""


# ===================================================================
# 1. BUFFER PROCESSING FUNCTIONS
# ===================================================================


def flush_character_buffer(
    buffer: List[str], stack: List[Node], open_ids: List[int], parsed: ParsedNewick
) -> None:
    """
    Assign the buffered label to the current node. Leaf labels are recorded
    in order and added to every currently open split marker.
    """
    if buffer and stack:
        label = "".join(buffer).strip()
        if label:
            node = stack[-1]
            node.name = label
            if node.is_leaf():
                parsed.leaf_labels.append(label)
                for split_id in open_ids:
                    parsed.marker_members[split_id].append(label)
    buffer.clear()


def parse_number(text: str, what: str) -> float:
    try:
        return float(text)
    except ValueError:
        raise SplitNewickError(f"Invalid {what} '{text}'") from None


def flush_length_buffer(buffer: List[str], stack: List[Node]) -> None:
    """Assign the buffered branch length to the current node."""
    buffer_value = "".join(buffer).strip()
    if stack and buffer_value:
        stack[-1].length = parse_number(buffer_value, "branch length")
    buffer.clear()


def flush_buffer(
    buffer: List[str],
    stack: List[Node],
    mode: str,
    open_ids: List[int],
    parsed: ParsedNewick,
) -> None:
    if mode == "character_reader":
        flush_character_buffer(buffer, stack, open_ids, parsed)
    elif mode == "length_reader":
        flush_length_buffer(buffer, stack)


# ===================================================================
# 2. SPLIT MARKERS
# ===================================================================


def read_open_marker(tokens: str, index: int) -> Tuple[int, int]:
    """Read `<k|` starting at the '<'; return (k, index after the '|')."""
    end = tokens.find("|", index)
    if end == -1:
        raise SplitNewickError(f"Unterminated split marker at position {index}")
    return _marker_id(tokens[index + 1 : end], index), end + 1


def read_close_marker(
    tokens: str, index: int
) -> Tuple[int, Optional[float], Optional[float], int]:
    """Read `|k>`, `|k:w>` or `|k:w:c>` starting at the '|'."""
    end = tokens.find(">", index)
    if end == -1:
        raise SplitNewickError(f"Unterminated split marker at position {index}")
    parts = tokens[index + 1 : end].split(":")
    if len(parts) > 3:
        raise SplitNewickError(f"Too many values in split marker at position {index}")
    split_id = _marker_id(parts[0], index)
    weight = parse_number(parts[1], "split weight") if len(parts) > 1 else None
    confidence = parse_number(parts[2], "split confidence") if len(parts) > 2 else None
    return split_id, weight, confidence, end + 1


def _marker_id(text: str, index: int) -> int:
    if not text.strip().isdigit():
        raise SplitNewickError(f"Invalid split marker id '{text}' at position {index}")
    return int(text)


# ===================================================================
# 3. CORE PARSING FUNCTION
# ===================================================================


def parse_newick(tokens: str) -> ParsedNewick:
    """
    Parse a single Newick tree, optionally carrying split markers
    (`<k|` before and `|k...>` after runs of leaves).

    Internal nodes are kept on the stack after ')' so that a following label
    or ':length' applies to them.
    """
    root = Node()
    parsed = ParsedNewick(tree=root, leaf_labels=[])
    stack: List[Node] = [root]
    buffer: List[str] = []
    open_ids: List[int] = []
    mode = "character_reader"
    depth = 0
    index = 0
    finished = False

    while index < len(tokens):
        char = tokens[index]

        if finished:
            if not char.isspace():
                raise SplitNewickError("Unexpected text after ';'")
        elif char.isspace():
            pass
        elif char == "(":
            if buffer:
                raise SplitNewickError(f"Unexpected '(' at position {index}")
            depth += 1
            node = Node()
            stack[-1].append_child(node)
            stack.append(node)
            mode = "character_reader"
        elif char == ")":
            flush_buffer(buffer, stack, mode, open_ids, parsed)
            depth -= 1
            if depth < 0:
                raise SplitNewickError(f"Unbalanced ')' at position {index}")
            stack.pop()
            mode = "character_reader"
        elif char == ",":
            flush_buffer(buffer, stack, mode, open_ids, parsed)
            if depth == 0:
                raise SplitNewickError(f"Unexpected ',' at position {index}")
            stack.pop()
            node = Node()
            stack[-1].append_child(node)
            stack.append(node)
            mode = "character_reader"
        elif char == ":":
            flush_buffer(buffer, stack, mode, open_ids, parsed)
            mode = "length_reader"
        elif char == "<":
            flush_buffer(buffer, stack, mode, open_ids, parsed)
            split_id, index = read_open_marker(tokens, index)
            open_ids.append(split_id)
            parsed.marker_members.setdefault(split_id, [])
            continue
        elif char == "|":
            flush_buffer(buffer, stack, mode, open_ids, parsed)
            split_id, weight, confidence, index = read_close_marker(tokens, index)
            if split_id not in open_ids:
                raise SplitNewickError(f"Split marker {split_id} closed but not opened")
            open_ids.remove(split_id)
            if weight is not None:
                parsed.marker_values[split_id] = (weight, confidence)
            mode = "character_reader"
            continue
        elif char == ";":
            flush_buffer(buffer, stack, mode, open_ids, parsed)
            finished = True
        else:
            buffer.append(char)
        index += 1

    if not finished:
        flush_buffer(buffer, stack, mode, open_ids, parsed)
    if depth != 0:
        raise SplitNewickError("Unbalanced parentheses")
    if open_ids:
        raise SplitNewickError(f"Split markers {open_ids} were never closed")
    return parsed
