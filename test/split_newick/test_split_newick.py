import pytest
from hypothesis import given, settings, strategies as st

from splitarchitect.elements.split import Split, trivial_split
from splitarchitect.elements.split_system import SplitSystem
from splitarchitect.exceptions import SplitNewickError
from splitarchitect.leaforder.circular_ordering import identity_cycle
from splitarchitect.parser import parse_newick, parse_split_newick, write_split_newick


def as_weights(splits):
    return {split.b: split.weight for split in splits}


# =============================================================================
# Writing
# =============================================================================


def test_write_tree(quartet_tree_splits):
    assert write_split_newick(quartet_tree_splits, 4) == "(1:1,2:1,(3:1,4:1):1);"


def test_write_with_labels(quartet_tree_splits):
    text = write_split_newick(quartet_tree_splits, 4, labels=["A", "B", "C", "D"])
    assert text == "(A:1,B:1,(C:1,D:1):1);"


def test_write_without_weights(quartet_tree_splits):
    assert (
        write_split_newick(quartet_tree_splits, 4, include_weights=False)
        == "(1,2,(3,4));"
    )


def test_write_marker_split():
    n = 5
    splits = [Split({2, 3}, n, 0.5), Split({3, 4}, n, 0.2)]
    splits += [trivial_split(t, n, 0.1) for t in range(1, n + 1)]

    text = write_split_newick(splits, n, cycle=identity_cycle(n))

    assert text == "(1:0.1,(2:0.1,<1|3:0.1):0.5,4|1:0.2>:0.1,5:0.1);"


def test_write_marker_with_confidence_and_runs():
    n = 4
    splits = [Split({2, 4}, n, 0.5, confidence=95.0)]
    text = write_split_newick(splits, n, cycle=identity_cycle(n))
    assert text == "(1,<1|2|1>,3,<1|4|1:0.5:95>);"


def test_write_uses_system_cycle():
    n = 4
    system = SplitSystem(n, [Split({2, 4}, n, 1.0)], cycle=(1, 2, 4, 3))
    assert write_split_newick(system) == "(1,(2,4):1,3);"


def test_write_empty():
    assert write_split_newick([], 4) == ""
    assert write_split_newick(SplitSystem(3)) == ""


def test_write_rejects_bad_labels(quartet_tree_splits):
    with pytest.raises(SplitNewickError):
        write_split_newick(quartet_tree_splits, 4, labels=["A", "B", "C"])
    with pytest.raises(SplitNewickError):
        write_split_newick(quartet_tree_splits, 4, labels=["A", "B", "C", "C"])
    with pytest.raises(SplitNewickError):
        write_split_newick(quartet_tree_splits, 4, labels=["A", "B", "C", "D E"])
    with pytest.raises(SplitNewickError):
        write_split_newick(quartet_tree_splits, 4, labels=["A", "B", "C", "D|"])


# =============================================================================
# Parsing
# =============================================================================


def test_parse_newick_structure():
    parsed = parse_newick("((A:1,B:2)x:0.5,C);")
    assert parsed.leaf_labels == ["A", "B", "C"]
    inner = parsed.tree.children[0]
    assert inner.name == "x"
    assert inner.length == 0.5
    assert [leaf.length for leaf in inner.children] == [1.0, 2.0]
    assert parsed.tree.children[1].length is None


def test_parse_tree(quartet_tree_splits):
    splits, labels = parse_split_newick("(1:1,2:1,(3:1,4:1):1);")
    assert labels == ["1", "2", "3", "4"]
    assert as_weights(splits) == as_weights(quartet_tree_splits)


def test_parse_labels_in_order_of_appearance():
    splits, labels = parse_split_newick("(B:1,A:2,(C:1,D:1):3);")
    assert labels == ["B", "A", "C", "D"]
    assert as_weights(splits)[(3, 4)] == 3.0
    assert as_weights(splits)[(2,)] == 2.0


def test_parse_with_given_labels():
    splits, labels = parse_split_newick(
        "(B:1,A:2,(C:1,D:1):3);", labels=["A", "B", "C", "D"]
    )
    assert labels == ["A", "B", "C", "D"]
    # Taxon 1 is A
    assert as_weights(splits)[(2, 3, 4)] == 2.0
    with pytest.raises(SplitNewickError):
        parse_split_newick("(B,A,C);", labels=["A", "B", "X"])


def test_parse_markers():
    splits, _ = parse_split_newick("(1,<1|2|1>,3,<1|4|1:0.5:90>);")
    assert len(splits) == 1
    assert splits[0] == Split({2, 4}, 4)
    assert splits[0].weight == 0.5
    assert splits[0].confidence == 90.0


def test_leaf_edges_without_length_give_no_split():
    splits, _ = parse_split_newick("(1,2,(3,4));")
    # Internal edges always carry a split
    assert as_weights(splits) == {(3, 4): 0.0}


def test_parse_merges_edges_at_bifurcating_root():
    splits, _ = parse_split_newick("((1:1,2:1):0.5,(3:1,4:1):0.25);")
    assert as_weights(splits)[(3, 4)] == pytest.approx(0.75)


def test_parse_empty():
    assert parse_split_newick("") == ([], [])


@pytest.mark.parametrize(
    "text",
    [
        "((1,2);",
        "(1,2));",
        "(1,<1|2,3);",
        "(1,2|1>,3);",
        "(1,2,3); (1,2);",
        "(1:abc,2,3);",
        "(1,1,2);",
        "(1,<x|2|x>,3);",
        "(1,<1|2|1:0.5:1:2:3>,3);",
        "(1,(),3);",
        "(<1|1,2,3,4|1>);",
    ],
)
def test_malformed_input(text):
    with pytest.raises(SplitNewickError):
        parse_split_newick(text)


def test_split_newick_error_is_value_error():
    with pytest.raises(ValueError):
        parse_split_newick("((1,2);")


# =============================================================================
# Round trip
# =============================================================================


def test_round_trip_with_markers():
    n = 6
    splits = [
        Split({2, 3}, n, 0.5),
        Split({3, 4}, n, 0.25),
        Split({2, 5}, n, 0.125, confidence=70.0),
    ] + [trivial_split(t, n, 1.0) for t in range(1, n + 1)]

    text = write_split_newick(splits, n)
    parsed, labels = parse_split_newick(text)

    assert labels == [str(t) for t in range(1, n + 1)]
    assert as_weights(parsed) == as_weights(splits)
    confidence = {s.b: s.confidence for s in parsed}
    assert confidence[(2, 5)] == 70.0


@st.composite
def split_systems(draw):
    n = draw(st.integers(min_value=2, max_value=20))
    sides = draw(
        st.sets(
            st.frozensets(
                st.integers(min_value=2, max_value=n), min_size=1, max_size=n - 1
            ),
            max_size=30,
        )
    )
    weights = st.integers(min_value=0, max_value=10**6).map(lambda w: w / 1000)
    confidences = st.none() | st.integers(min_value=0, max_value=100).map(float)
    splits = [
        Split(sorted(side), n, draw(weights), confidence=draw(confidences))
        for side in sides
    ]
    return n, splits


def assert_same_splits(parsed, splits):
    expected = {s.b: s for s in splits}
    actual = {s.b: s for s in parsed}
    assert set(actual) == set(expected)
    for side, split in expected.items():
        assert actual[side].weight == pytest.approx(split.weight, abs=1e-6)
        assert actual[side].confidence == split.confidence


@given(split_systems())
@settings(max_examples=100, deadline=None)
def test_round_trip_preserves_splits(data):
    n, splits = data
    text = write_split_newick(splits, n, cycle=identity_cycle(n))
    parsed, labels = parse_split_newick(text, labels=[str(t) for t in range(1, n + 1)])
    assert_same_splits(parsed, splits)


@given(split_systems())
@settings(max_examples=15, deadline=None)
def test_round_trip_with_searched_cycle(data):
    n, splits = data
    text = write_split_newick(splits, n)
    parsed, labels = parse_split_newick(text, labels=[str(t) for t in range(1, n + 1)])
    assert_same_splits(parsed, splits)
