"""
===================================================================
Tests for the Combinations Module
===================================================================

This script contains unit tests for the enumeration of AND/OR tree
realizations: the Cartesian product over And nodes, the concatenation over
Or nodes, and the handling of degenerate or malformed trees.
"""

import pytest

from treeMethodPy.combinations import generate_combinations, theoretical_count
from treeMethodPy.model import Node, TreeModel, TreeStructureError
from treeMethodPy.types import NodeType


# ==============================================================================
# 1. BASIC SHAPES
# ==============================================================================

def test_single_leaf_root(single_leaf_tree):
    """A tree that is one leaf has exactly one realization: the leaf itself."""
    assert generate_combinations(single_leaf_tree) == [[0]]
    assert theoretical_count(single_leaf_tree) == 1


def test_and_of_leaves_gives_one_combination(make_tree):
    tree = make_tree(
        Node(0, "Kit", NodeType.AND, children=[1, 2, 3]),
        Node(1, "Frame"), Node(2, "Wheel"), Node(3, "Seat"),
    )
    assert generate_combinations(tree) == [[1, 2, 3]]


def test_or_of_leaves_gives_one_combination_per_leaf(make_tree):
    tree = make_tree(
        Node(0, "Color", NodeType.OR, children=[1, 2, 3, 4]),
        Node(1, "Red"), Node(2, "Green"), Node(3, "Blue"), Node(4, "Black"),
    )
    assert generate_combinations(tree) == [[1], [2], [3], [4]]
    assert theoretical_count(tree) == 4


def test_and_of_two_ors(two_by_two_tree):
    """The product is taken in child order, the first child varying slowest."""
    combos = generate_combinations(two_by_two_tree)
    assert combos == [[3, 5], [3, 6], [4, 5], [4, 6]]
    assert theoretical_count(two_by_two_tree) == 4


def test_nested_or_and(make_tree):
    """Or(And(a, b), c) realizes either both a and b, or c alone."""
    tree = make_tree(
        Node(0, "Top", NodeType.OR, children=[1, 4]),
        Node(1, "Pair", NodeType.AND, children=[2, 3]),
        Node(2, "a"), Node(3, "b"), Node(4, "c"),
    )
    assert generate_combinations(tree) == [[2, 3], [4]]


def test_count_is_product_for_and_and_sum_for_or(make_tree):
    # And over Or(3 leaves) and Or(2 leaves) plus a single leaf: 3 * 2 * 1
    tree = make_tree(
        Node(0, "R", NodeType.AND, children=[1, 2, 3]),
        Node(1, "X", NodeType.OR, children=[4, 5, 6]),
        Node(2, "Y", NodeType.OR, children=[7, 8]),
        Node(3, "z"),
        Node(4, "x1"), Node(5, "x2"), Node(6, "x3"),
        Node(7, "y1"), Node(8, "y2"),
    )
    combos = generate_combinations(tree)
    assert len(combos) == 6
    assert all(combo[-1] == 3 for combo in combos)


# ==============================================================================
# 2. DEGENERATE AND MALFORMED TREES
# ==============================================================================

def test_empty_tree():
    tree = TreeModel()
    assert generate_combinations(tree) == []
    assert theoretical_count(tree) == 0


def test_and_without_children_yields_nothing(make_tree):
    tree = make_tree(Node(0, "Empty", NodeType.AND))
    assert generate_combinations(tree) == []


def test_or_without_children_yields_nothing(make_tree):
    tree = make_tree(Node(0, "Empty", NodeType.OR))
    assert theoretical_count(tree) == 0


def test_and_skips_child_without_combinations(make_tree):
    """An empty Or child does not empty the product, it is skipped."""
    tree = make_tree(
        Node(0, "R", NodeType.AND, children=[1, 2]),
        Node(1, "Nothing", NodeType.OR),
        Node(2, "Leaf"),
    )
    assert generate_combinations(tree) == [[2]]


def test_and_with_only_empty_children_yields_nothing(make_tree):
    tree = make_tree(
        Node(0, "R", NodeType.AND, children=[1, 2]),
        Node(1, "E1", NodeType.OR),
        Node(2, "E2", NodeType.AND),
    )
    assert generate_combinations(tree) == []


def test_missing_child_reference_is_skipped(make_tree):
    tree = make_tree(
        Node(0, "R", NodeType.OR, children=[1, 99]),
        Node(1, "Present"),
    )
    assert generate_combinations(tree) == [[1]]


def test_cycle_raises(make_tree):
    # Every node is referenced, so the first node is used as root.
    tree = make_tree(
        Node(0, "A", NodeType.AND, children=[1]),
        Node(1, "B", NodeType.OR, children=[0]),
    )
    with pytest.raises(TreeStructureError, match="Cycle"):
        generate_combinations(tree)


# ==============================================================================
# 3. DETERMINISM
# ==============================================================================

def test_generation_is_idempotent(two_by_two_tree):
    assert generate_combinations(two_by_two_tree) == generate_combinations(two_by_two_tree)


def test_generation_does_not_modify_tree(two_by_two_tree):
    before = two_by_two_tree.to_dict()
    generate_combinations(two_by_two_tree)
    assert two_by_two_tree.to_dict() == before


def test_leaf_type_decides_leafness_not_children(make_tree):
    """A Leaf-typed node is a realization even if its children list is polluted."""
    tree = make_tree(
        Node(0, "R", NodeType.OR, children=[1]),
        Node(1, "Odd", NodeType.LEAF, children=[2]),
        Node(2, "Hidden"),
    )
    assert generate_combinations(tree) == [[1]]
