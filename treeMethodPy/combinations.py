from __future__ import annotations
from typing import List, Dict, TYPE_CHECKING
from .types import NodeType
from .model import TreeStructureError

if TYPE_CHECKING:
    from .model import TreeModel, Node

Combination = List[int]


def generate_combinations(tree: TreeModel) -> List[Combination]:
    """
    Enumerates every way to realize the root of an AND/OR tree with leaves.

    Each combination is the list of leaf ids of one realization, in traversal
    order. The result is deterministic: it follows node children order and is
    never sorted. The tree is only read.

    - Leaf: exactly one combination, the leaf itself.
    - And: the Cartesian product of the children's combinations (one per child,
      concatenated). Children without any combination are skipped rather than
      emptying the product; an And node with no contributing child yields nothing
      (an empty list, never a single empty combination).
    - Or: the concatenation of the children's combinations.

    Children missing from `tree.nodes` contribute nothing. An empty tree yields [].

    Args:
        tree: The TreeModel to enumerate.

    Returns:
        A list of combinations (lists of leaf ids).
    """
    root = tree.find_root()
    if root is None:
        return []
    return _combinations_from(root, tree.nodes, set())


def theoretical_count(tree: TreeModel) -> int:
    """|RT|: the number of combinations produced by `generate_combinations`."""
    return len(generate_combinations(tree))


def _combinations_from(node: Node, nodes: Dict[int, Node], path: set) -> List[Combination]:
    """
    (Helper for generate_combinations)
    Recursively computes the combination list of a single node.
    """
    if node.node_type is NodeType.LEAF:
        return [[node.id]]

    if node.id in path:
        raise TreeStructureError(f"Cycle detected: node {node.id} is its own ancestor.")
    path.add(node.id)

    child_combos = []
    for child_id in node.children:
        child = nodes.get(child_id)
        if child is None:
            continue
        combos = _combinations_from(child, nodes, path)
        if combos:
            child_combos.append(combos)

    path.discard(node.id)

    if not child_combos:
        return []

    if node.node_type is NodeType.AND:
        result: List[Combination] = [[]]
        for combos in child_combos:
            result = [base + add for base in result for add in combos]
        return result

    # Or: pick exactly one child's realization per combination
    return [combo for combos in child_combos for combo in combos]
