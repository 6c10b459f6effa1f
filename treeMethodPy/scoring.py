from __future__ import annotations
import math
from fractions import Fraction
from typing import Callable, Dict, Iterable, List, Optional, Set, TYPE_CHECKING
import numpy as np
from .combinations import generate_combinations
from .config import configure_parameters
from .model import TreeStructureError
from .types import RationalSolution

if TYPE_CHECKING:
    from .model import TreeModel, Node


# ==============================================================================
# 1. REGISTRY FOR CUSTOMIZATION
# ==============================================================================

SCORING_METHODS: Dict[str, Dict] = {}

def register_scoring_method(name: str, integral: bool = False):
    """
    A decorator to register a per-node weighting function as a scoring mode.

    The decorated function receives an active Node and returns the factor its
    EP row is multiplied by before goal aggregation. Factors are accumulated
    exactly: ints and Fractions as they are, floats through
    `Fraction.limit_denominator`. With `integral=True` every factor must be a
    whole number (2.0 is accepted as 2); anything else raises ValueError.
    """
    def decorator(func: Callable) -> Callable:
        if name in SCORING_METHODS:
            print(f"Warning: Overwriting existing scoring method '{name}'")
        SCORING_METHODS[name] = {"function": func, "integral": integral}
        return func
    return decorator


@register_scoring_method("unweighted", integral=True)
def unweighted_node_weight(node: Node) -> int:
    """Every active node contributes its EP row as is."""
    return 1

@register_scoring_method("depth_weighted")
def depth_weighted_node_weight(node: Node) -> Fraction:
    """
    Deeper nodes contribute less: the EP row is scaled by 1 / (1 + level).
    Relies on `assign_levels` having been run after the last structural change.
    """
    return Fraction(1, 1 + node.level)


def get_scoring_method(mode: Optional[str] = None) -> Dict:
    """
    Resolves a scoring mode name (default from configuration) to its registry entry.

    Raises:
        ValueError: If the mode is not registered.
    """
    mode = mode or configure_parameters.DEFAULT_SCORING_MODE
    if mode not in SCORING_METHODS:
        raise ValueError(f"Unknown scoring mode '{mode}'. Available modes: {list(SCORING_METHODS.keys())}")
    return SCORING_METHODS[mode]


# ==============================================================================
# 2. ANCESTOR CLOSURE
# ==============================================================================

def row_index_map(tree: TreeModel) -> Dict[int, int]:
    """Maps each non-root node id to its EP row index, following node order."""
    return {node.id: i for i, node in enumerate(tree.non_root_nodes())}


def ancestor_closure(tree: TreeModel, leaf_ids: Iterable[int]) -> Set[int]:
    """
    Returns the leaf ids together with all of their ancestors, excluding the root.

    Raises:
        TreeStructureError: If an ancestor walk runs into a cycle.
    """
    root = tree.find_root()
    root_id = root.id if root is not None else None
    return _closure_without_root(list(leaf_ids), tree.parent_index(), root_id)


def _closure_without_root(leaf_ids: List[int], parents: Dict[int, int], root_id: Optional[int]) -> Set[int]:
    active = set(leaf_ids)
    for leaf_id in leaf_ids:
        current = leaf_id
        walked = {leaf_id}
        while True:
            parent_id = parents.get(current)
            if parent_id is None or parent_id == root_id:
                break
            if parent_id in walked:
                raise TreeStructureError(f"Cycle detected while walking up from node {leaf_id} (node {parent_id} repeats).")
            walked.add(parent_id)
            active.add(parent_id)
            current = parent_id
    return active


# ==============================================================================
# 3. SCORING
# ==============================================================================

def round_half_away_from_zero(value) -> int:
    """Rounds to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
    magnitude = int(math.floor(abs(value) + Fraction(1, 2)))
    return magnitude if value >= 0 else -magnitude


def _exact_weight(weight, integral: bool):
    """Converts a node weight to an int or Fraction so that sums are exact."""
    if integral:
        if weight != int(weight):
            raise ValueError(f"Scoring mode is registered as integral but returned the weight {weight!r}.")
        return int(weight)
    if isinstance(weight, float):
        return Fraction(weight).limit_denominator()
    return Fraction(weight)


def score_active_set(
    tree: TreeModel,
    active_ids: Iterable[int],
    row_index: Dict[int, int],
    mode: Optional[str] = None
) -> int:
    """
    Computes the weighted score of one set of active nodes.

    Per feature, the EP rows of the active nodes are summed (each scaled by the
    mode's node weight). Each goal's score is the dot product of those sums with
    its AP row, rounded half away from zero, then multiplied by the goal weight.
    Only the overlapping feature columns of EP and AP are used, nodes without a
    valid EP row are ignored, and goals beyond the weight vector are skipped.

    Returns:
        The integer score, or 0 if EP, AP or the goal weights are missing.
    """
    method = get_scoring_method(mode)
    ep, ap, goal_weights = tree.ep, tree.ap, tree.goal_weights
    if ep is None or ap is None or goal_weights is None:
        return 0

    ep_rows = ep.shape[0]
    features = min(ep.shape[1], ap.shape[1])
    node_weight = method["function"]

    # Object dtype keeps Python ints and Fractions, so ties like 3/2 stay exact
    feature_sums = np.zeros(features, dtype=object)
    for node_id in active_ids:
        row = row_index.get(node_id)
        if row is None or row >= ep_rows:
            continue
        weight = _exact_weight(node_weight(tree.nodes[node_id]), method["integral"])
        feature_sums += weight * ep[row, :features].astype(object)

    total = 0
    for g in range(ap.shape[0]):
        if g >= len(goal_weights):
            continue
        goal_score = sum(feature_sums[f] * int(ap[g, f]) for f in range(features))
        total += round_half_away_from_zero(goal_score) * goal_weights[g]
    return int(total)


def score_combinations(
    tree: TreeModel,
    combinations: List[List[int]],
    mode: Optional[str] = None
) -> List[RationalSolution]:
    """
    Turns leaf combinations into (unsorted) rational solutions.

    The closure of every combination is scored; the solution elements are the
    names of the combination's leaves in emission order.
    """
    get_scoring_method(mode)

    root = tree.find_root()
    root_id = root.id if root is not None else None
    parents = tree.parent_index()
    row_index = row_index_map(tree)

    solutions = []
    for combo in combinations:
        active = _closure_without_root(combo, parents, root_id)
        score = score_active_set(tree, active, row_index, mode)
        names = [tree.nodes[node_id].name for node_id in combo]
        solutions.append(RationalSolution(elements=names, score=score))
    return solutions


def rank_solutions(solutions: List[RationalSolution]) -> List[RationalSolution]:
    """Sorts solutions by descending score; ties keep their original order."""
    return sorted(solutions, key=lambda s: s.score, reverse=True)


def find_solutions(tree: TreeModel, mode: Optional[str] = None) -> List[RationalSolution]:
    """
    Enumerates, scores and ranks every realization of the tree.

    Args:
        tree: The TreeModel to analyse. It is only read.
        mode: 'depth_weighted' or 'unweighted' (or any registered mode).
              Defaults to `configure_parameters.DEFAULT_SCORING_MODE`.

    Returns:
        Rational solutions sorted best to worst.
    """
    return rank_solutions(score_combinations(tree, generate_combinations(tree), mode))
