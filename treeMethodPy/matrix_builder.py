from __future__ import annotations
from typing import Dict, List, Optional, TYPE_CHECKING
import warnings
import numpy as np
from .config import configure_parameters

if TYPE_CHECKING:
    from .model import TreeModel

# ==============================================================================
# 1. LABELS
# ==============================================================================

def default_feature_names(count: int) -> List[str]:
    """Generates feature labels P1..Pn."""
    return [f"{configure_parameters.FEATURE_NAME_PREFIX}{i}" for i in range(1, count + 1)]

def default_goal_names(count: int) -> List[str]:
    """Generates goal labels A1..An."""
    return [f"{configure_parameters.GOAL_NAME_PREFIX}{i}" for i in range(1, count + 1)]


# ==============================================================================
# 2. MATRIX CONSTRUCTION & RESIZING
# ==============================================================================

def resize_matrix(matrix: Optional[np.ndarray], rows: int, cols: int) -> np.ndarray:
    """
    Returns a rows x cols integer matrix keeping the overlapping values of
    `matrix` and filling the rest with zeros. A missing matrix becomes all zeros.
    """
    if rows < 0 or cols < 0:
        raise ValueError("Matrix dimensions must be non-negative.")
    resized = np.zeros((rows, cols), dtype=int)
    if matrix is not None:
        r = min(rows, matrix.shape[0])
        c = min(cols, matrix.shape[1])
        resized[:r, :c] = matrix[:r, :c]
    return resized


def create_empty_matrices(tree: TreeModel, feature_count: Optional[int] = None, goal_count: Optional[int] = None):
    """
    Sets zero EP and AP matrices sized for the tree, with all-ones goal weights
    and default feature/goal labels.
    """
    feature_count = feature_count or configure_parameters.DEFAULT_FEATURE_COUNT
    goal_count = goal_count or configure_parameters.DEFAULT_GOAL_COUNT
    rows = len(tree.non_root_nodes())

    tree.ep = np.zeros((rows, feature_count), dtype=int)
    tree.ap = np.zeros((goal_count, feature_count), dtype=int)
    tree.goal_weights = [1] * goal_count
    tree.feature_names = default_feature_names(feature_count)
    tree.goal_names = default_goal_names(goal_count)


def resize_tree_matrices(tree: TreeModel, feature_count: int, goal_count: int):
    """
    Resizes EP and AP in place of the tree, keeping existing values.

    EP gets one row per non-root node. Labels are kept when their count still
    matches, otherwise regenerated; goal weights keep their values and new
    goals get weight 1.
    """
    if feature_count <= 0 or goal_count <= 0:
        raise ValueError("Feature and goal counts must be positive.")

    rows = len(tree.non_root_nodes())
    tree.ep = resize_matrix(tree.ep, rows, feature_count)
    tree.ap = resize_matrix(tree.ap, goal_count, feature_count)

    weights = list(tree.goal_weights or [])[:goal_count]
    tree.goal_weights = weights + [1] * (goal_count - len(weights))

    if len(tree.feature_names) != feature_count:
        tree.feature_names = default_feature_names(feature_count)
    if len(tree.goal_names) != goal_count:
        tree.goal_names = default_goal_names(goal_count)


def create_ep_from_rows(
    tree: TreeModel,
    rows_by_name: Dict[str, List[int]],
    feature_names: Optional[List[str]] = None
) -> np.ndarray:
    """
    Builds an EP matrix from rows keyed by node name.

    Rows are placed in non-root node order; nodes without an entry get a zero
    row. Names that do not belong to a non-root node raise an error.

    Args:
        tree: The tree whose non-root nodes define the row order.
        rows_by_name: { 'node name': [value per feature] }.
        feature_names (optional): Feature labels; their count fixes the column count.

    Returns:
        The EP matrix (also stored on the tree).
    """
    non_root = tree.non_root_nodes()
    known = {node.name for node in non_root}
    unknown = [name for name in rows_by_name if name not in known]
    if unknown:
        raise ValueError(f"Unknown node name(s) for EP rows: {unknown}")

    if feature_names is not None:
        cols = len(feature_names)
    else:
        cols = max((len(values) for values in rows_by_name.values()), default=0)

    ep = np.zeros((len(non_root), cols), dtype=int)
    for i, node in enumerate(non_root):
        values = rows_by_name.get(node.name)
        if values is None:
            continue
        if len(values) > cols:
            raise ValueError(f"Row for '{node.name}' has {len(values)} values but only {cols} features are defined.")
        for j, value in enumerate(values):
            ep[i, j] = _check_value(value)

    tree.ep = ep
    if feature_names is not None:
        tree.feature_names = list(feature_names)
    return ep


# ==============================================================================
# 3. CELL EDITING
# ==============================================================================

def _check_value(value: int) -> int:
    low, high = configure_parameters.MATRIX_VALUE_MIN, configure_parameters.MATRIX_VALUE_MAX
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise TypeError(f"Matrix values must be integers, got {value!r}.")
    if not (low <= value <= high):
        raise ValueError(f"Matrix value {value} is outside the allowed range [{low}, {high}].")
    return int(value)


def is_valid_matrix_value(value) -> bool:
    """True if `value` is an integer (or integer string) within the configured range."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return False
    if isinstance(value, float) and not value.is_integer():
        return False
    return configure_parameters.MATRIX_VALUE_MIN <= parsed <= configure_parameters.MATRIX_VALUE_MAX


def set_matrix_value(matrix: np.ndarray, row: int, col: int, value: int) -> np.ndarray:
    """
    Writes a single cell of an EP/AP matrix after checking the value range.

    Raises:
        IndexError: If the cell lies outside the matrix.
        ValueError: If the value is outside the configured range.
    """
    if matrix is None:
        raise ValueError("Cannot edit a missing matrix; create or resize it first.")
    if not (0 <= row < matrix.shape[0] and 0 <= col < matrix.shape[1]):
        raise IndexError(f"Cell ({row},{col}) is outside a {matrix.shape[0]}x{matrix.shape[1]} matrix.")
    matrix[row, col] = _check_value(value)
    return matrix


def check_ep_alignment(tree: TreeModel) -> bool:
    """
    Warns when the EP row count no longer matches the number of non-root nodes.
    Returns True when they match (or EP is missing).
    """
    if tree.ep is None:
        return True
    expected = len(tree.non_root_nodes())
    if tree.ep.shape[0] != expected:
        warnings.warn(
            f"EP has {tree.ep.shape[0]} rows but the tree has {expected} non-root nodes. "
            "Nodes without a row do not contribute to scores.",
            UserWarning
        )
        return False
    return True
