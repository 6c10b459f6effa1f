from __future__ import annotations
import numpy as np
import json
import copy
from typing import Dict, List, Optional, Any, Iterable, Union
from .config import configure_parameters
from .types import NodeType

try:
    import pandas as pd
    _PANDAS_AVAILABLE = True
except ImportError:
    _PANDAS_AVAILABLE = False

def _check_pandas_availability():
    """Helper function to raise an error if pandas is not installed."""
    if not _PANDAS_AVAILABLE:
        raise ImportError("Table export functionality requires the 'pandas' library. "
                        "Please install it using: pip install pandas")


class TreeStructureError(RuntimeError):
    """Raised when the tree is not a strict, acyclic, single-parent tree."""


MatrixLike = Union[np.ndarray, List[List[int]], None]


def _as_int_matrix(matrix: MatrixLike, label: str) -> Optional[np.ndarray]:
    """Converts a nested list or array to a 2D integer array. Empty input becomes None."""
    if matrix is None:
        return None
    arr = np.asarray(matrix)
    if arr.size == 0 and arr.ndim < 2:
        return None
    if arr.ndim != 2:
        raise ValueError(f"{label} must be a 2D matrix, got an array with {arr.ndim} dimension(s).")
    if arr.dtype.kind not in "biu":
        if arr.dtype.kind == "f" and np.all(np.equal(np.mod(arr, 1), 0)):
            return arr.astype(int)
        raise TypeError(f"{label} must contain integers only.")
    return arr.astype(int)


def _matrix_from_rows(rows: Optional[List[List[int]]]) -> Optional[np.ndarray]:
    """
    Rebuilds a matrix from possibly ragged stored rows, padding short rows with zeros.
    """
    if not rows:
        return None
    cols = max(len(row or []) for row in rows)
    if cols == 0:
        cols = 1
    matrix = np.zeros((len(rows), cols), dtype=int)
    for i, row in enumerate(rows):
        for j, value in enumerate(row or []):
            matrix[i, j] = int(value)
    return matrix


def _matrix_to_rows(matrix: Optional[np.ndarray]) -> List[List[int]]:
    if matrix is None:
        return []
    return [[int(v) for v in row] for row in matrix]


class Node:
    """
    Represents a single node of an AND/OR decomposition tree.

    Nodes reference their children by id only; the parent of a node is derived
    from the owning TreeModel rather than stored on the node.
    """
    def __init__(
        self,
        node_id: int,
        name: str,
        node_type: Union[NodeType, str, int] = NodeType.LEAF,
        children: Optional[Iterable[int]] = None,
        level: int = 0,
        is_level_manual: bool = False
    ):
        if isinstance(node_id, bool) or not isinstance(node_id, (int, np.integer)) or node_id < 0:
            raise ValueError(f"Node id must be a non-negative integer, got {node_id!r}.")
        if not name:
            raise ValueError("Node name cannot be empty.")
        if level < 0:
            raise ValueError("Level must be a non-negative integer.")
        self.id = int(node_id)
        self.name = name
        self.node_type = NodeType.parse(node_type)
        self.children: List[int] = [int(c) for c in children] if children else []
        self.level = int(level)
        self.is_level_manual = bool(is_level_manual)

    def __repr__(self) -> str:
        return (f"Node(id={self.id}, name='{self.name}', type={self.node_type.value}, "
                f"children={self.children}, level={self.level})")

    @property
    def is_leaf(self) -> bool:
        """A node is a leaf by type, independently of its children list."""
        return self.node_type is NodeType.LEAF

    def to_dict(self) -> Dict[str, Any]:
        """Serializes the Node to a JSON-compatible dictionary (project file layout)."""
        return {
            "Id": self.id,
            "Name": self.name,
            "Type": self.node_type.to_json_code(),
            "Children": list(self.children),
            "Level": self.level,
            "IsLevelManual": self.is_level_manual
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Node':
        """Creates a Node from a project file dictionary."""
        return cls(
            node_id=data['Id'],
            name=data['Name'],
            node_type=NodeType.from_json_code(data.get('Type', 2)),
            children=data.get('Children') or [],
            level=data.get('Level', 0),
            is_level_manual=data.get('IsLevelManual', False)
        )


class TreeModel:
    """
    The decomposition tree together with its scoring data.

    Holds the nodes (keyed by id, in insertion order), the element x feature
    matrix `ep` (one row per non-root node, in node order), the goal x feature
    matrix `ap`, the per-goal integer `goal_weights` and the feature/goal labels.
    """
    def __init__(
        self,
        nodes: Optional[Iterable[Node]] = None,
        ep: MatrixLike = None,
        ap: MatrixLike = None,
        goal_weights: Optional[Iterable[int]] = None,
        feature_names: Optional[List[str]] = None,
        goal_names: Optional[List[str]] = None
    ):
        self.nodes: Dict[int, Node] = {}
        for node in nodes or []:
            if node.id in self.nodes:
                raise ValueError(f"Duplicate node id {node.id}.")
            self.nodes[node.id] = node
        self.ep: Optional[np.ndarray] = _as_int_matrix(ep, "EP")
        self.ap: Optional[np.ndarray] = _as_int_matrix(ap, "AP")
        self.goal_weights: Optional[List[int]] = [int(w) for w in goal_weights] if goal_weights is not None else None
        self.feature_names: List[str] = list(feature_names) if feature_names else []
        self.goal_names: List[str] = list(goal_names) if goal_names else []

    def __repr__(self) -> str:
        ep_shape = self.ep.shape if self.ep is not None else None
        ap_shape = self.ap.shape if self.ap is not None else None
        return f"TreeModel(nodes={len(self.nodes)}, ep={ep_shape}, ap={ap_shape}, goal_weights={self.goal_weights})"

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: int) -> bool:
        return node_id in self.nodes

    # --------------------------------------------------------------------------
    # Queries
    # --------------------------------------------------------------------------

    def get_node(self, node_id: int) -> Node:
        """
        Retrieves a node by its id.

        Raises:
            ValueError: If no node with the given id exists.
        """
        node = self.nodes.get(node_id)
        if node is None:
            raise ValueError(f"Node {node_id} not found in the tree.")
        return node

    def find_root(self) -> Optional[Node]:
        """
        Returns the node that appears in no children list. Falls back to the
        first node when every node is referenced, and to None for an empty tree.
        """
        if not self.nodes:
            return None
        referenced = {child_id for node in self.nodes.values() for child_id in node.children}
        for node in self.nodes.values():
            if node.id not in referenced:
                return node
        return next(iter(self.nodes.values()))

    def parent_index(self) -> Dict[int, int]:
        """
        Maps every referenced child id to its parent id. When a node is listed
        by several parents, the first one in node order wins.
        """
        parents: Dict[int, int] = {}
        for node in self.nodes.values():
            for child_id in node.children:
                parents.setdefault(child_id, node.id)
        return parents

    def parent_of(self, node_id: int) -> Optional[Node]:
        """Returns the parent node, or None for the root or a detached node."""
        for node in self.nodes.values():
            if node_id in node.children:
                return node
        return None

    def non_root_nodes(self) -> List[Node]:
        """The nodes backing the EP rows: every node except the root, in node order."""
        root = self.find_root()
        return [node for node in self.nodes.values() if root is None or node.id != root.id]

    def leaf_nodes(self) -> List[Node]:
        return [node for node in self.nodes.values() if node.is_leaf]

    def descendants_of(self, node_id: int) -> List[int]:
        """Ids of all nodes below `node_id` (excluding it), depth-first. Dangling ids are skipped."""
        result: List[int] = []
        seen = {node_id}

        def _collect(current_id: int):
            node = self.nodes.get(current_id)
            if node is None:
                return
            for child_id in node.children:
                if child_id in seen or child_id not in self.nodes:
                    continue
                seen.add(child_id)
                result.append(child_id)
                _collect(child_id)

        _collect(node_id)
        return result

    def snapshot(self) -> 'TreeModel':
        """
        Returns an independent deep copy of the model, suitable for handing to
        the core on another thread while the original keeps being edited.
        """
        return copy.deepcopy(self)

    # --------------------------------------------------------------------------
    # Tree editing
    # --------------------------------------------------------------------------

    def add_node(
        self,
        name: str,
        node_type: Union[NodeType, str, int] = NodeType.LEAF,
        parent_id: Optional[int] = None,
        node_id: Optional[int] = None
    ) -> Node:
        """
        Creates a node and appends it to the children of `parent_id`.

        The first node of an empty tree becomes the root and needs no parent.
        New ids are `max(existing ids) + 1` unless `node_id` is given. When an
        EP matrix aligned with the non-root nodes exists, a zero row is appended
        for the new node so that row order keeps following node order.

        Raises:
            ValueError: On a duplicate id, a missing or unknown parent, or a leaf parent.
        """
        if node_id is None:
            node_id = max(self.nodes) + 1 if self.nodes else 0
        if node_id in self.nodes:
            raise ValueError(f"Node id {node_id} already exists in the tree.")

        parent = None
        if parent_id is None:
            if self.nodes:
                raise ValueError("A parent_id is required once the tree has a root.")
        else:
            parent = self.get_node(parent_id)
            if parent.is_leaf:
                raise ValueError(f"Cannot add a child to leaf node '{parent.name}' ({parent.id}).")

        new_node = Node(node_id, name, node_type)
        ep_aligned = self.ep is not None and self.ep.shape[0] == len(self.non_root_nodes())

        self.nodes[new_node.id] = new_node
        if parent is not None:
            parent.children.append(new_node.id)
            if ep_aligned:
                self.ep = np.vstack([self.ep, np.zeros((1, self.ep.shape[1]), dtype=int)])
        return new_node

    def remove_node(self, node_id: int):
        """
        Removes a node together with all of its descendants, strips every
        reference to them from the remaining children lists and drops their EP rows
        when EP is aligned with the non-root nodes. A misaligned EP is left alone.

        Raises:
            ValueError: If the node is unknown or is the root.
        """
        self.get_node(node_id)
        root = self.find_root()
        if root is not None and root.id == node_id:
            raise ValueError("Cannot remove the root node.")

        to_delete = {node_id, *self.descendants_of(node_id)}

        non_root = self.non_root_nodes()
        if self.ep is not None and self.ep.shape[0] == len(non_root):
            rows = [i for i, node in enumerate(non_root) if node.id in to_delete]
            if rows:
                self.ep = np.delete(self.ep, rows, axis=0)

        for node in self.nodes.values():
            node.children = [c for c in node.children if c not in to_delete]
        for deleted_id in to_delete:
            self.nodes.pop(deleted_id, None)

    def rename_node(self, node_id: int, name: str):
        if not name:
            raise ValueError("Node name cannot be empty.")
        self.get_node(node_id).name = name

    def set_node_type(self, node_id: int, node_type: Union[NodeType, str, int]):
        """
        Changes the logical type of a node.

        Raises:
            ValueError: When turning a node that still has children into a leaf.
        """
        node = self.get_node(node_id)
        new_type = NodeType.parse(node_type)
        if new_type is NodeType.LEAF and node.children:
            raise ValueError(f"Node '{node.name}' ({node.id}) has children and cannot become a leaf.")
        node.node_type = new_type

    def add_edge(self, parent_id: int, child_id: int):
        """
        Makes `child_id` a child of `parent_id`. Adding an existing edge is a no-op.

        Raises:
            ValueError: If either node is unknown or the parent is a leaf.
            TreeStructureError: If the child already has a parent or the edge would close a cycle.
        """
        parent = self.get_node(parent_id)
        self.get_node(child_id)
        if child_id in parent.children:
            return
        if parent.is_leaf:
            raise ValueError(f"Cannot add a child to leaf node '{parent.name}' ({parent.id}).")
        existing = self.parent_of(child_id)
        if existing is not None:
            raise TreeStructureError(f"Node {child_id} already has parent {existing.id}; shared sub-nodes are not supported.")
        if parent_id == child_id or parent_id in self.descendants_of(child_id):
            raise TreeStructureError(f"Edge {parent_id} -> {child_id} would create a cycle.")
        parent.children.append(child_id)

    def remove_edge(self, parent_id: int, child_id: int):
        parent = self.get_node(parent_id)
        if child_id not in parent.children:
            raise ValueError(f"Node {child_id} is not a child of node {parent_id}.")
        parent.children.remove(child_id)

    def set_level(self, node_id: int, level: int, manual: bool = True):
        """
        Stores a level for a node. With `manual=True` the level survives
        `assign_levels` and becomes the base level of the node's subtree.
        """
        if level < 0:
            raise ValueError("Level must be a non-negative integer.")
        node = self.get_node(node_id)
        node.level = int(level)
        node.is_level_manual = manual

    def reset_manual_levels(self):
        """Clears every manual flag so the next `assign_levels` recomputes all levels."""
        for node in self.nodes.values():
            node.is_level_manual = False

    def assign_levels(self):
        """Recomputes node levels from the root. See `treeMethodPy.model.assign_levels`."""
        assign_levels(self)

    def clear(self, root_name: Optional[str] = None, root_type: Union[NodeType, str, int] = NodeType.AND):
        """Replaces the whole tree by a single root node with id 0. The EP matrix is dropped."""
        root = Node(0, root_name or configure_parameters.DEFAULT_ROOT_NAME, root_type)
        self.nodes = {root.id: root}
        self.ep = None

    # --------------------------------------------------------------------------
    # Matrices
    # --------------------------------------------------------------------------

    def set_matrices(self, ep: MatrixLike, ap: MatrixLike, goal_weights: Optional[Iterable[int]] = None):
        """
        Sets both scoring matrices. Without explicit goal weights every goal
        (AP row) gets weight 1.
        """
        self.ep = _as_int_matrix(ep, "EP")
        self.ap = _as_int_matrix(ap, "AP")
        if goal_weights is not None:
            self.set_goal_weights(goal_weights)
        elif self.ap is not None:
            self.goal_weights = [1] * self.ap.shape[0]
        else:
            self.goal_weights = None

    def set_goal_weights(self, goal_weights: Optional[Iterable[int]]):
        if goal_weights is None:
            self.goal_weights = None
            return
        weights = [int(w) for w in goal_weights]
        if self.ap is not None and len(weights) != self.ap.shape[0]:
            raise ValueError(f"Expected {self.ap.shape[0]} goal weights (one per AP row), got {len(weights)}.")
        self.goal_weights = weights

    def fit_goal_weights(self) -> bool:
        """
        Resets the goal weights to all ones when they are missing or do not
        match the number of AP rows. Returns True if the weights were changed.
        """
        if self.ap is None:
            return False
        goals = self.ap.shape[0]
        if self.goal_weights is None or len(self.goal_weights) != goals:
            self.goal_weights = [1] * goals
            return True
        return False

    # --------------------------------------------------------------------------
    # Persistence
    # --------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serializes the model to the project file layout."""
        return {
            "Nodes": [node.to_dict() for node in self.nodes.values()],
            "EP": _matrix_to_rows(self.ep),
            "AP": _matrix_to_rows(self.ap),
            "GoalWeights": list(self.goal_weights) if self.goal_weights is not None else [],
            "FeatureNames": list(self.feature_names),
            "GoalNames": list(self.goal_names)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TreeModel':
        """
        Creates a model from the project file layout. Ragged matrix rows are
        padded with zeros and empty matrices or weight lists load as None.
        """
        nodes = [Node.from_dict(n) for n in data.get('Nodes') or []]
        model = cls(nodes)
        model.ep = _matrix_from_rows(data.get('EP'))
        model.ap = _matrix_from_rows(data.get('AP'))
        weights = data.get('GoalWeights')
        model.goal_weights = [int(w) for w in weights] if weights else None
        model.feature_names = list(data.get('FeatureNames') or [])
        model.goal_names = list(data.get('GoalNames') or [])
        return model

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_json(cls, json_string: str) -> 'TreeModel':
        """
        Constructs a TreeModel from a JSON project string.

        Raises:
            ValueError: If the JSON does not contain a 'Nodes' list.
        """
        data = json.loads(json_string)
        if not isinstance(data, dict) or not isinstance(data.get("Nodes"), list):
            raise ValueError("JSON string must contain a 'Nodes' list.")
        return cls.from_dict(data)

    def save_project(self, path: str):
        """Writes the model to a JSON project file."""
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.to_json())

    @classmethod
    def load_project(cls, path: str) -> 'TreeModel':
        """Reads a model from a JSON project file."""
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_json(f.read())

    def to_dataframe(self) -> 'pd.DataFrame':
        """
        Exports the node table to a pandas DataFrame.

        Returns:
            A DataFrame with one row per node: id, name, type, parent id,
            level, manual-level flag, child count and EP row index.
        """
        _check_pandas_availability()

        parents = self.parent_index()
        rows_by_id = {node.id: i for i, node in enumerate(self.non_root_nodes())}
        data = []
        for node in self.nodes.values():
            data.append({
                'node_id': node.id,
                'name': node.name,
                'type': node.node_type.value,
                'parent_id': parents.get(node.id),
                'level': node.level,
                'is_level_manual': node.is_level_manual,
                'children': len(node.children),
                'ep_row': rows_by_id.get(node.id)
            })
        return pd.DataFrame(data)


def assign_levels(tree: TreeModel):
    """
    Recomputes `level` for every node reachable from the root by depth-first
    traversal, the root being level 0.

    A node flagged `is_level_manual` keeps its stored level and acts as the base
    for its own children (child level = manual level + 1, unless the child is
    manual too). Unreachable nodes are left untouched. Must be rerun after any
    structural change before depth-weighted scoring.

    Raises:
        TreeStructureError: If a cycle is reachable from the root.
    """
    root = tree.find_root()
    if root is None:
        return

    visited = set()

    def _visit(node: Node, level: int, path: set):
        if not node.is_level_manual:
            node.level = level
        visited.add(node.id)
        path.add(node.id)
        for child_id in node.children:
            if child_id in path:
                raise TreeStructureError(f"Cycle detected: node {child_id} is its own ancestor.")
            child = tree.nodes.get(child_id)
            if child is None or child_id in visited:
                continue
            _visit(child, node.level + 1, path)
        path.discard(node.id)

    _visit(root, 0, set())
