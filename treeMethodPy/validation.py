from __future__ import annotations
from typing import List, Dict, TYPE_CHECKING
import numpy as np
from .config import configure_parameters

if TYPE_CHECKING:
    from treeMethodPy.model import TreeModel

class Validation:
    """
    A class containing static methods to validate a TreeModel before it is
    handed to the combination generator and scorer.

    The core degrades gracefully on inconsistent input; these checks are what a
    caller runs to tell the user what is wrong instead.
    """

    @staticmethod
    def validate_tree_structure(tree: TreeModel) -> List[str]:
        """
        Checks that the nodes form a strict, single-rooted, acyclic tree.

        Args:
            tree: The TreeModel to validate.

        Returns:
            A list of error strings. An empty list means the structure is valid.
        """
        errors = []
        if not tree.nodes:
            errors.append("Tree has no nodes.")
            return errors

        # 1. Dangling references and multiple parents
        parents: Dict[int, List[int]] = {}
        for node in tree.nodes.values():
            for child_id in node.children:
                if child_id not in tree.nodes:
                    errors.append(f"Node '{node.name}' ({node.id}) references missing child {child_id}.")
                parents.setdefault(child_id, []).append(node.id)
            if len(set(node.children)) != len(node.children):
                errors.append(f"Node '{node.name}' ({node.id}) lists the same child more than once.")

        for child_id, parent_ids in parents.items():
            if len(set(parent_ids)) > 1 and child_id in tree.nodes:
                errors.append(f"Node {child_id} has several parents {sorted(set(parent_ids))}; shared sub-nodes are not supported.")

        # 2. Exactly one root
        roots = [node.id for node in tree.nodes.values() if node.id not in parents]
        if not roots:
            errors.append("Tree has no root: every node is some node's child.")
        elif len(roots) > 1:
            errors.append(f"Tree has {len(roots)} roots {roots}; exactly one is required.")

        # 3. Type-specific rules
        for node in tree.nodes.values():
            if node.is_leaf and node.children:
                errors.append(f"Leaf node '{node.name}' ({node.id}) has children.")

        # 4. Cycles
        for cycle_start in Validation._find_cycle_members(tree):
            errors.append(f"Node {cycle_start} is part of a cycle.")

        return errors

    @staticmethod
    def _find_cycle_members(tree: TreeModel) -> List[int]:
        """Returns the ids of nodes that are their own ancestor, in node order."""
        members = []
        for start in tree.nodes.values():
            stack = [c for c in start.children if c in tree.nodes]
            seen = set()
            while stack:
                current = stack.pop()
                if current == start.id:
                    members.append(start.id)
                    break
                if current in seen:
                    continue
                seen.add(current)
                stack.extend(c for c in tree.nodes[current].children if c in tree.nodes)
        return members

    @staticmethod
    def find_degenerate_nodes(tree: TreeModel) -> List[str]:
        """
        Lists And/Or nodes without children. They are legal but contribute no
        combinations, so they are reported separately from structural errors.
        """
        return [
            f"{node.node_type.value} node '{node.name}' ({node.id}) has no children and yields no combinations."
            for node in tree.nodes.values()
            if not node.is_leaf and not node.children
        ]

    @staticmethod
    def validate_matrices(tree: TreeModel) -> List[str]:
        """
        Validates the scoring matrices against each other and against the tree.

        Checks that EP, AP and the goal weights are present, that EP and AP agree
        on the feature count, that EP has one row per non-root node, that there is
        one goal weight per AP row and that the cell values are in range.

        Args:
            tree: The TreeModel to validate.

        Returns:
            A list of error strings describing inconsistencies.
        """
        errors = []
        if tree.ep is None:
            errors.append("EP matrix is not set.")
        if tree.ap is None:
            errors.append("AP matrix is not set.")
        if tree.goal_weights is None:
            errors.append("Goal weights are not set.")

        if tree.ep is not None and tree.ap is not None and tree.ep.shape[1] != tree.ap.shape[1]:
            errors.append(f"EP has {tree.ep.shape[1]} features but AP has {tree.ap.shape[1]}.")

        if tree.ep is not None:
            expected_rows = len(tree.non_root_nodes())
            if tree.ep.shape[0] != expected_rows:
                errors.append(f"EP has {tree.ep.shape[0]} rows but the tree has {expected_rows} non-root nodes.")

        if tree.ap is not None and tree.goal_weights is not None and len(tree.goal_weights) != tree.ap.shape[0]:
            errors.append(f"{len(tree.goal_weights)} goal weights given for {tree.ap.shape[0]} goals.")

        errors.extend(Validation.validate_matrix_values(tree))
        return errors

    @staticmethod
    def validate_matrix_values(tree: TreeModel) -> List[str]:
        """Validates that all EP/AP cells lie in the configured value range."""
        errors = []
        low, high = configure_parameters.MATRIX_VALUE_MIN, configure_parameters.MATRIX_VALUE_MAX
        for label, matrix in (("EP", tree.ep), ("AP", tree.ap)):
            if matrix is None:
                continue
            bad = np.argwhere((matrix < low) | (matrix > high))
            for i, j in bad:
                errors.append(f"{label}[{i},{j}] = {matrix[i, j]} is outside the range [{low}, {high}].")
        return errors

    @staticmethod
    def validate_labels(tree: TreeModel) -> List[str]:
        """Validates that stored feature/goal names match the matrix dimensions."""
        errors = []
        if tree.ep is not None and tree.feature_names and len(tree.feature_names) != tree.ep.shape[1]:
            errors.append(f"{len(tree.feature_names)} feature names given for {tree.ep.shape[1]} features.")
        if tree.ap is not None and tree.goal_names and len(tree.goal_names) != tree.ap.shape[0]:
            errors.append(f"{len(tree.goal_names)} goal names given for {tree.ap.shape[0]} goals.")
        return errors

    @staticmethod
    def run_all_validations(tree: TreeModel) -> Dict[str, List[str]]:
        """
        Runs a complete suite of validations on the TreeModel.

        Args:
            tree: The TreeModel to validate.

        Returns:
            A dictionary containing lists of errors for each validation category.
        """
        return {
            "tree_structure": Validation.validate_tree_structure(tree),
            "matrices": Validation.validate_matrices(tree),
            "labels": Validation.validate_labels(tree),
            "degenerate_nodes": Validation.find_degenerate_nodes(tree)
        }

    @staticmethod
    def is_valid(tree: TreeModel) -> bool:
        """True when no structural, matrix or label error is reported. Degenerate nodes are allowed."""
        report = Validation.run_all_validations(tree)
        return not (report["tree_structure"] or report["matrices"] or report["labels"])
