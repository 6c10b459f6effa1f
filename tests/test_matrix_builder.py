"""
===================================================================
Tests for the Matrix Builder Module
===================================================================

This script contains unit tests for creating, resizing and editing the EP and
AP scoring matrices and their labels.
"""

import pytest
import numpy as np

from treeMethodPy.config import ConfigurationContextManager
from treeMethodPy.matrix_builder import (
    check_ep_alignment, create_empty_matrices, create_ep_from_rows,
    default_feature_names, default_goal_names, is_valid_matrix_value,
    resize_matrix, resize_tree_matrices, set_matrix_value
)

# --- Labels ---

def test_default_labels():
    assert default_feature_names(3) == ["P1", "P2", "P3"]
    assert default_goal_names(2) == ["A1", "A2"]
    assert default_goal_names(0) == []


def test_label_prefixes_are_configurable():
    with ConfigurationContextManager(FEATURE_NAME_PREFIX="F"):
        assert default_feature_names(2) == ["F1", "F2"]

# --- Construction and resizing ---

def test_resize_matrix_keeps_overlap():
    matrix = np.array([[1, -1, 0], [0, 1, 1]])
    resized = resize_matrix(matrix, 3, 2)
    assert resized.tolist() == [[1, -1], [0, 1], [0, 0]]


def test_resize_missing_matrix_is_zeros():
    assert resize_matrix(None, 2, 2).tolist() == [[0, 0], [0, 0]]


def test_resize_matrix_rejects_negative_size():
    with pytest.raises(ValueError):
        resize_matrix(None, -1, 2)


def test_create_empty_matrices(chain_tree):
    create_empty_matrices(chain_tree)
    assert chain_tree.ep.shape == (3, 3)
    assert chain_tree.ap.shape == (2, 3)
    assert chain_tree.goal_weights == [1, 1]
    assert chain_tree.feature_names == ["P1", "P2", "P3"]
    assert chain_tree.goal_names == ["A1", "A2"]


def test_resize_tree_matrices(chain_tree):
    chain_tree.goal_weights = [4]
    resize_tree_matrices(chain_tree, feature_count=3, goal_count=2)

    assert chain_tree.ep.shape == (3, 3)
    assert chain_tree.ep[2].tolist() == [3, 3, 0]
    assert chain_tree.ap.tolist() == [[1, 1, 0], [0, 0, 0]]
    assert chain_tree.goal_weights == [4, 1]
    assert chain_tree.goal_names == ["A1", "A2"]


def test_resize_tree_matrices_follows_node_count(chain_tree):
    chain_tree.add_node("LeafC", parent_id=1)
    chain_tree.ep = chain_tree.ep[:3]
    resize_tree_matrices(chain_tree, feature_count=2, goal_count=1)
    assert chain_tree.ep.shape == (4, 2)


def test_resize_tree_matrices_rejects_zero_counts(chain_tree):
    with pytest.raises(ValueError, match="positive"):
        resize_tree_matrices(chain_tree, feature_count=0, goal_count=1)


def test_create_ep_from_rows(two_by_two_tree):
    ep = create_ep_from_rows(
        two_by_two_tree,
        {"Electric": [1, 1], "Petrol": [1, -1]},
        feature_names=["Cost", "Range"]
    )
    assert ep.shape == (6, 2)
    assert ep.tolist() == [[0, 0], [0, 0], [1, -1], [1, 1], [0, 0], [0, 0]]
    assert two_by_two_tree.feature_names == ["Cost", "Range"]
    assert two_by_two_tree.ep is ep


def test_create_ep_from_rows_rejects_unknown_names(two_by_two_tree):
    with pytest.raises(ValueError, match="Unknown node name"):
        create_ep_from_rows(two_by_two_tree, {"Diesel": [1]})


def test_create_ep_from_rows_rejects_root(two_by_two_tree):
    """The root has no EP row."""
    with pytest.raises(ValueError, match="Unknown node name"):
        create_ep_from_rows(two_by_two_tree, {"Car": [1]})


def test_create_ep_from_rows_checks_values(two_by_two_tree):
    with pytest.raises(ValueError, match="outside the allowed range"):
        create_ep_from_rows(two_by_two_tree, {"Sedan": [2]})
    with pytest.raises(TypeError):
        create_ep_from_rows(two_by_two_tree, {"Sedan": [0.5]})


def test_create_ep_from_rows_rejects_long_rows(two_by_two_tree):
    with pytest.raises(ValueError, match="features are defined"):
        create_ep_from_rows(two_by_two_tree, {"Sedan": [1, 0, 1]}, feature_names=["P1"])

# --- Cell editing ---

@pytest.mark.parametrize("value, expected", [
    (1, True), (-1, True), (0, True), ("1", True), (2, False), (-5, False),
    (0.5, False), (1.0, True), ("abc", False), (None, False),
])
def test_is_valid_matrix_value(value, expected):
    assert is_valid_matrix_value(value) is expected


def test_set_matrix_value():
    matrix = np.zeros((2, 2), dtype=int)
    set_matrix_value(matrix, 1, 0, -1)
    assert matrix.tolist() == [[0, 0], [-1, 0]]


def test_set_matrix_value_errors():
    matrix = np.zeros((2, 2), dtype=int)
    with pytest.raises(IndexError):
        set_matrix_value(matrix, 2, 0, 1)
    with pytest.raises(ValueError, match="outside the allowed range"):
        set_matrix_value(matrix, 0, 0, 3)
    with pytest.raises(ValueError, match="missing matrix"):
        set_matrix_value(None, 0, 0, 1)


def test_value_range_is_configurable():
    matrix = np.zeros((1, 1), dtype=int)
    with ConfigurationContextManager(MATRIX_VALUE_MIN=-5, MATRIX_VALUE_MAX=5):
        set_matrix_value(matrix, 0, 0, 4)
    assert matrix[0, 0] == 4

# --- Alignment ---

def test_check_ep_alignment(chain_tree):
    assert check_ep_alignment(chain_tree) is True
    chain_tree.ep = chain_tree.ep[:2]
    with pytest.warns(UserWarning, match="non-root nodes"):
        assert check_ep_alignment(chain_tree) is False


def test_check_ep_alignment_without_ep(two_by_two_tree):
    assert check_ep_alignment(two_by_two_tree) is True
