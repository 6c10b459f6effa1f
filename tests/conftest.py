import pytest
from treeMethodPy.model import Node, TreeModel
from treeMethodPy.types import NodeType


def build_tree(*nodes: Node, ep=None, ap=None, goal_weights=None) -> TreeModel:
    """Builds a TreeModel from nodes given in node order."""
    return TreeModel(list(nodes), ep=ep, ap=ap, goal_weights=goal_weights)


@pytest.fixture
def make_tree():
    """Exposes `build_tree` to test modules."""
    return build_tree


@pytest.fixture
def single_leaf_tree() -> TreeModel:
    """A tree made of one Leaf root."""
    return build_tree(Node(0, "Solo", NodeType.LEAF))


@pytest.fixture
def chain_tree() -> TreeModel:
    """
    Root(And) -> Mid(Or) -> {LeafA, LeafB}.

    EP rows (node order, root excluded): Mid, LeafA, LeafB.
    """
    return build_tree(
        Node(0, "Root", NodeType.AND, children=[1]),
        Node(1, "Mid", NodeType.OR, children=[2, 3]),
        Node(2, "LeafA"),
        Node(3, "LeafB"),
        ep=[[2, 0], [0, 3], [3, 3]],
        ap=[[1, 1]],
        goal_weights=[1]
    )


@pytest.fixture
def two_by_two_tree() -> TreeModel:
    """
    Root(And) with two Or children of two leaves each:

        Root(And)
        ├── Engine(Or): Petrol, Electric
        └── Body(Or): Sedan, Hatchback
    """
    return build_tree(
        Node(0, "Car", NodeType.AND, children=[1, 2]),
        Node(1, "Engine", NodeType.OR, children=[3, 4]),
        Node(2, "Body", NodeType.OR, children=[5, 6]),
        Node(3, "Petrol"),
        Node(4, "Electric"),
        Node(5, "Sedan"),
        Node(6, "Hatchback"),
    )


@pytest.fixture
def scored_two_by_two_tree(two_by_two_tree) -> TreeModel:
    """
    The 2x2 tree with two features and two goals.

    Engine and Body rows are zero so only the leaves drive the score.
    """
    two_by_two_tree.set_matrices(
        ep=[
            [0, 0],   # Engine
            [0, 0],   # Body
            [1, -1],  # Petrol
            [1, 1],   # Electric
            [0, 1],   # Sedan
            [-1, 0],  # Hatchback
        ],
        ap=[
            [1, 0],
            [0, 1],
        ],
        goal_weights=[2, 1]
    )
    return two_by_two_tree
