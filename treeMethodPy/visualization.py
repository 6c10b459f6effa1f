from __future__ import annotations
from typing import TYPE_CHECKING, List, Dict, Optional, Tuple
import json
import numpy as np
from .config import configure_parameters
from .matrix_builder import default_feature_names, default_goal_names

try:
    import matplotlib.pyplot as plt
    import networkx as nx
    import seaborn as sns
    _PLOT_AVAILABLE = True
except ImportError:
    _PLOT_AVAILABLE = False

if TYPE_CHECKING:
    from .model import TreeModel, Node
    from .types import RationalSolution

try:
    import pandas as pd
    _PANDAS_AVAILABLE = True
except ImportError:
    _PANDAS_AVAILABLE = False

def _check_pandas_availability():
    """Helper function to raise an error if pandas is not installed."""
    if not _PANDAS_AVAILABLE:
        raise ImportError("Excel/CSV export functionality requires the 'pandas' and 'openpyxl' libraries. "
                        "Please install them using: pip install pandas openpyxl")

# ==============================================================================
# 1. TEXT REPORTS
# ==============================================================================

def format_solutions_report(solutions: List[RationalSolution], theoretical_count: int) -> str:
    """
    Formats the calculation result the way it is presented to the user:
    the theoretical count followed by one line per rational solution.

    Args:
        solutions: Ranked rational solutions.
        theoretical_count: |RT|, the number of valid combinations.

    Returns:
        A multi-line string.
    """
    lines = [f"|RT| = {theoretical_count}", "Rational solutions:"]
    lines.extend(str(solution) for solution in solutions)
    return "\n".join(lines)


def format_tree(tree: TreeModel) -> str:
    """Renders the tree as indented text, one node per line with its type and level."""
    root = tree.find_root()
    if root is None:
        return "(empty tree)"

    lines = []
    seen = set()

    def _traverse(node: Node, depth: int):
        seen.add(node.id)
        manual = "*" if node.is_level_manual else ""
        lines.append(f"{'    ' * depth}{node.name} [{node.node_type.value}] (id={node.id}, level={node.level}{manual})")
        for child_id in node.children:
            child = tree.nodes.get(child_id)
            if child is None:
                lines.append(f"{'    ' * (depth + 1)}<missing node {child_id}>")
            elif child_id not in seen:
                _traverse(child, depth + 1)

    _traverse(root, 0)
    return "\n".join(lines)


# ==============================================================================
# 2. TABLES
# ==============================================================================

def solutions_to_dataframe(solutions: List[RationalSolution]) -> 'pd.DataFrame':
    """
    Exports ranked solutions to a DataFrame with columns rank, elements, size and score.
    """
    _check_pandas_availability()
    data = [{
        'rank': i + 1,
        'elements': ", ".join(s.elements),
        'size': len(s.elements),
        'score': s.score
    } for i, s in enumerate(solutions)]
    return pd.DataFrame(data, columns=['rank', 'elements', 'size', 'score'])


def ep_to_dataframe(tree: TreeModel) -> 'pd.DataFrame':
    """
    Formats the EP matrix as a table indexed by the non-root node names with
    one column per feature. Missing cells show as 0.
    """
    _check_pandas_availability()
    non_root = tree.non_root_nodes()
    cols = tree.ep.shape[1] if tree.ep is not None else configure_parameters.DEFAULT_FEATURE_COUNT
    names = tree.feature_names if len(tree.feature_names) == cols else default_feature_names(cols)

    table = np.zeros((len(non_root), cols), dtype=int)
    if tree.ep is not None:
        r = min(len(non_root), tree.ep.shape[0])
        table[:r, :] = tree.ep[:r, :]
    return pd.DataFrame(table, index=pd.Index([n.name for n in non_root], name="Element"), columns=names)


def ap_to_dataframe(tree: TreeModel) -> 'pd.DataFrame':
    """Formats the AP matrix as a goal x feature table, with a goal weight column."""
    _check_pandas_availability()
    if tree.ap is None:
        return pd.DataFrame()
    goals, cols = tree.ap.shape
    feature_names = tree.feature_names if len(tree.feature_names) == cols else default_feature_names(cols)
    goal_names = tree.goal_names if len(tree.goal_names) == goals else default_goal_names(goals)

    df = pd.DataFrame(tree.ap, index=pd.Index(goal_names, name="Goal"), columns=feature_names)
    weights = list(tree.goal_weights or [])
    df['weight'] = [weights[g] if g < len(weights) else None for g in range(goals)]
    return df


# ==============================================================================
# 3. MATPLOTLIB PLOTTING FUNCTIONS
# ==============================================================================

def _check_plotting_availability():
    """Helper function to raise an error if plotting libraries are not installed."""
    if not _PLOT_AVAILABLE:
        raise ImportError("Plotting functionality requires matplotlib, seaborn and networkx. "
                          "Please install them using: pip install matplotlib seaborn networkx")


def _tree_layout(tree: TreeModel) -> Dict[int, Tuple[float, float]]:
    """Top-down layout: leaves spread left to right, parents centred over their children."""
    root = tree.find_root()
    positions: Dict[int, Tuple[float, float]] = {}
    next_x = [0.0]

    def _place(node: Node, depth: int) -> float:
        positions[node.id] = (0.0, -depth)
        xs = [_place(tree.nodes[c], depth + 1) for c in node.children
              if c in tree.nodes and c not in positions]
        if xs:
            x = sum(xs) / len(xs)
        else:
            x = next_x[0]
            next_x[0] += 1.0
        positions[node.id] = (x, -depth)
        return x

    if root is not None:
        _place(root, 0)
    for node in tree.nodes.values():
        if node.id not in positions:
            _place(node, 0)
    return positions


def tree_to_graph(tree: TreeModel) -> 'nx.DiGraph':
    """Builds a networkx DiGraph of the tree, node attributes carrying name, type and level."""
    _check_plotting_availability()
    graph = nx.DiGraph()
    for node in tree.nodes.values():
        graph.add_node(node.id, name=node.name, node_type=node.node_type.value, level=node.level)
    for node in tree.nodes.values():
        for child_id in dict.fromkeys(node.children):
            if child_id in tree.nodes:
                graph.add_edge(node.id, child_id)
    return graph


def plot_tree(tree: TreeModel, figsize=(12, 7)) -> 'plt.Figure':
    """
    Draws the decomposition tree top-down, nodes coloured by type
    (And, Or, Leaf) and labelled '<name> (<type>)'.

    Returns:
        The matplotlib Figure object.
    """
    _check_plotting_availability()

    graph = tree_to_graph(tree)
    positions = _tree_layout(tree)
    colors = [configure_parameters.NODE_COLORS[tree.nodes[n].node_type] for n in graph.nodes]
    labels = {n: f"{tree.nodes[n].name} ({tree.nodes[n].node_type.value})" for n in graph.nodes}

    fig, ax = plt.subplots(figsize=figsize)
    nx.draw_networkx(
        graph, pos=positions, ax=ax, labels=labels, node_color=colors,
        node_size=2200, font_size=9, arrows=True, edgecolors="black"
    )
    ax.set_title("AND/OR Decomposition Tree")
    ax.axis("off")
    fig.tight_layout()
    return fig


def plot_solution_scores(solutions: List[RationalSolution], top_n: Optional[int] = None, figsize=(10, 6)) -> 'plt.Figure':
    """
    Plots ranked solutions with their scores as a horizontal bar chart, best on top.

    Args:
        solutions: Ranked rational solutions.
        top_n (optional): Only plot the first `top_n` solutions.
        figsize: The size of the figure.

    Returns:
        The matplotlib Figure object.
    """
    _check_plotting_availability()

    shown = solutions[:top_n] if top_n else solutions
    labels = [", ".join(s.elements) for s in shown]
    scores = [s.score for s in shown]

    fig, ax = plt.subplots(figsize=figsize)
    bars = ax.barh(labels, scores, color=plt.cm.plasma(np.linspace(0.4, 0.9, max(len(scores), 1))))

    ax.set_xlabel('Score')
    ax.set_ylabel('Solution')
    ax.set_title('Rational Solutions')
    ax.grid(axis='x', linestyle='--', alpha=0.6)
    ax.invert_yaxis()

    for i, bar in enumerate(bars):
        ax.text(bar.get_width(), bar.get_y() + bar.get_height()/2, f' {scores[i]}', va='center')

    fig.tight_layout()
    return fig


def plot_score_distribution(solutions: List[RationalSolution], figsize=(10, 6)) -> 'plt.Figure':
    """Histogram of solution scores over the whole theoretical solution set."""
    _check_plotting_availability()
    sns.set_theme(style="whitegrid")

    fig, ax = plt.subplots(figsize=figsize)
    sns.histplot(x=[s.score for s in solutions], discrete=True, ax=ax, color="steelblue")
    ax.set_xlabel('Score')
    ax.set_ylabel('Number of solutions')
    ax.set_title('Score Distribution')
    fig.tight_layout()
    return fig


# ==============================================================================
# 4. EXPORT
# ==============================================================================

def export_solutions(
    solutions: List[RationalSolution],
    target: str,
    output_format: str = 'csv',
    theoretical_count: Optional[int] = None
):
    """
    Writes ranked solutions to a file.

    Args:
        solutions: Ranked rational solutions.
        target: The output path. The extension is added when missing.
        output_format: 'csv', 'excel' or 'json'.
        theoretical_count (optional): Stored alongside the solutions in JSON output.
    """
    if output_format == 'json':
        if not target.endswith('.json'): target += '.json'
        payload = {"theoretical_count": theoretical_count, "solutions": [s.to_dict() for s in solutions]}
        with open(target, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        return

    _check_pandas_availability()
    df = solutions_to_dataframe(solutions)
    if output_format == 'csv':
        if not target.endswith('.csv'): target += '.csv'
        df.to_csv(target, index=False)
    elif output_format == 'excel':
        if not target.endswith('.xlsx'): target += '.xlsx'
        with pd.ExcelWriter(target, engine='openpyxl') as writer:
            df.to_excel(writer, sheet_name='Solutions', index=False)
    else:
        raise ValueError(f"Unsupported output_format '{output_format}'. Use 'csv', 'excel' or 'json'.")
