from typing import Dict, List
from .types import NodeType


class Configuration:
    """
    A singleton-like class to hold all configurable parameters for the treeMethodPy library.

    Users can modify these attributes directly to customize the behavior of
    scoring, matrix editing and the calculation workflow.

    Example:
    >>> from treeMethodPy.config import configure_parameters
    >>> # Score with the plain (unweighted) formula by default
    >>> configure_parameters.DEFAULT_SCORING_MODE = "unweighted"
    >>> # Warn earlier about combinatorial blow-up
    >>> configure_parameters.LEAF_COUNT_WARNING_THRESHOLD = 12
    """

    def __init__(self):
        self.reset_to_defaults()

    def reset_to_defaults(self):
        """Resets all configuration parameters to their original default values."""

        # --- Scoring Parameters (from scoring.py) ---

        # Mode used by `find_solutions` when none is given explicitly.
        # 'depth_weighted' scales each active node by 1 / (1 + level).
        self.DEFAULT_SCORING_MODE: str = "depth_weighted"

        # --- Workflow Parameters (from pipeline.py) ---

        # Above this many leaves the enumeration may grow very large.
        # Only a warning is emitted, the calculation still runs.
        self.LEAF_COUNT_WARNING_THRESHOLD: int = 20

        # --- Matrix Editing Parameters (from matrix_builder.py) ---

        # Allowed range for a single EP/AP cell edit
        self.MATRIX_VALUE_MIN: int = -1
        self.MATRIX_VALUE_MAX: int = 1

        self.DEFAULT_FEATURE_COUNT: int = 3
        self.DEFAULT_GOAL_COUNT: int = 2

        # Labels generated when no names are stored: P1, P2, ... and A1, A2, ...
        self.FEATURE_NAME_PREFIX: str = "P"
        self.GOAL_NAME_PREFIX: str = "A"

        # --- Tree Model Parameters (from model.py) ---

        self.DEFAULT_ROOT_NAME: str = "System"

        # --- Visualization Parameters ---

        self.NODE_COLORS: Dict[NodeType, str] = {
            NodeType.AND: "lightgreen",
            NodeType.OR: "lightblue",
            NodeType.LEAF: "lightgray",
        }

    def available_parameters(self) -> List[str]:
        """Returns the names of all configurable parameters."""
        return [name for name in vars(self) if name.isupper()]

configure_parameters = Configuration()



class ConfigurationContextManager:
    """
    A context manager to temporarily change configuration parameters.

    Usage:
    >>> with ConfigurationContextManager(DEFAULT_SCORING_MODE="unweighted"):
    >>>     # Code block scores with the plain formula
    >>>     ...
    >>> # The default mode reverts outside the block
    """
    def __init__(self, **kwargs):
        self.changes = kwargs
        self.original_values = {}

    def __enter__(self):
        for key, value in self.changes.items():
            if not hasattr(configure_parameters, key):
                raise AttributeError(f"Configuration object has no attribute '{key}'")
            self.original_values[key] = getattr(configure_parameters, key)
            setattr(configure_parameters, key, value)
        return configure_parameters

    def __exit__(self, exc_type, exc_val, exc_tb):
        for key, value in self.original_values.items():
            setattr(configure_parameters, key, value)
