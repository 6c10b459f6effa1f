__version__ = "0.1.0"

from .config import configure_parameters
from .types import NodeType, RationalSolution
from .model import TreeModel, Node, TreeStructureError, assign_levels
from .combinations import generate_combinations, theoretical_count
from .scoring import find_solutions, rank_solutions, ancestor_closure
from .pipeline import Workflow
from .validation import Validation

from .scoring import register_scoring_method
