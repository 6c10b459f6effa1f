from __future__ import annotations
import json
import warnings
from typing import Any, Dict, List, Optional, Tuple
from .combinations import generate_combinations
from .config import configure_parameters
from .matrix_builder import check_ep_alignment
from .model import TreeModel, assign_levels
from .scoring import get_scoring_method, rank_solutions, score_combinations
from .types import RationalSolution
from .validation import Validation


class Workflow:
    """
    Runs a complete calculation on a tree: the pre-checks a host application
    performs, the theoretical count |RT| and the ranked rational solutions.

    The caller's model is never modified. The workflow works on a snapshot of
    it, fits the goal weights and assigns levels on that snapshot only.

    Example:
        tree = TreeModel.load_project("project.json")
        pipeline = Workflow(tree, scoring_mode="depth_weighted").run()
        print(pipeline.summary())
    """
    def __init__(
        self,
        tree: TreeModel,
        scoring_mode: Optional[str] = None,
        auto_assign_levels: bool = True,
        verbose: bool = False
    ):
        self.tree = tree
        self.scoring_mode = scoring_mode or configure_parameters.DEFAULT_SCORING_MODE
        get_scoring_method(self.scoring_mode)
        self.auto_assign_levels = auto_assign_levels
        self.verbose = verbose

        self.snapshot: Optional[TreeModel] = None
        self.theoretical_count: Optional[int] = None
        self.solutions: Optional[List[RationalSolution]] = None
        self.validation_report: Optional[Dict[str, List[str]]] = None
        self.goal_weights_refitted: bool = False

    def __repr__(self) -> str:
        status = "fitted" if self.solutions is not None else "not run"
        return f"Workflow(mode='{self.scoring_mode}', nodes={len(self.tree)}, status={status})"

    @classmethod
    def from_json(cls, json_string: str, **kwargs) -> 'Workflow':
        """
        Creates a workflow from a project JSON string and runs it.

        An optional top-level "workflow_config" object may set "scoring_mode"
        and "auto_assign_levels"; keyword arguments take precedence.
        """
        data = json.loads(json_string)
        config = data.pop("workflow_config", {}) if isinstance(data, dict) else {}
        tree = TreeModel.from_json(json.dumps(data))

        options = {
            "scoring_mode": config.get("scoring_mode"),
            "auto_assign_levels": config.get("auto_assign_levels", True)
        }
        options.update(kwargs)
        return cls(tree, **options).run()

    def _log(self, message: str):
        if self.verbose:
            print(message)

    def _prepare(self) -> TreeModel:
        """Runs the calculation pre-checks and returns the snapshot to compute on."""
        if self.tree is None or not self.tree.nodes:
            raise ValueError("Tree structure is empty.")
        if self.tree.ep is None or self.tree.ap is None:
            raise ValueError("EP and AP matrices are not set.")

        snapshot = self.tree.snapshot()

        self.goal_weights_refitted = snapshot.fit_goal_weights()
        if self.goal_weights_refitted:
            warnings.warn(
                f"Goal weights were missing or did not match the {snapshot.ap.shape[0]} goals; all weights set to 1.",
                UserWarning
            )

        leaf_count = len(snapshot.leaf_nodes())
        if leaf_count > configure_parameters.LEAF_COUNT_WARNING_THRESHOLD:
            warnings.warn(
                f"The tree has {leaf_count} leaves (threshold {configure_parameters.LEAF_COUNT_WARNING_THRESHOLD}); "
                "the number of combinations may be very large.",
                UserWarning
            )

        check_ep_alignment(snapshot)

        if self.auto_assign_levels:
            assign_levels(snapshot)

        self.validation_report = Validation.run_all_validations(snapshot)
        return snapshot

    def run(self) -> 'Workflow':
        """
        Executes the calculation.

        Returns:
            The workflow itself, with `theoretical_count` and `solutions` set.

        Raises:
            ValueError: If the tree is empty or a scoring matrix is missing.
        """
        self._log("\n--- Running AND/OR Tree Calculation ---")
        snapshot = self._prepare()

        combinations = generate_combinations(snapshot)
        self.theoretical_count = len(combinations)
        self._log(f"|RT| = {self.theoretical_count}")

        self.solutions = rank_solutions(score_combinations(snapshot, combinations, self.scoring_mode))
        self.snapshot = snapshot
        self._log("Solution scoring complete.")
        return self

    def _check_run(self):
        if self.solutions is None:
            raise RuntimeError("Calculation has not been run. Call `run()` first.")

    @property
    def rankings(self) -> List[Tuple[str, int]]:
        """Solutions as (comma-joined element names, score), best first."""
        self._check_run()
        return [(", ".join(s.elements), s.score) for s in self.solutions]

    def best_solution(self) -> Optional[RationalSolution]:
        self._check_run()
        return self.solutions[0] if self.solutions else None

    def summary(self) -> str:
        """The text report shown to the user after a calculation."""
        self._check_run()
        from .visualization import format_solutions_report
        return format_solutions_report(self.solutions, self.theoretical_count)

    def to_dataframe(self) -> 'pd.DataFrame':
        self._check_run()
        from .visualization import solutions_to_dataframe
        return solutions_to_dataframe(self.solutions)

    def plot_scores(self, top_n: Optional[int] = None, figsize=(10, 6)):
        """Plots the solution scores as a horizontal bar chart."""
        self._check_run()
        from .visualization import plot_solution_scores
        return plot_solution_scores(self.solutions, top_n=top_n, figsize=figsize)

    def export_results(self, target: str, output_format: str = 'csv'):
        """Exports the ranked solutions to 'csv', 'excel' or 'json'."""
        self._check_run()
        from .visualization import export_solutions
        export_solutions(self.solutions, target, output_format=output_format,
                         theoretical_count=self.theoretical_count)

    def to_dict(self) -> Dict[str, Any]:
        self._check_run()
        return {
            "scoring_mode": self.scoring_mode,
            "theoretical_count": self.theoretical_count,
            "solutions": [s.to_dict() for s in self.solutions]
        }
