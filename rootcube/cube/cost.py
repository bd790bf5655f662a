"""
Cost Evaluator
=============================================================================

Scores cube nodes by how far their local change departs from the change a
proportional, non-anomalous roll-up would predict:

- contribution: share of the total anomaly delta a node accounts for
- score: |change ratio - global change ratio| x weight(baseline share)
- cost: 1 / (1 + score), lower meaning more explanatory

For ratio metrics the delta of a slice is measured on the root's denominators
(current numerator / root current denominator - baseline numerator / root
baseline denominator) so that the deltas of any partition add up to the root
ratio change.
"""

import logging
import math
from collections.abc import Callable
from typing import TypeAlias

from rootcube.cube.node import CubeNode, CubeTree
from rootcube.exceptions import DegenerateAnomalyError, InvalidInputError
from rootcube.models import WILDCARD, ChangeDirection, CostWeight, DimensionCost, Row
from rootcube.utilities.numeric import UNDEFINED, is_close, is_undefined, safe_divide

logger = logging.getLogger(__name__)

WeightFunction: TypeAlias = Callable[[float], float]
SortKey: TypeAlias = tuple[float, float, int, tuple[str, ...]]


def linear_weight(share: float) -> float:
    return share


def sqrt_weight(share: float) -> float:
    return math.sqrt(share)


def log_weight(share: float) -> float:
    # maps [0, 1] onto [0, 1]
    return math.log1p(share) / math.log(2)


_WEIGHT_FUNCTIONS: dict[CostWeight, WeightFunction] = {
    CostWeight.LINEAR: linear_weight,
    CostWeight.SQRT: sqrt_weight,
    CostWeight.LOG: log_weight,
}


def get_weight_function(weight: CostWeight | str | WeightFunction) -> WeightFunction:
    """
    Resolve a weighting strategy.

    Args:
        weight: A CostWeight (or its value) or any monotonically increasing callable

    Returns:
        The weight function

    Raises:
        InvalidInputError: If the strategy name is unknown
    """
    if callable(weight):
        return weight
    try:
        return _WEIGHT_FUNCTIONS[CostWeight(weight)]
    except ValueError as e:
        raise InvalidInputError(
            f"Unknown cost weight '{weight}'",
            {"cost_weight": weight, "valid_cost_weights": [item.value for item in CostWeight]},
        ) from e


def slice_delta(row: Row, root_row: Row) -> float:
    """Additive share of the root delta carried by ``row``."""
    if row.kind == "ratio":
        current = safe_divide(row.current_numerator, root_row.current_denominator, 0.0)
        baseline = safe_divide(row.baseline_numerator, root_row.baseline_denominator, 0.0)
        return current - baseline
    return row.current - row.baseline


def ratio_deviation(change_ratio: float, expected: float) -> float:
    """Absolute distance between two change ratios, tolerant of infinities."""
    if is_undefined(change_ratio) or is_undefined(expected):
        return UNDEFINED
    if math.isinf(change_ratio) or math.isinf(expected):
        return 0.0 if change_ratio == expected else math.inf
    return abs(change_ratio - expected)


class CostEvaluator:
    """Cost, contribution and ordering of the nodes of one cube."""

    def __init__(
        self,
        tree: CubeTree,
        weight: CostWeight | str | WeightFunction = CostWeight.SQRT,
        tolerance: float = 1e-6,
        precision: int = 9,
    ) -> None:
        self.tree = tree
        self.tolerance = tolerance
        self.precision = precision
        self._weight_function = get_weight_function(weight)

        root_row = tree.root.row
        self.root_row = root_row
        self._check_root()

        self.root_delta = slice_delta(root_row, root_row)
        self.root_flat = is_close(root_row.baseline_value(), root_row.current_value(), tolerance)
        self.global_change_ratio = root_row.change_ratio()

        # Normalize sizes by the root baseline; fall back to current sizes when the baseline is empty
        self._use_current_size = root_row.baseline_size() == 0
        self._root_size = abs(root_row.current_size() if self._use_current_size else root_row.baseline_size())

    def _check_root(self) -> None:
        """
        Raises:
            DegenerateAnomalyError: If the root has no explainable delta
        """
        baseline = self.root_row.baseline_value()
        current = self.root_row.current_value()
        if is_undefined(baseline) or is_undefined(current):
            raise DegenerateAnomalyError("Root ratio is undefined (zero denominator)", baseline, current)
        if is_close(baseline, current, self.tolerance) and not self.tree.has_changes:
            raise DegenerateAnomalyError(
                "Baseline equals current within tolerance and no slice changed beyond it", baseline, current
            )

    def contribution(self, node: CubeNode) -> float:
        """Fraction of the total anomaly delta attributable to ``node``; 0 when the root is flat."""
        if self.root_flat:
            return 0.0
        return slice_delta(node.row, self.root_row) / self.root_delta

    def deviation(self, node: CubeNode, global_change_ratio: float | None = None) -> float:
        expected = self.global_change_ratio if global_change_ratio is None else global_change_ratio
        return ratio_deviation(node.row.change_ratio(), expected)

    def weight(self, node: CubeNode) -> float:
        size = node.row.current_size() if self._use_current_size else node.row.baseline_size()
        share = safe_divide(abs(size), self._root_size, 0.0)
        return self._weight_function(share)

    def score(self, node: CubeNode, global_change_ratio: float | None = None) -> float:
        deviation = self.deviation(node, global_change_ratio)
        weight = self.weight(node)
        if is_undefined(deviation) or weight == 0:
            return 0.0
        return deviation * weight

    def cost(self, node: CubeNode, global_change_ratio: float | None = None) -> float:
        return 1.0 / (1.0 + self.score(node, global_change_ratio))

    def direction(self, node: CubeNode) -> ChangeDirection:
        delta = slice_delta(node.row, self.root_row)
        if is_close(delta, 0.0, self.tolerance):
            return ChangeDirection.FLAT
        return ChangeDirection.UP if delta > 0 else ChangeDirection.DOWN

    def sort_key(self, node: CubeNode) -> SortKey:
        """
        Total order used by the search: lower cost first, then higher absolute
        contribution, then lower level, then the dimension values tuple.
        """
        return (
            round(self.cost(node), self.precision),
            -round(abs(self.contribution(node)), self.precision),
            node.level,
            node.dimension_values,
        )

    def dimension_costs(self) -> list[DimensionCost]:
        """
        Rank the active dimensions by the summed score of their level-1 slices.

        Returns:
            List of DimensionCost, highest score first
        """
        schema = self.tree.schema
        level_one = self.tree.children(self.tree.root)
        costs = []
        for dimension in self.tree.active_dimensions:
            position = schema.index_of(dimension)
            slices = [node for node in level_one if node.dimension_values[position] != WILDCARD]
            if not slices:
                continue
            total = sum(self.score(node) for node in slices)
            top = min(slices, key=lambda node: (-abs(self.contribution(node)), node.dimension_values))
            costs.append(
                DimensionCost(
                    dimension=dimension,
                    score=total,
                    top_slice=top.dimension_values[position],
                    top_contribution=self.contribution(top),
                )
            )
        costs.sort(key=lambda item: (-item.score, schema.index_of(item.dimension)))
        logger.debug("Dimension costs: %s", [(item.dimension, item.score) for item in costs])
        return costs
