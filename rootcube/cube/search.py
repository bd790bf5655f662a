"""
Summary Search
=============================================================================

Greedy selection of the answer set over a built cube:

1. The frontier starts with the root's children.
2. The cheapest frontier node is popped (ties as in CostEvaluator.sort_key).
3. If one of its children ranks strictly better, the node is replaced in the
   frontier by its children (drill deeper); otherwise it joins the answer set.
4. Nodes overlapping an accepted answer never enter the frontier, so answers
   are pairwise disjoint slices: none is an ancestor of another and their
   contributions never double count.

The search is sequential; each step depends on the previous choice.
"""

import heapq
import logging
from dataclasses import dataclass

from rootcube.cube.cost import CostEvaluator, SortKey
from rootcube.cube.node import CubeNode, CubeTree
from rootcube.models import ChangeDirection, slices_overlap
from rootcube.utilities.deadline import Deadline

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoredNode:
    """A chosen node with the cost and contribution it was chosen with."""

    node: CubeNode
    cost: float
    contribution: float


class SummarySearch:
    """Bounded greedy search for the explaining slices of one cube."""

    def __init__(
        self,
        tree: CubeTree,
        evaluator: CostEvaluator,
        one_side_error: bool = False,
        deadline: Deadline | None = None,
    ) -> None:
        self.tree = tree
        self.evaluator = evaluator
        self.one_side_error = one_side_error
        self.deadline = deadline or Deadline()
        self._root_direction = evaluator.direction(tree.root)

    def _overlaps_answer(self, node: CubeNode, answers: list[ScoredNode]) -> bool:
        return any(slices_overlap(node.dimension_values, answer.node.dimension_values) for answer in answers)

    def _is_acceptable(self, node: CubeNode) -> bool:
        if not self.one_side_error or self._root_direction == ChangeDirection.FLAT:
            return True
        return self.evaluator.direction(node) == self._root_direction

    def summarize(self, target_size: int) -> list[ScoredNode]:
        """
        Select at most ``target_size`` disjoint nodes, lowest cost first.

        Args:
            target_size: Maximum number of answers

        Returns:
            Chosen nodes in the order they were accepted

        Raises:
            SummaryTimeoutError: If the deadline passes during the search
        """
        answers: list[ScoredNode] = []
        if target_size <= 0:
            return answers

        frontier: list[tuple[SortKey, int]] = []
        for child in self.tree.children(self.tree.root):
            heapq.heappush(frontier, (self.evaluator.sort_key(child), child.node_id))

        while frontier and len(answers) < target_size:
            self.deadline.check("summary search")
            key, node_id = heapq.heappop(frontier)
            node = self.tree.node(node_id)
            if self._overlaps_answer(node, answers):
                continue

            # children of a node disjoint from every answer are disjoint too
            children = [(self.evaluator.sort_key(child), child.node_id) for child in self.tree.children(node)]
            acceptable = self._is_acceptable(node)
            if children and (not acceptable or min(children) < (key, node_id)):
                logger.debug("Drilling into %s", node.dimension_values)
                for entry in children:
                    heapq.heappush(frontier, entry)
                continue
            if not acceptable:
                continue

            cost = self.evaluator.cost(node)
            answers.append(ScoredNode(node=node, cost=cost, contribution=self.evaluator.contribution(node)))
            logger.debug("Accepted %s with cost %.6f", node.dimension_values, cost)

        return answers


def summarize(tree: CubeTree, evaluator: CostEvaluator, target_size: int, **options) -> list[ScoredNode]:
    """Functional wrapper around SummarySearch.summarize."""
    return SummarySearch(tree, evaluator, **options).summarize(target_size)
