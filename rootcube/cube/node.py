"""
Cube nodes and the arena that owns them.

Nodes never reference each other directly: parents and children are node ids
into the owning ``CubeTree``. The tree is built once and never mutated.
"""

from collections.abc import Iterator
from dataclasses import dataclass

from rootcube.models import DimensionSchema, DimensionValues, MetricKind, Row


@dataclass(frozen=True)
class CubeNode:
    """One slice of the cube: an aggregated row and its place in the hierarchy."""

    node_id: int
    row: Row
    level: int
    index: int
    parent_id: int | None
    children_ids: tuple[int, ...] = ()

    @property
    def dimension_values(self) -> DimensionValues:
        return self.row.dimension_values

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def is_leaf(self) -> bool:
        return not self.children_ids


class CubeTree:
    """Arena of cube nodes; node 0 is the root."""

    def __init__(
        self,
        schema: DimensionSchema,
        nodes: list[CubeNode],
        metric_kind: MetricKind,
        max_depth: int,
        active_dimensions: tuple[str, ...],
        has_changes: bool,
    ) -> None:
        self.schema = schema
        self.metric_kind = MetricKind(metric_kind)
        self.max_depth = max_depth
        self.active_dimensions = active_dimensions
        # whether any input row differs between baseline and current
        self.has_changes = has_changes
        self._nodes = nodes
        self._by_values = {node.dimension_values: node.node_id for node in nodes}

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[CubeNode]:
        return iter(self._nodes)

    @property
    def root(self) -> CubeNode:
        return self._nodes[0]

    def node(self, node_id: int) -> CubeNode:
        return self._nodes[node_id]

    def parent(self, node: CubeNode) -> CubeNode | None:
        if node.parent_id is None:
            return None
        return self._nodes[node.parent_id]

    def children(self, node: CubeNode) -> list[CubeNode]:
        return [self._nodes[child_id] for child_id in node.children_ids]

    def find(self, values: DimensionValues) -> CubeNode | None:
        """Look up a node by its dimension values; pruned slices are absent."""
        node_id = self._by_values.get(tuple(values))
        return None if node_id is None else self._nodes[node_id]

    def level(self, level: int) -> list[CubeNode]:
        return [node for node in self._nodes if node.level == level]

    def path(self, node: CubeNode) -> list[CubeNode]:
        """Nodes from the root down to ``node``."""
        path = [node]
        current = self.parent(node)
        while current is not None:
            path.append(current)
            current = self.parent(current)
        return list(reversed(path))

    @property
    def depth(self) -> int:
        return max(node.level for node in self._nodes)

    def level_counts(self) -> dict[int, int]:
        counts: dict[int, int] = {}
        for node in self._nodes:
            counts[node.level] = counts.get(node.level, 0) + 1
        return counts
