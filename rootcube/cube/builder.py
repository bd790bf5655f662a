"""
Hierarchy Builder
=============================================================================

Builds the cube tree from rows that are already aggregated per distinct
dimension-value combination:

- level 0 is the roll-up of every row
- level k groups the rows on every k-subset of the active dimensions
- each level-k node hangs under one canonical level-(k-1) parent, obtained by
  wildcarding the fixed dimension picked by the parent policy

With the default policy (wildcard the lowest-index fixed dimension), the
children of a node fix one extra dimension whose index is lower than any the
node fixes, and the children adding the same dimension partition the node.

Nodes whose delta is effectively zero are kept as leaves; their descendants are
never built.

Dependencies:
  - pandas as pd
  - numpy as np
"""

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, wait
from itertools import combinations
from typing import TypeAlias

import numpy as np
import pandas as pd

from rootcube.cube.cost import slice_delta
from rootcube.cube.node import CubeNode, CubeTree
from rootcube.exceptions import DepthExceededError, EmptyInputError, InvalidInputError
from rootcube.models import WILDCARD, AdditiveRow, DimensionSchema, DimensionValues, MetricKind, RatioRow, Row
from rootcube.utilities.deadline import Deadline
from rootcube.utilities.numeric import is_close, is_undefined

logger = logging.getLogger(__name__)

# (dimension values, fixed positions) -> position to wildcard to reach the parent
ParentPolicy: TypeAlias = Callable[[DimensionValues, tuple[int, ...]], int]

_Group: TypeAlias = tuple[DimensionValues, tuple[float, ...]]


def lowest_index_parent(values: DimensionValues, positions: tuple[int, ...]) -> int:
    """Wildcard the fixed dimension that comes first in the schema."""
    return min(positions)


def highest_index_parent(values: DimensionValues, positions: tuple[int, ...]) -> int:
    """Wildcard the fixed dimension that comes last in the schema."""
    return max(positions)


def _aggregate_subset(
    frame: pd.DataFrame, positions: tuple[int, ...], width: int, payload_fields: tuple[str, ...]
) -> list[_Group]:
    """Group the frame on the dimensions at ``positions`` and sum the payload."""
    columns = [f"d{position}" for position in positions]
    grouped = frame.groupby(columns, sort=True)[list(payload_fields)].sum().reset_index()

    groups: list[_Group] = []
    for record in grouped.itertuples(index=False, name=None):
        values = [WILDCARD] * width
        for position, value in zip(positions, record[: len(positions)]):
            values[position] = value
        groups.append((tuple(values), tuple(float(item) for item in record[len(positions) :])))
    return groups


class HierarchyBuilder:
    """Builds a CubeTree for one schema."""

    def __init__(
        self,
        schema: DimensionSchema,
        max_depth_ceiling: int = 6,
        excluded_dimensions: Sequence[str] | None = None,
        parent_policy: ParentPolicy = lowest_index_parent,
        prune_tolerance: float = 1e-9,
        tolerance: float = 1e-6,
        max_workers: int = 4,
        deadline: Deadline | None = None,
    ) -> None:
        self.schema = schema
        self.max_depth_ceiling = max_depth_ceiling
        self.parent_policy = parent_policy
        self.prune_tolerance = prune_tolerance
        self.tolerance = tolerance
        self.max_workers = max_workers
        self.deadline = deadline or Deadline()

        excluded = set(excluded_dimensions or [])
        for name in sorted(excluded):
            # raises for unknown dimensions
            schema.index_of(name)
        self.active_positions = tuple(position for position, name in enumerate(schema.names) if name not in excluded)

    @property
    def active_dimensions(self) -> tuple[str, ...]:
        return tuple(self.schema.names[position] for position in self.active_positions)

    def check_depth(self, max_depth: int) -> int:
        """
        Validate the requested depth and clamp it to the active dimensions.

        Raises:
            InvalidInputError: If max_depth is negative
            DepthExceededError: If max_depth is above the ceiling
        """
        if max_depth < 0:
            raise InvalidInputError("max_depth must not be negative", {"max_depth": max_depth})
        if max_depth > self.max_depth_ceiling:
            raise DepthExceededError(
                f"max_depth {max_depth} exceeds the ceiling of {self.max_depth_ceiling}",
                max_depth,
                self.max_depth_ceiling,
            )
        return min(max_depth, len(self.active_positions))

    def validate_rows(self, rows: Sequence[Row]) -> type:
        """
        Check the rows against the schema and return their row type.

        Raises:
            EmptyInputError: If there are no rows
            InvalidInputError: If rows are malformed, mixed or duplicated
        """
        if not rows:
            raise EmptyInputError()

        row_type = type(rows[0])
        seen: set[DimensionValues] = set()
        for row in rows:
            if type(row) is not row_type:
                raise InvalidInputError(
                    "Rows mix metric kinds", {"expected": row_type.__name__, "found": type(row).__name__}
                )
            values = self.schema.validate_values(row.dimension_values)
            if values in seen:
                raise InvalidInputError(
                    "Duplicate dimension combination in input rows", {"dimension_values": list(values)}
                )
            seen.add(values)
        return row_type

    def _to_frame(self, rows: Sequence[Row], row_type: type) -> pd.DataFrame:
        payload_fields = row_type.PAYLOAD_FIELDS
        frame = pd.DataFrame(
            [(*row.dimension_values, *row.payload()) for row in rows],
            columns=[f"d{position}" for position in range(self.schema.width)] + list(payload_fields),
        )

        payload = frame[list(payload_fields)].to_numpy(dtype=float)
        if not np.isfinite(payload).all():
            raise InvalidInputError("Row values must be finite", {"fields": list(payload_fields)})
        if row_type is AdditiveRow and (payload < 0).any():
            raise InvalidInputError("Additive row values must not be negative", {"fields": list(payload_fields)})
        if row_type is RatioRow and (payload[:, [1, 3]] < 0).any():
            raise InvalidInputError(
                "Ratio denominators must not be negative",
                {"fields": ["baseline_denominator", "current_denominator"]},
            )
        return frame

    def _row_changed(self, row: Row) -> bool:
        change_ratio = row.change_ratio()
        return not is_undefined(change_ratio) and not is_close(change_ratio, 0.0, self.tolerance)

    def _is_negligible(self, row: Row, root: Row, root_delta: float, root_volume: float) -> bool:
        """Whether a node's delta is too small to be worth drilling into."""
        delta = abs(slice_delta(row, root))
        if not is_close(root_delta, 0.0, self.tolerance):
            return delta / abs(root_delta) <= self.prune_tolerance
        return delta <= self.prune_tolerance * root_volume

    def build(self, rows: Sequence[Row], max_depth: int) -> CubeTree:
        """
        Build the cube tree.

        Args:
            rows: Rows aggregated per distinct dimension-value combination
            max_depth: Deepest level to build

        Returns:
            CubeTree whose node 0 is the root

        Raises:
            EmptyInputError: If rows is empty
            InvalidInputError: For malformed or duplicate rows
            DepthExceededError: If max_depth is above the ceiling
            SummaryTimeoutError: If the deadline passes while building
        """
        depth = self.check_depth(max_depth)
        row_type = self.validate_rows(rows)
        frame = self._to_frame(rows, row_type)
        payload_fields = row_type.PAYLOAD_FIELDS
        width = self.schema.width

        has_changes = any(self._row_changed(row) for row in rows)

        root_row = row_type.from_payload(self.schema.wildcard_values(), frame[list(payload_fields)].sum().tolist())
        root_delta = slice_delta(root_row, root_row)
        root_volume = sum(abs(value) for value in root_row.payload())

        # Drafts: (row, level, parent draft id)
        drafts: list[tuple[Row, int, int | None]] = [(root_row, 0, None)]
        children: dict[int, list[int]] = {0: []}
        # level (k-1) nodes that may receive children, by dimension values
        expandable: dict[DimensionValues, int] = {root_row.dimension_values: 0}
        pruned = 0

        pool = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="cube-builder")
        try:
            for level in range(1, depth + 1):
                if not expandable:
                    break
                self.deadline.check(f"hierarchy level {level}")
                groups = self._aggregate_level(pool, frame, level, width, payload_fields)

                next_expandable: dict[DimensionValues, int] = {}
                for values, payload in groups:
                    positions = tuple(position for position in range(width) if values[position] != WILDCARD)
                    wildcard_at = self.parent_policy(values, positions)
                    parent_values = tuple(
                        WILDCARD if position == wildcard_at else value for position, value in enumerate(values)
                    )
                    parent_id = expandable.get(parent_values)
                    if parent_id is None:
                        continue

                    row = row_type.from_payload(values, payload)
                    node_id = len(drafts)
                    drafts.append((row, level, parent_id))
                    children[parent_id].append(node_id)
                    children[node_id] = []
                    if self._is_negligible(row, root_row, root_delta, root_volume):
                        pruned += 1
                    else:
                        next_expandable[values] = node_id
                expandable = next_expandable
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        nodes = self._finalize(drafts, children)
        tree = CubeTree(
            schema=self.schema,
            nodes=nodes,
            metric_kind=MetricKind(root_row.kind),
            max_depth=depth,
            active_dimensions=self.active_dimensions,
            has_changes=has_changes,
        )
        logger.debug(
            "Built cube with %d nodes (per level %s), %d branches pruned", len(tree), tree.level_counts(), pruned
        )
        return tree

    def _aggregate_level(
        self,
        pool: ThreadPoolExecutor,
        frame: pd.DataFrame,
        level: int,
        width: int,
        payload_fields: tuple[str, ...],
    ) -> list[_Group]:
        """Aggregate every k-subset of the active dimensions, one task per subset."""
        subsets = list(combinations(self.active_positions, level))
        futures = [pool.submit(_aggregate_subset, frame, subset, width, payload_fields) for subset in subsets]

        _, not_done = wait(futures, timeout=self.deadline.remaining())
        if not_done:
            for future in not_done:
                future.cancel()
            raise self.deadline.timeout_error(f"hierarchy level {level}")

        groups: list[_Group] = []
        # keep subset order so node ids are deterministic
        for future in futures:
            groups.extend(future.result())
        return groups

    @staticmethod
    def _finalize(drafts: list[tuple[Row, int, int | None]], children: dict[int, list[int]]) -> list[CubeNode]:
        """Freeze the drafts into nodes; siblings are indexed in dimension-value order."""
        index_of: dict[int, int] = {0: 0}
        ordered_children: dict[int, tuple[int, ...]] = {}
        for parent_id, child_ids in children.items():
            ordered = sorted(child_ids, key=lambda child_id: drafts[child_id][0].dimension_values)
            ordered_children[parent_id] = tuple(ordered)
            for index, child_id in enumerate(ordered):
                index_of[child_id] = index

        return [
            CubeNode(
                node_id=node_id,
                row=row,
                level=level,
                index=index_of[node_id],
                parent_id=parent_id,
                children_ids=ordered_children[node_id],
            )
            for node_id, (row, level, parent_id) in enumerate(drafts)
        ]


def build_hierarchy(rows: Sequence[Row], max_depth: int, schema: DimensionSchema, **options) -> CubeTree:
    """
    Build a cube tree from aggregated rows.

    Args:
        rows: Rows aggregated per distinct dimension-value combination
        max_depth: Deepest level to build
        schema: Dimension schema of the rows
        **options: HierarchyBuilder options

    Returns:
        CubeTree
    """
    return HierarchyBuilder(schema, **options).build(rows, max_depth)
