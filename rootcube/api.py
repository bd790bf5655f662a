"""
Main API for the rootcube package.
"""

import logging
from collections.abc import Iterable, Sequence
from typing import Any

import pandas as pd
from pydantic import ValidationError

from rootcube.config import CubeSettings, get_cube_settings
from rootcube.cube import CostEvaluator, HierarchyBuilder, ScoredNode, SummarySearch, WeightFunction
from rootcube.cube.node import CubeTree
from rootcube.exceptions import CubeError, InconsistentAggregateError, InvalidInputError
from rootcube.models import (
    AdditiveRow,
    DimensionSchema,
    MetricKind,
    RatioRow,
    Row,
    SummaryConfig,
    SummaryEntry,
    SummaryResult,
    roll_up,
    row_type_for,
)
from rootcube.utilities.deadline import Deadline
from rootcube.utilities.numeric import is_close

logger = logging.getLogger(__name__)


class Cube:
    """Main API class for explaining an anomaly by the slices of a dimension cube."""

    def __init__(self, settings: CubeSettings | None = None) -> None:
        self.settings = settings or get_cube_settings()

    def get_default_config(self) -> SummaryConfig:
        """
        Build the summary configuration from settings.

        Returns:
            SummaryConfig with the configured defaults
        """
        return SummaryConfig(
            max_depth=self.settings.DEFAULT_MAX_DEPTH,
            target_size=self.settings.DEFAULT_TARGET_SIZE,
            cost_weight=self.settings.DEFAULT_COST_WEIGHT,
            timeout=self.settings.DEFAULT_TIMEOUT,
        )

    def resolve_config(self, config: SummaryConfig | None = None, **overrides: Any) -> SummaryConfig:
        """
        Merge keyword overrides into a configuration.

        Raises:
            InvalidInputError: If an override is unknown or fails validation
        """
        config = config or self.get_default_config()
        unknown = sorted(set(overrides) - set(SummaryConfig.model_fields))
        if unknown:
            raise InvalidInputError(
                f"Unknown summary options: {', '.join(unknown)}", {"unknown_options": unknown}
            )
        if not overrides:
            return config
        try:
            return SummaryConfig.model_validate({**config.model_dump(), **overrides})
        except ValidationError as e:
            raise InvalidInputError("Invalid summary configuration", {"validation_errors": e.errors()}) from e

    @staticmethod
    def normalize_rows(rows: Iterable[Row | dict[str, Any]], metric_kind: MetricKind | str) -> list[Row]:
        """
        Convert input rows into row models of the requested metric kind.

        Args:
            rows: Row models or plain dicts with ``dimension_values`` and the payload fields
            metric_kind: Kind every row must have

        Returns:
            List of row models

        Raises:
            InvalidInputError: If a row is malformed or of the wrong kind
        """
        row_type = row_type_for(metric_kind)
        normalized: list[Row] = []
        for row in rows:
            if isinstance(row, AdditiveRow | RatioRow):
                if not isinstance(row, row_type):
                    raise InvalidInputError(
                        "Row kind does not match the metric kind",
                        {"metric_kind": MetricKind(metric_kind).value, "row_kind": row.kind},
                    )
                normalized.append(row)
                continue
            try:
                normalized.append(row_type.model_validate(row))
            except ValidationError as e:
                raise InvalidInputError("Invalid row", {"row": row, "validation_errors": e.errors()}) from e
        return normalized

    def check_consistency(self, root: Row, anomaly_baseline: float, anomaly_current: float) -> None:
        """
        Compare the roll-up of the rows with the stated anomaly totals.

        Raises:
            InconsistentAggregateError: If either total differs beyond the tolerance
        """
        expected = {"baseline": anomaly_baseline, "current": anomaly_current}
        actual = {"baseline": root.baseline_value(), "current": root.current_value()}
        tolerance = self.settings.TOLERANCE
        if all(is_close(actual[key], expected[key], tolerance) for key in expected):
            return
        raise InconsistentAggregateError(
            f"Rows roll up to {actual['baseline']} -> {actual['current']}, "
            f"expected {anomaly_baseline} -> {anomaly_current}",
            expected,
            actual,
            tolerance,
        )

    def explain(
        self,
        rows: Iterable[Row | dict[str, Any]],
        anomaly_baseline: float,
        anomaly_current: float,
        schema: Sequence[str] | DimensionSchema,
        config: SummaryConfig | None = None,
        weight_function: WeightFunction | None = None,
        **overrides: Any,
    ) -> SummaryResult:
        """
        Explain an anomaly by the slices that best account for it.

        Args:
            rows: Rows aggregated per distinct dimension-value combination
            anomaly_baseline: Baseline value of the anomalous metric
            anomaly_current: Current value of the anomalous metric
            schema: Ordered dimension names
            config: Summary configuration, defaults from settings
            weight_function: Custom size weighting, overrides config.cost_weight
            **overrides: SummaryConfig fields to override

        Returns:
            SummaryResult with the answer slices in ranking order

        Raises:
            CubeError: Or one of its subclasses for every failure
        """
        config = self.resolve_config(config, **overrides)
        deadline = Deadline(config.timeout)

        try:
            schema = DimensionSchema.from_names(schema)
            builder = HierarchyBuilder(
                schema,
                max_depth_ceiling=self.settings.MAX_DEPTH_CEILING,
                excluded_dimensions=config.excluded_dimensions,
                prune_tolerance=self.settings.PRUNE_TOLERANCE,
                tolerance=self.settings.TOLERANCE,
                max_workers=self.settings.MAX_WORKERS,
                deadline=deadline,
            )
            builder.check_depth(config.max_depth)

            normalized = self.normalize_rows(rows, config.metric_kind)
            builder.validate_rows(normalized)
            self.check_consistency(roll_up(normalized, schema.wildcard_values()), anomaly_baseline, anomaly_current)
            deadline.check("validation")

            tree = builder.build(normalized, config.max_depth)
            evaluator = CostEvaluator(
                tree,
                weight=weight_function or config.cost_weight,
                tolerance=self.settings.TOLERANCE,
                precision=self.settings.COST_PRECISION,
            )
            search = SummarySearch(tree, evaluator, one_side_error=config.one_side_error, deadline=deadline)
            chosen = search.summarize(config.target_size)
            result = self._build_result(tree, evaluator, chosen, config)
            deadline.check("result")
        except CubeError:
            raise
        except Exception as e:
            logger.error("Unexpected error while summarizing the cube: %s", e, exc_info=True)
            raise CubeError(f"Error computing summary: {e}", {"original_error": type(e).__name__}) from e

        logger.info(
            "Explained %s -> %s with %d slices over %d nodes",
            result.baseline_value,
            result.current_value,
            len(result.entries),
            result.node_count,
        )
        return result

    def explain_dataframe(
        self,
        df: pd.DataFrame,
        dimensions: Sequence[str],
        anomaly_baseline: float | None = None,
        anomaly_current: float | None = None,
        value_columns: dict[str, str] | None = None,
        aggregate: bool = False,
        config: SummaryConfig | None = None,
        weight_function: WeightFunction | None = None,
        **overrides: Any,
    ) -> SummaryResult:
        """
        Explain an anomaly from a DataFrame with one row per dimension combination.

        Args:
            df: Input frame
            dimensions: Dimension columns, in schema order
            anomaly_baseline: Baseline total, defaults to the frame's own roll-up
            anomaly_current: Current total, defaults to the frame's own roll-up
            value_columns: Map of payload field (e.g. ``baseline`` or
                ``current_numerator``) to frame column, for columns named differently
            aggregate: Sum duplicate dimension combinations instead of rejecting them
            config: Summary configuration, defaults from settings
            weight_function: Custom size weighting
            **overrides: SummaryConfig fields to override

        Returns:
            SummaryResult

        Raises:
            InvalidInputError: If columns are missing
        """
        config = self.resolve_config(config, **overrides)
        row_type = row_type_for(config.metric_kind)
        columns = {field: field for field in row_type.PAYLOAD_FIELDS}
        columns.update(value_columns or {})

        missing = [column for column in [*dimensions, *columns.values()] if column not in df.columns]
        if missing:
            raise InvalidInputError(f"Missing columns: {', '.join(missing)}", {"missing_columns": missing})

        frame = df[list(dimensions) + list(columns.values())].copy()
        frame[list(dimensions)] = frame[list(dimensions)].astype(str)
        if aggregate:
            frame = frame.groupby(list(dimensions), sort=False, as_index=False).sum()

        try:
            rows = [
                row_type.from_payload(tuple(record[: len(dimensions)]), record[len(dimensions) :])
                for record in frame.itertuples(index=False, name=None)
            ]
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Invalid value columns: {e}", {"value_columns": list(columns.values())}) from e

        if anomaly_baseline is None or anomaly_current is None:
            if not rows:
                # leave the empty case to explain
                anomaly_baseline = anomaly_current = 0.0
            else:
                root = roll_up(rows, DimensionSchema.from_names(dimensions).wildcard_values())
                anomaly_baseline = root.baseline_value() if anomaly_baseline is None else anomaly_baseline
                anomaly_current = root.current_value() if anomaly_current is None else anomaly_current

        return self.explain(
            rows, anomaly_baseline, anomaly_current, dimensions, config=config, weight_function=weight_function
        )

    def _build_result(
        self, tree: CubeTree, evaluator: CostEvaluator, chosen: list[ScoredNode], config: SummaryConfig
    ) -> SummaryResult:
        root = tree.root.row
        entries = [
            SummaryEntry(
                dimensions=tree.schema.describe(scored.node.dimension_values),
                dimension_values=list(scored.node.dimension_values),
                level=scored.node.level,
                baseline_value=scored.node.row.baseline_value(),
                current_value=scored.node.row.current_value(),
                change_ratio=scored.node.row.change_ratio(),
                contribution=scored.contribution,
                cost=scored.cost,
                score=evaluator.score(scored.node),
                direction=evaluator.direction(scored.node),
            )
            for scored in chosen
        ]
        return SummaryResult(
            metric_kind=tree.metric_kind,
            dimension_names=list(tree.schema.names),
            max_depth=tree.max_depth,
            target_size=config.target_size,
            baseline_value=root.baseline_value(),
            current_value=root.current_value(),
            change_ratio=root.change_ratio(),
            node_count=len(tree),
            entries=entries,
            dimension_costs=evaluator.dimension_costs(),
        )
