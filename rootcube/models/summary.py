"""
Models for summary configuration and summary outputs.
"""

from typing import Any

import pandas as pd
from pydantic import Field

from rootcube.models.common import BaseModel
from rootcube.models.enums import ChangeDirection, CostWeight, MetricKind


class SummaryConfig(BaseModel):
    """Options recognized by the cube facade."""

    max_depth: int = Field(default=3, ge=0, description="Deepest level of dimension combinations to build")
    target_size: int = Field(default=10, ge=0, description="Number of answer rows desired")
    metric_kind: MetricKind = MetricKind.ADDITIVE
    cost_weight: CostWeight = CostWeight.SQRT
    timeout: float | None = Field(default=None, ge=0, description="Deadline for the whole summary, in seconds")
    excluded_dimensions: list[str] = Field(default_factory=list)
    one_side_error: bool = Field(
        default=False, description="Only report slices that moved in the same direction as the anomaly"
    )


class SummaryEntry(BaseModel):
    """One explaining slice of the anomaly"""

    dimensions: dict[str, str]
    dimension_values: list[str]
    level: int
    baseline_value: float
    current_value: float
    change_ratio: float
    contribution: float
    cost: float
    score: float
    direction: ChangeDirection


class DimensionCost(BaseModel):
    """How strongly a single dimension separates the anomaly"""

    dimension: str
    score: float
    top_slice: str | None = None
    top_contribution: float | None = None


class SummaryResult(BaseModel):
    """Ranked explanation of an anomaly"""

    metric_kind: MetricKind
    dimension_names: list[str]
    max_depth: int
    target_size: int
    baseline_value: float
    current_value: float
    change_ratio: float
    node_count: int
    entries: list[SummaryEntry] = Field(default_factory=list)
    dimension_costs: list[DimensionCost] = Field(default_factory=list)

    def to_dataframe(self) -> pd.DataFrame:
        """Flatten the entries into a frame, one column per dimension."""
        records: list[dict[str, Any]] = []
        for rank, entry in enumerate(self.entries, start=1):
            record: dict[str, Any] = {"rank": rank}
            record.update(dict(zip(self.dimension_names, entry.dimension_values)))
            record.update(
                {
                    "level": entry.level,
                    "baseline_value": entry.baseline_value,
                    "current_value": entry.current_value,
                    "change_ratio": entry.change_ratio,
                    "contribution": entry.contribution,
                    "cost": entry.cost,
                    "direction": entry.direction,
                }
            )
            records.append(record)
        columns = [
            "rank",
            *self.dimension_names,
            "level",
            "baseline_value",
            "current_value",
            "change_ratio",
            "contribution",
            "cost",
            "direction",
        ]
        return pd.DataFrame(records, columns=columns)
