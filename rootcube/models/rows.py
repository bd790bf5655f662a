"""
Row model: the per-slice numeric payload.

Rows come in two shapes, additive and ratio, tagged by ``kind``. Both expose the
same accessors (see ``RowAccessor``); the builder only relies on ``payload`` and
``from_payload`` to roll rows up, so the two shapes never need to know about
each other.
"""

import math
from collections.abc import Sequence
from typing import Annotated, ClassVar, Literal, Protocol, TypeAlias

from pydantic import ConfigDict, Field

from rootcube.models.common import BaseModel
from rootcube.models.dimensions import DimensionValues, level_of
from rootcube.models.enums import MetricKind
from rootcube.utilities.numeric import calculate_change_ratio, safe_divide


class RowAccessor(Protocol):
    """Uniform read interface over both row shapes."""

    dimension_values: DimensionValues

    def baseline_value(self) -> float: ...

    def current_value(self) -> float: ...

    def change_ratio(self) -> float: ...

    def baseline_size(self) -> float: ...

    def current_size(self) -> float: ...

    def payload(self) -> tuple[float, ...]: ...


class AdditiveRow(BaseModel):
    """Row of a metric whose values sum correctly when rolled up (counts, sums)"""

    model_config = ConfigDict(frozen=True)

    PAYLOAD_FIELDS: ClassVar[tuple[str, ...]] = ("baseline", "current")

    kind: Literal["additive"] = "additive"
    dimension_values: DimensionValues
    baseline: float
    current: float

    def baseline_value(self) -> float:
        return self.baseline

    def current_value(self) -> float:
        return self.current

    def change_ratio(self) -> float:
        return calculate_change_ratio(self.baseline, self.current)

    def baseline_size(self) -> float:
        return self.baseline

    def current_size(self) -> float:
        return self.current

    def payload(self) -> tuple[float, ...]:
        return (self.baseline, self.current)

    @property
    def level(self) -> int:
        return level_of(self.dimension_values)

    @classmethod
    def from_payload(cls, dimension_values: DimensionValues, payload: Sequence[float]) -> "AdditiveRow":
        baseline, current = payload
        return cls(dimension_values=dimension_values, baseline=float(baseline), current=float(current))


class RatioRow(BaseModel):
    """
    Row of a ratio metric.

    The reported value is numerator / denominator. Numerators and denominators
    roll up additively; the ratio itself does not. A zero denominator yields the
    undefined sentinel rather than an error.
    """

    model_config = ConfigDict(frozen=True)

    PAYLOAD_FIELDS: ClassVar[tuple[str, ...]] = (
        "baseline_numerator",
        "baseline_denominator",
        "current_numerator",
        "current_denominator",
    )

    kind: Literal["ratio"] = "ratio"
    dimension_values: DimensionValues
    baseline_numerator: float
    baseline_denominator: float
    current_numerator: float
    current_denominator: float

    def baseline_value(self) -> float:
        return safe_divide(self.baseline_numerator, self.baseline_denominator)

    def current_value(self) -> float:
        return safe_divide(self.current_numerator, self.current_denominator)

    def change_ratio(self) -> float:
        return calculate_change_ratio(self.baseline_value(), self.current_value())

    def baseline_size(self) -> float:
        return self.baseline_denominator

    def current_size(self) -> float:
        return self.current_denominator

    def payload(self) -> tuple[float, ...]:
        return (
            self.baseline_numerator,
            self.baseline_denominator,
            self.current_numerator,
            self.current_denominator,
        )

    @property
    def level(self) -> int:
        return level_of(self.dimension_values)

    @classmethod
    def from_payload(cls, dimension_values: DimensionValues, payload: Sequence[float]) -> "RatioRow":
        baseline_numerator, baseline_denominator, current_numerator, current_denominator = payload
        return cls(
            dimension_values=dimension_values,
            baseline_numerator=float(baseline_numerator),
            baseline_denominator=float(baseline_denominator),
            current_numerator=float(current_numerator),
            current_denominator=float(current_denominator),
        )


Row: TypeAlias = Annotated[AdditiveRow | RatioRow, Field(discriminator="kind")]

ROW_TYPES: dict[MetricKind, type[AdditiveRow] | type[RatioRow]] = {
    MetricKind.ADDITIVE: AdditiveRow,
    MetricKind.RATIO: RatioRow,
}


def row_type_for(metric_kind: MetricKind | str) -> type[AdditiveRow] | type[RatioRow]:
    """Row class used for a metric kind."""
    return ROW_TYPES[MetricKind(metric_kind)]


def roll_up(rows: Sequence[AdditiveRow] | Sequence[RatioRow], dimension_values: DimensionValues) -> Row:
    """Sum the payloads of same-kind rows into one row at ``dimension_values``."""
    row_type = type(rows[0])
    totals = [math.fsum(column) for column in zip(*(row.payload() for row in rows))]
    return row_type.from_payload(dimension_values, totals)
