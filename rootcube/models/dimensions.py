"""
Dimension schema and dimension value tuples.

A dimension value tuple is aligned to the schema: every position holds either a
concrete value or the wildcard sentinel, meaning the slice is aggregated over
that dimension. The number of concrete positions is the tuple's level.
"""

from collections.abc import Iterable, Sequence
from typing import TypeAlias

from pydantic import ConfigDict, ValidationError as PydanticValidationError, field_validator

from rootcube.exceptions import InvalidInputError
from rootcube.models.common import BaseModel

WILDCARD = "*"

DimensionValues: TypeAlias = tuple[str, ...]


def fixed_positions(values: DimensionValues) -> tuple[int, ...]:
    """Positions of the concrete (non-wildcard) values in a tuple."""
    return tuple(position for position, value in enumerate(values) if value != WILDCARD)


def level_of(values: DimensionValues) -> int:
    """Number of concrete values in a tuple."""
    return sum(1 for value in values if value != WILDCARD)


def slices_overlap(first: DimensionValues, second: DimensionValues) -> bool:
    """
    Check whether two slices share any data.

    Two slices overlap when they agree on every dimension both of them fix. A
    slice always overlaps its ancestors and descendants.
    """
    for value_a, value_b in zip(first, second):
        if value_a != WILDCARD and value_b != WILDCARD and value_a != value_b:
            return False
    return True


def is_ancestor(ancestor: DimensionValues, descendant: DimensionValues) -> bool:
    """Check whether ``ancestor`` fixes a strict subset of what ``descendant`` fixes."""
    if level_of(ancestor) >= level_of(descendant):
        return False
    return all(value == WILDCARD or value == other for value, other in zip(ancestor, descendant))


class DimensionSchema(BaseModel):
    """Ordered, unique set of dimension names for one cube"""

    model_config = ConfigDict(frozen=True)

    names: tuple[str, ...]

    @field_validator("names")
    @classmethod
    def validate_names(cls, names: tuple[str, ...]) -> tuple[str, ...]:
        if not names:
            raise ValueError("at least one dimension is required")
        for name in names:
            if not name.strip():
                raise ValueError("dimension names must not be blank")
            if name == WILDCARD:
                raise ValueError(f"'{WILDCARD}' is reserved for the wildcard")
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate dimension names: {duplicates}")
        return names

    @classmethod
    def from_names(cls, names: "Iterable[str] | DimensionSchema") -> "DimensionSchema":
        """
        Build a schema from dimension names.

        Args:
            names: Dimension names in their global order, or an existing schema

        Returns:
            DimensionSchema

        Raises:
            InvalidInputError: If the names are empty, blank or duplicated
        """
        if isinstance(names, DimensionSchema):
            return names
        try:
            return cls(names=tuple(names))
        except PydanticValidationError as e:
            raise InvalidInputError(
                "Invalid dimension schema", {"names": list(names), "validation_errors": e.errors()}
            ) from e

    @property
    def width(self) -> int:
        return len(self.names)

    def index_of(self, name: str) -> int:
        try:
            return self.names.index(name)
        except ValueError as e:
            raise InvalidInputError(
                f"Unknown dimension '{name}'", {"dimension": name, "available_dimensions": list(self.names)}
            ) from e

    def wildcard_values(self) -> DimensionValues:
        """Dimension values of the fully aggregated slice."""
        return (WILDCARD,) * self.width

    def describe(self, values: DimensionValues) -> dict[str, str]:
        """Map the fixed dimensions of a tuple to their values."""
        return {self.names[position]: values[position] for position in fixed_positions(values)}

    def values_from_mapping(self, mapping: dict[str, str]) -> DimensionValues:
        """Build a tuple from a {dimension: value} mapping; missing dimensions are wildcards."""
        unknown = [name for name in mapping if name not in self.names]
        if unknown:
            raise InvalidInputError(
                f"Unknown dimensions: {unknown}", {"unknown": unknown, "available_dimensions": list(self.names)}
            )
        return tuple(str(mapping[name]) if name in mapping else WILDCARD for name in self.names)

    def validate_values(self, values: Sequence[str]) -> DimensionValues:
        """
        Validate a concrete tuple coming from the row collaborator.

        Raises:
            InvalidInputError: If the tuple width is wrong or a value is a wildcard
        """
        if len(values) != self.width:
            raise InvalidInputError(
                "Dimension values do not match the schema width",
                {"dimension_values": list(values), "expected_width": self.width},
            )
        if WILDCARD in values:
            raise InvalidInputError(
                "Input rows must hold concrete dimension values",
                {"dimension_values": list(values), "wildcard": WILDCARD},
            )
        return tuple(values)
