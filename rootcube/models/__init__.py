"""
Models module for the rootcube package.

This module contains the Pydantic models used throughout the package.
"""

from .enums import ChangeDirection, CostWeight, MetricKind
from .common import BaseModel
from .dimensions import (
    WILDCARD,
    DimensionSchema,
    DimensionValues,
    fixed_positions,
    is_ancestor,
    level_of,
    slices_overlap,
)
from .rows import AdditiveRow, RatioRow, Row, RowAccessor, roll_up, row_type_for
from .summary import DimensionCost, SummaryConfig, SummaryEntry, SummaryResult

__all__ = [
    # Enums
    "ChangeDirection",
    "CostWeight",
    "MetricKind",
    # Base
    "BaseModel",
    # Dimensions
    "WILDCARD",
    "DimensionSchema",
    "DimensionValues",
    "fixed_positions",
    "is_ancestor",
    "level_of",
    "slices_overlap",
    # Rows
    "AdditiveRow",
    "RatioRow",
    "Row",
    "RowAccessor",
    "roll_up",
    "row_type_for",
    # Summary
    "DimensionCost",
    "SummaryConfig",
    "SummaryEntry",
    "SummaryResult",
]
