"""
rootcube: Multi-dimensional root-cause summaries for metric anomalies.
"""

from rootcube.api import Cube
from rootcube.exceptions import (
    CubeError,
    DegenerateAnomalyError,
    DepthExceededError,
    EmptyInputError,
    InconsistentAggregateError,
    InvalidInputError,
    SummaryTimeoutError,
)

__version__ = "0.1.0"
__all__ = [
    "Cube",
    "CubeError",
    "InvalidInputError",
    "EmptyInputError",
    "DegenerateAnomalyError",
    "InconsistentAggregateError",
    "DepthExceededError",
    "SummaryTimeoutError",
]
