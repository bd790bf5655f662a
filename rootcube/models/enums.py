from enum import Enum


class MetricKind(str, Enum):
    """How a metric rolls up across dimension slices"""

    ADDITIVE = "additive"  # Counts and sums, values add up
    RATIO = "ratio"  # Numerator / denominator, only the parts add up


class CostWeight(str, Enum):
    """Weighting applied to a slice's baseline share when scoring it"""

    LINEAR = "linear"
    SQRT = "sqrt"
    LOG = "log"


class ChangeDirection(str, Enum):
    """Direction of a slice's change between baseline and current"""

    UP = "up"
    DOWN = "down"
    FLAT = "flat"
