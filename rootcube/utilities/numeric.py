"""
Numeric helpers shared by the row model, the builder and the cost evaluator.
"""

import math

# Sentinel for ratios that cannot be computed (zero denominators).
UNDEFINED = math.nan


def safe_divide(numerator: float, denominator: float, default_value: float = UNDEFINED) -> float:
    """
    Divide two numbers, returning ``default_value`` for a zero denominator.

    Args:
        numerator: The numerator value
        denominator: The denominator value
        default_value: Value to return if denominator is zero

    Returns:
        The division result, or default_value if denominator is zero
    """
    if denominator == 0:
        return default_value
    return numerator / denominator


def calculate_change_ratio(baseline: float, current: float) -> float:
    """
    Relative change ``current / baseline - 1``.

    A zero baseline yields 0 when current is also zero and a signed infinity
    otherwise. Undefined inputs propagate the undefined sentinel.
    """
    if math.isnan(baseline) or math.isnan(current):
        return UNDEFINED
    if baseline == 0:
        if current == 0:
            return 0.0
        return math.inf if current > 0 else -math.inf
    return current / baseline - 1.0


def is_close(value: float, reference: float, tolerance: float) -> bool:
    """Relative comparison with an absolute floor of ``tolerance`` around zero."""
    return math.isclose(value, reference, rel_tol=tolerance, abs_tol=tolerance)


def is_undefined(value: float) -> bool:
    return math.isnan(value)
