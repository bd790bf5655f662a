from typing import Any, TypeAlias

# Type aliases for common types
ErrorDetails: TypeAlias = dict[str, Any]
InvalidFields: TypeAlias = dict[str, Any]


class CubeError(Exception):
    """Base exception for all cube summary errors"""

    def __init__(self, message: str, details: ErrorDetails | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidInputError(CubeError):
    """Exception raised when input rows or options are malformed"""

    def __init__(self, message: str, invalid_fields: InvalidFields | None = None) -> None:
        details = {"invalid_fields": invalid_fields or {}}
        super().__init__(message, details)
        self.invalid_fields = invalid_fields or {}


class EmptyInputError(CubeError):
    """Exception raised when no rows are supplied"""

    default_message = "No data supplied for the cube"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class DegenerateAnomalyError(CubeError):
    """Exception raised when the anomaly has no explainable delta"""

    def __init__(self, message: str, baseline_value: float, current_value: float) -> None:
        super().__init__(message, {"baseline_value": baseline_value, "current_value": current_value})
        self.baseline_value = baseline_value
        self.current_value = current_value


class InconsistentAggregateError(CubeError):
    """Exception raised when rows do not roll up to the stated anomaly totals"""

    def __init__(
        self, message: str, expected: dict[str, float], actual: dict[str, float], tolerance: float
    ) -> None:
        details = {"expected": expected, "actual": actual, "tolerance": tolerance}
        super().__init__(message, details)
        self.expected = expected
        self.actual = actual
        self.tolerance = tolerance


class DepthExceededError(CubeError):
    """Exception raised when the requested depth is above the safety ceiling"""

    def __init__(self, message: str, max_depth: int, ceiling: int) -> None:
        super().__init__(message, {"max_depth": max_depth, "ceiling": ceiling})
        self.max_depth = max_depth
        self.ceiling = ceiling


class SummaryTimeoutError(CubeError, TimeoutError):
    """Exception raised when a summary exceeds the caller deadline"""

    def __init__(self, message: str, timeout: float | None, stage: str) -> None:
        super().__init__(message, {"timeout": timeout, "stage": stage})
        self.timeout = timeout
        self.stage = stage
