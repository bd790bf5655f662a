import time

from rootcube.exceptions import SummaryTimeoutError


class Deadline:
    """Wall-clock budget for one summary request; ``None`` means unbounded."""

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout
        self._expires_at = None if timeout is None else time.monotonic() + timeout

    def remaining(self) -> float | None:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def timeout_error(self, stage: str) -> SummaryTimeoutError:
        return SummaryTimeoutError(f"Summary exceeded the {self.timeout}s deadline during {stage}", self.timeout, stage)

    def check(self, stage: str) -> None:
        """
        Raise if the budget is spent.

        Raises:
            SummaryTimeoutError: If the deadline has passed
        """
        if self.expired:
            raise self.timeout_error(stage)
