"""Error taxonomy for record fetching and alert aggregation."""


class FleetAlertsError(Exception):
    """Base class for all application errors."""


class FetchTimeout(FleetAlertsError):
    """A single fetch attempt exceeded its deadline. Retryable."""

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"{operation} timeout after {timeout}s")


class TransientFetchError(FleetAlertsError):
    """Network or backend error that may succeed on retry."""


class PermanentAdapterError(FleetAlertsError):
    """Misconfiguration or missing backing resource. Never retried."""


class FetchError(FleetAlertsError):
    """All attempts of a fetch failed."""

    def __init__(self, operation: str, last_error: BaseException, attempts: int = 1):
        self.operation = operation
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(f"{operation} failed after {attempts} attempt(s): {last_error}")


class AggregationPartialFailure(FleetAlertsError):
    """One or more sources failed during an aggregation pass.

    Attached to pass results for diagnostics. It is not raised to consumers.
    """

    def __init__(self, failures: dict[str, str]):
        self.failures = dict(failures)
        sources = ", ".join(sorted(self.failures))
        super().__init__(f"Aggregation completed without: {sources}")
