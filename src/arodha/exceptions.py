"""Circuit breaker exceptions.

Callers can distinguish between:
  - A call being rejected because the circuit is open.
  - A call being rejected because the half-open probe quota is used up.
"""


class CircuitBreakerError(Exception):
    """Base exception for the arodha package."""


class CircuitOpenError(CircuitBreakerError):
    """Raised when a call is rejected because the circuit is open.

    Attributes:
        breaker_name: Name of the breaker rejecting the call.
        retry_after: Seconds until a half-open probe may be attempted.
    """

    def __init__(self, breaker_name: str, retry_after: float) -> None:
        """Initialize a circuit-open exception payload.

        Args:
            breaker_name: Breaker rejecting the call.
            retry_after: Seconds until the next probe window opens.
        """
        self.breaker_name = breaker_name
        self.retry_after = retry_after
        super().__init__(f"circuit_open: {breaker_name} retry_after={retry_after:g}s")


class TooManyRequestsError(CircuitBreakerError):
    """Raised when a half-open breaker has admitted all of its probes.

    Attributes:
        breaker_name: Name of the breaker rejecting the call.
        max_requests: Probe quota of the current half-open episode.
    """

    def __init__(self, breaker_name: str, max_requests: int) -> None:
        self.breaker_name = breaker_name
        self.max_requests = max_requests
        super().__init__(
            f"too_many_requests: {breaker_name} max_requests={max_requests}"
        )
