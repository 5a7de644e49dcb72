"""Thread-safe, synchronous circuit breaker.

This package implements the circuit breaker pattern from *Release It!*.

Key behavior notes:
  - Transitions are evaluated lazily whenever the breaker is consulted. There
    is no background timer; an ``OPEN`` breaker turns ``HALF_OPEN`` on the first
    call made after its cooldown has elapsed.
  - Counters belong to one *generation* and are zeroed on every transition,
    never by elapsed time alone.
  - While ``HALF_OPEN`` at most ``max_requests`` probes are admitted. A single
    failed probe reopens the circuit; ``max_requests`` consecutive successes
    close it.
  - The state-change notifier runs after the breaker lock is released, so it
    may call back into the breaker.
"""

from arodha.breaker import CircuitBreaker
from arodha.config import (
    DEFAULT_CONSECUTIVE_FAILURES,
    DEFAULT_INTERVAL,
    DEFAULT_MAX_REQUESTS,
    DEFAULT_TIMEOUT,
    CircuitBreakerConfig,
    consecutive_failures_over,
    is_successful,
    ready_to_trip,
)
from arodha.exceptions import (
    CircuitBreakerError,
    CircuitOpenError,
    TooManyRequestsError,
)
from arodha.state import CircuitState, Counters, StateChange

__all__ = [
    "DEFAULT_CONSECUTIVE_FAILURES",
    "DEFAULT_INTERVAL",
    "DEFAULT_MAX_REQUESTS",
    "DEFAULT_TIMEOUT",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitOpenError",
    "CircuitState",
    "Counters",
    "StateChange",
    "TooManyRequestsError",
    "consecutive_failures_over",
    "is_successful",
    "ready_to_trip",
]
