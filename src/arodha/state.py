"""Circuit breaker state primitives."""

from dataclasses import dataclass, replace
from enum import StrEnum


class CircuitState(StrEnum):
    """Circuit breaker state values."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(slots=True)
class Counters:
    """Outcome tally for the current breaker generation.

    Attributes:
        requests: Requests admitted since the last transition.
        total_successes: Successful outcomes since the last transition.
        total_failures: Failed outcomes since the last transition.
        consecutive_successes: Current success streak.
        consecutive_failures: Current failure streak.
    """

    requests: int = 0
    total_successes: int = 0
    total_failures: int = 0
    consecutive_successes: int = 0
    consecutive_failures: int = 0

    def on_request(self) -> None:
        self.requests += 1

    def on_success(self) -> None:
        self.total_successes += 1
        self.consecutive_successes += 1
        self.consecutive_failures = 0

    def on_failure(self) -> None:
        self.total_failures += 1
        self.consecutive_failures += 1
        self.consecutive_successes = 0

    def reset(self) -> None:
        self.requests = 0
        self.total_successes = 0
        self.total_failures = 0
        self.consecutive_successes = 0
        self.consecutive_failures = 0

    def copy(self) -> "Counters":
        """Return an independent snapshot of these counters."""
        return replace(self)


@dataclass(frozen=True, slots=True)
class StateChange:
    """One breaker transition captured for out-of-lock notification."""

    previous: CircuitState
    new: CircuitState
