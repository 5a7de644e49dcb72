"""Circuit breaker policy configuration and defaults."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from arodha.state import CircuitState, Counters

DEFAULT_MAX_REQUESTS = 10
DEFAULT_INTERVAL = 1.0
DEFAULT_TIMEOUT = 60.0
DEFAULT_CONSECUTIVE_FAILURES = 5

TripPredicate = Callable[[Counters], bool]
SuccessClassifier = Callable[[BaseException | None], bool]
StateChangeNotifier = Callable[[CircuitState, CircuitState], None]


def ready_to_trip(counters: Counters) -> bool:
    """Trip once five failures have happened in a row."""
    return counters.consecutive_failures >= DEFAULT_CONSECUTIVE_FAILURES


def is_successful(error: BaseException | None) -> bool:
    """Treat any outcome without an error as a success."""
    return error is None


def consecutive_failures_over(threshold: int) -> TripPredicate:
    """Build a trip predicate for a custom consecutive-failure threshold."""
    if threshold < 1:
        raise ValueError("threshold must be >= 1")

    def _ready_to_trip(counters: Counters) -> bool:
        return counters.consecutive_failures >= threshold

    return _ready_to_trip


@dataclass(frozen=True, slots=True)
class CircuitBreakerConfig:
    """Circuit breaker configuration values.

    Fields left as ``None`` (and zero durations) are replaced by the module
    defaults once, at construction. The result is immutable.

    Attributes:
        max_requests: Probes allowed per ``HALF_OPEN`` episode, also the
            success streak needed to close again. ``0`` means unlimited.
        interval: Reserved ``CLOSED`` refresh period in seconds. Stored and
            validated only; counters reset on transitions alone.
        timeout: Seconds to stay ``OPEN`` before allowing probes.
        ready_to_trip: Predicate over ``Counters`` deciding when to open.
        is_successful: Classifier over a call's error (``None`` if it raised
            nothing) deciding whether the call counts as a success.
        on_state_change: Optional ``(old, new)`` callback run after every
            transition, outside the breaker lock.
        metadata: Caller-defined tags. Never interpreted by the breaker.
    """

    max_requests: int | None = None
    interval: float | None = None
    timeout: float | None = None
    ready_to_trip: TripPredicate | None = None
    is_successful: SuccessClassifier | None = None
    on_state_change: StateChangeNotifier | None = None
    metadata: Mapping[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.max_requests is not None and self.max_requests < 0:
            raise ValueError("max_requests must be >= 0")
        if self.interval is not None and self.interval < 0:
            raise ValueError("interval must be >= 0")
        if self.timeout is not None and self.timeout < 0:
            raise ValueError("timeout must be >= 0")

        resolved: dict[str, object] = {
            "max_requests": (
                DEFAULT_MAX_REQUESTS if self.max_requests is None else self.max_requests
            ),
            "interval": self.interval or DEFAULT_INTERVAL,
            "timeout": self.timeout or DEFAULT_TIMEOUT,
            "ready_to_trip": self.ready_to_trip or ready_to_trip,
            "is_successful": self.is_successful or is_successful,
            "metadata": MappingProxyType(dict(self.metadata)),
        }
        for name, value in resolved.items():
            object.__setattr__(self, name, value)
