"""Core circuit breaker implementation."""

import asyncio
import threading
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import ParamSpec, TypeVar

from arodha.config import CircuitBreakerConfig
from arodha.exceptions import (
    CircuitBreakerError,
    CircuitOpenError,
    TooManyRequestsError,
)
from arodha.logging import AnyLogger, get_logger, log_exception, log_info
from arodha.state import CircuitState, Counters, StateChange

T = TypeVar("T")
P = ParamSpec("P")


def _monotonic() -> float:
    return time.monotonic()


class CircuitBreaker:
    """Thread-safe guard around a dangerous operation.

    Callers either use the two-call protocol::

        generation = breaker.before_request()
        try:
            result = do_remote_call()
        except Exception as exc:
            breaker.after_request(exc, generation=generation)
            raise
        breaker.after_request(generation=generation)

    or hand the operation to :meth:`call` / :meth:`call_async`.

    State transitions are evaluated lazily whenever the breaker is consulted;
    there is no timer thread. All state lives behind one lock, which is never
    held while the protected operation or the state-change notifier runs.
    """

    def __init__(
        self,
        name: str = "default",
        *,
        config: CircuitBreakerConfig | None = None,
        logger: AnyLogger | None = None,
    ) -> None:
        """Build a circuit breaker in the ``CLOSED`` state.

        Args:
            name: Breaker name used in logs and rejection errors.
            config: Breaker policy. Defaults to ``CircuitBreakerConfig()``.
            logger: Structured or stdlib logger. Defaults to the ``arodha``
                structlog logger.
        """
        self.name = name
        self.config = CircuitBreakerConfig() if config is None else config
        self._logger = get_logger() if logger is None else logger
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._generation = 0
        self._counters = Counters()
        self._expiry: float | None = None

    @property
    def metadata(self) -> Mapping[str, object]:
        """Caller-supplied tags from the configuration."""
        return self.config.metadata

    @property
    def generation(self) -> int:
        """Number of transitions so far; identifies the current counters."""
        with self._lock:
            return self._generation

    @property
    def expiry(self) -> float | None:
        """Monotonic deadline of the current ``OPEN`` cooldown, if open."""
        with self._lock:
            return self._expiry

    @property
    def state(self) -> CircuitState:
        return self.get_current_state()

    @property
    def counters(self) -> Counters:
        return self.get_counters()

    def get_current_state(self) -> CircuitState:
        """Return the state after applying any transition that is due."""
        changes: list[StateChange] = []
        with self._lock:
            state = self._current_state(_monotonic(), changes)
        self._notify(changes)
        return state

    def get_counters(self) -> Counters:
        """Return a snapshot of the current generation's counters."""
        with self._lock:
            return self._counters.copy()

    def before_request(self) -> int:
        """Ask permission to run one protected operation.

        Returns:
            The generation the request was admitted in. Pass it back to
            :meth:`after_request` so late outcomes are not booked against a
            newer generation.

        Raises:
            CircuitOpenError: The breaker is open and still cooling down.
            TooManyRequestsError: The half-open probe quota is used up.
        """
        changes: list[StateChange] = []
        rejection: CircuitBreakerError | None = None
        with self._lock:
            now = _monotonic()
            state = self._current_state(now, changes)
            max_requests = self.config.max_requests
            if state == CircuitState.OPEN:
                expiry = now if self._expiry is None else self._expiry
                rejection = CircuitOpenError(
                    self.name, retry_after=max(expiry - now, 0.0)
                )
            elif (
                state == CircuitState.HALF_OPEN
                and max_requests
                and self._counters.requests >= max_requests
            ):
                rejection = TooManyRequestsError(self.name, max_requests)
            else:
                self._counters.on_request()
            generation = self._generation

        self._notify(changes)
        if rejection is not None:
            log_info(
                self._logger,
                "circuit_breaker.call_rejected",
                breaker=self.name,
                state=str(state),
                reason=type(rejection).__name__,
            )
            raise rejection
        return generation

    def after_request(
        self,
        error: BaseException | None = None,
        *,
        generation: int | None = None,
    ) -> None:
        """Report the outcome of an operation admitted by :meth:`before_request`.

        Args:
            error: Exception raised by the operation, ``None`` if it returned.
            generation: Value returned by the matching ``before_request``.
                Outcomes from an earlier generation are discarded.
        """
        success = self.config.is_successful(error)
        changes: list[StateChange] = []
        with self._lock:
            now = _monotonic()
            state = self._current_state(now, changes)
            if generation is None or generation == self._generation:
                if success:
                    self._on_success(state, now, changes)
                else:
                    self._on_failure(state, now, changes)
        self._notify(changes)

    def call(self, func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
        """Invoke a callable under circuit breaker protection.

        Raises:
            CircuitOpenError: When the circuit is open and the call is rejected.
            TooManyRequestsError: When the half-open probe quota is used up.
            Exception: The original exception from ``func``.
        """
        generation = self.before_request()
        try:
            result = func(*args, **kwargs)
        except Exception as exc:
            self.after_request(exc, generation=generation)
            raise
        self.after_request(generation=generation)
        return result

    async def call_async(
        self,
        func: Callable[P, Awaitable[T]],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        """Await an async callable under circuit breaker protection.

        Raises:
            CircuitOpenError: When the circuit is open and the call is rejected.
            TooManyRequestsError: When the half-open probe quota is used up.
            Exception: The original exception from ``func``.
        """
        task = asyncio.current_task()
        if task is not None:
            callable_name = getattr(func, "__qualname__", None)
            if callable_name is None:
                callable_name = func.__class__.__qualname__
            task.set_name(f"circuit_breaker:{self.name}:{callable_name}")

        generation = self.before_request()
        try:
            result = await func(*args, **kwargs)
        except Exception as exc:
            self.after_request(exc, generation=generation)
            raise
        self.after_request(generation=generation)
        return result

    # The helpers below expect ``self._lock`` to be held.

    def _current_state(self, now: float, changes: list[StateChange]) -> CircuitState:
        if self._state == CircuitState.OPEN:
            if self._expiry is None or now >= self._expiry:
                self._set_state(CircuitState.HALF_OPEN, now, changes)
        elif self.config.ready_to_trip(self._counters.copy()):
            self._set_state(CircuitState.OPEN, now, changes)
        return self._state

    def _on_success(
        self, state: CircuitState, now: float, changes: list[StateChange]
    ) -> None:
        if state == CircuitState.CLOSED:
            self._counters.on_success()
        elif state == CircuitState.HALF_OPEN:
            self._counters.on_success()
            # A tripping predicate wins over the recovery quota.
            if self.config.ready_to_trip(self._counters.copy()):
                self._set_state(CircuitState.OPEN, now, changes)
            elif self._counters.consecutive_successes >= self.config.max_requests:
                self._set_state(CircuitState.CLOSED, now, changes)

    def _on_failure(
        self, state: CircuitState, now: float, changes: list[StateChange]
    ) -> None:
        if state == CircuitState.CLOSED:
            self._counters.on_failure()
            if self.config.ready_to_trip(self._counters.copy()):
                self._set_state(CircuitState.OPEN, now, changes)
        elif state == CircuitState.HALF_OPEN:
            self._set_state(CircuitState.OPEN, now, changes)

    def _set_state(
        self, state: CircuitState, now: float, changes: list[StateChange]
    ) -> None:
        if self._state == state:
            return

        previous = self._state
        self._state = state
        self._generation += 1
        self._counters.reset()
        self._expiry = now + self.config.timeout if state == CircuitState.OPEN else None
        changes.append(StateChange(previous=previous, new=state))

    def _notify(self, changes: list[StateChange]) -> None:
        for change in changes:
            log_info(
                self._logger,
                "circuit_breaker.state_changed",
                breaker=self.name,
                old=str(change.previous),
                new=str(change.new),
            )
            notifier = self.config.on_state_change
            if notifier is None:
                continue
            try:
                notifier(change.previous, change.new)
            except Exception:
                log_exception(
                    self._logger,
                    "circuit_breaker.notifier_failed",
                    breaker=self.name,
                    old=str(change.previous),
                    new=str(change.new),
                )
