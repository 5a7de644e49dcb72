from __future__ import annotations

import structlog
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from arodha.breaker import CircuitBreaker
from arodha.config import (
    DEFAULT_CONSECUTIVE_FAILURES,
    DEFAULT_INTERVAL,
    DEFAULT_MAX_REQUESTS,
    DEFAULT_TIMEOUT,
    CircuitBreakerConfig,
    consecutive_failures_over,
)
from arodha.logging import AnyLogger, configure_structlog, get_log_level_value


def prefixed_settings_config(prefix: str) -> SettingsConfigDict:
    """Build standard Pydantic settings config for prefixed environments."""
    return SettingsConfigDict(env_prefix=prefix, case_sensitive=False)


class BreakerSettings(BaseSettings):
    """Environment-driven settings for one circuit breaker.

    Values are read from ``ARODHA_*`` variables, e.g. ``ARODHA_TIMEOUT=30``.
    Durations are seconds.
    """

    model_config = prefixed_settings_config("ARODHA_")

    name: str = "default"
    max_requests: int = DEFAULT_MAX_REQUESTS
    interval: float = DEFAULT_INTERVAL
    timeout: float = DEFAULT_TIMEOUT
    consecutive_failures: int = DEFAULT_CONSECUTIVE_FAILURES
    log_level: str = "INFO"

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        normalized = value.strip()
        if not normalized:
            raise ValueError("name must be non-empty")
        return normalized

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        get_log_level_value(value)
        return value.strip().upper()

    @model_validator(mode="after")
    def _validate_breaker_settings(self) -> BreakerSettings:
        if self.max_requests < 0:
            raise ValueError("max_requests must be >= 0")
        if self.interval < 0:
            raise ValueError("interval must be >= 0")
        if self.timeout < 0:
            raise ValueError("timeout must be >= 0")
        if self.consecutive_failures < 1:
            raise ValueError("consecutive_failures must be >= 1")
        return self

    def to_config(self, **overrides: object) -> CircuitBreakerConfig:
        """Build a breaker configuration, letting callers add policy hooks.

        Args:
            **overrides: Extra ``CircuitBreakerConfig`` fields such as
                ``on_state_change`` or ``metadata``. They win over settings.
        """
        values: dict[str, object] = {
            "max_requests": self.max_requests,
            "interval": self.interval,
            "timeout": self.timeout,
            "ready_to_trip": consecutive_failures_over(self.consecutive_failures),
        }
        values.update(overrides)
        return CircuitBreakerConfig(**values)  # type: ignore[arg-type]

    def build_breaker(
        self,
        *,
        logger: AnyLogger | None = None,
        **overrides: object,
    ) -> CircuitBreaker:
        """Build a ready ``CircuitBreaker`` named after ``name``."""
        return CircuitBreaker(
            self.name,
            config=self.to_config(**overrides),
            logger=logger,
        )

    def configure_logging(self) -> structlog.stdlib.BoundLogger:
        """Configure structlog at ``log_level`` and return the breaker logger."""
        return configure_structlog(log_level=self.log_level)
