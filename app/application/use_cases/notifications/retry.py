"""Backoff policy applied to outbox entries after a transient failure."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from app.config import MIN_RETRY_DELAY_SECONDS, Settings, get_settings

STRATEGY_FIXED = "fixed"
STRATEGY_EXPONENTIAL = "exponential"


@dataclass(frozen=True)
class RetryPolicy:
    """How long to wait before attempt ``n + 1`` and when to give up."""

    base_delay_seconds: int = MIN_RETRY_DELAY_SECONDS
    max_attempts: int = 5
    strategy: str = STRATEGY_FIXED
    max_delay_seconds: int = 3600

    def __post_init__(self) -> None:
        if self.base_delay_seconds < MIN_RETRY_DELAY_SECONDS:
            raise ValueError(
                f"Retry delay must be at least {MIN_RETRY_DELAY_SECONDS} seconds"
            )
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be positive")
        if self.strategy not in (STRATEGY_FIXED, STRATEGY_EXPONENTIAL):
            raise ValueError(f"Unknown retry strategy '{self.strategy}'")

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "RetryPolicy":
        settings = settings or get_settings()
        return cls(
            base_delay_seconds=settings.outbox_retry_base_delay_seconds,
            max_attempts=settings.outbox_max_attempts,
            strategy=settings.outbox_retry_strategy,
            max_delay_seconds=settings.outbox_retry_max_delay_seconds,
        )

    def delay_for(self, attempts: int) -> timedelta:
        """Return the wait after the ``attempts``-th failed attempt (1-based)."""

        if self.strategy == STRATEGY_FIXED:
            return timedelta(seconds=self.base_delay_seconds)
        exponent = max(attempts - 1, 0)
        seconds = self.base_delay_seconds * (2**exponent)
        return timedelta(seconds=max(min(seconds, self.max_delay_seconds), self.base_delay_seconds))

    def is_exhausted(self, attempts: int) -> bool:
        return attempts >= self.max_attempts

    def next_attempt_at(self, attempts: int, *, now: datetime) -> datetime:
        return now + self.delay_for(attempts)


__all__ = ["RetryPolicy", "STRATEGY_EXPONENTIAL", "STRATEGY_FIXED"]
