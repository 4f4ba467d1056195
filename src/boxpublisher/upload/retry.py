"""Bounded retry with fixed backoff for multipart parts.

A failing part is retried up to max_attempts in total, sleeping delay_s
between attempts. sleep_fn is injectable so tests run without waiting.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_DELAY_S = 5.0


@dataclass(frozen=True)
class RetryPolicy:
    """Retry settings for a single multipart part.

    Attributes:
        max_attempts: Total attempts per part, including the first.
        delay_s: Fixed delay between attempts in seconds.
        sleep_fn: Sleep function (time.sleep by default).
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    delay_s: float = DEFAULT_DELAY_S
    sleep_fn: Callable[[float], None] = field(default=time.sleep, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.delay_s < 0:
            raise ValueError(f"delay_s must be >= 0, got {self.delay_s}")

    def can_retry(self, attempt: int) -> bool:
        """Whether another attempt is allowed after `attempt` failed."""
        return attempt < self.max_attempts

    def wait(self) -> None:
        """Sleep for the backoff delay."""
        if self.delay_s > 0:
            self.sleep_fn(self.delay_s)


@dataclass
class PartAttempts:
    """Mutable attempt counter for one part."""

    part_number: int
    attempt: int = 0
    last_error: Exception | None = None

    def record_attempt(self) -> None:
        self.attempt += 1

    def record_error(self, error: Exception) -> None:
        self.last_error = error
