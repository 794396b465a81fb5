"""Retry policy for the blob transport.

Exponential backoff with a capped attempt count and optional jitter. The
policy only computes delays; the transport decides what is transient and
does the waiting, so the policy is testable without any network calls.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass
class RetryPolicy:
    """Backoff parameters for one transfer.

    Attributes:
        max_attempts: Total attempts including the first (>= 1).
        base_delay: Delay in seconds after the first failed attempt.
        multiplier: Growth factor between consecutive delays.
        max_delay: Cap applied to computed backoff. Server retry-after hints
            are honoured in full.
        jitter: Fraction of the delay added at random (0.1 = up to +10 %).
    """

    max_attempts: int = 5
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 60.0
    jitter: float = 0.1
    rand: Callable[[], float] = field(default=random.random, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        if self.jitter < 0:
            raise ValueError("jitter must be >= 0")

    def should_retry(self, attempt: int) -> bool:
        """True if another attempt may follow failed attempt number *attempt* (1-based)."""
        return attempt < self.max_attempts

    def delay(self, attempt: int, retry_after: float | None = None) -> float:
        """Seconds to wait after failed attempt number *attempt* (1-based).

        A server-provided *retry_after* replaces the computed backoff and is
        returned uncapped.
        Jitter and the ``max_delay`` cap apply to computed backoff only.
        """
        if retry_after is not None:
            return max(0.0, retry_after)
        backoff = self.base_delay * self.multiplier ** (attempt - 1)
        backoff += backoff * self.jitter * self.rand()
        return min(self.max_delay, backoff)
