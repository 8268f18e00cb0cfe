"""Retry Policy — bounded retry with increasing backoff for transient failures.

Invariants:
    - Only errors classified retryable (NetworkFailure) are retried
    - NotFound / AuthFailure / ValidationFailure terminate on the first attempt
    - Total attempts = 1 + max_retries
    - backoff(n) is the delay in seconds before retry n (n starts at 0) and never
      decreases as n grows

Design Decisions:
    - Policy is a value object with no timer: the Resolution Pipeline owns the sleep,
      which tests replace with a recorder
    - ±25% jitter optional: deterministic by default so backoff tests stay exact
"""

import random
from dataclasses import dataclass, field
from typing import Callable

from cardsync.core.errors import CardSyncError

Backoff = Callable[[int], float]


def linear_backoff(base_seconds: float = 1.0) -> Backoff:
    """base, 2*base, 3*base, ..."""
    def backoff(retry: int) -> float:
        return base_seconds * (retry + 1)
    return backoff


def exponential_backoff(
    base_seconds: float = 1.0, max_seconds: float = 60.0, jitter: bool = False,
) -> Backoff:
    """min(max, 2**n * base), optionally with ±25% jitter."""
    def backoff(retry: int) -> float:
        delay = min(max_seconds, (2 ** retry) * base_seconds)
        if jitter:
            delay *= random.uniform(0.75, 1.25)  # nosec B311
        return delay
    return backoff


def is_transient(error: BaseException) -> bool:
    return isinstance(error, CardSyncError) and error.retryable


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    backoff: Backoff = field(default_factory=linear_backoff)
    is_retryable: Callable[[BaseException], bool] = is_transient

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        """attempt is the 0-based index of the attempt that just failed."""
        return attempt < self.max_retries and self.is_retryable(error)

    def delay_for(self, attempt: int) -> float:
        return self.backoff(attempt)


NO_RETRY = RetryPolicy(max_retries=0)
