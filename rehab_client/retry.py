"""
Retry policy: exponential backoff with jitter for retryable error kinds.
Server-supplied Retry-After hints override the computed delay.
"""

import random
from dataclasses import dataclass, field
from typing import Optional

from .config import RehabConfig
from .errors import RETRYABLE_KINDS, ErrorKind
from .types import RetryDecision


@dataclass
class RetryPolicy:
    """Decides whether a failed attempt is retried and after what delay."""

    # Total attempts including the first one
    max_attempts: int = 4
    base_delay: float = 1.0
    max_delay: float = 30.0
    # Delay is scaled by a factor in [1 - jitter, 1 + jitter]
    jitter: float = 0.2
    rng: random.Random = field(default_factory=random.Random, repr=False)

    @classmethod
    def from_config(cls, config: RehabConfig) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.retry_base_delay,
            max_delay=config.retry_max_delay,
            jitter=config.retry_jitter,
        )

    def backoff(self, attempt: int) -> float:
        """Delay before retrying after zero-based ``attempt``, without jitter."""
        return min(self.max_delay, self.base_delay * (2 ** attempt))

    def decide(
        self,
        attempt: int,
        kind: ErrorKind,
        server_hint: Optional[float] = None,
    ) -> RetryDecision:
        """
        Decide on a retry after the zero-based ``attempt`` failed with ``kind``.

        Args:
            attempt: Index of the attempt that just failed (0 for the first)
            kind: Classification of the failure
            server_hint: Retry-After seconds reported by the server, if any
        """
        if kind not in RETRYABLE_KINDS:
            return RetryDecision(should_retry=False)
        if attempt + 1 >= self.max_attempts:
            return RetryDecision(should_retry=False)

        if server_hint is not None:
            return RetryDecision(should_retry=True, delay=max(0.0, server_hint))

        delay = self.backoff(attempt)
        if self.jitter:
            delay *= self.rng.uniform(1 - self.jitter, 1 + self.jitter)
        return RetryDecision(should_retry=True, delay=min(self.max_delay, delay))
